"""
Note metadata extraction: YAML frontmatter, markdown headers and
path-based categories. Results are attached to vector store payloads.
"""

import re
from typing import Any

import yaml

_FRONTMATTER_RE = re.compile(r"\A---\n(.*?)\n---", re.DOTALL)
_HEADER_RE = re.compile(r"^#+\s+(.+?)$", re.MULTILINE)

CORE_FILES = ("MEMORY.md", "SOUL.md", "USER.md")


def parse_frontmatter(text: str) -> tuple[list[str], dict[str, Any]]:
    """
    Parse a leading YAML frontmatter block.

    Args:
        text: Note or passage text

    Returns:
        Tuple of (tags, metadata). Both empty when there is no frontmatter
        or it is not a valid YAML mapping.
    """
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return [], {}

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError:
        return [], {}

    if not isinstance(data, dict):
        return [], {}

    raw_tags = data.get("tags") or []
    if isinstance(raw_tags, str):
        raw_tags = raw_tags.split(",")
    tags = [str(tag).strip().strip("'\"") for tag in raw_tags if str(tag).strip()]

    # Payloads must stay JSON serializable (YAML dates become strings)
    metadata = {
        str(key): value if isinstance(value, (str, int, float, bool, list, dict)) else str(value)
        for key, value in data.items()
        if value is not None
    }
    return tags, metadata


def extract_headers(text: str) -> list[str]:
    """Markdown headers, lower-cased and reduced to [a-z0-9 -]."""
    return [
        re.sub(r"[^a-z0-9\s-]", "", header.strip().lower())
        for header in _HEADER_RE.findall(text)
    ]


def infer_category(source_id: str) -> str:
    """Coarse note category from its source path."""
    if source_id.startswith("vault/"):
        if "Journal" in source_id:
            return "journal"
        if "Projects" in source_id:
            return "project"
        if "Topics" in source_id:
            return "knowledge"
        if "People" in source_id:
            return "person"
        return "knowledge"
    if source_id.startswith("memory/"):
        return "session"
    if source_id in CORE_FILES:
        return "core"
    return "other"
