"""
ID generation utilities for VaultRecall.

Provides consistent ID generation for all entity types:
- Passages: psg_xxx (deterministic from source id and line range)
- Captures: cap_xxx (random)
- Content hashes: SHA256 hex digest of passage text
"""

import hashlib
from uuid import uuid4


def generate_passage_id(
    source_id: str, start_line: int, end_line: int, ordinal: int = 0
) -> str:
    """
    Generate a deterministic Passage ID.

    Re-indexing an unchanged region of a source reproduces the same ID,
    so the vector store and lexical index never accumulate duplicates.

    Args:
        source_id: Source identifier (e.g. "vault/Projects/Foo.md")
        start_line: First line of the passage (1-based)
        end_line: Last line of the passage (inclusive)
        ordinal: Position among passages sharing the same line range; only
            hard-split long lines produce more than one

    Returns:
        ID in format "psg_xxx" where xxx is 16 hex characters
    """
    key = f"{source_id}:{start_line}-{end_line}"
    if ordinal:
        key = f"{key}#{ordinal}"
    digest = hashlib.sha256(key.encode()).hexdigest()
    return f"psg_{digest[:16]}"


def generate_capture_id() -> str:
    """
    Generate unique Capture ID.

    Returns:
        ID in format "cap_xxx" where xxx is 12 hex characters
    """
    return f"cap_{uuid4().hex[:12]}"


def compute_content_hash(text: str) -> str:
    """SHA256 hex digest of text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def truncate_snippet(text: str, max_chars: int = 700) -> str:
    """Cut text to max_chars, marking the cut with an ellipsis."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."
