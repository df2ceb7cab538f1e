"""
Wiki-link knowledge graph.

Tracks outgoing [[links]] per note and the matching backlinks on link
targets. Updates are diff-based so backlinks held by other nodes are never
lost or duplicated. Nodes that are still referenced after their source is
removed stay behind as ghosts until the last backlink disappears.
"""

import json
import os
import re
from pathlib import Path

from vaultrecall.models.graph import GraphNode, RelatedSources
from vaultrecall.utils.logger import get_logger

logger = get_logger(__name__)

NOTE_SUFFIX = ".md"

_FENCED_CODE_RE = re.compile(r"```.*?```", re.DOTALL)
_INLINE_CODE_RE = re.compile(r"`[^`]+`")
_WIKILINK_RE = re.compile(r"\[\[(.*?)\]\]")


def extract_links(text: str) -> list[str]:
    """
    Extract wiki-link targets in order of first appearance.

    Code blocks and inline code are ignored, a backslash directly before
    the opening brackets escapes the link, and aliases ([[Target|Alias]])
    keep only the target.
    """
    stripped = _INLINE_CODE_RE.sub("", _FENCED_CODE_RE.sub("", text))

    links: list[str] = []
    for match in _WIKILINK_RE.finditer(stripped):
        if match.start() > 0 and stripped[match.start() - 1] == "\\":
            continue
        target = match.group(1).split("|", 1)[0].strip()
        if target and target not in links:
            links.append(target)
    return links


def _basename(key: str) -> str:
    name = key.rsplit("/", 1)[-1]
    if name.endswith(NOTE_SUFFIX):
        name = name[: -len(NOTE_SUFFIX)]
    return name


class KnowledgeGraph:
    """
    Bidirectional link graph keyed by source ID.

    Invariant: B.backlinks contains A iff A.links contains B.
    """

    def __init__(self, graph_path: Path | None = None):
        """
        Initialize an empty graph.

        Args:
            graph_path: JSON file used by load() and save()
        """
        self.graph_path = Path(graph_path) if graph_path else None
        self.dirty = False
        self._nodes: dict[str, GraphNode] = {}
        # Keys updated through update_source; every other key is a link target
        self._sources: set[str] = set()

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, source_id: str) -> bool:
        return source_id in self._nodes

    def nodes(self) -> list[GraphNode]:
        """All nodes, ghosts included."""
        return list(self._nodes.values())

    def get_node(self, source_id: str) -> GraphNode | None:
        return self._nodes.get(source_id)

    def update_source(self, source_id: str, text: str) -> None:
        """
        Replace a source's outgoing links with those found in text.

        Backlinks are removed from targets no longer linked and added to
        newly linked targets; the node's own backlinks are preserved.
        """
        links = extract_links(text)
        existing = self._nodes.get(source_id)
        old_links = existing.links if existing else []

        self._nodes[source_id] = GraphNode(
            source_id=source_id,
            links=links,
            backlinks=existing.backlinks if existing else [],
        )
        self._sources.add(source_id)

        for target in old_links:
            if target not in links:
                self._remove_backlink(target, source_id)
        for target in links:
            if target not in old_links:
                self._add_backlink(target, source_id)

        self.dirty = True

    def remove_source(self, source_id: str) -> None:
        """
        Remove a source's outgoing links.

        The node is deleted when nothing links to it; otherwise it is kept
        as a ghost with empty links.
        """
        node = self._nodes.get(source_id)
        if node is None:
            return

        self._sources.discard(source_id)
        for target in list(node.links):
            self._remove_backlink(target, source_id)

        # Self-links may have just emptied this node's backlinks
        node = self._nodes.get(source_id)
        if node is not None:
            if node.backlinks:
                node.links = []
            else:
                del self._nodes[source_id]
        self.dirty = True

    def _add_backlink(self, target: str, source_id: str) -> None:
        node = self._nodes.get(target)
        if node is None:
            node = GraphNode(source_id=target)
            self._nodes[target] = node
        if source_id not in node.backlinks:
            node.backlinks.append(source_id)

    def _remove_backlink(self, target: str, source_id: str) -> None:
        node = self._nodes.get(target)
        if node is None:
            return
        node.backlinks = [b for b in node.backlinks if b != source_id]
        # A ghost is dropped with its last backlink
        if not node.backlinks and target not in self._sources:
            del self._nodes[target]

    def _resolve(self, source_id: str) -> GraphNode | None:
        # 1. Exact key
        node = self._nodes.get(source_id)
        if node is not None:
            return node

        # 2. Key without the note suffix (links are usually written without .md)
        if source_id.endswith(NOTE_SUFFIX):
            node = self._nodes.get(source_id[: -len(NOTE_SUFFIX)])
            if node is not None:
                return node

        # 3. First key with the same final path segment
        basename = _basename(source_id)
        if basename:
            for key, candidate in self._nodes.items():
                if _basename(key) == basename:
                    return candidate
        return None

    def get_related(self, source_id: str) -> RelatedSources:
        """
        Links and backlinks of a source, resolved by exact key, then the key
        without its suffix, then the first key with the same basename.
        No match yields empty lists.
        """
        node = self._resolve(source_id)
        if node is None:
            return RelatedSources()
        return RelatedSources(links=list(node.links), backlinks=list(node.backlinks))

    def get_links(self, source_id: str) -> list[str]:
        """Outgoing links of a source (same resolution as get_related)."""
        return self.get_related(source_id).links

    def get_orphans(self) -> list[str]:
        """Source IDs of nodes without backlinks, in no particular order."""
        return [key for key, node in self._nodes.items() if not node.backlinks]

    def load(self) -> None:
        """Load the adjacency map; a missing or corrupt file leaves the graph empty."""
        self._nodes = {}
        self._sources = set()
        self.dirty = False
        if self.graph_path is None or not self.graph_path.exists():
            return

        try:
            raw = json.loads(self.graph_path.read_text(encoding="utf-8"))
            nodes = {
                key: GraphNode(
                    source_id=key,
                    links=list(value.get("links", [])),
                    backlinks=list(value.get("backlinks", [])),
                )
                for key, value in raw.items()
            }
            sources = {key for key, value in raw.items() if value.get("indexed", True)}
        except Exception as e:
            logger.warning(f"Discarding unreadable knowledge graph {self.graph_path}: {e}")
            return

        self._nodes = nodes
        self._sources = sources
        logger.debug(f"Loaded knowledge graph with {len(nodes)} nodes")

    def save(self) -> None:
        """Write the adjacency map if anything changed since the last load/save."""
        if not self.dirty or self.graph_path is None:
            return

        data = {
            key: {
                "links": node.links,
                "backlinks": node.backlinks,
                "indexed": key in self._sources,
            }
            for key, node in self._nodes.items()
        }
        self.graph_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.graph_path.with_suffix(self.graph_path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.graph_path)
        self.dirty = False
