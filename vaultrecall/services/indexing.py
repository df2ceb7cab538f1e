"""
Indexing pipeline: source text -> passages -> lexical index, knowledge
graph and vector store.

Each source is replaced as a unit: its lexical passages are removed and
re-added, its graph links are diffed, and its vectors are swapped with a
single atomic delete+upsert request.
"""

import os
from collections import Counter
from pathlib import Path

from vaultrecall.core.chunking import chunk_text
from vaultrecall.core.embeddings.base import Embedder
from vaultrecall.core.graph import KnowledgeGraph
from vaultrecall.core.lexical import LexicalIndex
from vaultrecall.core.vector_store.base import VectorStore
from vaultrecall.models.indexing import IndexingFailure
from vaultrecall.models.passage import Passage
from vaultrecall.utils.exceptions import IndexingError
from vaultrecall.utils.id_generator import compute_content_hash, generate_passage_id
from vaultrecall.utils.logger import get_logger

logger = get_logger(__name__)


def find_markdown_files(root: Path, suffixes: tuple[str, ...] = (".md",)) -> list[Path]:
    """
    Recursively list note files under root, sorted.

    Unreadable directories are logged and skipped; a missing root yields
    an empty list.
    """
    root = Path(root)
    if not root.is_dir():
        return []

    def on_error(error: OSError) -> None:
        logger.warning(f"Skipping unreadable directory {error.filename}: {error.strerror}")

    files = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=on_error):
        for name in filenames:
            if name.endswith(suffixes):
                files.append(Path(dirpath) / name)
    return sorted(files)


class IndexingPipeline:
    """
    Keeps the lexical index, knowledge graph and vector store consistent
    per source.

    When vectors_enabled is False (embedder or vector store unavailable),
    only the local lexical index and graph are updated.
    """

    def __init__(
        self,
        lexical_index: LexicalIndex,
        graph: KnowledgeGraph,
        embedder: Embedder | None = None,
        vector_store: VectorStore | None = None,
        target_words: int = 400,
        overlap_words: int = 80,
        file_suffixes: tuple[str, ...] = (".md",),
    ):
        self.lexical_index = lexical_index
        self.graph = graph
        self.embedder = embedder
        self.vector_store = vector_store
        self.target_words = target_words
        self.overlap_words = overlap_words
        self.file_suffixes = tuple(file_suffixes)
        self.vectors_enabled = embedder is not None and vector_store is not None

    def prepare_passages(self, text: str, source_id: str) -> list[Passage]:
        """Chunk text and assign deterministic IDs and content hashes."""
        prepared = []
        seen: Counter = Counter()
        for passage in chunk_text(text, self.target_words, self.overlap_words):
            line_range = (passage.start_line, passage.end_line)
            ordinal = seen[line_range]
            seen[line_range] += 1
            prepared.append(
                passage.model_copy(
                    update={
                        "id": generate_passage_id(source_id, *line_range, ordinal=ordinal),
                        "source_id": source_id,
                        "content_hash": compute_content_hash(passage.text),
                    }
                )
            )
        return prepared

    async def index_source(self, text: str, source_id: str) -> int:
        """
        Index one source.

        A source that yields no passages is left untouched everywhere; use
        remove_source() to retract it explicitly.

        Args:
            text: Raw source text
            source_id: Source identifier (e.g. "vault/Projects/Foo.md")

        Returns:
            Number of passages written

        Raises:
            EmbeddingError: If the passages could not be embedded
            VectorStoreError: If the vector store replace failed
        """
        passages = self.prepare_passages(text, source_id)
        if not passages:
            return 0

        self.lexical_index.remove_by_source(source_id)
        self.lexical_index.add(passages)
        self.graph.update_source(source_id, text)

        if self.vectors_enabled:
            vectors = await self.embedder.batch_embed([passage.text for passage in passages])
            await self.vector_store.batch_replace(
                source_id, passages, vectors, links=self.graph.get_links(source_id)
            )

        logger.debug(f"Indexed {source_id}: {len(passages)} passages")
        return len(passages)

    async def index_file(self, path: Path, source_id: str) -> int:
        """
        Read and index one file.

        Raises:
            IndexingError: If the file cannot be read
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise IndexingError(
                f"Cannot read {path}: {e}", context={"source_id": source_id}
            ) from e
        return await self.index_source(text, source_id)

    async def index_tree(
        self,
        root: Path,
        prefix: str,
        failures: list[IndexingFailure] | None = None,
    ) -> int:
        """
        Index every note under root, with source IDs "<prefix><relative path>".

        Per-file failures are logged and, when a list is given, appended to
        failures; they never stop the walk.

        Returns:
            Total passages written
        """
        root = Path(root)
        total = 0
        for path in find_markdown_files(root, self.file_suffixes):
            source_id = f"{prefix}{path.relative_to(root).as_posix()}"
            try:
                total += await self.index_file(path, source_id)
            except Exception as e:
                logger.warning(f"Failed to index {source_id}: {e}")
                if failures is not None:
                    failures.append(IndexingFailure(source_id=source_id, error=str(e)))
        return total

    async def remove_source(self, source_id: str) -> int:
        """
        Retract a source from every index.

        Returns:
            Number of lexical passages removed

        Raises:
            VectorStoreError: If the vector store delete failed
        """
        removed = self.lexical_index.remove_by_source(source_id)
        self.graph.remove_source(source_id)
        if self.vectors_enabled:
            await self.vector_store.delete_by_source(source_id)
        logger.debug(f"Removed {source_id}: {removed} passages")
        return removed
