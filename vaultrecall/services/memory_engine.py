"""
Memory Engine - unified interface over indexing, retrieval and capture.

Brings together:
- Embedder & vector store (Qdrant)
- Lexical index & knowledge graph (local, persisted under the state dir)
- Indexing pipeline, hybrid retriever, capture service
"""

import asyncio
from pathlib import Path

from vaultrecall.config import Config
from vaultrecall.core.embeddings.base import Embedder
from vaultrecall.core.factory import EmbedderFactory, VectorStoreFactory
from vaultrecall.core.graph import KnowledgeGraph
from vaultrecall.core.lexical import LexicalIndex
from vaultrecall.core.vector_store.base import VectorStore
from vaultrecall.models.capture import (
    CapturedPage,
    CaptureCategory,
    CaptureOutcome,
    CaptureReason,
    CaptureRecord,
)
from vaultrecall.models.graph import OrganizeReport
from vaultrecall.models.indexing import IndexingFailure, IndexingSummary
from vaultrecall.models.retrieval import RetrievalResult, SearchResponse, Snippet
from vaultrecall.services.capture import CaptureService, RateLimiter
from vaultrecall.services.indexing import IndexingPipeline
from vaultrecall.services.organizer import organize_report
from vaultrecall.services.retrieval import HybridRetriever, format_recall_context
from vaultrecall.utils.exceptions import NotFoundError, SecurityError, VaultRecallError
from vaultrecall.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

LEXICAL_INDEX_FILE = "lexical-index.json"
GRAPH_FILE = "knowledge-graph.json"
WORKSPACE_MEMORY_FILE = "MEMORY.md"
WORKSPACE_MEMORY_DIR = "memory"
READABLE_PREFIXES = ("MEMORY.md", "memory/", "vault/", "extra/", "captured/")
CAPTURED_NOTE = "captured memory - stored in vector DB only; use search to find captured memories"


class MemoryEngine:
    """
    Unified memory engine.

    Features:
    - Full and per-source indexing into lexical index, graph and Qdrant
    - Hybrid search with lexical-only fallback
    - Time-boxed auto-recall
    - Auto-capture with rate limiting and duplicate suppression
    - Orphan report and safe snippet reads

    When Qdrant or the embedder fail their startup health check the engine
    keeps running in lexical-only mode.
    """

    def __init__(
        self,
        config: Config,
        embedder: Embedder | None = None,
        vector_store: VectorStore | None = None,
    ):
        """
        Initialize Memory Engine.

        Args:
            config: Configuration object
            embedder: Embedder for passages, queries and captures
            vector_store: Vector database (Qdrant)
        """
        self.config = config
        self.embedder = embedder
        self.vector_store = vector_store
        self.vectors_enabled = embedder is not None and vector_store is not None
        self.vault_path: Path | None = None

        state_dir = config.indexing.resolved_state_dir()
        self.lexical_index = LexicalIndex(state_dir / LEXICAL_INDEX_FILE)
        self.graph = KnowledgeGraph(state_dir / GRAPH_FILE)

        self.pipeline = IndexingPipeline(
            lexical_index=self.lexical_index,
            graph=self.graph,
            embedder=embedder,
            vector_store=vector_store,
            target_words=config.indexing.target_words,
            overlap_words=config.indexing.overlap_words,
            file_suffixes=tuple(config.indexing.file_suffixes),
        )

        self.retriever = HybridRetriever(
            embedder=embedder,
            vector_store=vector_store,
            lexical_index=self.lexical_index,
            graph=self.graph,
            search_config=config.search,
            recency_config=config.recency,
            recall_config=config.recall,
        )

        self.rate_limiter = RateLimiter(
            window_seconds=config.capture.window_seconds,
            max_per_window=config.capture.max_per_window,
        )
        self.capture_service = (
            CaptureService(embedder, vector_store, config.capture, self.rate_limiter)
            if self.vectors_enabled
            else None
        )

        self._indexing = False
        self._prune_task: asyncio.Task | None = None

    @classmethod
    def from_config(cls, config: Config, configure_logging: bool = True) -> "MemoryEngine":
        """
        Build an engine with adapters created from configuration.

        Args:
            config: Configuration object
            configure_logging: Install loguru sinks from config.logging
        """
        if configure_logging:
            setup_logging(
                level=config.logging.level,
                log_to_file=config.logging.log_to_file,
                log_dir=config.logging.log_dir,
                file_rotation=config.logging.file_rotation,
                file_retention=config.logging.file_retention,
                compression=config.logging.compression,
                serialize=config.logging.serialize,
            )

        logger.info(
            f"Configuration: Embedder={config.embedder.provider}/{config.embedder.model}, "
            f"Qdrant={config.qdrant.url}/{config.qdrant.collection_name}"
        )
        embedder = EmbedderFactory.create(config.embedder)
        vector_store = VectorStoreFactory.create(config.qdrant)
        return cls(config=config, embedder=embedder, vector_store=vector_store)

    def _set_vectors_enabled(self, enabled: bool) -> None:
        self.vectors_enabled = enabled
        self.pipeline.vectors_enabled = enabled
        self.retriever.vectors_enabled = enabled

    async def initialize(self) -> None:
        """
        Validate paths, check collaborators and load persisted state.

        Raises:
            ConfigurationError: If the vault path is missing or inaccessible
        """
        logger.info("Initializing Memory Engine")
        self.vault_path = self.config.validate_paths()

        if self.vectors_enabled:
            try:
                await self.vector_store.health_check()
                logger.info(f"Qdrant OK at {self.config.qdrant.url}")
                await self.embedder.health_check()
                logger.info(f"Embedder OK: {self.config.embedder.model}")
            except VaultRecallError as e:
                logger.error(f"Health check failed, running lexical-only: {e}")
                self._set_vectors_enabled(False)

        self.lexical_index.load()
        self.graph.load()

        if self.config.capture.enabled and self.vectors_enabled:
            self.start_prune_worker(self.config.capture.prune_interval_seconds)

        features = [
            name
            for name, enabled in (
                ("auto-recall", self.config.recall.enabled),
                ("auto-capture", self.config.capture.enabled),
            )
            if enabled
        ]
        logger.info(
            f"Memory Engine ready (vault: {self.vault_path}, "
            f"features: [{', '.join(features) or 'none'}], "
            f"mode: {'hybrid' if self.vectors_enabled else 'lexical-only'})"
        )

    def _require_vault(self) -> Path:
        if self.vault_path is None:
            self.vault_path = self.config.validate_paths()
        return self.vault_path

    def _workspace_root(self) -> Path:
        return Path(self.config.indexing.workspace_path).expanduser().resolve()

    def _extra_roots(self) -> list[Path]:
        return [Path(p).expanduser().resolve() for p in self.config.indexing.extra_paths]

    # INDEXING

    async def run_indexing(self) -> IndexingSummary | None:
        """
        Index every configured source and persist local state.

        Sources: the vault (vault/), workspace MEMORY.md, workspace memory/
        (memory/) and each extra path i (extra/<i>/).

        Returns:
            IndexingSummary, or None if another run is already in progress
        """
        if self._indexing:
            logger.debug("Indexing already in progress")
            return None
        self._indexing = True

        try:
            vault = self._require_vault()
            logger.info("Indexing started")

            if self.vectors_enabled:
                try:
                    vector_size = await EmbedderFactory.get_dimension(
                        self.embedder, self.config.embedder
                    )
                    await self.vector_store.ensure_collection(vector_size)
                except VaultRecallError as e:
                    logger.error(f"Vector store setup failed, indexing locally only: {e}")
                    self._set_vectors_enabled(False)

            summary = IndexingSummary(vectors=self.vectors_enabled)
            failures: list[IndexingFailure] = summary.failures

            summary.passages += await self.pipeline.index_tree(vault, "vault/", failures)

            workspace = self._workspace_root()
            memory_file = workspace / WORKSPACE_MEMORY_FILE
            if memory_file.is_file():
                summary.passages += await self._index_single(
                    memory_file, WORKSPACE_MEMORY_FILE, failures
                )
            summary.passages += await self.pipeline.index_tree(
                workspace / WORKSPACE_MEMORY_DIR, f"{WORKSPACE_MEMORY_DIR}/", failures
            )

            for index, root in enumerate(self._extra_roots()):
                prefix = f"extra/{index}/"
                if root.is_file():
                    summary.passages += await self._index_single(
                        root, f"{prefix}{root.name}", failures
                    )
                elif root.is_dir():
                    summary.passages += await self.pipeline.index_tree(root, prefix, failures)
                else:
                    logger.warning(f"Extra path not found: {root}")

            self.save_state()
            logger.info(
                f"Indexing complete: {summary.passages} passages, "
                f"{len(failures)} failures"
            )
            return summary
        finally:
            self._indexing = False

    async def _index_single(
        self, path: Path, source_id: str, failures: list[IndexingFailure]
    ) -> int:
        try:
            return await self.pipeline.index_file(path, source_id)
        except Exception as e:
            logger.warning(f"Failed to index {source_id}: {e}")
            failures.append(IndexingFailure(source_id=source_id, error=str(e)))
            return 0

    async def index_source(self, text: str, source_id: str) -> int:
        """Index (or re-index) one source and persist local state."""
        count = await self.pipeline.index_source(text, source_id)
        self.save_state()
        return count

    async def remove_source(self, source_id: str) -> int:
        """Retract one source from every index and persist local state."""
        removed = await self.pipeline.remove_source(source_id)
        self.save_state()
        return removed

    def save_state(self) -> None:
        """Persist the lexical index and knowledge graph."""
        self.lexical_index.save()
        self.graph.save()

    # RETRIEVAL

    async def search(
        self, query: str, max_results: int | None = None, min_score: float | None = None
    ) -> SearchResponse:
        """Hybrid search (see HybridRetriever.search)."""
        return await self.retriever.search(query, max_results, min_score)

    async def recall(self, prompt: str) -> list[RetrievalResult]:
        """Auto-recall results for a prompt; empty when auto-recall is disabled."""
        if not self.config.recall.enabled or not self.vectors_enabled:
            return []
        return await self.retriever.recall(prompt)

    async def recall_context(self, prompt: str) -> str:
        """Auto-recall rendered as a <relevant-memories> block ("" when nothing found)."""
        return format_recall_context(await self.recall(prompt))

    def read_snippet(self, path: str, from_line: int = 1, lines: int | None = None) -> Snippet:
        """
        Read a line range from an indexed source.

        Args:
            path: Source ID (MEMORY.md, memory/..., vault/..., extra/<i>/..., captured/...)
            from_line: First line, 1-based
            lines: Number of lines (default: to end of file)

        Raises:
            SecurityError: If path is outside the indexed sources
            NotFoundError: If the file or extra root does not exist
        """
        if not path.startswith(READABLE_PREFIXES):
            raise SecurityError(
                "Access denied: path outside indexed sources", context={"path": path}
            )

        if path.startswith("captured/"):
            return Snippet(path=path, note=CAPTURED_NOTE)

        if path.startswith("vault/"):
            root = self._require_vault()
            relative = path[len("vault/") :]
        elif path.startswith("extra/"):
            parts = path.split("/")[1:]
            index = parts.pop(0) if parts else ""
            extra_roots = self._extra_roots()
            if not index.isdigit() or int(index) >= len(extra_roots):
                raise NotFoundError("Unknown extra path index", context={"path": path})
            root = extra_roots[int(index)]
            relative = "/".join(parts)
            if root.is_file():
                if relative != root.name:
                    raise NotFoundError(f"File not found: {path}", context={"path": path})
                root = root.parent
        else:
            root = self._workspace_root()
            relative = path

        root = root.resolve()
        full_path = (root / relative).resolve()
        if not full_path.is_relative_to(root):
            raise SecurityError("Access denied: path traversal", context={"path": path})

        try:
            content = full_path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise NotFoundError(f"File not found: {path}", context={"path": path}) from e

        all_lines = content.split("\n")
        start = max(0, from_line - 1)
        end = min(len(all_lines), start + lines) if lines else len(all_lines)
        return Snippet(
            path=path,
            from_line=from_line,
            lines=max(0, end - start),
            text="\n".join(all_lines[start:end]),
        )

    def organize(self) -> OrganizeReport:
        """Orphaned notes report."""
        return organize_report(self.graph, self.config.organize.excluded_patterns)

    # CAPTURE

    async def capture(self, text: str, conversation_key: str = "default") -> CaptureOutcome:
        """Capture one text (classification, rate limit, dedup, store)."""
        if self.capture_service is None or not self.vectors_enabled:
            return CaptureOutcome(
                reason=CaptureReason.UNAVAILABLE, warning="vector store unavailable"
            )
        return await self.capture_service.capture(text, conversation_key)

    async def auto_capture(
        self, texts: list[str], conversation_key: str = "default"
    ) -> list[CaptureRecord]:
        """Capture qualifying messages when auto-capture is enabled."""
        if not self.config.capture.enabled or self.capture_service is None:
            return []
        if not self.vectors_enabled:
            return []
        return await self.capture_service.capture_messages(texts, conversation_key)

    def _require_capture(self) -> CaptureService:
        if self.capture_service is None or not self.vectors_enabled:
            raise NotFoundError("Captured memories unavailable: vector store disabled")
        return self.capture_service

    async def list_captured(
        self,
        category: CaptureCategory | None = None,
        limit: int = 20,
        cursor: str | None = None,
    ) -> CapturedPage:
        return await self._require_capture().list_captured(category, limit, cursor)

    async def delete_captured(self, capture_id: str) -> None:
        await self._require_capture().delete_captured(capture_id)

    async def export_captured(
        self,
        category: CaptureCategory | None = None,
        limit: int = 100,
        title: str | None = None,
    ) -> tuple[str, int]:
        """Export captured memories to the vault inbox; returns (path, count)."""
        return await self._require_capture().export_captured(
            self._require_vault(), category, limit, title
        )

    # BACKGROUND WORKERS

    def start_prune_worker(self, interval_seconds: float) -> None:
        """Start the periodic rate limiter prune."""
        if self._prune_task is None or self._prune_task.done():
            self._prune_task = asyncio.create_task(self._prune_worker(interval_seconds))

    def stop_prune_worker(self) -> None:
        if self._prune_task and not self._prune_task.done():
            self._prune_task.cancel()

    async def _prune_worker(self, interval_seconds: float) -> None:
        while True:
            try:
                await asyncio.sleep(interval_seconds)
                self.rate_limiter.prune()
            except asyncio.CancelledError:
                logger.debug("Capture window prune worker stopped")
                break

    async def close(self) -> None:
        """Stop workers, persist state and close connections."""
        logger.info("Shutting down Memory Engine")

        self.stop_prune_worker()
        if self._prune_task is not None:
            try:
                await self._prune_task
            except asyncio.CancelledError:
                pass
            self._prune_task = None

        self.save_state()

        if self.vector_store is not None:
            await self.vector_store.close()
        if self.embedder is not None:
            await self.embedder.close()

        logger.info("Memory Engine shutdown complete")
