"""
Base interface for vector storage.

The vector store is the system of record for passage and capture
embeddings; the engine keeps no persistent copy of vectors.
"""

from abc import ABC, abstractmethod

from vaultrecall.models.capture import CapturedPage, CaptureCategory, CaptureRecord, DuplicateCheck
from vaultrecall.models.passage import Passage
from vaultrecall.models.retrieval import VectorHit


class VectorStore(ABC):
    """Abstract base class for vector storage implementations."""

    @abstractmethod
    async def ensure_collection(self, vector_size: int) -> None:
        """
        Create the collection and payload indexes if they are missing.

        Args:
            vector_size: Embedding dimension

        Raises:
            VectorStoreError: If the collection cannot be created
        """
        pass

    @abstractmethod
    async def delete_by_source(self, source_id: str) -> None:
        """
        Delete every passage of a source.

        Raises:
            VectorStoreError: If deletion fails
        """
        pass

    @abstractmethod
    async def upsert(
        self,
        passages: list[Passage],
        vectors: list[list[float]],
        links: list[str] | None = None,
    ) -> None:
        """
        Store passages with their embeddings.

        Args:
            passages: Passages with id and source_id assigned
            vectors: One embedding per passage, same order
            links: Outgoing graph links of the passages' source

        Raises:
            ValidationError: If passages and vectors do not line up
            VectorStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def batch_replace(
        self,
        source_id: str,
        passages: list[Passage],
        vectors: list[list[float]],
        links: list[str] | None = None,
    ) -> None:
        """
        Replace all passages of a source in one atomic request
        (delete by source, then upsert).

        Raises:
            ValidationError: If passages and vectors do not line up
            VectorStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def search(
        self, vector: list[float], limit: int = 10, min_score: float = 0.0
    ) -> list[VectorHit]:
        """
        Nearest neighbors of a query vector.

        Args:
            vector: Query embedding
            limit: Maximum hits
            min_score: Similarity threshold

        Returns:
            Hits sorted by descending similarity

        Raises:
            VectorStoreError: If the search fails
        """
        pass

    @abstractmethod
    async def upsert_captured(self, record: CaptureRecord, vector: list[float]) -> None:
        """
        Store a captured memory.

        Raises:
            VectorStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def list_captured(
        self,
        category: CaptureCategory | None = None,
        limit: int = 20,
        cursor: str | None = None,
    ) -> CapturedPage:
        """
        Page through captured memories.

        Args:
            category: Restrict to one category (default: all)
            limit: Page size
            cursor: next_cursor of the previous page

        Raises:
            VectorStoreError: If the listing fails
        """
        pass

    @abstractmethod
    async def delete_captured(self, capture_id: str) -> None:
        """
        Delete a captured memory by ID.

        Raises:
            VectorStoreError: If deletion fails
        """
        pass

    @abstractmethod
    async def find_nearest_captured(
        self, vector: list[float], min_score: float
    ) -> DuplicateCheck:
        """
        Closest captured memory at or above min_score.

        Never raises: a failed lookup is reported through DuplicateCheck.error
        with exists=False.
        """
        pass

    @abstractmethod
    async def health_check(self) -> None:
        """
        Verify the store is reachable.

        Raises:
            VectorStoreError: If the store is unavailable
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection."""
        pass
