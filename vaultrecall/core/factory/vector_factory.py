"""
Factory for creating vector store backends.
"""

from urllib.parse import urlparse

from vaultrecall.config import QdrantConfig
from vaultrecall.core.vector_store.base import VectorStore
from vaultrecall.core.vector_store.qdrant import QdrantStore


class VectorStoreFactory:
    """Factory for creating vector store backends from configuration."""

    @staticmethod
    def create(config: QdrantConfig) -> VectorStore:
        """
        Create vector store from configuration.

        The vector size is supplied later through ensure_collection(), once
        the embedder has been asked for its dimension.

        Args:
            config: Qdrant configuration

        Returns:
            Vector store instance
        """
        # Parse URL to extract host and port
        parsed = urlparse(config.url)
        host = parsed.hostname or "localhost"
        port = parsed.port or 6333

        return QdrantStore(
            host=host,
            port=port,
            collection_name=config.collection_name,
            use_grpc=config.use_grpc,
            use_quantization=config.use_quantization,
            hnsw_m=config.hnsw_m,
            hnsw_ef_construct=config.hnsw_ef_construct,
            on_disk=config.on_disk,
            timeout=config.timeout,
        )
