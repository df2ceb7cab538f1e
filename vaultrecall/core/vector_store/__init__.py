"""
Vector store implementations for VaultRecall.

Provides abstract base and the Qdrant implementation.
"""

from vaultrecall.core.vector_store.base import VectorStore
from vaultrecall.core.vector_store.qdrant import QdrantStore

__all__ = [
    "VectorStore",
    "QdrantStore",
]
