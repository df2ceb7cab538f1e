"""
Factory modules for creating VaultRecall components.

Provides factories for the embedder and the vector store.
"""

from vaultrecall.core.factory.embedder_factory import EmbedderFactory
from vaultrecall.core.factory.vector_factory import VectorStoreFactory

__all__ = [
    "EmbedderFactory",
    "VectorStoreFactory",
]
