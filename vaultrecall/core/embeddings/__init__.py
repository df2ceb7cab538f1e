"""Embedding providers."""

from vaultrecall.core.embeddings.base import Embedder
from vaultrecall.core.embeddings.ollama import OllamaEmbedder
from vaultrecall.core.embeddings.openai import OpenAIEmbedder

__all__ = ["Embedder", "OllamaEmbedder", "OpenAIEmbedder"]
