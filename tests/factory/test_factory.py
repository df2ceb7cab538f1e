"""
Tests for factory classes.

Tests the creation of components using factories.
"""

import pytest

from vaultrecall.config import EmbedderConfig, QdrantConfig
from vaultrecall.core.embeddings.base import Embedder
from vaultrecall.core.embeddings.ollama import OllamaEmbedder
from vaultrecall.core.embeddings.openai import OpenAIEmbedder
from vaultrecall.core.factory import EmbedderFactory, VectorStoreFactory
from vaultrecall.core.vector_store.base import VectorStore
from vaultrecall.core.vector_store.qdrant import QdrantStore
from vaultrecall.utils.exceptions import ConfigurationError


class TestEmbedderFactory:
    """Test embedder factory."""

    def test_create_ollama_embedder(self):
        """Test creating Ollama embedder."""
        config = EmbedderConfig(
            provider="ollama",
            model="nomic-embed-text",
            base_url="http://localhost:11434",
        )

        embedder = EmbedderFactory.create(config)

        assert isinstance(embedder, OllamaEmbedder)
        assert isinstance(embedder, Embedder)
        assert embedder.model == "nomic-embed-text"
        assert embedder.host == "http://localhost:11434"

    def test_create_openai_embedder(self):
        """Test creating OpenAI embedder."""
        config = EmbedderConfig(
            provider="openai",
            model="text-embedding-3-small",
            api_key="sk-test-key",
        )

        embedder = EmbedderFactory.create(config)

        assert isinstance(embedder, OpenAIEmbedder)
        assert embedder.model == "text-embedding-3-small"
        assert "api.openai.com" in str(embedder.client.base_url)

    def test_create_openai_compatible_endpoint(self):
        config = EmbedderConfig(
            provider="openai",
            model="bge-m3",
            api_key="sk-test-key",
            base_url="http://gateway.local/v1",
        )

        embedder = EmbedderFactory.create(config)

        assert str(embedder.client.base_url).startswith("http://gateway.local/v1")

    def test_create_openai_without_api_key_raises_error(self):
        """Test that OpenAI without API key raises error."""
        config = EmbedderConfig(provider="openai", api_key=None)

        with pytest.raises(ConfigurationError, match="API key is required"):
            EmbedderFactory.create(config)

    def test_unsupported_provider_raises_error(self):
        """Test that unsupported provider raises error."""
        config = EmbedderConfig(provider="cohere")

        with pytest.raises(ConfigurationError, match="Unsupported embedder provider"):
            EmbedderFactory.create(config)


@pytest.mark.asyncio
class TestEmbedderDimension:
    async def test_dimension_from_config(self, fake_embedder):
        config = EmbedderConfig(dimension=1024)
        assert await EmbedderFactory.get_dimension(fake_embedder, config) == 1024

    async def test_dimension_from_embedder(self, fake_embedder):
        assert await EmbedderFactory.get_dimension(fake_embedder, EmbedderConfig()) == 32
        assert await EmbedderFactory.get_dimension(fake_embedder) == 32


class TestVectorStoreFactory:
    """Test vector store factory."""

    def test_create_qdrant_store(self):
        """Test creating Qdrant store from a URL."""
        config = QdrantConfig(url="http://qdrant.internal:7333", collection_name="notes")

        store = VectorStoreFactory.create(config)

        assert isinstance(store, QdrantStore)
        assert isinstance(store, VectorStore)
        assert store.host == "qdrant.internal"
        assert store.port == 7333
        assert store.collection_name == "notes"
        assert store.client is None

    def test_default_port(self):
        store = VectorStoreFactory.create(QdrantConfig(url="http://localhost"))

        assert store.host == "localhost"
        assert store.port == 6333

    def test_passes_index_settings(self):
        config = QdrantConfig(use_grpc=True, use_quantization=False, hnsw_m=32, on_disk=True)

        store = VectorStoreFactory.create(config)

        assert store.use_grpc is True
        assert store.use_quantization is False
        assert store.hnsw_m == 32
        assert store.on_disk is True

    def test_every_setting_reaches_store(self):
        config = QdrantConfig(collection_name="notes", hnsw_ef_construct=64, timeout=5)

        store = VectorStoreFactory.create(config)

        for name in QdrantConfig.model_fields:
            if name == "url":
                continue
            assert getattr(store, name) == getattr(config, name)
