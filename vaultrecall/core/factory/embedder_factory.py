"""
Factory for creating embedder providers.
"""

from vaultrecall.config import EmbedderConfig
from vaultrecall.core.embeddings.base import Embedder
from vaultrecall.core.embeddings.ollama import OllamaEmbedder
from vaultrecall.core.embeddings.openai import OpenAIEmbedder
from vaultrecall.utils.exceptions import ConfigurationError


class EmbedderFactory:
    """Factory for creating embedder providers from configuration."""

    @staticmethod
    def create(config: EmbedderConfig) -> Embedder:
        """
        Create embedder from configuration.

        Args:
            config: Embedder configuration

        Returns:
            Embedder instance

        Raises:
            ConfigurationError: If the provider is not supported or misconfigured
        """
        if config.provider == "ollama":
            return OllamaEmbedder(
                host=config.base_url,
                model=config.model,
                timeout=config.timeout,
            )
        elif config.provider == "openai":
            if not config.api_key:
                raise ConfigurationError("OpenAI API key is required")
            # The Ollama default URL is meaningless for OpenAI
            base_url = None if config.base_url == EmbedderConfig().base_url else config.base_url
            return OpenAIEmbedder(
                api_key=config.api_key,
                model=config.model,
                base_url=base_url,
                timeout=config.timeout,
            )
        else:
            raise ConfigurationError(f"Unsupported embedder provider: {config.provider}")

    @staticmethod
    async def get_dimension(embedder: Embedder, config: EmbedderConfig | None = None) -> int:
        """
        Get embedding dimension with fallback logic.

        Priority:
        1. From config if provided
        2. From the embedder (known model table or test embedding)

        Args:
            embedder: Embedder instance
            config: Optional embedder config with dimension hint

        Returns:
            Embedding dimension
        """
        if config and config.dimension:
            return config.dimension
        return await embedder.get_dimension()
