"""
OpenAI embedder using official SDK.
"""

from openai import AsyncOpenAI

from vaultrecall.core.embeddings.base import Embedder
from vaultrecall.utils.exceptions import EmbeddingError, ValidationError
from vaultrecall.utils.logger import get_logger

logger = get_logger(__name__)


class OpenAIEmbedder(Embedder):
    """
    OpenAI embedder for generating text embeddings.

    Works against the OpenAI API or any compatible endpoint (base_url).
    """

    # Known dimensions for OpenAI embedding models
    _MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        """
        Initialize OpenAI embedder.

        Args:
            api_key: OpenAI API key
            model: Embedding model name (e.g., "text-embedding-3-small")
            base_url: Optional OpenAI-compatible endpoint
            timeout: Request timeout in seconds
        """
        self.model = model
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate embedding for text using OpenAI.

        Raises:
            ValidationError: If text is invalid
            EmbeddingError: If OpenAI API call fails
        """
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty")

        try:
            response = await self.client.embeddings.create(model=self.model, input=text, **kwargs)

            if not response.data:
                raise EmbeddingError("OpenAI returned empty embedding response")

            return response.data[0].embedding
        except ValidationError:
            raise
        except Exception as e:
            logger.bind(
                model=self.model, error=str(e), error_type=type(e).__name__
            ).error(f"OpenAI embedding error: {e}")
            raise EmbeddingError(f"OpenAI embedding error: {e}") from e

    async def batch_embed(
        self, texts: list[str], batch_size: int = 512, **kwargs
    ) -> list[list[float]]:
        """
        Batch embed using the multi-input embeddings endpoint.

        Args:
            texts: List of texts to embed
            batch_size: Number of texts per request
            **kwargs: Additional parameters

        Returns:
            List of embedding vectors, in input order

        Raises:
            EmbeddingError: If batch embedding fails
        """
        if not texts:
            return []

        try:
            embeddings = []
            for i in range(0, len(texts), batch_size):
                batch = texts[i : i + batch_size]
                response = await self.client.embeddings.create(
                    model=self.model, input=batch, **kwargs
                )
                if not response.data or len(response.data) != len(batch):
                    raise EmbeddingError("OpenAI returned incomplete batch embedding response")

                ordered = sorted(response.data, key=lambda item: item.index)
                embeddings.extend(item.embedding for item in ordered)

            return embeddings
        except EmbeddingError:
            raise
        except Exception as e:
            logger.bind(
                model=self.model, num_texts=len(texts), error=str(e)
            ).error(f"OpenAI batch embedding error: {e}")
            raise EmbeddingError(f"OpenAI batch embedding error: {e}") from e

    async def get_dimension(self) -> int:
        """Known dimension for stock models, otherwise measured with a test embedding."""
        if self.model in self._MODEL_DIMENSIONS:
            return self._MODEL_DIMENSIONS[self.model]
        return await super().get_dimension()

    async def health_check(self) -> None:
        """
        Verify the endpoint answers with a test embedding.

        Raises:
            EmbeddingError: If the endpoint or model is unavailable
        """
        await self.embed("health check")

    async def close(self):
        """Close OpenAI client."""
        await self.client.close()
