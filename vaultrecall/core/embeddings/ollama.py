"""
Ollama embedder using native ollama-python SDK.
"""

import asyncio

import ollama

from vaultrecall.core.embeddings.base import Embedder
from vaultrecall.utils.exceptions import EmbeddingError, ValidationError
from vaultrecall.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaEmbedder(Embedder):
    """
    Ollama embedder for generating text embeddings.

    Uses native ollama-python SDK for embedding generation.
    Supports models like nomic-embed-text, mxbai-embed-large, etc.
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: float = 120.0,
    ):
        """
        Initialize Ollama embedder.

        Args:
            host: Ollama server URL
            model: Embedding model name (e.g., "nomic-embed-text", "mxbai-embed-large")
            timeout: Request timeout in seconds
        """
        self.host = host
        self.model = model
        self.timeout = timeout
        self._dimension = None  # Cache dimension

        # Create async client
        self.client = ollama.AsyncClient(host=host, timeout=timeout)

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate embedding for text using Ollama.

        Args:
            text: Text to embed
            **kwargs: Additional options passed to Ollama

        Returns:
            Embedding vector as list of floats

        Raises:
            ValidationError: If text is invalid
            EmbeddingError: If Ollama embedding fails
        """
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty")

        try:
            response = await self.client.embeddings(model=self.model, prompt=text, **kwargs)

            if not response or "embedding" not in response:
                raise EmbeddingError("Ollama returned invalid embedding response")

            return list(response["embedding"])
        except ValidationError:
            raise
        except Exception as e:
            logger.bind(
                model=self.model, host=self.host, error=str(e)
            ).error(f"Ollama embedding error: {e}")
            raise EmbeddingError(f"Ollama embedding error: {e}") from e

    async def batch_embed(
        self, texts: list[str], batch_size: int = 32, **kwargs
    ) -> list[list[float]]:
        """
        Batch embed using Ollama's multi-input embed endpoint.

        Falls back to concurrent single-text requests for a batch when the
        endpoint fails or returns a mismatched number of vectors.

        Args:
            texts: List of texts to embed
            batch_size: Texts per request
            **kwargs: Additional options

        Returns:
            List of embedding vectors
        """
        if not texts:
            return []
        if len(texts) == 1:
            return [await self.embed(texts[0], **kwargs)]

        embeddings = []

        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]

            try:
                response = await self.client.embed(model=self.model, input=batch, **kwargs)
                vectors = response["embeddings"] if response else None
                if vectors and len(vectors) == len(batch):
                    embeddings.extend(list(vector) for vector in vectors)
                    continue
                logger.debug("Ollama batch embed returned unexpected shape, embedding one by one")
            except Exception as e:
                logger.debug(f"Ollama batch embed failed, embedding one by one: {e}")

            # Process batch concurrently
            tasks = [self.embed(text, **kwargs) for text in batch]
            batch_embeddings = await asyncio.gather(*tasks)

            embeddings.extend(batch_embeddings)

        return embeddings

    async def get_dimension(self) -> int:
        """
        Get embedding dimension.
        Caches result after first call.

        Returns:
            Embedding vector dimension
        """
        if self._dimension is None:
            test_embedding = await self.embed("test")
            self._dimension = len(test_embedding)
        return self._dimension

    async def health_check(self) -> None:
        """
        Verify Ollama is reachable and the model is pulled.

        Raises:
            EmbeddingError: If Ollama is unreachable or the model is missing
        """
        try:
            response = await self.client.list()
        except Exception as e:
            raise EmbeddingError(f"Ollama not reachable at {self.host}: {e}") from e

        names = set()
        for entry in response["models"] or []:
            name = entry.get("model") or entry.get("name")
            if name:
                names.add(name)

        if self.model not in names and f"{self.model}:latest" not in names:
            available = ", ".join(sorted(names)) or "none"
            raise EmbeddingError(
                f'Ollama model "{self.model}" not found. Available: {available}',
                context={"model": self.model, "host": self.host},
            )

    async def close(self):
        """Close client (Ollama SDK handles cleanup internally)."""
        pass
