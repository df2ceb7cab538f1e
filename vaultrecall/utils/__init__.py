"""Utility modules for VaultRecall."""

from vaultrecall.utils.exceptions import (
    ConfigurationError,
    EmbeddingError,
    IndexingError,
    NotFoundError,
    SecurityError,
    StoreError,
    ValidationError,
    VaultRecallError,
    VectorStoreError,
)
from vaultrecall.utils.id_generator import (
    compute_content_hash,
    generate_capture_id,
    generate_passage_id,
    truncate_snippet,
)
from vaultrecall.utils.logger import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # ID Generators
    "generate_passage_id",
    "generate_capture_id",
    "compute_content_hash",
    "truncate_snippet",
    # Exceptions
    "VaultRecallError",
    "StoreError",
    "VectorStoreError",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
    "EmbeddingError",
    "IndexingError",
    "SecurityError",
]
