"""
Custom exception hierarchy for VaultRecall.

Provides structured error types for better error handling and debugging.
All exceptions inherit from VaultRecallError for easy catching.
"""


class VaultRecallError(Exception):
    """
    Base exception for all VaultRecall errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize VaultRecall error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StoreError(VaultRecallError):
    """
    Base exception for store operations.
    Used for errors related to data storage operations.
    """

    pass


class VectorStoreError(StoreError):
    """
    Vector store operation errors.
    Raised when vector database operations fail.
    """

    pass


class ValidationError(VaultRecallError):
    """
    Validation errors.
    Raised when input validation fails or data is invalid.
    """

    pass


class NotFoundError(VaultRecallError):
    """
    Resource not found errors.
    Raised when a requested resource (source, extra root, etc.) doesn't exist.
    """

    pass


class ConfigurationError(VaultRecallError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass


class EmbeddingError(VaultRecallError):
    """
    Embedding generation errors.
    Raised when embedding generation fails.
    """

    pass


class IndexingError(VaultRecallError):
    """
    Indexing errors.
    Raised when a single source cannot be read or indexed.
    """

    pass


class SecurityError(VaultRecallError):
    """
    Access errors.
    Raised when a path outside the indexed sources is requested.
    """

    pass
