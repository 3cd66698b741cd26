"""Custom exception hierarchy."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass


class ModelTransportError(APIClientError):
    """Raised when a model transport call fails.

    The message always carries the upstream status code and a body excerpt
    so that transient failures (429, 503, "overloaded") can be recognised
    from the text alone.
    """
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        original_error: Exception = None,
    ):
        super().__init__(message, original_error)
        self.status_code = status_code


class ModelOverloadedError(APIClientError):
    """Raised when every candidate model and retry slot has been exhausted."""

    DEFAULT_MESSAGE = "Model temporarily overloaded. Please retry in a moment."

    def __init__(self, message: str = DEFAULT_MESSAGE, original_error: Exception = None):
        super().__init__(message, original_error)


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class StorageError(AppError):
    """Raised when a blob storage operation fails."""
    pass


class ValidationError(AppError):
    """Raised when input validation fails."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class TextExtractionError(AppError):
    """Raised when text cannot be extracted from a PDF."""
    pass


class DocumentNotFoundError(AppError):
    """Raised when a document is not found."""
    pass


class DocumentAccessDeniedError(AppError):
    """Raised when the caller does not own the requested document."""
    pass
