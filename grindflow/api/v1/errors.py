"""Translation of service errors into HTTP errors."""

from fastapi import HTTPException, status

from grindflow.core.exceptions import (
    AppError,
    ConfigurationError,
    DocumentAccessDeniedError,
    DocumentNotFoundError,
    ModelOverloadedError,
    StorageError,
    TextExtractionError,
    ValidationError,
)
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

MODEL_USED_HEADER = "X-Model-Used"

_STATUS_BY_ERROR = (
    (DocumentNotFoundError, status.HTTP_404_NOT_FOUND),
    (DocumentAccessDeniedError, status.HTTP_403_FORBIDDEN),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ModelOverloadedError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (TextExtractionError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def to_http_exception(error: AppError) -> HTTPException:
    """Map a service error to the HTTPException the API returns for it.

    Upstream details of an exhausted model call stay in the logs; the
    client only sees the generic overload message.
    """
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            if status_code >= 500:
                LOGGER.error(f"{type(error).__name__}: {error.message}", extra={"original_error": str(error.original_error)})
            return HTTPException(status_code=status_code, detail=error.message)

    LOGGER.error(f"Unhandled application error: {error.message}", exc_info=error)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")
