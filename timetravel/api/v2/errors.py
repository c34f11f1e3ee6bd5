"""Translation of application errors into HTTP errors."""

from fastapi import HTTPException, status

from timetravel.core.exceptions import (
    AppError,
    DatabaseError,
    DeadlineExceededError,
    InvalidInputError,
    NoOpUpdateError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
)
from timetravel.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Checked in order; subclasses map through their base.
STATUS_CODES = (
    (RecordNotFoundError, status.HTTP_404_NOT_FOUND),
    (RecordAlreadyExistsError, status.HTTP_409_CONFLICT),
    (NoOpUpdateError, status.HTTP_409_CONFLICT),
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (DeadlineExceededError, status.HTTP_504_GATEWAY_TIMEOUT),
    (DatabaseError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_code_for(error: AppError) -> int:
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_exception(error: AppError) -> HTTPException:
    """Build the HTTPException returned for an application error.

    Args:
        error: Application error raised below the API layer

    Returns:
        HTTPException with ``{"error": <class name>, "message": <text>}`` as detail
    """
    status_code = status_code_for(error)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        LOGGER.error(
            f"Request failed: {error.message}",
            extra={"error_type": type(error).__name__, "status_code": status_code},
        )
    return HTTPException(
        status_code=status_code,
        detail={"error": type(error).__name__, "message": error.message},
    )
