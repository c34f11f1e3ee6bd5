"""Custom exception hierarchy."""


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class RecordNotFoundError(AppError):
    """Raised when an identity, its parent, or an as-of version does not exist."""
    pass


class RecordAlreadyExistsError(AppError):
    """Raised when a create collides with an existing natural key."""
    pass


class InsuredImmutableError(RecordAlreadyExistsError):
    """Raised on any attempt to update an insured's core fields."""
    pass


class InvalidInputError(AppError):
    """Raised when a field map or instant cannot be parsed."""
    pass


class UnknownResourceError(InvalidInputError):
    """Raised when a resource name does not match any entity kind."""
    pass


class NoOpUpdateError(AppError):
    """Raised when an update would not change any field of the current version."""
    pass


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class DeadlineExceededError(AppError):
    """Raised when a store operation runs past its deadline."""
    pass
