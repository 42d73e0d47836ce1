from src.core.exceptions.base import (
    AppException,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    DuplicateError,
    ConcurrentModificationError,
    PersistenceError,
    PaymentRequiredError,
    PdfGenerationUnavailableError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "DuplicateError",
    "ConcurrentModificationError",
    "PersistenceError",
    "PaymentRequiredError",
    "PdfGenerationUnavailableError",
]
