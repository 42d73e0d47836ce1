from typing import Any


class AppException(Exception):
    """
    Error with an HTTP status, turned into the error envelope by the API handlers.

    details["field"] names the offending input; other keys are returned as data.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return bool(self.details.get("retryable"))


class NotFoundError(AppException):
    """Unknown student, payment or user."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with id={identifier} not found"
        super().__init__(message=message, status_code=404)


class ValidationError(AppException):
    """Rejected input: non-positive amount, blank receipt number, overpayment."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        extra: dict[str, Any] | None = None,
    ):
        details: dict[str, Any] = {"field": field} if field else {}
        details.update(extra or {})
        super().__init__(message=message, status_code=422, details=details)


class AuthenticationError(AppException):
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, status_code=401)


class AuthorizationError(AppException):
    def __init__(self, message: str = "Not authorized"):
        super().__init__(message=message, status_code=403)


class DuplicateError(AppException):
    """Receipt number, matricule or email already taken."""

    def __init__(self, resource: str, field: str, value: Any):
        message = f"{resource} with {field}={value} already exists"
        super().__init__(message=message, status_code=409, details={"field": field, "value": value})


class ConcurrentModificationError(AppException):
    """Student totals changed by another transaction between read and write. Safe to retry."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} was modified concurrently, please retry"
        if identifier:
            message = f"{resource} {identifier} was modified concurrently, please retry"
        super().__init__(message=message, status_code=409, details={"retryable": True})


class PersistenceError(AppException):
    """Database write failed and was rolled back. The cause is logged, never returned."""

    def __init__(self, message: str = "Failed to save changes."):
        super().__init__(message=message, status_code=500)


class PaymentRequiredError(AppException):
    """Certificate requested for a student whose tuition is not fully paid."""

    def __init__(self, message: str):
        super().__init__(message=message, status_code=400, details={"field": "financial_status"})


class PdfGenerationUnavailableError(AppException):
    """WeasyPrint or its system libraries (pango, glib) are missing."""

    def __init__(self, message: str | None = None):
        msg = message or (
            "PDF generation is not available on this system. "
            "Install WeasyPrint and its system libraries (pango)."
        )
        super().__init__(message=msg, status_code=503)
