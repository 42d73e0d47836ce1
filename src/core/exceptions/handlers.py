import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from src.core.config import settings
from src.core.exceptions import AppException
from src.shared.schemas import ErrorResponse, ErrorDetail

logger = logging.getLogger(__name__)

# Sent with retryable errors (concurrent ledger update)
RETRY_AFTER_SECONDS = "1"


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Domain errors: message, offending field and any extra details under data."""
    extras = {k: v for k, v in exc.details.items() if k != "field"}
    response = ErrorResponse(
        message=exc.message,
        data=extras or None,
        errors=[ErrorDetail(field=exc.details.get("field"), message=exc.message)],
    )

    headers = {"Retry-After": RETRY_AFTER_SECONDS} if exc.retryable else None
    if exc.status_code >= 500:
        logger.warning(
            "%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(response),
        headers=headers,
    )


REQUEST_PARTS = ("body", "query", "path", "header")


def _field_path(loc: tuple) -> str | None:
    """("body", "amount") -> "amount"; nested locations are dotted."""
    if loc and loc[0] in REQUEST_PARTS:
        loc = loc[1:]
    return ".".join(str(part) for part in loc) or None


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed input (missing receipt number, amount that is not a number, bad date)."""
    errors = [
        ErrorDetail(
            field=_field_path(tuple(e.get("loc", ()))),
            message=e.get("msg", "Invalid value"),
        )
        for e in exc.errors()
    ]
    response = ErrorResponse(message="Validation error", errors=errors)
    return JSONResponse(status_code=422, content=response.model_dump())


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Framework errors (404 route, 405 method) in the same envelope."""
    message = str(exc.detail) if exc.detail else "HTTP error"
    response = ErrorResponse(message=message, errors=[ErrorDetail(message=message)])
    return JSONResponse(
        status_code=exc.status_code,
        content=response.model_dump(),
        headers=getattr(exc, "headers", None),
    )


def _friendly_db_error(exc: Exception) -> tuple[str, str | None, int]:
    """
    Convert common DB errors to a stable, user-facing message.

    Full DB error text is only exposed when debug is enabled.
    """
    raw = str(getattr(exc, "orig", exc))
    lower = raw.lower()

    if "does not exist" in lower and "column" in lower:
        # Typical after deploying code without running Alembic migrations.
        return (
            "Database schema is out of date. Run the latest migrations and try again.",
            None,
            500,
        )

    if "unique" in lower or "duplicate key" in lower:
        field = "receipt_number" if "receipt_number" in lower else None
        return ("Record already exists", field, 409)

    if settings.debug:
        return (raw, None, 500)

    return ("Database error", None, 500)


async def sqlalchemy_db_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled database error on %s %s", request.method, request.url.path)
    message, field, status_code = _friendly_db_error(exc)
    response = ErrorResponse(
        message=message,
        errors=[ErrorDetail(field=field, message=message)],
    )
    return JSONResponse(status_code=status_code, content=response.model_dump())
