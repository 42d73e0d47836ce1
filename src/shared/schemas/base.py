"""Response envelopes shared by every endpoint."""

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class BaseSchema(BaseModel):
    """Schemas read straight from ORM objects."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ErrorDetail(BaseSchema):
    """One problem with the request; field is None when it concerns the whole request."""

    field: str | None = None
    message: str


class SuccessResponse(BaseSchema, Generic[T]):
    success: bool = True
    data: T
    message: str | None = None


ApiResponse = SuccessResponse


class ErrorResponse(BaseSchema):
    """
    Failure envelope.

    data holds machine-readable extras such as the remaining balance of a
    rejected overpayment or the retryable flag of a concurrent update.
    """

    success: bool = False
    data: dict[str, Any] | None = None
    message: str
    errors: list[ErrorDetail] = []


class PaginatedResponse(BaseSchema, Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def create(cls, items: list[T], total: int, page: int, limit: int) -> "PaginatedResponse[T]":
        """Page count from total and page size; an empty listing has zero pages."""
        pages = math.ceil(total / limit) if limit > 0 else 0
        return cls(items=items, total=total, page=page, limit=limit, pages=pages)
