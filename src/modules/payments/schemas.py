"""Pydantic schemas for Payments module."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field

from src.modules.payments.ledger import FinancialStatus
from src.shared.schemas.base import BaseSchema


class PaymentRecordRequest(BaseSchema):
    """
    Payment submission from the back office.

    Blank fields and non-positive amounts are rejected by the recorder itself so
    that every entry point gets the same messages.
    """

    matricule: str = Field(..., max_length=20)
    receipt_number: str = Field(..., max_length=50)
    bank_name: str = Field(..., max_length=100)
    amount: Decimal
    payment_date: date


class PaymentResult(BaseSchema):
    """Outcome of a recorded payment: the student's new totals."""

    payment_id: int
    receipt_number: str
    student_id: int
    matricule: str
    payment_amount: Decimal
    old_paid: Decimal
    total_paid: Decimal
    remaining: Decimal
    financial_status: FinancialStatus


class PaymentResponse(BaseSchema):
    """Schema for payment response."""

    id: int
    student_id: int
    receipt_number: str
    bank_name: str
    amount: Decimal
    payment_date: date
    recorded_by_id: int
    created_at: datetime


class PaymentFilters(BaseSchema):
    """Filters for listing payments."""

    student_id: int | None = None
    matricule: str | None = None
    bank_name: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)


class ReconciliationResult(BaseSchema):
    """Stored tuition_paid / financial_status compared with the payment ledger."""

    student_id: int
    matricule: str
    tuition_total: Decimal
    stored_paid: Decimal
    ledger_paid: Decimal
    payment_count: int
    stored_status: str
    expected_status: FinancialStatus
    is_consistent: bool
