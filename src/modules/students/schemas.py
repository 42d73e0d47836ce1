"""Schemas for Students module."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.core.auth.password import check_password_length

from src.modules.payments.ledger import FinancialStatus
from src.modules.payments.schemas import PaymentResponse


class StudentCreate(BaseModel):
    """
    Schema for creating a student.

    tuition_total is required: new accounts never fall back to the default total.
    """

    matricule: str | None = Field(None, min_length=3, max_length=20)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=30)
    date_of_birth: date | None = None
    address: str | None = None
    class_name: str | None = Field(None, max_length=100)
    tuition_total: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    # Portal password; without one the student cannot sign in
    password: str | None = Field(None, min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str | None) -> str | None:
        return v if v is None else check_password_length(v)


class StudentResponse(BaseModel):
    """Schema for student response."""

    id: int
    matricule: str
    first_name: str
    last_name: str
    full_name: str
    email: str | None
    phone: str | None
    date_of_birth: date | None
    address: str | None
    class_name: str | None
    total_due: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    financial_status: str
    has_portal_access: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class StudentFilters(BaseModel):
    """Filters for listing students."""

    search: str | None = None
    financial_status: FinancialStatus | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)


class StudentAccountSummary(BaseModel):
    """Tuition account of one student with its payment history."""

    student: StudentResponse
    tuition_total: Decimal
    tuition_paid: Decimal
    remaining: Decimal
    financial_status: FinancialStatus
    payments: list[PaymentResponse]


class PortalPasswordUpdate(BaseModel):
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return check_password_length(v)


class IssuedCertificateResponse(BaseModel):
    """Entry of the certificate register."""

    id: int
    reference: str
    certificate_type: str
    student_id: int
    issued_by_id: int | None
    issued_at: datetime

    model_config = {"from_attributes": True}


class AccountHistoryEntry(BaseModel):
    """Audit entry shown in a student's account history."""

    id: int
    action: str
    user_id: int | None
    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None
    comment: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
