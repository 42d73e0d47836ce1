"""Student tuition account and certificate register models."""

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, BigIntPK, TimestampedModel
from src.modules.payments.ledger import (
    FinancialStatus,
    compute_financial_status,
    effective_tuition_paid,
    effective_tuition_total,
)
from src.shared.utils.money import round_money


def normalize_matricule(matricule: str) -> str:
    """Matricules are stored upper-case; lookups accept any case and padding."""
    return matricule.strip().upper()


class Student(TimestampedModel):
    """
    Student enrolled in the school, owner of exactly one tuition account.

    tuition_paid is maintained by the payment recorder and must always equal the
    sum of the student's payments. financial_status is stored for listing and
    filtering but is only ever written from compute_financial_status().
    """

    __tablename__ = "students"
    __table_args__ = (
        CheckConstraint("tuition_paid >= 0", name="tuition_paid_non_negative"),
    )

    matricule: Mapped[str] = mapped_column(
        String(20), nullable=False, unique=True, index=True
    )  # STU<year><6 digits>

    # Personal info
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    class_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Tuition account. NULL total only exists on legacy rows.
    tuition_total: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    tuition_paid: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00"), server_default="0.00"
    )
    financial_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=FinancialStatus.NOT_PAID.value,
        server_default=FinancialStatus.NOT_PAID.value,
        index=True,
    )

    # Student portal sign-in. NULL means no portal access.
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )

    # Relationships
    created_by: Mapped["User | None"] = relationship("User")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def total_due(self) -> Decimal:
        return round_money(effective_tuition_total(self.tuition_total))

    @property
    def total_paid(self) -> Decimal:
        return round_money(effective_tuition_paid(self.tuition_paid))

    @property
    def remaining_balance(self) -> Decimal:
        return round_money(self.total_due - self.total_paid)

    @property
    def current_financial_status(self) -> FinancialStatus:
        """Status recomputed from the totals, independent of the stored column."""
        return compute_financial_status(self.total_due, self.total_paid)

    @property
    def is_fully_paid(self) -> bool:
        return self.current_financial_status == FinancialStatus.FULLY_PAID

    @property
    def has_portal_access(self) -> bool:
        return self.password_hash is not None


class CertificateType(StrEnum):
    SCHOOL = "school"


class IssuedCertificate(Base):
    """
    Register of issued certificates.

    One row per generated document; the reference printed on the PDF is unique
    and lets the school verify a certificate presented to it later.
    """

    __tablename__ = "certificates"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("students.id"), nullable=False, index=True
    )
    reference: Mapped[str] = mapped_column(String(40), nullable=False, unique=True, index=True)
    certificate_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CertificateType.SCHOOL.value
    )
    # NULL when the student downloaded it from the portal
    issued_by_id: Mapped[int | None] = mapped_column(
        BigIntPK, ForeignKey("users.id"), nullable=True
    )
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    student: Mapped["Student"] = relationship("Student")


# Import at the end to avoid circular imports
from src.core.auth.models import User
