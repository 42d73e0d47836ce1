"""Payment model."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, BigIntPK


class Payment(Base):
    """
    Tuition payment received at a bank, recorded by an admin.

    Append-only: created once by the payment recorder, never updated or
    deleted. The receipt number is unique across all payments.
    """

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    student_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("students.id"), nullable=False, index=True
    )

    receipt_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )
    bank_name: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)

    recorded_by_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("users.id"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    __mapper_args__ = {"eager_defaults": True}

    # Relationships
    student: Mapped["Student"] = relationship("Student")
    recorded_by: Mapped["User"] = relationship("User")


# Import for type hints
from src.core.auth.models import User
from src.modules.students.models import Student
