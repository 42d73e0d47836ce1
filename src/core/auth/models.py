from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import TimestampedModel


class UserRole(StrEnum):
    """Back-office roles. Students are not users; they sign in to the portal by matricule."""

    SUPER_ADMIN = "SuperAdmin"
    ADMIN = "Admin"
    ACCOUNTANT = "Accountant"


# Record payments, create students, issue certificates, repair totals
LEDGER_WRITE_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN)
# Read accounts, payments and the reconciliation report
LEDGER_READ_ROLES = (*LEDGER_WRITE_ROLES, UserRole.ACCOUNTANT)


class User(TimestampedModel):
    """Staff account. Every payment row points at the user who recorded it."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in {r.value for r in roles}

    @property
    def can_record_payments(self) -> bool:
        return self.is_active and self.has_role(*LEDGER_WRITE_ROLES)
