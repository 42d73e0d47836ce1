from datetime import datetime

from sqlalchemy import DateTime, Index, JSON, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, BigIntPK


class AuditLog(Base):
    """
    Append-only trail of account changes: student creation, payments, total
    repairs, portal access, certificates and sign-ins.

    Entries are flushed in the same transaction as the change they describe,
    so a rolled back payment leaves no trace here either.
    """

    __tablename__ = "audit_logs"
    # The account history screen reads one student at a time
    __table_args__ = (Index("ix_audit_logs_entity", "entity_type", "entity_id"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # "Student" or "User"; identifier is the matricule or email at the time
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entity_id: Mapped[int] = mapped_column(BigIntPK, nullable=False)
    entity_identifier: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Staff member who acted. NULL for student sign-ins and portal downloads.
    user_id: Mapped[int | None] = mapped_column(BigIntPK, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    # Money values are stored as strings to keep their two decimals
    old_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    new_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
