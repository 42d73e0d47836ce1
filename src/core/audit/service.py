from datetime import date
from decimal import Decimal
from enum import Enum, StrEnum
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.models import AuditLog


def _json_safe(values: dict[str, Any] | None) -> dict[str, Any] | None:
    """Decimals, dates and enums stored as strings so JSON columns accept them."""
    if values is None:
        return None
    safe: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, (Decimal, date)):
            value = str(value)
        safe[key] = value
    return safe


class AuditAction(StrEnum):
    """Standard audit actions."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    LOGIN = "LOGIN"

    # Ledger actions
    RECORD_PAYMENT = "RECORD_PAYMENT"
    REPAIR_TUITION = "REPAIR_TUITION"

    # Documents
    ISSUE_CERTIFICATE = "ISSUE_CERTIFICATE"


class AuditService:
    """Writes and reads the audit trail inside the caller's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: str | AuditAction,
        entity_type: str,
        entity_id: int,
        user_id: int | None = None,
        entity_identifier: str | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        comment: str | None = None,
        ip_address: str | None = None,
    ) -> AuditLog:
        """
        Add an entry to the current transaction (flushed, not committed).

        The entry commits or rolls back together with the change it describes.
        """
        entry = AuditLog(
            action=str(action),
            entity_type=entity_type,
            entity_id=entity_id,
            entity_identifier=entity_identifier,
            user_id=user_id,
            ip_address=ip_address,
            old_values=_json_safe(old_values),
            new_values=_json_safe(new_values),
            comment=comment,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def list_for_entity(self, entity_type: str, entity_id: int) -> list[AuditLog]:
        """Audit trail of one entity, oldest first."""
        result = await self.db.execute(
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.created_at, AuditLog.id)
        )
        return list(result.scalars().all())
