from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import AuditAction, AuditService
from src.core.audit.service import _json_safe
from src.modules.payments.ledger import FinancialStatus


class TestAuditService:
    def test_json_safe_values(self):
        values = _json_safe(
            {
                "amount": Decimal("1500.50"),
                "payment_date": date(2026, 1, 20),
                "financial_status": FinancialStatus.PARTIALLY_PAID,
                "payment_id": 3,
            }
        )

        assert values == {
            "amount": "1500.50",
            "payment_date": "2026-01-20",
            "financial_status": "partially_paid",
            "payment_id": 3,
        }
        assert _json_safe(None) is None

    async def test_log_and_list_for_entity(self, db_session: AsyncSession):
        audit = AuditService(db_session)
        await audit.log(
            action=AuditAction.UPDATE,
            entity_type="Student",
            entity_id=1,
            new_values={"tuition_total": Decimal("500000.00")},
        )
        await audit.log(action=AuditAction.LOGIN, entity_type="Student", entity_id=1)
        await audit.log(action=AuditAction.LOGIN, entity_type="Student", entity_id=2)

        entries = await audit.list_for_entity("Student", 1)

        assert [e.action for e in entries] == ["UPDATE", "LOGIN"]
        assert entries[0].new_values == {"tuition_total": "500000.00"}
