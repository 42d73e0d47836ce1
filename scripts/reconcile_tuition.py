#!/usr/bin/env python3
"""
Check that every student's tuition_paid equals the sum of their payments.

Payments are the audit trail; students.tuition_paid and financial_status are
kept alongside them by the payment recorder. This script lists accounts where
the two disagree and, with --confirm, rewrites the student totals from the
payment ledger (each repair is written to the audit log).

Usage:
    python scripts/reconcile_tuition.py --dry-run   # report only
    python scripts/reconcile_tuition.py --confirm   # report and repair

Requires: migrations applied (alembic upgrade head), database reachable.
"""

import argparse
import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import select

from src.core.config import settings
from src.core.database.session import async_session
from src.modules.payments.schemas import ReconciliationResult
from src.modules.payments.service import PaymentService
from src.modules.students.models import Student


async def find_inconsistent(service: PaymentService) -> list[ReconciliationResult]:
    """Reconciliation results of all students whose totals disagree with their payments."""
    student_ids = (await service.db.execute(select(Student.id).order_by(Student.id))).scalars().all()
    results = []
    for student_id in student_ids:
        result = await service.reconcile_student(student_id)
        if not result.is_consistent:
            results.append(result)
    return results


def print_result(result: ReconciliationResult) -> None:
    print(
        f"  - {result.matricule}: stored {result.stored_paid} ({result.stored_status}), "
        f"ledger {result.ledger_paid} over {result.payment_count} payment(s) "
        f"({result.expected_status.value}), total {result.tuition_total}"
    )
    if result.ledger_paid > result.tuition_total:
        print("    ! payments exceed the tuition total, needs manual review")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Reconcile student tuition totals with payments")
    parser.add_argument("--dry-run", action="store_true", help="Report without changes")
    parser.add_argument("--confirm", action="store_true", help="Repair inconsistent accounts")
    args = parser.parse_args()

    if not args.dry_run and not args.confirm:
        print("ERROR: pass --dry-run or --confirm")
        sys.exit(1)

    db_host = settings.database_url.split("@")[1] if "@" in settings.database_url else "unknown"
    print(f"Environment: {settings.app_env}")
    print(f"Database: {db_host}")
    print(f"Mode: {'DRY-RUN' if args.dry_run else 'REPAIR'}")

    async with async_session() as session:
        service = PaymentService(session)
        inconsistent = await find_inconsistent(service)

        if not inconsistent:
            print("\nAll student accounts match their payments.")
            return

        print(f"\n{len(inconsistent)} inconsistent account(s):")
        for result in inconsistent:
            print_result(result)

        if args.dry_run:
            return

        for result in inconsistent:
            repaired = await service.repair_student_totals(result.student_id)
            state = "ok" if repaired.is_consistent else "still inconsistent"
            print(f"  repaired {repaired.matricule}: {repaired.stored_paid} ({state})")


if __name__ == "__main__":
    asyncio.run(main())
