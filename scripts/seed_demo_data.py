#!/usr/bin/env python3
"""
Seed the database with demo students and tuition payments.

Payments go through PaymentService.record_payment, so student totals and
statuses end up exactly as the application would produce them.

Usage:
    python scripts/seed_demo_data.py --dry-run   # show what would be created
    python scripts/seed_demo_data.py --confirm   # write to the database

Requires: migrations applied (alembic upgrade head), database reachable.
"""

import argparse
import asyncio
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import select

from src.core.auth.models import User, UserRole
from src.core.auth.service import AuthService
from src.core.config import settings
from src.core.database.session import async_session
from src.core.exceptions import DuplicateError
from src.modules.payments.service import PaymentService
from src.modules.students.schemas import StudentCreate
from src.modules.students.service import StudentService

BURSAR_EMAIL = "bursar@school.com"

# (matricule, first name, last name, class, tuition total, payments)
STUDENTS = [
    ("STU2026100001", "Amina", "Nkoulou", "Form 1", Decimal("500000"), [Decimal("500000")]),
    ("STU2026100002", "Boris", "Mbarga", "Form 1", Decimal("500000"), [Decimal("200000"), Decimal("150000")]),
    ("STU2026100003", "Clarisse", "Fotso", "Form 2", Decimal("550000"), [Decimal("100000")]),
    ("STU2026100004", "Daniel", "Essomba", "Form 2", Decimal("550000"), []),
    ("STU2026100005", "Estelle", "Tchamba", "Form 3", Decimal("600000"), [Decimal("300000"), Decimal("300000")]),
]

BANKS = ["Afriland First Bank", "SCB Cameroun", "Ecobank"]

# Demo students sign in to the portal with their matricule and this password
DEMO_PORTAL_PASSWORD = "Student123!"


async def get_or_create_bursar(session) -> User:
    auth = AuthService(session)
    user = await auth.get_user_by_email(BURSAR_EMAIL)
    if user is None:
        user = await auth.create_user(
            email=BURSAR_EMAIL,
            password="Bursar123!",
            full_name="School Bursar",
            role=UserRole.ADMIN,
        )
        await session.commit()
    return user


async def seed(session) -> None:
    bursar = await get_or_create_bursar(session)
    students = StudentService(session)
    payments = PaymentService(session)

    receipt_seq = 1
    start = date.today() - timedelta(days=90)
    for matricule, first_name, last_name, class_name, total, amounts in STUDENTS:
        try:
            await students.create_student(
                StudentCreate(
                    matricule=matricule,
                    first_name=first_name,
                    last_name=last_name,
                    class_name=class_name,
                    tuition_total=total,
                    password=DEMO_PORTAL_PASSWORD,
                ),
                created_by_id=bursar.id,
            )
        except DuplicateError:
            print(f"  = {matricule} already exists, skipped")
            continue

        for i, amount in enumerate(amounts):
            result = await payments.record_payment(
                matricule=matricule,
                receipt_number=f"DEMO-{receipt_seq:05d}",
                bank_name=BANKS[receipt_seq % len(BANKS)],
                amount=amount,
                payment_date=start + timedelta(days=30 * i),
                recorded_by_id=bursar.id,
            )
            receipt_seq += 1
        status = result.financial_status.value if amounts else "not_paid"
        print(f"  + {matricule} {first_name} {last_name}: {len(amounts)} payment(s), {status}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo students and payments")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be created")
    parser.add_argument("--confirm", action="store_true", help="Write demo data")
    args = parser.parse_args()

    if not args.dry_run and not args.confirm:
        print("ERROR: pass --dry-run or --confirm")
        sys.exit(1)

    print(f"Environment: {settings.app_env}")
    if args.dry_run:
        for matricule, first_name, last_name, class_name, total, amounts in STUDENTS:
            paid = sum(amounts, Decimal("0"))
            print(f"  {matricule} {first_name} {last_name} ({class_name}): {paid}/{total}")
        return

    async with async_session() as session:
        existing = await session.execute(select(User.id).limit(1))
        if existing.scalar_one_or_none() is None:
            print("No users found: run `alembic upgrade head` first")
            sys.exit(1)
        await seed(session)
    print("Done")


if __name__ == "__main__":
    asyncio.run(main())
