"""Service for Payments module."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit import AuditAction, AuditService
from src.core.exceptions import (
    AppException,
    ConcurrentModificationError,
    DuplicateError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from src.modules.payments.ledger import (
    AMOUNT_NOT_POSITIVE,
    FinancialStatus,
    compute_financial_status,
    effective_tuition_paid,
    effective_tuition_total,
    validate_payment_amount,
)
from src.modules.payments.models import Payment
from src.modules.payments.schemas import (
    PaymentFilters,
    PaymentResult,
    ReconciliationResult,
)
from src.modules.students.models import Student, normalize_matricule
from src.shared.utils.money import parse_money, round_money

logger = logging.getLogger(__name__)

RECORD_FAILED_MESSAGE = "Failed to record payment."


def _require_text(value: Any, field: str, label: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required", field=field)
    return str(value).strip()


def _parse_payment_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    if value is None or not str(value).strip():
        raise ValidationError("Payment date is required", field="payment_date")
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError("Payment date must be a valid date (YYYY-MM-DD)", field="payment_date")


def _is_receipt_conflict(exc: IntegrityError) -> bool:
    return "receipt_number" in str(exc.orig).lower()


class PaymentService:
    """Records tuition payments and keeps each student's paid total in step with them."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # --- Recording ---

    async def record_payment(
        self,
        matricule: Any,
        receipt_number: Any,
        bank_name: Any,
        amount: Any,
        payment_date: Any,
        recorded_by_id: int,
    ) -> PaymentResult:
        """
        Record a tuition payment for a student.

        The student row is locked, the amount re-validated against the locked
        balance, the payment inserted and the student's totals updated, all in
        one transaction. Nothing is persisted unless every step succeeds.

        Raises:
            ValidationError: missing field, non-positive amount or amount above the remaining balance
            NotFoundError: unknown matricule
            DuplicateError: receipt number already recorded
            ConcurrentModificationError: student totals changed during the transaction (retry)
            PersistenceError: database failure, rolled back
        """
        matricule = normalize_matricule(_require_text(matricule, "matricule", "Matricule"))
        receipt_number = _require_text(receipt_number, "receipt_number", "Receipt number")
        bank_name = _require_text(bank_name, "bank_name", "Bank name")
        payment_date = _parse_payment_date(payment_date)

        parsed = parse_money(amount)
        payment_amount = round_money(parsed) if parsed is not None else None
        if payment_amount is None or payment_amount <= 0:
            raise ValidationError(AMOUNT_NOT_POSITIVE, field="amount")

        try:
            result = await self._apply_payment(
                matricule=matricule,
                receipt_number=receipt_number,
                bank_name=bank_name,
                amount=payment_amount,
                payment_date=payment_date,
                recorded_by_id=recorded_by_id,
            )
            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except IntegrityError as exc:
            await self.db.rollback()
            if _is_receipt_conflict(exc):
                logger.info("Duplicate receipt number %s rejected by constraint", receipt_number)
                raise DuplicateError("Payment", "receipt_number", receipt_number) from exc
            logger.exception(
                "Integrity error recording payment %s for student %s", receipt_number, matricule
            )
            raise PersistenceError(RECORD_FAILED_MESSAGE) from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception(
                "Database error recording payment %s for student %s", receipt_number, matricule
            )
            raise PersistenceError(RECORD_FAILED_MESSAGE) from exc

        logger.info(
            "Recorded payment %s (%s) for student %s: paid %s -> %s, status %s",
            result.receipt_number,
            result.payment_amount,
            result.matricule,
            result.old_paid,
            result.total_paid,
            result.financial_status.value,
        )
        return result

    async def _apply_payment(
        self,
        matricule: str,
        receipt_number: str,
        bank_name: str,
        amount: Decimal,
        payment_date: date,
        recorded_by_id: int,
    ) -> PaymentResult:
        """Body of the recording transaction. Caller commits or rolls back."""
        student = await self._find_student_by_matricule(matricule, lock=True)
        if student is None:
            raise NotFoundError(f"Student with matricule {matricule}")

        stored_paid = student.tuition_paid
        stored_status = student.financial_status
        current_paid = effective_tuition_paid(stored_paid)
        total = effective_tuition_total(student.tuition_total)

        validation = validate_payment_amount(amount, total, current_paid)
        if not validation.ok:
            logger.info(
                "Payment %s for student %s rejected: %s", receipt_number, matricule, validation.message
            )
            raise ValidationError(
                validation.message,
                field="amount",
                extra={"remaining": str(validation.remaining)},
            )

        if await self._find_payment_by_receipt_number(receipt_number) is not None:
            raise DuplicateError("Payment", "receipt_number", receipt_number)

        new_paid = round_money(current_paid + amount)
        new_remaining = round_money(total - new_paid)
        new_status = compute_financial_status(total, new_paid)

        payment = await self._insert_payment(
            student_id=student.id,
            receipt_number=receipt_number,
            bank_name=bank_name,
            amount=amount,
            payment_date=payment_date,
            recorded_by_id=recorded_by_id,
        )

        updated = await self._update_student_paid_and_status(
            student_id=student.id,
            expected_paid=stored_paid,
            new_paid=new_paid,
            new_status=new_status,
        )
        if updated != 1:
            logger.warning("Tuition of student %s changed concurrently, payment %s aborted", matricule, receipt_number)
            raise ConcurrentModificationError("Student", matricule)

        await self.audit.log(
            action=AuditAction.RECORD_PAYMENT,
            entity_type="Student",
            entity_id=student.id,
            entity_identifier=matricule,
            user_id=recorded_by_id,
            old_values={
                "tuition_paid": str(round_money(current_paid)),
                "financial_status": stored_status,
            },
            new_values={
                "payment_id": payment.id,
                "receipt_number": receipt_number,
                "amount": str(amount),
                "tuition_paid": str(new_paid),
                "financial_status": new_status.value,
            },
        )

        return PaymentResult(
            payment_id=payment.id,
            receipt_number=receipt_number,
            student_id=student.id,
            matricule=matricule,
            payment_amount=amount,
            old_paid=round_money(current_paid),
            total_paid=new_paid,
            remaining=new_remaining,
            financial_status=new_status,
        )

    # --- Read side ---

    async def get_payment_by_id(self, payment_id: int) -> Payment:
        """Get payment by ID with student and recorded_by loaded."""
        result = await self.db.execute(
            select(Payment)
            .where(Payment.id == payment_id)
            .options(
                selectinload(Payment.student),
                selectinload(Payment.recorded_by),
            )
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError(f"Payment with id {payment_id}")
        return payment

    async def list_payments(self, filters: PaymentFilters) -> tuple[list[Payment], int]:
        """List payments with filters, newest payment date first."""
        query = select(Payment)

        if filters.student_id:
            query = query.where(Payment.student_id == filters.student_id)
        if filters.matricule:
            query = query.join(Student, Payment.student_id == Student.id).where(
                Student.matricule == normalize_matricule(filters.matricule)
            )
        if filters.bank_name:
            query = query.where(Payment.bank_name.ilike(f"%{filters.bank_name}%"))
        if filters.date_from:
            query = query.where(Payment.payment_date >= filters.date_from)
        if filters.date_to:
            query = query.where(Payment.payment_date <= filters.date_to)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(Payment.payment_date.desc(), Payment.id.desc())
        query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_student_payments(self, student_id: int) -> list[Payment]:
        """Payment history of a student, newest payment date first."""
        result = await self.db.execute(
            select(Payment)
            .where(Payment.student_id == student_id)
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
        )
        return list(result.scalars().all())

    # --- Reconciliation ---

    async def reconcile_student(self, student_id: int) -> ReconciliationResult:
        """Compare a student's stored totals with the sum of their payments."""
        student = await self._get_student(student_id)
        return await self._reconcile(student)

    async def repair_student_totals(
        self, student_id: int, repaired_by_id: int | None = None
    ) -> ReconciliationResult:
        """
        Rewrite tuition_paid and financial_status from the payment ledger.

        Payments are the audit trail; the student's totals are derived from them.
        """
        student = await self._get_student(student_id, lock=True)
        before = await self._reconcile(student)

        if not before.is_consistent:
            student.tuition_paid = before.ledger_paid
            student.financial_status = before.expected_status.value
            await self.db.flush()

            await self.audit.log(
                action=AuditAction.REPAIR_TUITION,
                entity_type="Student",
                entity_id=student.id,
                entity_identifier=student.matricule,
                user_id=repaired_by_id,
                old_values={
                    "tuition_paid": str(before.stored_paid),
                    "financial_status": before.stored_status,
                },
                new_values={
                    "tuition_paid": str(before.ledger_paid),
                    "financial_status": before.expected_status.value,
                },
            )
            logger.warning(
                "Repaired tuition totals of student %s: %s -> %s",
                student.matricule,
                before.stored_paid,
                before.ledger_paid,
            )

        await self.db.commit()
        return await self._reconcile(student)

    async def _reconcile(self, student: Student) -> ReconciliationResult:
        row = (
            await self.db.execute(
                select(
                    func.coalesce(func.sum(Payment.amount), 0),
                    func.count(Payment.id),
                ).where(Payment.student_id == student.id)
            )
        ).one()
        ledger_paid = round_money(Decimal(str(row[0] or 0)))
        payment_count = int(row[1] or 0)

        total = round_money(effective_tuition_total(student.tuition_total))
        stored_paid = round_money(effective_tuition_paid(student.tuition_paid))
        expected_status = compute_financial_status(total, ledger_paid)

        return ReconciliationResult(
            student_id=student.id,
            matricule=student.matricule,
            tuition_total=total,
            stored_paid=stored_paid,
            ledger_paid=ledger_paid,
            payment_count=payment_count,
            stored_status=student.financial_status,
            expected_status=expected_status,
            is_consistent=(
                stored_paid == ledger_paid
                and student.financial_status == expected_status.value
                and ledger_paid <= total
            ),
        )

    # --- Storage helpers ---

    async def _find_student_by_matricule(
        self, matricule: str, lock: bool = False
    ) -> Student | None:
        """Load a student; with lock=True the row stays locked until commit/rollback."""
        stmt = select(Student).where(Student.matricule == normalize_matricule(matricule))
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_student(self, student_id: int, lock: bool = False) -> Student:
        """Get student by ID."""
        stmt = select(Student).where(Student.id == student_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError(f"Student with id {student_id}")
        return student

    async def _find_payment_by_receipt_number(self, receipt_number: str) -> Payment | None:
        result = await self.db.execute(
            select(Payment).where(Payment.receipt_number == receipt_number)
        )
        return result.scalar_one_or_none()

    async def _insert_payment(
        self,
        student_id: int,
        receipt_number: str,
        bank_name: str,
        amount: Decimal,
        payment_date: date,
        recorded_by_id: int,
    ) -> Payment:
        payment = Payment(
            student_id=student_id,
            receipt_number=receipt_number,
            bank_name=bank_name,
            amount=amount,
            payment_date=payment_date,
            recorded_by_id=recorded_by_id,
        )
        self.db.add(payment)
        await self.db.flush()
        return payment

    async def _update_student_paid_and_status(
        self,
        student_id: int,
        expected_paid: Decimal | None,
        new_paid: Decimal,
        new_status: FinancialStatus,
    ) -> int:
        """
        Set the student's totals if tuition_paid still holds expected_paid.

        Returns the number of rows changed: 0 means another transaction got there first.
        """
        paid_unchanged = (
            Student.tuition_paid.is_(None)
            if expected_paid is None
            else Student.tuition_paid == expected_paid
        )
        result = await self.db.execute(
            update(Student)
            .where(Student.id == student_id, paid_unchanged)
            .values(tuition_paid=new_paid, financial_status=new_status.value)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount
