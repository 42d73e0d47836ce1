"""Service for Students module."""

import logging
import secrets
import uuid
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import AuditAction, AuditLog, AuditService
from src.core.auth.password import hash_password
from src.core.exceptions import DuplicateError, NotFoundError, PaymentRequiredError
from src.modules.payments.ledger import FinancialStatus, compute_financial_status
from src.modules.payments.schemas import PaymentResponse
from src.modules.payments.service import PaymentService
from src.modules.students.models import (
    CertificateType,
    IssuedCertificate,
    Student,
    normalize_matricule,
)
from src.modules.students.schemas import (
    StudentAccountSummary,
    StudentCreate,
    StudentFilters,
    StudentResponse,
)
from src.shared.utils.money import round_money

logger = logging.getLogger(__name__)

MATRICULE_ATTEMPTS = 5


def generate_matricule(year: int | None = None) -> str:
    """STU + year + 6 random digits, e.g. STU2026483920."""
    if year is None:
        year = datetime.now().year
    return f"STU{year}{100000 + secrets.randbelow(900000)}"


def new_certificate_reference(now: datetime | None = None) -> str:
    """CERT + year + 8 hex characters, e.g. CERT-2026-1A2B3C4D."""
    now = now or datetime.now()
    return f"CERT-{now.year}-{uuid.uuid4().hex[:8].upper()}"


def ensure_fully_paid(student: Student, document: str = "Certificate") -> None:
    """
    Refuse document generation unless the student's tuition is fully paid.

    The status is recomputed from the current totals rather than read from the
    stored column.
    """
    if not student.is_fully_paid:
        raise PaymentRequiredError(
            f"{document} can only be generated for students with "
            f"{FinancialStatus.FULLY_PAID.value} status "
            f"(remaining balance: {student.remaining_balance})"
        )


class StudentService:
    """Service for managing student accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def create_student(self, data: StudentCreate, created_by_id: int) -> Student:
        """Create a student with an empty tuition account."""
        if data.matricule:
            matricule = normalize_matricule(data.matricule)
            if await self._matricule_exists(matricule):
                raise DuplicateError("Student", "matricule", matricule)
        else:
            matricule = await self._new_matricule()

        if data.email:
            existing = await self.db.execute(
                select(Student.id).where(func.lower(Student.email) == data.email.lower())
            )
            if existing.scalar_one_or_none():
                raise DuplicateError("Student", "email", data.email)

        tuition_total = round_money(data.tuition_total)
        student = Student(
            matricule=matricule,
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            email=data.email,
            phone=data.phone,
            date_of_birth=data.date_of_birth,
            address=data.address,
            class_name=data.class_name,
            tuition_total=tuition_total,
            tuition_paid=round_money(0),
            financial_status=compute_financial_status(tuition_total, 0).value,
            password_hash=hash_password(data.password) if data.password else None,
            created_by_id=created_by_id,
        )
        self.db.add(student)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Student",
            entity_id=student.id,
            entity_identifier=matricule,
            user_id=created_by_id,
            new_values={
                "matricule": matricule,
                "full_name": student.full_name,
                "tuition_total": str(tuition_total),
                "portal_access": student.has_portal_access,
            },
        )

        await self.db.commit()
        logger.info("Created student %s", matricule)
        return student

    async def get_student_by_id(self, student_id: int) -> Student:
        """Get student by ID."""
        result = await self.db.execute(select(Student).where(Student.id == student_id))
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError(f"Student with id {student_id}")
        return student

    async def get_student_by_matricule(self, matricule: str) -> Student:
        """Get student by matricule."""
        result = await self.db.execute(
            select(Student).where(Student.matricule == normalize_matricule(matricule))
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError(f"Student with matricule {matricule}")
        return student

    async def list_students(self, filters: StudentFilters) -> tuple[list[Student], int]:
        """List students with search and status filter, newest first."""
        query = select(Student)

        if filters.search:
            term = f"%{filters.search.strip()}%"
            query = query.where(
                or_(
                    Student.matricule.ilike(term),
                    Student.first_name.ilike(term),
                    Student.last_name.ilike(term),
                    Student.email.ilike(term),
                )
            )
        if filters.financial_status:
            query = query.where(Student.financial_status == filters.financial_status.value)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(Student.created_at.desc(), Student.id.desc())
        query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_account_summary(self, matricule: str) -> StudentAccountSummary:
        """Totals, remaining balance, status and payment history of a student."""
        student = await self.get_student_by_matricule(matricule)
        return await self.build_account_summary(student)

    async def build_account_summary(self, student: Student) -> StudentAccountSummary:
        payments = await PaymentService(self.db).get_student_payments(student.id)

        return StudentAccountSummary(
            student=StudentResponse.model_validate(student),
            tuition_total=student.total_due,
            tuition_paid=student.total_paid,
            remaining=student.remaining_balance,
            financial_status=student.current_financial_status,
            payments=[PaymentResponse.model_validate(p) for p in payments],
        )

    async def get_certificate_student(self, matricule: str) -> Student:
        """Student eligible for a school certificate (tuition fully paid)."""
        student = await self.get_student_by_matricule(matricule)
        ensure_fully_paid(student, document="Certificate")
        return student

    async def issue_certificate(
        self,
        student: Student,
        reference: str | None = None,
        issued_by_id: int | None = None,
    ) -> IssuedCertificate:
        """
        Register a certificate for an eligible student and return the register entry.

        Every issued document gets its own reference; issued_by_id is None when the
        student downloads it from the portal.
        """
        ensure_fully_paid(student, document="Certificate")

        certificate = IssuedCertificate(
            student_id=student.id,
            reference=reference or new_certificate_reference(),
            certificate_type=CertificateType.SCHOOL.value,
            issued_by_id=issued_by_id,
        )
        self.db.add(certificate)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.ISSUE_CERTIFICATE,
            entity_type="Student",
            entity_id=student.id,
            entity_identifier=student.matricule,
            user_id=issued_by_id,
            new_values={"reference": certificate.reference},
        )

        await self.db.commit()
        logger.info("Issued certificate %s for %s", certificate.reference, student.matricule)
        return certificate

    async def list_certificates(self, student_id: int) -> list[IssuedCertificate]:
        result = await self.db.execute(
            select(IssuedCertificate)
            .where(IssuedCertificate.student_id == student_id)
            .order_by(IssuedCertificate.issued_at.desc(), IssuedCertificate.id.desc())
        )
        return list(result.scalars().all())

    async def set_portal_password(
        self, matricule: str, password: str, updated_by_id: int
    ) -> Student:
        """Set or reset the portal password of a student."""
        student = await self.get_student_by_matricule(matricule)
        had_access = student.has_portal_access
        student.password_hash = hash_password(password)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.UPDATE,
            entity_type="Student",
            entity_id=student.id,
            entity_identifier=student.matricule,
            user_id=updated_by_id,
            old_values={"portal_access": had_access},
            new_values={"portal_access": True},
            comment="Portal password set",
        )

        await self.db.commit()
        return student

    async def get_account_history(self, matricule: str) -> list[AuditLog]:
        """Audit trail of a student account, oldest first."""
        student = await self.get_student_by_matricule(matricule)
        return await self.audit.list_for_entity("Student", student.id)

    # --- Helper Methods ---

    async def _matricule_exists(self, matricule: str) -> bool:
        result = await self.db.execute(
            select(Student.id).where(Student.matricule == matricule)
        )
        return result.scalar_one_or_none() is not None

    async def _new_matricule(self) -> str:
        for _ in range(MATRICULE_ATTEMPTS):
            matricule = generate_matricule()
            if not await self._matricule_exists(matricule):
                return matricule
        raise DuplicateError("Student", "matricule", matricule)
