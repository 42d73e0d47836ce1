"""API endpoints for Students module."""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import AdminUser, CurrentStudent, StaffUser
from src.core.database.session import get_db
from src.core.pdf import build_certificate_context, pdf_service
from src.modules.payments.ledger import FinancialStatus
from src.modules.payments.schemas import PaymentResponse
from src.modules.payments.service import PaymentService
from src.modules.students.models import Student
from src.modules.students.schemas import (
    AccountHistoryEntry,
    IssuedCertificateResponse,
    PortalPasswordUpdate,
    StudentAccountSummary,
    StudentCreate,
    StudentFilters,
    StudentResponse,
)
from src.modules.students.service import (
    StudentService,
    ensure_fully_paid,
    new_certificate_reference,
)
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/students", tags=["Students"])
portal_router = APIRouter(prefix="/portal", tags=["Student portal"])


async def _issue_certificate_pdf(
    service: StudentService, student: Student, issued_by_id: int | None = None
) -> Response:
    """Render the certificate, then register it. A failed rendering leaves no register entry."""
    ensure_fully_paid(student, document="Certificate")
    reference = new_certificate_reference()
    pdf_bytes = pdf_service.generate_certificate_pdf(build_certificate_context(student, reference))
    certificate = await service.issue_certificate(student, reference, issued_by_id=issued_by_id)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="certificate_{student.matricule}.pdf"',
            "X-Certificate-Reference": certificate.reference,
        },
    )


@router.post(
    "",
    response_model=ApiResponse[StudentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_student(
    data: StudentCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Create a new student with an empty tuition account."""
    student = await StudentService(db).create_student(data, current_user.id)
    return ApiResponse(
        data=StudentResponse.model_validate(student),
        message="Student created successfully",
    )


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[StudentResponse]],
)
async def list_students(
    current_user: StaffUser,
    search: str | None = Query(None),
    financial_status: FinancialStatus | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List students with optional search and status filter."""
    filters = StudentFilters(
        search=search,
        financial_status=financial_status,
        page=page,
        limit=limit,
    )
    students, total = await StudentService(db).list_students(filters)
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[StudentResponse.model_validate(s) for s in students],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get(
    "/{matricule}",
    response_model=ApiResponse[StudentResponse],
)
async def get_student(
    matricule: str,
    current_user: StaffUser,
    db: AsyncSession = Depends(get_db),
):
    """Get student by matricule."""
    student = await StudentService(db).get_student_by_matricule(matricule)
    return ApiResponse(data=StudentResponse.model_validate(student))


@router.get(
    "/{matricule}/account",
    response_model=ApiResponse[StudentAccountSummary],
)
async def get_student_account(
    matricule: str,
    current_user: StaffUser,
    db: AsyncSession = Depends(get_db),
):
    """Tuition totals, remaining balance and payment history."""
    summary = await StudentService(db).get_account_summary(matricule)
    return ApiResponse(data=summary)


@router.get("/{matricule}/certificate/pdf")
async def download_certificate_pdf(
    matricule: str,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """School certificate, only for students whose tuition is fully paid."""
    service = StudentService(db)
    student = await service.get_certificate_student(matricule)
    return await _issue_certificate_pdf(service, student, issued_by_id=current_user.id)


@router.get(
    "/{matricule}/history",
    response_model=ApiResponse[list[AccountHistoryEntry]],
)
async def get_student_history(
    matricule: str,
    current_user: StaffUser,
    db: AsyncSession = Depends(get_db),
):
    """Account history: creation, payments, repairs, portal access and certificates."""
    entries = await StudentService(db).get_account_history(matricule)
    return ApiResponse(data=[AccountHistoryEntry.model_validate(e) for e in entries])


@router.get(
    "/{matricule}/certificates",
    response_model=ApiResponse[list[IssuedCertificateResponse]],
)
async def list_student_certificates(
    matricule: str,
    current_user: StaffUser,
    db: AsyncSession = Depends(get_db),
):
    """Certificates issued to a student, newest first."""
    service = StudentService(db)
    student = await service.get_student_by_matricule(matricule)
    certificates = await service.list_certificates(student.id)
    return ApiResponse(data=[IssuedCertificateResponse.model_validate(c) for c in certificates])


@router.put(
    "/{matricule}/portal-password",
    response_model=ApiResponse[StudentResponse],
)
async def set_portal_password(
    matricule: str,
    data: PortalPasswordUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Give a student portal access or reset their password."""
    student = await StudentService(db).set_portal_password(
        matricule, data.password, current_user.id
    )
    return ApiResponse(
        data=StudentResponse.model_validate(student),
        message="Portal password updated",
    )


# --- Student portal ---


@portal_router.get("/me", response_model=ApiResponse[StudentResponse])
async def portal_me(current_student: CurrentStudent):
    return ApiResponse(data=StudentResponse.model_validate(current_student))


@portal_router.get("/account", response_model=ApiResponse[StudentAccountSummary])
async def portal_account(
    current_student: CurrentStudent,
    db: AsyncSession = Depends(get_db),
):
    """The signed-in student's balance and payment history."""
    summary = await StudentService(db).build_account_summary(current_student)
    return ApiResponse(data=summary)


@portal_router.get("/payments", response_model=ApiResponse[list[PaymentResponse]])
async def portal_payments(
    current_student: CurrentStudent,
    db: AsyncSession = Depends(get_db),
):
    payments = await PaymentService(db).get_student_payments(current_student.id)
    return ApiResponse(data=[PaymentResponse.model_validate(p) for p in payments])


@portal_router.get("/certificate/pdf")
async def portal_certificate_pdf(
    current_student: CurrentStudent,
    db: AsyncSession = Depends(get_db),
):
    """Self-service school certificate, refused until tuition is fully paid."""
    return await _issue_certificate_pdf(StudentService(db), current_student)
