"""API endpoints for Payments module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import AdminUser, StaffUser
from src.core.database.session import get_db
from src.core.pdf import build_receipt_context, pdf_service
from src.modules.payments.schemas import (
    PaymentFilters,
    PaymentRecordRequest,
    PaymentResponse,
    PaymentResult,
    ReconciliationResult,
)
from src.modules.payments.service import PaymentService
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post(
    "",
    response_model=ApiResponse[PaymentResult],
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    data: PaymentRecordRequest,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Record a tuition payment. The authenticated admin is stored as recorder."""
    result = await PaymentService(db).record_payment(
        matricule=data.matricule,
        receipt_number=data.receipt_number,
        bank_name=data.bank_name,
        amount=data.amount,
        payment_date=data.payment_date,
        recorded_by_id=current_user.id,
    )
    return ApiResponse(data=result, message="Payment recorded successfully")


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[PaymentResponse]],
)
async def list_payments(
    current_user: StaffUser,
    student_id: int | None = Query(None),
    matricule: str | None = Query(None),
    bank_name: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List payments with optional filters."""
    filters = PaymentFilters(
        student_id=student_id,
        matricule=matricule,
        bank_name=bank_name,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    payments, total = await PaymentService(db).list_payments(filters)
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[PaymentResponse.model_validate(p) for p in payments],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get(
    "/reconciliation/{student_id}",
    response_model=ApiResponse[ReconciliationResult],
)
async def reconcile_student(
    student_id: int,
    current_user: StaffUser,
    db: AsyncSession = Depends(get_db),
):
    """Check that a student's paid total matches the sum of their payments."""
    result = await PaymentService(db).reconcile_student(student_id)
    return ApiResponse(data=result)


@router.get(
    "/{payment_id}",
    response_model=ApiResponse[PaymentResponse],
)
async def get_payment(
    payment_id: int,
    current_user: StaffUser,
    db: AsyncSession = Depends(get_db),
):
    """Get payment by ID."""
    payment = await PaymentService(db).get_payment_by_id(payment_id)
    return ApiResponse(data=PaymentResponse.model_validate(payment))


@router.get("/{payment_id}/receipt/pdf")
async def download_receipt_pdf(
    payment_id: int,
    current_user: StaffUser,
    db: AsyncSession = Depends(get_db),
):
    """Download payment receipt as PDF."""
    payment = await PaymentService(db).get_payment_by_id(payment_id)
    pdf_bytes = pdf_service.generate_receipt_pdf(build_receipt_context(payment))
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="receipt_{payment.receipt_number}.pdf"'},
    )
