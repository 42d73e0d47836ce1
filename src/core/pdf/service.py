"""PDF generation service (school certificate and payment receipt) from HTML templates."""

import logging
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from jinja2 import Environment, FileSystemLoader
from num2words import num2words

from src.core.config import settings
from src.core.exceptions import PdfGenerationUnavailableError

TEMPLATE_DIR = Path(__file__).resolve().parent.parent.parent / "templates" / "pdf"

logger = logging.getLogger(__name__)


def amount_to_words(amount: Decimal) -> str:
    """Convert amount to words (e.g. 50000 -> 'Fifty Thousand XAF Only')."""
    amount_int = int(round(amount, 0))
    words = num2words(amount_int, lang="en").title()
    return f"{words} {settings.currency} Only"


def format_money(value) -> str:
    """Jinja filter: 1234567.5 -> '1,234,567.50'."""
    return f"{Decimal(str(value)):,.2f}"


def current_academic_year(now: datetime | None = None) -> str:
    if settings.academic_year:
        return settings.academic_year
    year = (now or datetime.now()).year
    return f"{year}-{year + 1}"


class PDFService:
    """Generate PDF documents from Jinja2 templates and WeasyPrint."""

    def __init__(self) -> None:
        self._env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
        )
        self._env.filters["money"] = format_money

    def render_html(self, template_name: str, context: dict) -> str:
        return self._env.get_template(template_name).render(**context)

    def _write_pdf(self, html_content: str) -> bytes:
        try:
            from weasyprint import HTML
        except (OSError, ImportError) as e:
            logger.error("WeasyPrint unavailable: %s", e)
            raise PdfGenerationUnavailableError(
                f"PDF generation unavailable (WeasyPrint or pango missing). {e!s}"
            ) from e
        try:
            return HTML(string=html_content).write_pdf()
        except Exception as e:
            logger.exception("PDF rendering failed")
            raise PdfGenerationUnavailableError(str(e)) from e

    def generate_certificate_pdf(self, context: dict) -> bytes:
        """Render certificate template with context and return PDF bytes."""
        return self._write_pdf(self.render_html("certificate.html", context))

    def generate_receipt_pdf(self, context: dict) -> bytes:
        """Render receipt template with context and return PDF bytes."""
        return self._write_pdf(self.render_html("receipt.html", context))


def build_certificate_context(student, reference: str, now: datetime | None = None) -> dict:
    """Template context for a school certificate. Callers check eligibility and register the reference."""
    now = now or datetime.now()
    return {
        "reference": reference,
        "student": {
            "full_name": student.full_name,
            "matricule": student.matricule,
            "class_name": student.class_name or "",
            "date_of_birth": student.date_of_birth,
        },
        "academic_year": current_academic_year(now),
        "school_info": settings.school_info,
        "generated_at": now,
    }


def build_receipt_context(payment, now: datetime | None = None) -> dict:
    """Build template context for receipt PDF (payment with student and recorded_by loaded)."""
    student = payment.student
    return {
        "payment": {
            "receipt_number": payment.receipt_number,
            "bank_name": payment.bank_name,
            "amount": payment.amount,
            "payment_date": payment.payment_date,
            "created_at": payment.created_at,
            "recorded_by_name": payment.recorded_by.full_name if payment.recorded_by else "",
        },
        "student": {
            "full_name": student.full_name,
            "matricule": student.matricule,
            "class_name": student.class_name or "",
            "total_due": student.total_due,
            "total_paid": student.total_paid,
            "remaining_balance": student.remaining_balance,
        },
        "amount_in_words": amount_to_words(payment.amount),
        "currency": settings.currency,
        "school_info": settings.school_info,
        "generated_at": now or datetime.now(),
    }


pdf_service = PDFService()
