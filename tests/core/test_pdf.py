"""Tests for PDF rendering (certificate and receipt). WeasyPrint is replaced to avoid system deps."""

import sys
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from src.core.exceptions import PdfGenerationUnavailableError
from src.core.pdf.service import (
    amount_to_words,
    build_certificate_context,
    build_receipt_context,
    current_academic_year,
    format_money,
    pdf_service,
)

FAKE_PDF = b"%PDF-1.4 fake pdf content"
NOW = datetime(2026, 10, 19, 9, 30)
REFERENCE = "CERT-2026-1A2B3C4D"


def _student(**overrides):
    fields = {
        "full_name": "Jane Doe",
        "matricule": "STU2026000001",
        "class_name": "Form 2",
        "date_of_birth": date(2012, 5, 3),
        "total_due": Decimal("500000.00"),
        "total_paid": Decimal("200000.00"),
        "remaining_balance": Decimal("300000.00"),
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _payment(student=None):
    return SimpleNamespace(
        receipt_number="R-100",
        bank_name="Afriland First Bank",
        amount=Decimal("200000.00"),
        payment_date=date(2026, 1, 15),
        created_at=NOW,
        recorded_by=SimpleNamespace(full_name="School Admin"),
        student=student or _student(),
    )


class TestFormatting:
    def test_amount_to_words(self):
        assert amount_to_words(Decimal("200000.00")) == "Two Hundred Thousand XAF Only"
        assert amount_to_words(Decimal("50000.40")) == "Fifty Thousand XAF Only"

    def test_format_money(self):
        assert format_money(Decimal("1234567.5")) == "1,234,567.50"
        assert format_money(0) == "0.00"

    def test_academic_year_from_date(self):
        with patch("src.core.pdf.service.settings") as mock_settings:
            mock_settings.academic_year = ""
            assert current_academic_year(NOW) == "2026-2027"

            mock_settings.academic_year = "2025/2026"
            assert current_academic_year(NOW) == "2025/2026"


class TestTemplates:
    def test_receipt_html(self):
        html = pdf_service.render_html("receipt.html", build_receipt_context(_payment(), now=NOW))

        assert "R-100" in html
        assert "Jane Doe (STU2026000001)" in html
        assert "200,000.00 XAF" in html
        assert "300,000.00 XAF" in html
        assert "Two Hundred Thousand XAF Only" in html
        assert "Recorded by School Admin" in html

    def test_certificate_html(self):
        context = build_certificate_context(_student(), REFERENCE, now=NOW)
        html = pdf_service.render_html("certificate.html", context)

        assert REFERENCE in html
        assert "Jane Doe" in html
        assert "STU2026000001" in html
        assert "03/05/2012" in html
        assert "Form 2" in html

    def test_certificate_without_optional_fields(self):
        html = pdf_service.render_html(
            "certificate.html",
            build_certificate_context(
                _student(class_name=None, date_of_birth=None), REFERENCE, now=NOW
            ),
        )

        assert "born on" not in html
        assert "enrolled in" not in html

    def test_html_is_escaped(self):
        html = pdf_service.render_html(
            "certificate.html",
            build_certificate_context(
                _student(full_name="<script>x</script>"), REFERENCE, now=NOW
            ),
        )

        assert "<script>x</script>" not in html


class TestPdfGeneration:
    def test_generate_receipt_pdf(self):
        weasyprint = MagicMock()
        weasyprint.HTML.return_value.write_pdf.return_value = FAKE_PDF

        with patch.dict(sys.modules, {"weasyprint": weasyprint}):
            pdf = pdf_service.generate_receipt_pdf(build_receipt_context(_payment(), now=NOW))

        assert pdf == FAKE_PDF
        html = weasyprint.HTML.call_args.kwargs["string"]
        assert "R-100" in html

    def test_weasyprint_missing(self):
        with patch.dict(sys.modules, {"weasyprint": None}):
            with pytest.raises(PdfGenerationUnavailableError) as exc_info:
                pdf_service.generate_certificate_pdf(
                    build_certificate_context(_student(), REFERENCE, now=NOW)
                )

        assert exc_info.value.status_code == 503

    def test_rendering_failure(self):
        weasyprint = MagicMock()
        weasyprint.HTML.return_value.write_pdf.side_effect = OSError("cannot load library 'pango'")

        with patch.dict(sys.modules, {"weasyprint": weasyprint}):
            with pytest.raises(PdfGenerationUnavailableError) as exc_info:
                pdf_service.generate_receipt_pdf(build_receipt_context(_payment(), now=NOW))

        assert "pango" in exc_info.value.message
