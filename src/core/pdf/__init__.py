from src.core.pdf.service import (
    build_certificate_context,
    build_receipt_context,
    pdf_service,
)

__all__ = ["pdf_service", "build_certificate_context", "build_receipt_context"]
