"""
Tuition ledger rules: financial status and payment amount validation.

Pure functions, no database access. Every write path that changes a student's
tuition_paid takes its new status from compute_financial_status().
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Any

from src.core.config import settings
from src.shared.utils.money import ZERO, parse_money, round_money, to_money

AMOUNT_NOT_POSITIVE = "Payment amount must be positive."


class FinancialStatus(StrEnum):
    """Tuition account status, derived from (tuition_total, tuition_paid)."""

    NOT_PAID = "not_paid"
    PARTIALLY_PAID = "partially_paid"
    FULLY_PAID = "fully_paid"


def compute_financial_status(total: Any, paid: Any) -> FinancialStatus:
    """
    Status for a tuition account.

    Non-numeric or missing input counts as zero.

    Examples:
        >>> compute_financial_status("500000", 0)
        <FinancialStatus.NOT_PAID: 'not_paid'>
        >>> compute_financial_status(500000, 200000)
        <FinancialStatus.PARTIALLY_PAID: 'partially_paid'>
        >>> compute_financial_status(500000, "500000.00")
        <FinancialStatus.FULLY_PAID: 'fully_paid'>
    """
    total = to_money(total)
    paid = to_money(paid)

    if paid == 0:
        return FinancialStatus.NOT_PAID
    if paid >= total:
        return FinancialStatus.FULLY_PAID
    return FinancialStatus.PARTIALLY_PAID


@dataclass(frozen=True)
class PaymentValidation:
    """Outcome of validate_payment_amount()."""

    ok: bool
    remaining: Decimal
    message: str | None = None


def format_amount(amount: Decimal) -> str:
    """2-decimal amount with the configured currency, e.g. '300000.00 XAF'."""
    return f"{round_money(amount)} {settings.currency}"


def validate_payment_amount(amount: Any, total: Any, already_paid: Any) -> PaymentValidation:
    """
    Check a payment against the remaining balance of an account.

    Advisory only: callers must re-run it inside the transaction that applies
    the payment, since already_paid may change between read and write.
    """
    total = to_money(total)
    paid = to_money(already_paid)
    remaining = round_money(total - paid)

    payment_amount = parse_money(amount)
    if payment_amount is None or payment_amount <= 0:
        return PaymentValidation(ok=False, remaining=remaining, message=AMOUNT_NOT_POSITIVE)

    if payment_amount > remaining:
        return PaymentValidation(
            ok=False,
            remaining=remaining,
            message=(
                "Payment amount exceeds remaining balance. "
                f"Remaining: {format_amount(remaining)}"
            ),
        )

    return PaymentValidation(ok=True, remaining=remaining)


def effective_tuition_total(value: Any) -> Decimal:
    """Stored tuition total, or the configured default for legacy rows without one."""
    return to_money(value, default=settings.default_tuition_total)


def effective_tuition_paid(value: Any) -> Decimal:
    return to_money(value, default=ZERO)
