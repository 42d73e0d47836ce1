"""Tests for financial status and payment amount validation."""

from decimal import Decimal
from unittest.mock import patch

import pytest

from src.modules.payments.ledger import (
    AMOUNT_NOT_POSITIVE,
    FinancialStatus,
    compute_financial_status,
    effective_tuition_paid,
    effective_tuition_total,
    format_amount,
    validate_payment_amount,
)


class TestComputeFinancialStatus:
    """Status is a partition of (total, paid)."""

    @pytest.mark.parametrize(
        "total, paid, expected",
        [
            (500000, 0, FinancialStatus.NOT_PAID),
            (500000, Decimal("0.00"), FinancialStatus.NOT_PAID),
            (500000, 1, FinancialStatus.PARTIALLY_PAID),
            (500000, 200000, FinancialStatus.PARTIALLY_PAID),
            (500000, Decimal("499999.99"), FinancialStatus.PARTIALLY_PAID),
            (500000, 500000, FinancialStatus.FULLY_PAID),
            (500000, 600000, FinancialStatus.FULLY_PAID),
        ],
    )
    def test_partition(self, total, paid, expected):
        assert compute_financial_status(total, paid) == expected

    def test_accepts_strings(self):
        assert compute_financial_status("500000", "500000.00") == FinancialStatus.FULLY_PAID
        assert compute_financial_status("500000.00", "100") == FinancialStatus.PARTIALLY_PAID

    def test_non_numeric_counts_as_zero(self):
        assert compute_financial_status(500000, None) == FinancialStatus.NOT_PAID
        assert compute_financial_status(500000, "abc") == FinancialStatus.NOT_PAID
        # Zero total with something paid is fully paid
        assert compute_financial_status(None, 100) == FinancialStatus.FULLY_PAID

    def test_same_input_same_output(self):
        results = {compute_financial_status(Decimal("500000"), Decimal("250000")) for _ in range(5)}
        assert results == {FinancialStatus.PARTIALLY_PAID}

    def test_stored_values(self):
        assert [s.value for s in FinancialStatus] == ["not_paid", "partially_paid", "fully_paid"]


class TestValidatePaymentAmount:
    """Tests for validate_payment_amount."""

    def test_accepts_amount_within_remaining(self):
        result = validate_payment_amount(Decimal("200000"), Decimal("500000"), Decimal("0"))

        assert result.ok is True
        assert result.message is None
        assert result.remaining == Decimal("500000.00")

    def test_accepts_exact_remaining(self):
        result = validate_payment_amount("300000", "500000", "200000")

        assert result.ok is True
        assert result.remaining == Decimal("300000.00")

    @pytest.mark.parametrize("amount", [0, "0", -1, "-500", None, "abc", "NaN", "Infinity"])
    def test_rejects_non_positive_or_non_numeric(self, amount):
        result = validate_payment_amount(amount, 500000, 0)

        assert result.ok is False
        assert result.message == AMOUNT_NOT_POSITIVE

    def test_rejects_amount_over_remaining(self):
        result = validate_payment_amount(Decimal("300000.01"), Decimal("500000"), Decimal("200000"))

        assert result.ok is False
        assert result.remaining == Decimal("300000.00")
        assert result.message == (
            "Payment amount exceeds remaining balance. Remaining: 300000.00 XAF"
        )

    def test_rejects_any_payment_when_fully_paid(self):
        result = validate_payment_amount(1, 500000, 500000)

        assert result.ok is False
        assert result.remaining == Decimal("0.00")
        assert "Remaining: 0.00 XAF" in result.message

    def test_message_uses_configured_currency(self):
        with patch("src.modules.payments.ledger.settings") as mock_settings:
            mock_settings.currency = "KES"
            assert format_amount(Decimal("12.5")) == "12.50 KES"


class TestEffectiveTotals:
    """Coercion of stored account values."""

    def test_missing_total_uses_default(self):
        assert effective_tuition_total(None) == Decimal("500000.00")

    def test_explicit_total_is_kept(self):
        assert effective_tuition_total(Decimal("750000.00")) == Decimal("750000.00")

    def test_missing_paid_is_zero(self):
        assert effective_tuition_paid(None) == Decimal("0")
        assert effective_tuition_paid("garbage") == Decimal("0")
