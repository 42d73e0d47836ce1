from decimal import Decimal

import pytest

from src.shared.utils.money import ZERO, parse_money, round_money, to_money


class TestRoundMoney:
    """Tests for round_money function."""

    def test_round_half_up(self):
        assert round_money(10.125) == Decimal("10.13")
        assert round_money(10.124) == Decimal("10.12")
        assert round_money("150000.005") == Decimal("150000.01")

    def test_from_decimal_and_int(self):
        assert round_money(Decimal("99.999")) == Decimal("100.00")
        assert round_money(500000) == Decimal("500000.00")
        assert round_money(0) == Decimal("0.00")

    def test_negative_numbers(self):
        """Negative halves round toward zero."""
        assert round_money(-10.125) == Decimal("-10.12")
        assert round_money(-10.126) == Decimal("-10.13")

    def test_always_two_places(self):
        assert str(round_money(300000)) == "300000.00"
        assert str(round_money(10.1)) == "10.10"


class TestParseMoney:
    """Tests for parse_money / to_money coercion."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("200000", Decimal("200000")),
            (" 1500.50 ", Decimal("1500.50")),
            (300000, Decimal("300000")),
            (Decimal("12.34"), Decimal("12.34")),
            (0.5, Decimal("0.5")),
        ],
    )
    def test_parses_numbers(self, value, expected):
        assert parse_money(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "12,5", "NaN", "Infinity", "-inf", True, False])
    def test_rejects_non_numeric(self, value):
        assert parse_money(value) is None

    def test_rejects_non_finite_decimal(self):
        assert parse_money(Decimal("NaN")) is None
        assert parse_money(Decimal("Infinity")) is None

    def test_to_money_falls_back_to_default(self):
        assert to_money(None) == ZERO
        assert to_money("not a number") == ZERO
        assert to_money(None, default=Decimal("500000.00")) == Decimal("500000.00")
        assert to_money("250.75", default=Decimal("1")) == Decimal("250.75")
