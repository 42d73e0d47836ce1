from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Union

# Type alias for money values
Money = Decimal

ZERO = Decimal("0.00")


def round_money(value: Union[Decimal, float, int, str]) -> Decimal:
    """
    Round monetary value to 2 decimal places using ROUND_HALF_UP.

    Examples:
        >>> round_money(10.125)
        Decimal('10.13')
        >>> round_money(10.124)
        Decimal('10.12')
        >>> round_money("10.115")
        Decimal('10.12')
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if value < 0:
        return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_DOWN)
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_money(value: Any) -> Decimal | None:
    """
    Parse a user or database value into a finite Decimal.

    Returns None for missing, non-numeric, NaN and infinite input.

    Examples:
        >>> parse_money("200000")
        Decimal('200000')
        >>> parse_money("abc") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not result.is_finite():
        return None
    return result


def to_money(value: Any, default: Decimal = ZERO) -> Decimal:
    """Coerce to a finite Decimal, falling back to `default` for anything unparseable."""
    result = parse_money(value)
    return default if result is None else result
