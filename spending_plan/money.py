"""Money rounding, comparison and display helpers."""

from __future__ import annotations

import math
from typing import Union

MONEY_TOLERANCE = 0.01


def round_half_away(value: float) -> int:
    """Round to the nearest integer, with halves rounded away from zero.

    Example:
        >>> round_half_away(2.5)
        3
        >>> round_half_away(-2.5)
        -3
    """
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return 0
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def round_money(value: Union[float, int, None]) -> float:
    """Round a major-unit amount to cents; ``None``/NaN become 0."""
    if value is None:
        return 0.0
    value = float(value)
    if math.isnan(value):
        return 0.0
    return round(value, 2) + 0.0


def money_equal(a: float, b: float, tolerance: float = MONEY_TOLERANCE) -> bool:
    return abs(float(a) - float(b)) <= tolerance + 1e-9


def format_currency(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format a currency amount.

    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(1234.56, include_sign=False)
        '1,234.56'
    """
    formatted = f"{amount:,.2f}"
    return f"${formatted}" if include_sign else formatted
