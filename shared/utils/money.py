"""
Money helpers.

Amounts are computed in integer cents and rendered as fixed 2-decimal strings,
so totals never pick up floating point drift (3 x 0.10 == 0.30).
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal, str]

CENT = Decimal("0.01")
TENTH = Decimal("0.1")


def to_decimal(value: Number | None) -> Decimal:
    """Exact decimal for a driver value. Floats go through str() to avoid binary noise."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def to_cents(value: Number | None) -> int:
    """Convert an amount (e.g. Decimal('9.50'), 9.5, '9.5') to integer cents."""
    cents = (to_decimal(value) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


def cents_to_decimal(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def cents_to_float(cents: int) -> float:
    """Number stored in documents; exact to the cent for display purposes."""
    return float(cents_to_decimal(cents))


def round_money(value: Number | None) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Number | None) -> str:
    """'19.00' style string."""
    return f"{round_money(value):.2f}"


def format_cents(cents: int) -> str:
    return f"{cents_to_decimal(cents):.2f}"


def average_money(total: Number | None, count: int) -> str:
    """Average of an already rounded total over count, as a money string."""
    if not count:
        return format_money(0)
    return format_money(round_money(total) / count)


def format_rate(part: int, whole: int) -> str:
    """Percentage with one decimal, '0.0' when whole is zero."""
    if not whole:
        return "0.0"
    rate = (Decimal(part) * 100 / Decimal(whole)).quantize(TENTH, rounding=ROUND_HALF_UP)
    return f"{rate:.1f}"
