"""
Money Helpers

DESIGN DECISION: Amounts live in models as Decimal rupees with two places,
but every sum is accumulated in integer paise. Converting at the edges keeps
repeated additions and splits free of float drift.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from expense_tracker.config import get_settings

MINOR_UNITS_PER_MAJOR = 100
TWO_PLACES = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """
    Convert a numeric input to a Decimal rounded to 2 places.

    Floats go through ``str`` so that 33.33 stays 33.33.
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be a number, not a boolean")
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, float):
            result = Decimal(str(value))
        elif isinstance(value, (int, str)):
            result = Decimal(str(value).strip())
        else:
            raise ValueError(f"Unsupported amount type: {type(value).__name__}")
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e

    if not result.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return result.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_minor_units(value: Number) -> int:
    """Convert an amount to integer paise."""
    return int(to_decimal(value) * MINOR_UNITS_PER_MAJOR)


def from_minor_units(minor: int) -> Decimal:
    """Convert integer paise back to Decimal rupees."""
    return (Decimal(minor) / MINOR_UNITS_PER_MAJOR).quantize(TWO_PLACES)


def format_amount(value: Number, symbol: Optional[str] = None) -> str:
    """
    Format an amount for display, e.g. ``₹1,250.50`` or ``-₹300.00``.

    The symbol defaults to the configured currency symbol.
    """
    if symbol is None:
        symbol = get_settings().app.currency_symbol
    amount = to_decimal(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"
