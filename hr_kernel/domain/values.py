"""
Values -- money and day-count helpers shared by every engine.

Responsibility:
    Central place for the Decimal conventions: coercion of caller input,
    the zero constant, and the ONLY sanctioned rounding function for
    amounts leaving the engine.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Money is ``Decimal``; floats are rejected outright (their binary
      representation would leak into statutory amounts).
    - Rounding to two decimal places happens only at output boundaries
      (``quantize_money``); intermediate figures keep full precision.

Failure modes:
    - ``ValidationError`` on float, non-numeric or non-finite input.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from hr_kernel.exceptions import ValidationError

ZERO = Decimal("0")
CENT = Decimal("0.01")

# AED is the only currency the statutory formulas are written for.
DEFAULT_CURRENCY = "AED"


def to_decimal(value: Decimal | int | str, field: str = "amount") -> Decimal:
    """Coerce caller input to Decimal.

    Preconditions:
        ``value`` is a Decimal, int or numeric string.  Floats are refused.
    Raises:
        ValidationError: if the value is a float, not numeric, or not finite.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(field, f"must be Decimal, int or str, got {type(value).__name__}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise ValidationError(field, f"not a number: {value!r}") from None
    if not result.is_finite():
        raise ValidationError(field, f"must be finite, got {value!r}")
    return result


def quantize_money(amount: Decimal) -> Decimal:
    """Round a money amount to fils (2 dp, half-up) for output."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def as_calendar_day(value: date | datetime) -> date:
    """Truncate a datetime to its calendar day; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value
