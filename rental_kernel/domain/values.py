"""
Money and calendar value helpers.

Responsibility:
    Conversion of boundary inputs (int, str, float, Decimal, ISO date
    strings) into the Decimal amounts and calendar dates the engines work
    with, plus the single sanctioned rounding function.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Engines import from
    here and nowhere else in the kernel except logging and exceptions.

Invariants enforced:
    - Amounts are always ``Decimal``; floats are converted through ``str()``
      so 0.1 becomes Decimal("0.1"), never the binary expansion.
    - ``round_money`` is the ONLY rounding function for monetary values
      (2 places, ROUND_HALF_UP).  It is applied at output boundaries, never
      mid-computation.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
MONEY_DECIMAL_PLACES = 2
TWO_PLACES = Decimal("0.01")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """
    Convert a boundary value into a Decimal.

    Raises:
        ValueError: If the value is not numeric or is NaN/infinite.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid amount: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


def fraction_digits(value: Decimal) -> int:
    """Number of digits after the decimal point (0 for integers)."""
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent) if isinstance(exponent, int) else 0


def round_money(value: Decimal, decimal_places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """
    Round a monetary value half-up to ``decimal_places``.

    This is the ONLY sanctioned rounding function for money.
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    """Decimal-safe wire representation with exactly two fraction digits."""
    return str(round_money(value))


def to_date(value: date | datetime | str) -> date:
    """
    Coerce a date-like value to a calendar date (time-of-day dropped).

    Raises:
        ValueError: If a string is not an ISO calendar date.
        TypeError: If the value is not date-like.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        # Accept "2024-01-31T00:00:00" style timestamps from JSON payloads
        if "T" in text:
            return datetime.fromisoformat(text).date()
        return date.fromisoformat(text)
    raise TypeError(f"Cannot interpret {value!r} as a date")
