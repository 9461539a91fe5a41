"""Utility functions for the loan tracker.

This module provides helpers for parsing user input into Python data types,
for rounding currency values and for calendar arithmetic. Month and year
offsets clamp the day of the month instead of rolling over, so that
Jan 31 + 1 month is always the last day of February.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext
import calendar
from typing import Union

from .data_models import PaymentFrequency

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")
UNIT = Decimal("1")

Number = Union[Decimal, int, float, str]


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date``.

    A trailing time component (``2024-01-31T00:00:00``) is ignored.

    Raises
    ------
    ValueError
        If the string is not a valid calendar date.
    """
    try:
        return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_years(dt: date, years: int) -> date:
    """Return a new date a number of years after ``dt`` (Feb 29 clamps to Feb 28)."""
    year = dt.year + years
    day = min(dt.day, calendar.monthrange(year, dt.month)[1])
    return date(year, dt.month, day)


def add_periods(dt: date, frequency: PaymentFrequency, periods: int) -> date:
    """Advance ``dt`` by a number of installment periods."""
    if frequency == PaymentFrequency.YEARLY:
        return add_years(dt, periods)
    return add_months(dt, periods * frequency.months_per_period)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        result = Decimal(cleaned)
    except (AttributeError, InvalidOperation) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def to_decimal(value: Number) -> Decimal:
    """Coerce an int, float, string or Decimal into a ``Decimal``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value}")
    if isinstance(value, (int, float)):
        return decimal_from_str(str(value))
    return decimal_from_str(value)


def parse_amount(value: str) -> Decimal:
    """Parse an amount with optional ``k``/``m`` suffixes (``"500k"`` is 500 000)."""
    cleaned = value.strip().lower().replace(",", "")
    factor = Decimal("1")
    if cleaned.endswith("k"):
        factor = Decimal("1000")
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = Decimal("1000000")
        cleaned = cleaned[:-1]
    return decimal_from_str(cleaned) * factor


def round_currency(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_whole(value: Decimal) -> Decimal:
    return value.quantize(UNIT, rounding=ROUND_HALF_UP)


def format_rate(rate: Decimal) -> str:
    """Render a percentage without trailing zeros (``Decimal("18.50")`` -> ``"18.5"``)."""
    return f"{rate.normalize():f}"
