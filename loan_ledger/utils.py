"""Utility functions for the loan ledger.

This module provides helpers for parsing user input into Python data types and
for calendar arithmetic: adding months to a date and counting whole calendar
months between two dates.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation, getcontext
import calendar

getcontext().prec = 28  # increase decimal precision to avoid rounding errors


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` or ``YYYY-MM`` string into a ``date``.

    A year-month string is normalized to the first day of the month. A time
    of day after ``T`` (as in an ISO timestamp) is ignored.

    Raises
    ------
    ValueError
        If the string is not a valid date.
    """
    try:
        parts = value.strip().split("T", 1)[0].split("-")
        if len(parts) == 2:
            return date(int(parts[0]), int(parts[1]), 1)
        if len(parts) == 3 and len(parts[2]) <= 2:
            return date(int(parts[0]), int(parts[1]), int(parts[2]))
        raise ValueError
    except (ValueError, AttributeError) as exc:
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


def months_between(later: date, earlier: date) -> int:
    """Whole calendar months from ``earlier`` to ``later``.

    Only year and month take part (``year * 12 + month`` difference), so a
    payment on the 31st and one on the 1st of the same month land in the same
    bucket however many years the loan has run. The result is negative when
    ``later`` is in an earlier month than ``earlier``.
    """
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def to_decimal(value) -> Decimal:
    """Coerce an int, float, string or ``Decimal`` to ``Decimal``."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return decimal_from_str(repr(value))
    return decimal_from_str(str(value))
