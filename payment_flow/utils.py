"""Utility functions for the payment flow calculator.

This module provides helpers for parsing user input into Python data types and
for handling dates: adding months, counting whole months between two dates and
normalizing ``YYYY-MM`` strings. It uses Python's ``datetime`` and
``calendar`` modules to calculate month offsets.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, getcontext
from typing import Optional

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

ZERO = Decimal("0")


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        return date(year, month, 1)
    except (ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO (``YYYY-MM-DD``) or Brazilian (``DD/MM/YYYY``) date.

    Empty values return ``None``. A time component after ``T`` is ignored.
    """
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    value = value.split("T", 1)[0]
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date: {value}")


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def whole_months_between(start: date, end: date) -> int:
    """Number of complete calendar months from ``start`` to ``end``.

    A month only counts once the day of month of ``start`` has been reached,
    so 10/01 -> 09/02 is zero months and 10/01 -> 10/02 is one. Dates in the
    wrong order yield zero.
    """
    if end <= start:
        return 0
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if add_months(start, months) > end:
        months -= 1
    return max(months, 0)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    Both ``1,234.56`` and the Brazilian ``1.234,56`` are accepted: when a
    comma is the last separator it is treated as the decimal point. Raises
    ``ValueError`` if conversion fails.
    """
    try:
        cleaned = str(value).strip().replace(" ", "")
        if "," in cleaned and cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
        result = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def optional_decimal(value) -> Optional[Decimal]:
    """Like :func:`decimal_from_str` but ``None``/empty map to ``None``."""
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return decimal_from_str(value)


def safe_div(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning zero when the denominator is zero."""
    if not denominator:
        return ZERO
    return numerator / denominator


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """``part`` as a percentage of ``whole``; zero when ``whole`` is zero."""
    return safe_div(part * 100, whole)
