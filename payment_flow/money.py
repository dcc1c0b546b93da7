"""Monetary formatting helpers.

All arithmetic in the calculator happens in the base currency (BRL). The
selected display currency is applied only here, when a value is turned into a
string. Separators follow the Brazilian convention (``1.234,56``).
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Optional

from .data_models import BASE_CURRENCY, Currency

CENT = Decimal("0.01")
TENTH = Decimal("0.1")


def _pt_br(number: str) -> str:
    # "1,234.56" -> "1.234,56"
    return number.replace(",", "_").replace(".", ",").replace("_", ".")


def quantize(value: Decimal, places: Decimal = CENT) -> Decimal:
    value = Decimal(value)
    with localcontext() as ctx:
        # the quantized coefficient must fit in the context precision
        ctx.prec = max(ctx.prec, value.adjusted() - places.as_tuple().exponent + 2)
        return value.quantize(places, rounding=ROUND_HALF_UP)


def is_base(currency: Currency) -> bool:
    return currency.code == BASE_CURRENCY.code


def convert_from_base(value: Decimal, currency: Currency) -> Decimal:
    """Express a base-currency value in ``currency``.

    A non-positive exchange rate cannot be divided by, so the value is
    returned unconverted.
    """
    if is_base(currency) or currency.rate <= 0:
        return Decimal(value)
    return Decimal(value) / currency.rate


def format_number(value: Decimal, places: int = 2) -> str:
    """Format a plain number with Brazilian grouping and ``places`` decimals."""
    exponent = Decimal(1).scaleb(-places)
    return _pt_br(f"{quantize(value, exponent):,.{places}f}")


def format_amount(value: Decimal, currency: Currency = BASE_CURRENCY, include_symbol: bool = True) -> str:
    """Format a base-currency value for display in ``currency``.

    >>> format_amount(Decimal("1234.5"), BASE_CURRENCY)
    'R$ 1.234,50'
    """
    text = format_number(convert_from_base(value, currency))
    if include_symbol:
        return f"{currency.symbol} {text}"
    return text


def format_with_base(value: Decimal, currency: Currency) -> str:
    """Format in ``currency`` and, for foreign currencies, append the base amount."""
    text = format_amount(value, currency)
    if is_base(currency):
        return text
    return f"{text} ({format_amount(value, BASE_CURRENCY)})"


def format_percentage(value: Decimal) -> str:
    """One decimal place and a trailing ``%`` (``60.0%``)."""
    return f"{quantize(value, TENTH):.1f}%"


def format_date(d: Optional[date], missing: str = "Não informado") -> str:
    if d is None:
        return missing
    return d.strftime("%d/%m/%Y")
