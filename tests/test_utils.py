from datetime import date
from decimal import Decimal

import pytest

from payment_flow.utils import (
    add_months,
    decimal_from_str,
    optional_decimal,
    parse_date,
    parse_year_month,
    percent_of,
    safe_div,
    whole_months_between,
)


@pytest.mark.parametrize(
    "start, end, expected",
    [
        (date(2025, 1, 10), date(2027, 1, 10), 24),
        (date(2025, 1, 10), date(2025, 2, 9), 0),
        (date(2025, 1, 10), date(2025, 2, 10), 1),
        (date(2025, 1, 31), date(2025, 2, 28), 1),
        (date(2025, 3, 1), date(2025, 1, 1), 0),
        (date(2025, 3, 1), date(2025, 3, 1), 0),
    ],
)
def test_whole_months_between(start, end, expected):
    assert whole_months_between(start, end) == expected


def test_add_months_clamps_day():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


def test_parse_year_month():
    assert parse_year_month("2026-09") == date(2026, 9, 1)
    with pytest.raises(ValueError):
        parse_year_month("september")


def test_parse_date_formats():
    assert parse_date("2027-01-10") == date(2027, 1, 10)
    assert parse_date("10/01/2027") == date(2027, 1, 10)
    assert parse_date("2027-01-10T00:00:00") == date(2027, 1, 10)
    assert parse_date("") is None
    assert parse_date(None) is None
    with pytest.raises(ValueError):
        parse_date("10.01.2027")


@pytest.mark.parametrize(
    "raw, expected",
    [("1,234.56", "1234.56"), ("1.234,56", "1234.56"), ("5,50", "5.50"), ("500000", "500000")],
)
def test_decimal_from_str(raw, expected):
    assert decimal_from_str(raw) == Decimal(expected)


def test_decimal_from_str_rejects_garbage():
    with pytest.raises(ValueError):
        decimal_from_str("abc")
    with pytest.raises(ValueError):
        decimal_from_str("NaN")


def test_optional_decimal():
    assert optional_decimal(None) is None
    assert optional_decimal("") is None
    assert optional_decimal(20) == Decimal("20")
    assert optional_decimal(0.5) == Decimal("0.5")


def test_divisions_guard_zero():
    assert safe_div(Decimal("10"), Decimal("0")) == 0
    assert percent_of(Decimal("25"), Decimal("0")) == 0
    assert percent_of(Decimal("25"), Decimal("200")) == Decimal("12.5")
