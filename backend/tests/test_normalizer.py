"""Tests for lenient price and date parsing."""
import math
from datetime import datetime, timezone

import pytest

from services.normalizer import parse_date_au, parse_price, safe_join, today_au


# ---- parse_price ----

@pytest.mark.parametrize(
    "raw, expected",
    [
        (450, 450.0),
        (12.5, 12.5),
        ("450.00", 450.0),
        ("$310.00", 310.0),
        ("$1,200.50", 1200.5),
        ("A$ 2,499.99 + GST", 2499.99),
        ("300,00", 300.0),
        ("299", 299.0),
        ("-15", 0.0),
        (-15, 0.0),
        ("-$1,200.50", 0.0),
        ("1.2.3", 1.2),
        ("12-3", 12.0),
    ],
)
def test_parse_price_accepts_loose_formats(raw, expected):
    assert parse_price(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "abc", "$", "-", ".", ",", [], {}, True, float("nan"), float("inf")])
def test_parse_price_unparseable_returns_zero(raw):
    assert parse_price(raw) == 0.0


def test_parse_price_lone_comma_is_decimal_point():
    # Without a "." the first comma is read as the decimal separator.
    assert parse_price("1,5") == pytest.approx(1.5)


def test_parse_price_currency_strings_are_finite_and_non_negative():
    for raw in ["$0.00", "$1,000,000.00", "AUD 45", "€ 3.000,50", "$ 12,345.6"]:
        value = parse_price(raw)
        assert math.isfinite(value)
        assert value >= 0


def test_parse_price_overflow_returns_zero():
    assert parse_price("9" * 400) == 0.0
    assert parse_price(10 ** 400) == 0.0


# ---- parse_date_au ----

def test_parse_date_au_date_only():
    assert parse_date_au("2025-10-23") == "23/10/2025"


def test_parse_date_au_naive_timestamp_keeps_civil_date():
    assert parse_date_au("2025-12-22T14:27:42") == "22/12/2025"


def test_parse_date_au_utc_timestamp_converts_to_sydney():
    # 20:00 UTC on 31 Dec is already 1 Jan in Sydney (UTC+11 in summer).
    assert parse_date_au("2025-12-31T20:00:00Z") == "01/01/2026"
    assert parse_date_au("2025-06-30T13:30:00+00:00") == "30/06/2025"


@pytest.mark.parametrize("raw", [None, "", "   ", "not a date", "2025-13-45", 20251023, ["2025-10-23"]])
def test_parse_date_au_invalid_returns_empty(raw):
    assert parse_date_au(raw) == ""


# ---- today_au / safe_join ----

def test_today_au_uses_sydney_calendar():
    now = datetime(2025, 10, 22, 14, 0, tzinfo=timezone.utc)  # 01:00 on 23 Oct in Sydney
    assert today_au(now) == "23/10/2025"


def test_today_au_default_is_formatted():
    value = today_au()
    assert len(value) == 10 and value[2] == "/" and value[5] == "/"


def test_safe_join_trims_and_drops_empty_parts():
    assert safe_join([" Level 4 ", None, "", "St Leonards", "Australia"], ", ") == "Level 4, St Leonards, Australia"
    assert safe_join(None) == ""
