"""Tests for extraction field normalization."""

from datetime import date

import pytest

from pennytrail.utils.parser import parse_amount, parse_confidence, parse_currency, parse_date, parse_merchant


@pytest.mark.parametrize("raw, expected", [
    ("$1,234.50", 1234.50),
    ("€ 99", 99.0),
    ("USD 12.30", 12.30),
    (45, 45.0),
    ("Total: 7.5 paid", 7.5),
])
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == pytest.approx(expected)


def test_parse_amount_drops_the_sign():
    # A refund of "-5.00" is stored as 5.0 with its type carrying the direction
    assert parse_amount("-5.00") == pytest.approx(5.0)


@pytest.mark.parametrize("raw", ["0", "0.00", "", None, "free", True, "-"])
def test_parse_amount_rejects_non_positive_or_missing(raw):
    assert parse_amount(raw) is None


def test_parse_date_native_formats():
    assert parse_date("2024-03-01") == date(2024, 3, 1)
    assert parse_date("2024-03-01T10:15:00Z") == date(2024, 3, 1)
    assert parse_date("Fri, 01 Mar 2024 10:00:00 +0000") == date(2024, 3, 1)


def test_parse_date_textual_patterns():
    assert parse_date("03/15/2024") == date(2024, 3, 15)
    # Month 15 does not exist, so the day-first reading is used
    assert parse_date("15/03/2024") == date(2024, 3, 15)
    assert parse_date("Charged on 2024-3-7") == date(2024, 3, 7)
    assert parse_date("12-25-2023") == date(2023, 12, 25)
    assert parse_date("25-12-2023") == date(2023, 12, 25)


def test_parse_date_unparseable_is_none():
    assert parse_date("next tuesday") is None
    assert parse_date("") is None
    assert parse_date(None) is None


@pytest.mark.parametrize("raw, expected", [
    ("Acme Inc.", "Acme"),
    ("  from Corner Store  ", "Corner Store"),
    ("at Shell LLC", "Shell"),
    ("@Netflix", "@Netflix"),
    ("@ Netflix", "Netflix"),
    ("Globex corp", "Globex"),
    ("Initech", "Initech"),
])
def test_parse_merchant(raw, expected):
    assert parse_merchant(raw) == expected


def test_parse_merchant_empty_is_none():
    assert parse_merchant("  ") is None
    assert parse_merchant(None) is None


def test_parse_currency():
    assert parse_currency("usd") == "USD"
    assert parse_currency("€") == "EUR"
    assert parse_currency("pounds") == "GBP"
    assert parse_currency("dollars and cents") is None
    assert parse_currency(None) is None


def test_parse_confidence_is_clamped():
    assert parse_confidence(0.42) == 0.42
    assert parse_confidence("1.7") == 1.0
    assert parse_confidence(-3) == 0.0
    assert parse_confidence("high") is None
    assert parse_confidence(True) is None
