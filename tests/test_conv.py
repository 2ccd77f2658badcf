import datetime as dt
from decimal import Decimal

import pytest

from coingains.conv import date_key, parse_exchange_number, parse_timestamp, to_dec_strict


def test_parse_exchange_number_drops_sign_and_symbol():
    assert parse_exchange_number("-7.104") == Decimal("7.104")
    assert parse_exchange_number("220.87") == Decimal("220.87")
    assert parse_exchange_number("$220.87") == Decimal("220.87")
    assert parse_exchange_number("-$220.87") == Decimal("220.87")
    assert parse_exchange_number("€0.923") == Decimal("0.923")
    assert parse_exchange_number("£5") == Decimal("5")
    assert parse_exchange_number("0") == Decimal("0")
    assert parse_exchange_number("$1.00") == Decimal("1")
    assert parse_exchange_number("2.690") == Decimal("2.69")


def test_parse_exchange_number_absent_is_zero():
    assert parse_exchange_number(None) == Decimal("0")
    assert parse_exchange_number("") == Decimal("0")
    assert parse_exchange_number("   ") == Decimal("0")


def test_parse_exchange_number_invalid_is_nan():
    assert parse_exchange_number("abc").is_nan()
    assert parse_exchange_number("$").is_nan()
    assert parse_exchange_number("1,234.56").is_nan()


def test_parse_exchange_number_never_negative():
    for raw in ("-0.5", "-$3", "-1E+2"):
        assert parse_exchange_number(raw) >= 0


def test_to_dec_strict():
    assert to_dec_strict("0.9132") == Decimal("0.9132")
    assert to_dec_strict(2) == Decimal("2")
    assert to_dec_strict(Decimal("1.5")) == Decimal("1.5")
    with pytest.raises(ValueError):
        to_dec_strict(None)
    with pytest.raises(ValueError):
        to_dec_strict("  ")
    with pytest.raises(ValueError):
        to_dec_strict("nope")


def test_parse_timestamp_utc():
    ts = parse_timestamp("2025-03-10 13:17:55 UTC")
    assert ts == dt.datetime(2025, 3, 10, 13, 17, 55, tzinfo=dt.timezone.utc)
    assert ts.tzinfo is dt.timezone.utc


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "2025-03-10 13:17:55",
        "2025-03-10T13:17:55Z",
        "2025-03-10 13:17:55 UTC extra",
        "2025-13-10 13:17:55 UTC",
        "2025-03-10 25:17:55 UTC",
    ],
)
def test_parse_timestamp_rejects_malformed(raw):
    with pytest.raises(ValueError, match="Invalid timestamp"):
        parse_timestamp(raw)


def test_parse_timestamp_rejects_other_timezones():
    with pytest.raises(ValueError, match="Invalid timezone"):
        parse_timestamp("2025-03-10 13:17:55 CET")


def test_date_key():
    assert date_key(dt.date(2024, 1, 2)) == "2024-01-02"
    assert date_key(dt.datetime(2024, 1, 2, 23, 59, tzinfo=dt.timezone.utc)) == "2024-01-02"
    assert date_key(" 2024-01-02 ") == "2024-01-02"


@pytest.mark.parametrize("raw", ["sNaN", "-sNaN", "Infinity", "-$Inf", "9e999999", "1e-999999"])
def test_parse_exchange_number_rejects_non_finite_and_huge_exponents(raw):
    value = parse_exchange_number(raw)
    assert value.is_nan()
    assert not value.is_snan()


def test_parse_exchange_number_keeps_zero_with_any_exponent():
    assert parse_exchange_number("0E-1000000") == Decimal("0")
