import dataclasses
import datetime as dt
from decimal import Decimal

import pytest

from coingains.reporting.fx import RateTable, UsdRateProvider
from coingains.reporting.money import (
    CurrencyMismatch,
    Money,
    MoneyError,
    RateUnavailable,
    UnsupportedConversion,
    abs_decimal,
    quantize_allocation,
    quantize_money,
    round_cost_piece,
)
from coingains.reporting.trade_math import (
    exceeds_tolerance,
    expected_total,
    gross_subtotal,
)

DAY = dt.date(2024, 3, 1)


def _eur_table(rate: str = "0.9") -> RateTable:
    table = RateTable("EUR")
    table.set_rate(DAY, Decimal(rate))
    return table


def test_quantize_money_custom_places():
    value = Decimal("123.4567")
    assert quantize_money(value) == Decimal("123.46")
    assert quantize_money(value, "0.0001") == Decimal("123.4567")


def test_quantize_allocation_rounding():
    assert quantize_allocation(Decimal("0.123456789")) == Decimal("0.12345679")


def test_abs_decimal():
    assert abs_decimal(Decimal("-2.5")) == Decimal("2.5")


def test_money_add_and_subtract_same_currency():
    a = Money(Decimal("10.50"), "USD")
    b = Money(Decimal("0.25"), "USD")
    assert a.add(b) == Money(Decimal("10.75"), "USD")
    assert a.subtract(b) == Money(Decimal("10.25"), "USD")
    # operands are untouched
    assert a.amount == Decimal("10.50")


def test_money_mixed_currency_arithmetic_raises():
    usd = Money(Decimal("1"), "USD")
    eur = Money(Decimal("1"), "EUR")
    with pytest.raises(CurrencyMismatch):
        usd.add(eur)
    with pytest.raises(CurrencyMismatch):
        usd.subtract(eur)
    assert issubclass(CurrencyMismatch, MoneyError)
    assert issubclass(MoneyError, ValueError)


def test_money_multiply_keeps_currency():
    m = Money(Decimal("2.5"), "EUR").multiply(Decimal("4"))
    assert m == Money(Decimal("10"), "EUR")
    assert Money("3", "USD").multiply(-1) == Money(Decimal("-3"), "USD")


def test_money_coerces_non_decimal_amount():
    assert Money("1.10", "USD").amount == Decimal("1.10")
    assert Money(2, "USD").amount == Decimal("2")


def test_money_is_immutable():
    m = Money(Decimal("1"), "USD")
    with pytest.raises(dataclasses.FrozenInstanceError):
        m.amount = Decimal("2")


def test_convert_same_currency_returns_self():
    m = Money(Decimal("5"), "EUR")
    assert m.convert(DAY, _eur_table(), "EUR") is m


def test_convert_usd_to_target_multiplies():
    m = Money(Decimal("10"), "USD").convert(DAY, _eur_table())
    assert m == Money(Decimal("9.0"), "EUR")


def test_convert_target_to_usd_divides():
    m = Money(Decimal("9"), "EUR").convert(DAY, _eur_table(), "USD")
    assert m == Money(Decimal("10"), "USD")


def test_convert_accepts_datetime():
    when = dt.datetime(2024, 3, 1, 23, 30, tzinfo=dt.timezone.utc)
    assert Money(Decimal("10"), "USD").convert(when, _eur_table()).currency == "EUR"


def test_convert_round_trip_is_stable():
    table = _eur_table("0.917")
    original = Money(Decimal("123.45"), "USD")
    back = original.convert(DAY, table).convert(DAY, table, "USD")
    assert abs(back.amount - original.amount) < Decimal("1e-20")


def test_convert_unsupported_pairs():
    table = _eur_table()
    with pytest.raises(UnsupportedConversion):
        Money(Decimal("1"), "GBP").convert(DAY, table, "USD")
    with pytest.raises(UnsupportedConversion):
        Money(Decimal("1"), "USD").convert(DAY, table, "GBP")
    with pytest.raises(UnsupportedConversion):
        Money(Decimal("1"), "EUR").convert(DAY, UsdRateProvider())


def test_convert_missing_rate_raises():
    with pytest.raises(RateUnavailable):
        Money(Decimal("1"), "USD").convert(dt.date(2024, 3, 2), _eur_table())


def test_format_blank_for_zero():
    assert Money.zero("USD").format() == ""
    assert str(Money(Decimal("0.000"), "EUR")) == ""


def test_format_amount_and_symbol():
    assert str(Money(Decimal("1234.5"), "EUR")) == "1234.50€"
    assert Money(Decimal("1.23456"), "USD").format(4) == "1.2346$"
    assert Money(Decimal("5"), "XYZ").format() == "5.00XYZ"


def test_round_cost_piece_proportional_allocation():
    piece = round_cost_piece(Money(Decimal("100.00"), "USD"), Decimal("25"), Decimal("100"))
    assert piece == Money(Decimal("25.00000000"), "USD")


def test_round_cost_piece_handles_zero_qty_lot():
    piece = round_cost_piece(Money(Decimal("100"), "EUR"), Decimal("1"), Decimal("0"))
    assert piece == Money.zero("EUR")


def test_expected_total_direction():
    subtotal = Money(Decimal("100"), "USD")
    fee = Money(Decimal("1.5"), "USD")
    assert expected_total(subtotal, fee, disposal=False).amount == Decimal("101.5")
    assert expected_total(subtotal, fee, disposal=True).amount == Decimal("98.5")


def test_gross_subtotal_is_absolute():
    assert gross_subtotal(Money(Decimal("30"), "USD"), Decimal("2")).amount == Decimal("60")


def test_exceeds_tolerance_needs_both_thresholds():
    rel, absolute = Decimal("0.001"), Decimal("1")
    # relative breach only
    assert not exceeds_tolerance(Decimal("100.5"), Decimal("100"), rel, absolute)
    # absolute breach only
    assert not exceeds_tolerance(Decimal("1000001.5"), Decimal("1000000"), rel, absolute)
    assert exceeds_tolerance(Decimal("150"), Decimal("101"), rel, absolute)
    assert exceeds_tolerance(Decimal("5"), Decimal("0"), rel, absolute)
    assert not exceeds_tolerance(Decimal("0"), Decimal("0"), rel, absolute)
