"""Test fixtures for transaction objects.

Production code parses transactions from the CSV export via extract.py. It
never constructs them manually.

Tests need Transaction values without the full CSV machinery; make_tx builds
them from a handful of fields and derives the rest.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from coingains.reporting.fifo_domain import Transaction, TransactionType
from coingains.reporting.money import Money

HEADER = (
    "ID,Timestamp,Transaction Type,Asset,Quantity Transacted,Price Currency,"
    "Price at Transaction,Subtotal,Total (inclusive of fees and/or spread),"
    "Fees and/or Spread,Notes"
)

PREAMBLE = "Transactions\nUser,Jane Doe,uuid-1234\n"


def utc(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> dt.datetime:
    return dt.datetime(year, month, day, hour, minute, tzinfo=dt.timezone.utc)


def make_tx(
    tx_type: TransactionType,
    asset: str,
    qty: str,
    total: str,
    *,
    when: dt.datetime,
    currency: str = "USD",
    price: str | None = None,
    fee: str = "0",
    tx_id: str | None = None,
) -> Transaction:
    quantity = Decimal(qty)
    total_amount = Decimal(total)
    if price is None:
        price_amount = total_amount / quantity if quantity else Decimal("0")
    else:
        price_amount = Decimal(price)
    return Transaction(
        raw=f"{tx_id or asset},{tx_type.value},{qty},{total}",
        id=tx_id or f"{tx_type.name.lower()}-{asset}-{when.isoformat()}",
        time=when,
        type=tx_type,
        asset=asset,
        quantity=quantity,
        price_currency=currency,
        price=Money(price_amount, currency),
        subtotal=Money(total_amount, currency),
        total=Money(total_amount, currency),
        fee=Money(Decimal(fee), currency),
    )


def buy(asset: str, qty: str, total: str, *, when: dt.datetime, **kw) -> Transaction:
    return make_tx(TransactionType.ADVANCED_TRADE_BUY, asset, qty, total, when=when, **kw)


def sell(asset: str, qty: str, total: str, *, when: dt.datetime, **kw) -> Transaction:
    return make_tx(TransactionType.ADVANCED_TRADE_SELL, asset, qty, total, when=when, **kw)


def csv_text(*rows: str, preamble: str = PREAMBLE) -> str:
    return preamble + HEADER + "\n" + "\n".join(rows) + "\n"
