from __future__ import annotations

import dataclasses
import logging
import re
from pathlib import Path

from coingains.conv import parse_exchange_number, parse_timestamp
from coingains.model import CoinbaseCsvParser, CoinbaseModel, RawRow

from .fifo_domain import Transaction, TransactionFile, TransactionType
from .money import Money
from .trade_math import (
    SUBTOTAL_ABS_TOLERANCE,
    SUBTOTAL_REL_TOLERANCE,
    TOTAL_ABS_TOLERANCE,
    TOTAL_REL_TOLERANCE,
    exceeds_tolerance,
    expected_total,
    gross_subtotal,
)

logger = logging.getLogger(__name__)

COL_ID = "ID"
COL_TIMESTAMP = "Timestamp"
COL_TYPE = "Transaction Type"
COL_ASSET = "Asset"
COL_QUANTITY = "Quantity Transacted"
COL_PRICE_CURRENCY = "Price Currency"
COL_PRICE = "Price at Transaction"
COL_SUBTOTAL = "Subtotal"
COL_TOTAL = "Total (inclusive of fees and/or spread)"
COL_FEE = "Fees and/or Spread"
COL_NOTES = "Notes"

NEED_COLS = [
    COL_ID,
    COL_TIMESTAMP,
    COL_TYPE,
    COL_ASSET,
    COL_QUANTITY,
    COL_PRICE_CURRENCY,
    COL_PRICE,
    COL_SUBTOTAL,
    COL_TOTAL,
    COL_FEE,
    COL_NOTES,
]

MIN_YEAR = 2000
MAX_YEAR = 2100

# e.g. "Bought 3.72 USDC for 3.43356 EUR on USDC-EUR at 0.923 EUR/USDC"
STABLECOIN_NOTE_RE = re.compile(
    r"(Bought|Sold) ([0-9.]+) USDC for ([0-9.]+) ([A-Z]+) on ([A-Z]+-[A-Z]+) "
    r"at ([0-9.]+) ([A-Z]+/USDC)"
)


def parse_transaction_row(row: RawRow) -> Transaction:
    """Build a Transaction from a framed row.

    Raises ValueError for an unparseable timestamp, a year outside
    [MIN_YEAR, MAX_YEAR] or an unknown transaction type. Numeric fields are not
    validated here; see row_error().
    """
    time = parse_timestamp(row.get(COL_TIMESTAMP))
    if not MIN_YEAR <= time.year <= MAX_YEAR:
        raise ValueError(f"Invalid year {time.year}")

    type_label = row.get(COL_TYPE)
    tx_type = TransactionType.lookup(type_label)
    if tx_type is None:
        raise ValueError(f"Invalid transaction type {type_label!r}")

    currency = row.get(COL_PRICE_CURRENCY)
    tx = Transaction(
        raw=row.raw,
        id=row.get(COL_ID),
        time=time,
        type=tx_type,
        asset=row.get(COL_ASSET),
        quantity=parse_exchange_number(row.get(COL_QUANTITY)),
        price_currency=currency,
        price=Money(parse_exchange_number(row.get(COL_PRICE)), currency),
        subtotal=Money(parse_exchange_number(row.get(COL_SUBTOTAL)), currency),
        total=Money(parse_exchange_number(row.get(COL_TOTAL)), currency),
        fee=Money(parse_exchange_number(row.get(COL_FEE)), currency),
        notes=row.get(COL_NOTES),
    )

    # Pricing USDC in USD says nothing; the fiat actually paid is in the notes.
    if tx.asset == "USDC" and tx.price_currency == "USD":
        tx = convert_transaction_currency(tx)
    return tx


def convert_transaction_currency(tx: Transaction) -> Transaction:
    """Rebuild a stablecoin trade in the fiat currency named by its notes.

    Returns the transaction unchanged when the notes carry no such trade.
    """
    m = STABLECOIN_NOTE_RE.search(tx.notes)
    if not m:
        return tx
    quantity = parse_exchange_number(m.group(2))
    currency = m.group(4)
    rate = parse_exchange_number(m.group(6))
    total = Money(parse_exchange_number(m.group(3)), currency)
    fee = Money(tx.fee.amount * rate, currency)
    return dataclasses.replace(
        tx,
        quantity=quantity,
        price=Money(rate, currency),
        price_currency=currency,
        fee=fee,
        subtotal=total.subtract(fee),
        total=total,
    )


def row_error(tx: Transaction) -> str | None:
    if not tx.quantity.is_finite():
        return f"Invalid quantity {tx.quantity}"
    if not tx.price.amount.is_finite() or tx.price.amount < 0:
        return f"Invalid price {tx.price.amount}"
    if not tx.fee.amount.is_finite() or tx.fee.amount < 0:
        return f"Invalid fee {tx.fee.amount}"
    if not tx.subtotal.amount.is_finite():
        return f"Invalid subtotal {tx.subtotal.amount}"
    if not tx.total.amount.is_finite():
        return f"Invalid total {tx.total.amount}"
    return None


def row_warning(tx: Transaction) -> str | None:
    expected = expected_total(tx.subtotal, tx.fee, disposal=tx.type.is_disposal)
    if expected.amount > 0 and exceeds_tolerance(
        tx.total.amount, expected.amount, TOTAL_REL_TOLERANCE, TOTAL_ABS_TOLERANCE
    ):
        return f"Invalid total {tx.total.amount} - expected {expected.amount}"

    if tx.quantity != 0:
        computed = gross_subtotal(tx.price, tx.quantity)
        if exceeds_tolerance(
            computed.amount,
            tx.subtotal.amount,
            SUBTOTAL_REL_TOLERANCE,
            SUBTOTAL_ABS_TOLERANCE,
        ):
            return f"Invalid subtotal {computed.amount} - expected {tx.subtotal.amount}"
    return None


def parse_transactions(model: CoinbaseModel) -> TransactionFile:
    """Turn framed rows into validated transactions sorted by time.

    Bad rows never abort the document: they land in ``errors`` and are
    excluded. Suspicious rows are kept and reported in ``warnings``.
    """
    missing = [c for c in NEED_COLS if c not in model.header]
    if missing:
        raise ValueError(f"Transaction export missing columns: {missing}")

    out = TransactionFile()
    for row in model.rows:
        try:
            tx = parse_transaction_row(row)
            error = row_error(tx)
            warning = None if error else row_warning(tx)
        except (ValueError, ArithmeticError) as e:
            out.errors.append(f"{str(e) or type(e).__name__} in row {row.raw}")
            continue

        if error:
            out.errors.append(f"{error} in row {row.raw}")
            continue

        if warning:
            out.warnings.append(f"{warning} in row {row.raw}")
        out.transactions.append(tx)

    # Stable: rows sharing a timestamp keep their input order
    out.transactions.sort(key=lambda t: t.time)
    logger.debug(
        "Parsed %d transactions (%d errors, %d warnings)",
        len(out.transactions),
        len(out.errors),
        len(out.warnings),
    )
    return out


def parse_transaction_file(text: str) -> TransactionFile:
    return parse_transactions(CoinbaseCsvParser().parse_text(text))


def load_transaction_file(path: str | Path) -> TransactionFile:
    return parse_transactions(CoinbaseCsvParser().parse_file(path))
