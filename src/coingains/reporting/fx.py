from __future__ import annotations

import csv
import datetime as dt
import logging
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterable, Protocol

from coingains.conv import date_key, to_dec_strict

from .fifo_domain import Transaction
from .money import USD, RateUnavailable

logger = logging.getLogger(__name__)

# (currency, date) -> USD per 1 unit of currency, e.g. the EUR-USD spot price
SpotFetcher = Callable[[str, dt.date], Decimal]


class ExchangeRateProvider(Protocol):
    target_currency: str

    def rate_for_date(self, date: dt.date) -> Decimal | None:  # pragma: no cover - protocol
        """Units of target_currency per 1 USD on ``date``, or None if unknown."""
        ...


class UsdRateProvider:
    """Identity provider used when results are reported in USD."""

    target_currency = USD

    def rate_for_date(self, date: dt.date) -> Decimal | None:
        return Decimal("1")


class RateTable:
    """Date-indexed table: date -> target currency units per 1 USD.

    Accepted CSV schema:
      - date,currency,rate            # rate = currency units per USD

    Rows for other currencies are ignored. Lookups are exact; a date without a
    rate is reported as absent, never approximated.
    """

    def __init__(self, target_currency: str):
        self.target_currency = target_currency.strip().upper()
        self.data: dict[str, Decimal] = {}

    @classmethod
    def from_csv(cls, path: str | Path, target_currency: str) -> RateTable:
        inst = cls(target_currency)
        with open(path, encoding="utf-8", newline="") as fp:
            reader = csv.DictReader(fp)
            fields = set(reader.fieldnames or [])
            required = {"date", "currency", "rate"}
            if not required.issubset(fields):
                missing = required - fields
                raise ValueError(f"Rate table missing columns: {sorted(missing)}")

            for row in reader:
                # Short rows fill the missing columns with None
                date = (row.get("date") or "").strip()
                ccy = (row.get("currency") or "").strip().upper()
                if not date:
                    raise ValueError(f"Rate row missing date on line {reader.line_num}")
                if not ccy:
                    raise ValueError(f"Rate row missing currency for date {date}")
                if ccy != inst.target_currency:
                    continue
                inst.set_rate(date, to_dec_strict(row.get("rate")))

        logger.debug(
            "Loaded %d %s rates from %s", len(inst.data), inst.target_currency, path
        )
        return inst

    def set_rate(self, date: str | dt.date, rate: Decimal) -> None:
        d = date_key(date)
        if not rate.is_finite() or rate <= 0:
            raise ValueError(
                f"Encountered non-positive rate {rate} for {self.target_currency} on {d}"
            )
        self.data[d] = rate

    def has_rate_exact(self, date: dt.date) -> bool:
        if self.target_currency == USD:
            return True
        return date_key(date) in self.data

    def rate_for_date(self, date: dt.date) -> Decimal | None:
        if self.target_currency == USD:
            return Decimal("1")
        return self.data.get(date_key(date))

    def missing_dates(self, dates: Iterable[dt.date]) -> list[dt.date]:
        """Distinct dates without a rate, in first-seen order."""
        unique = dict.fromkeys(d.date() if isinstance(d, dt.datetime) else d for d in dates)
        return [d for d in unique if not self.has_rate_exact(d)]


def transaction_dates(transactions: Iterable[Transaction]) -> list[dt.date]:
    """Distinct UTC calendar dates of the transactions, in order of appearance."""
    return list(dict.fromkeys(t.time.date() for t in transactions))


def needs_currency_conversion(
    transactions: Iterable[Transaction], target_currency: str
) -> bool:
    return any(
        t.price_currency != target_currency and t.asset != target_currency
        for t in transactions
    )


def resolve_rate_provider(
    currency: str,
    transactions: Iterable[Transaction],
    fetch_spot: SpotFetcher,
    *,
    progress: Callable[[str], None] | None = None,
    known: RateTable | None = None,
) -> ExchangeRateProvider:
    """Build a provider covering every transaction date.

    Dates missing from ``known`` are fetched one at a time, in order, through
    ``fetch_spot`` (USD per unit of ``currency``) and stored as the inverse.
    Any failed or unusable fetch aborts resolution with RateUnavailable.
    """
    currency = currency.strip().upper()
    if currency == USD:
        return UsdRateProvider()

    table = known if known is not None else RateTable(currency)
    if table.target_currency != currency:
        raise ValueError(
            f"Known rates are for {table.target_currency}, not {currency}"
        )

    for day in table.missing_dates(transaction_dates(transactions)):
        try:
            spot = fetch_spot(currency, day)
        except Exception as e:
            logger.error("Fetching %s-USD spot for %s failed: %s", currency, day, e)
            raise RateUnavailable(
                f"Failed to fetch exchange rate for {currency} on {day.isoformat()}"
            ) from e
        try:
            table.set_rate(day, Decimal("1") / spot)
        except (ArithmeticError, ValueError, TypeError) as e:
            raise RateUnavailable(
                f"Unusable {currency}-USD spot {spot!r} for {day.isoformat()}"
            ) from e
        message = f"Fetched exchange rate for {day.isoformat()}: {spot}"
        logger.info(message)
        if progress is not None:
            progress(message)
    return table
