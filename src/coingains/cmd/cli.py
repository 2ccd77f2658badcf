"""
Compute FIFO realized gains and losses from a Coinbase "Transactions" CSV export.

This module acts as the CLI orchestrator, delegating responsibilities to SRP modules:
- Framing: coingains.model
- Row parsing/validation: coingains.reporting.extract
- Exchange rates: coingains.reporting.fx
- FIFO matching: coingains.reporting.fifo
- Aggregation: coingains.reporting.report_builder
- Output writing: coingains.reporting.report_sink

Usage
-----
    # Results in USD (no rates needed)
    coingains --output ./gains.xlsx /path/to/transactions.csv

    # Results in EUR for one calendar year
    coingains \
        --currency EUR \
        --fx-table ./usd_rates.csv \
        --year 2024 \
        --output ./gains_2024.xlsx \
        /path/to/transactions.csv

Rate CSV schema (units of currency per 1 USD, one row per calendar day):
    date,currency,rate
    2024-01-02,EUR,0.9132
    2024-01-03,EUR,0.9151
"""

from __future__ import annotations

import argparse
import logging
from decimal import ROUND_HALF_UP, getcontext
from pathlib import Path
from typing import Sequence

from coingains.logging import configure_logging
from coingains.reporting import (
    ExcelReportSink,
    FifoMatcher,
    MoneyError,
    RateTable,
    ReportBuilder,
    UsdRateProvider,
    load_transaction_file,
    needs_currency_conversion,
)
from coingains.reporting.fx import ExchangeRateProvider, transaction_dates
from coingains.reporting.fifo_domain import Transaction

# Monetary precision and rounding
getcontext().prec = 28
getcontext().rounding = ROUND_HALF_UP


def build_provider(
    currency: str, fx_table: str | None, transactions: Sequence[Transaction]
) -> ExchangeRateProvider:
    """Resolve rates for every transaction date before any matching happens."""
    logger = logging.getLogger(__name__)

    if currency == "USD":
        return UsdRateProvider()

    if not fx_table:
        if needs_currency_conversion(transactions, currency):
            logger.error(
                "Reporting in %s requires --fx-table with USD rates for every "
                "transaction date.",
                currency,
            )
            raise SystemExit(2)
        return RateTable(currency)

    try:
        table = RateTable.from_csv(fx_table, currency)
    except (OSError, ValueError) as e:
        logger.error("Cannot read rate table %s: %s", fx_table, e)
        raise SystemExit(2) from e

    missing = table.missing_dates(transaction_dates(transactions))
    if missing:
        logger.error(
            "Rate table %s lacks %s rates for %d date(s): %s",
            fx_table,
            currency,
            len(missing),
            ", ".join(d.isoformat() for d in missing[:10]),
        )
        raise SystemExit(2)
    return table


def process_file(args: argparse.Namespace) -> Path:
    # Get logger for this module
    logger = logging.getLogger(__name__)

    logger.info("Reading %s", args.input)
    try:
        parsed = load_transaction_file(args.input)
    except (OSError, ValueError) as e:
        logger.error("Cannot read transaction export %s: %s", args.input, e)
        raise SystemExit(2) from e

    for msg in parsed.errors:
        logger.warning("ERROR: %s", msg)
    for msg in parsed.warnings:
        logger.warning("WARN: %s", msg)
    logger.info(
        "Parsed %d transactions, %d rejected row(s), %d warning(s)",
        len(parsed.transactions),
        len(parsed.errors),
        len(parsed.warnings),
    )

    currency = args.currency.strip().upper()
    provider = build_provider(currency, args.fx_table, parsed.transactions)

    matcher = FifoMatcher(provider=provider)
    rb = ReportBuilder(
        transactions=parsed.transactions,
        book=matcher.book,
        provider=provider,
        year=args.year,
    )
    try:
        matcher.match(parsed.transactions)
        rb.add_diagnostics(parsed.errors, parsed.warnings + matcher.warnings)

        for ys in rb.year_summaries():
            logger.info(
                "%d: proceeds %s, cost basis %s, gain %s",
                ys.year,
                ys.proceeds_target.amount,
                ys.cost_basis_target.amount,
                ys.gain_target.amount,
            )

        out_path = (
            Path(args.output)
            if args.output
            else Path(f"gains_{args.year or 'all'}.xlsx")
        )
        out_path = ExcelReportSink(out_path=out_path).write(rb)
    except MoneyError as e:
        logger.error("Currency conversion failed: %s", e)
        raise SystemExit(2) from e

    logger.info("Wrote workbook to %s", out_path)
    return out_path


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="FIFO realized gains from a Coinbase transactions CSV export"
    )
    p.add_argument("input", type=str, help="Coinbase transactions CSV path")
    p.add_argument(
        "--currency",
        type=str,
        default="USD",
        help="Currency to report gains in (default: USD)",
    )
    p.add_argument(
        "--fx-table",
        type=str,
        default=None,
        help=(
            "Rates CSV 'date,currency,rate' where 'rate' is currency units per "
            "USD; required when --currency is not USD and conversion is needed"
        ),
    )
    p.add_argument(
        "--year",
        type=int,
        default=None,
        help="Restrict disposals and summaries to one calendar year (YYYY)",
    )
    p.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output filename (e.g., gains.xlsx). If omitted, uses gains_<year>.xlsx",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity: -v (INFO), -vv (DEBUG)",
    )
    return p


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_argparser()
    args = parser.parse_args(argv)

    # Configure logging based on verbosity
    verbosity_map = {
        0: logging.WARNING,  # Default: quiet
        1: logging.INFO,  # -v: informational
        2: logging.DEBUG,  # -vv and above: debug
    }
    level = verbosity_map.get(min(args.verbose, 2), logging.WARNING)
    configure_logging(level=level)

    process_file(args)


if __name__ == "__main__":
    main()
