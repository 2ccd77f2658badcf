from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Sequence

from .fifo_domain import Allocation, STABLECOINS, Transaction, TransactionType
from .fx import ExchangeRateProvider
from .money import CASH_ASSETS, Money, round_cost_piece
from .positions import MatchBook, remaining_quantity
from .realized_builder import build_cost_basis

logger = logging.getLogger(__name__)

GROUP_DEPOSIT_WITHDRAWAL = "Deposit / Withdrawal"


def group_key(t: Transaction) -> str:
    if t.type in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL):
        return GROUP_DEPOSIT_WITHDRAWAL
    if t.type == TransactionType.REWARD_INCOME:
        return t.type.value
    if t.asset in STABLECOINS and (t.type.is_acquisition or t.type.is_disposal):
        return f"{t.asset} Trading"
    if t.asset not in CASH_ASSETS:
        return t.asset
    return t.type.value


def group_transactions(
    transactions: Sequence[Transaction],
) -> dict[str, list[Transaction]]:
    """Bucket transactions by group_key(); cash and stablecoin groups first."""
    groups: dict[str, list[Transaction]] = {}
    for t in transactions:
        groups.setdefault(group_key(t), []).append(t)

    def sort_key(item: tuple[str, list[Transaction]]) -> str:
        asset = item[1][0].asset
        rank = 0 if asset in CASH_ASSETS or asset in STABLECOINS else 1
        return f"{rank}-{asset}"

    return dict(sorted(groups.items(), key=sort_key))


@dataclass
class DisposalLine:
    index: int
    transaction: Transaction
    allocations: list[Allocation]
    cost_basis: Money  # disposal currency
    realized: Money  # disposal currency


@dataclass
class AssetYearSummary:
    asset: str
    first_buy: dt.datetime | None
    last_sell: dt.datetime | None
    cost_basis: Money
    cost_basis_target: Money
    proceeds: Money
    proceeds_target: Money

    @property
    def gain_target(self) -> Money:
        return self.proceeds_target.subtract(self.cost_basis_target)


@dataclass
class YearSummary:
    year: int
    target_currency: str
    assets: list[AssetYearSummary] = field(default_factory=list)

    def _sum(self, attr: str) -> Money:
        total = Money.zero(self.target_currency)
        for a in self.assets:
            total = total.add(getattr(a, attr))
        return total

    @property
    def cost_basis_target(self) -> Money:
        return self._sum("cost_basis_target")

    @property
    def proceeds_target(self) -> Money:
        return self._sum("proceeds_target")

    @property
    def gain_target(self) -> Money:
        return self.proceeds_target.subtract(self.cost_basis_target)


@dataclass
class GroupSummary:
    key: str
    currency: str
    remaining_quantity: Decimal
    gain_by_year: dict[int, Money]
    gain_by_year_target: dict[int, Money]


@dataclass
class ReportBuilder:
    transactions: Sequence[Transaction]
    book: MatchBook
    provider: ExchangeRateProvider
    year: int | None = None

    def __post_init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self._positions = {id(t): i for i, t in enumerate(self.transactions)}

    @property
    def target_currency(self) -> str:
        return self.provider.target_currency

    def add_diagnostics(self, errors: Sequence[str], warnings: Sequence[str]) -> None:
        self.errors.extend(errors)
        self.warnings.extend(warnings)

    def years(self) -> list[int]:
        found = sorted({t.time.year for t in self.transactions})
        if self.year is not None:
            return [y for y in found if y == self.year]
        return found

    def disposal_lines(self, year: int | None = None) -> list[DisposalLine]:
        year = year if year is not None else self.year
        lines: list[DisposalLine] = []
        for index, t in enumerate(self.transactions):
            if not t.type.is_disposal:
                continue
            if year is not None and t.time.year != year:
                continue
            realized = self.book.realized(index)
            if realized is None:
                continue
            allocations = self.book.allocations(index)
            lines.append(
                DisposalLine(
                    index=index,
                    transaction=t,
                    allocations=allocations,
                    cost_basis=build_cost_basis(
                        t, allocations, self.transactions, self.provider
                    ),
                    realized=realized,
                )
            )
        return lines

    def year_summary(self, year: int) -> YearSummary:
        """Per-asset cost basis and proceeds for disposals in ``year``.

        Cost basis is converted to the target currency at each lot's date,
        proceeds at the disposal date.
        """
        target = self.target_currency
        in_year = [t for t in self.transactions if t.time.year == year]

        first_buy: dict[str, dt.datetime] = {}
        last_sell: dict[str, dt.datetime] = {}
        for t in in_year:
            if t.type.is_acquisition:
                if t.asset not in first_buy or t.time < first_buy[t.asset]:
                    first_buy[t.asset] = t.time
            elif t.type.is_disposal:
                if t.asset not in last_sell or t.time > last_sell[t.asset]:
                    last_sell[t.asset] = t.time

        by_asset: dict[str, AssetYearSummary] = {}
        for line in self.disposal_lines(year):
            t = line.transaction
            summary = by_asset.get(t.asset)
            if summary is None:
                ccy = t.total.currency
                summary = AssetYearSummary(
                    asset=t.asset,
                    first_buy=first_buy.get(t.asset),
                    last_sell=last_sell.get(t.asset),
                    cost_basis=Money.zero(ccy),
                    cost_basis_target=Money.zero(target),
                    proceeds=Money.zero(ccy),
                    proceeds_target=Money.zero(target),
                )
                by_asset[t.asset] = summary

            for allocation in line.allocations:
                lot = self.transactions[allocation.acquisition_index]
                piece = round_cost_piece(lot.total, allocation.quantity, lot.quantity)
                summary.cost_basis = summary.cost_basis.add(
                    piece.convert(lot.time, self.provider, summary.cost_basis.currency)
                )
                summary.cost_basis_target = summary.cost_basis_target.add(
                    piece.convert(lot.time, self.provider)
                )

            summary.proceeds = summary.proceeds.add(
                t.total.convert(t.time, self.provider, summary.proceeds.currency)
            )
            summary.proceeds_target = summary.proceeds_target.add(
                t.total.convert(t.time, self.provider)
            )

        logger.debug("Year %d: %d asset(s) with disposals", year, len(by_asset))
        return YearSummary(
            year=year,
            target_currency=target,
            assets=[by_asset[k] for k in sorted(by_asset)],
        )

    def year_summaries(self) -> list[YearSummary]:
        return [self.year_summary(y) for y in self.years()]

    def group_summary(self, key: str, group: Sequence[Transaction]) -> GroupSummary:
        currency = group[0].price_currency
        gains: dict[int, Money] = {}
        gains_target: dict[int, Money] = {}
        for t in group:
            index = self._positions.get(id(t))
            realized = self.book.realized(index) if index is not None else None
            if realized is None or not realized.amount:
                continue
            year = t.time.year
            gains[year] = gains.get(year, Money.zero(currency)).add(
                realized.convert(t.time, self.provider, currency)
            )
            gains_target[year] = gains_target.get(
                year, Money.zero(self.target_currency)
            ).add(realized.convert(t.time, self.provider))

        return GroupSummary(
            key=key,
            currency=currency,
            remaining_quantity=remaining_quantity(group),
            gain_by_year=gains,
            gain_by_year_target=gains_target,
        )

    def group_summaries(self) -> list[GroupSummary]:
        return [
            self.group_summary(key, group)
            for key, group in group_transactions(self.transactions).items()
        ]
