from __future__ import annotations

from typing import Sequence

from .fifo_domain import Allocation, Transaction
from .fx import ExchangeRateProvider
from .money import Money, round_cost_piece


def allocation_cost_basis(
    allocation: Allocation,
    transactions: Sequence[Transaction],
    currency: str,
    provider: ExchangeRateProvider,
) -> Money:
    """Proportional share of the lot's total, in ``currency``.

    A lot settled in another currency is converted at the lot's own date.
    """
    lot = transactions[allocation.acquisition_index]
    piece = round_cost_piece(lot.total, allocation.quantity, lot.quantity)
    if piece.currency != currency:
        piece = piece.convert(lot.time, provider, currency)
    return piece


def build_cost_basis(
    disposal: Transaction,
    allocations: Sequence[Allocation],
    transactions: Sequence[Transaction],
    provider: ExchangeRateProvider,
) -> Money:
    currency = disposal.total.currency
    cost = Money.zero(currency)
    for allocation in allocations:
        cost = cost.add(
            allocation_cost_basis(allocation, transactions, currency, provider)
        )
    return cost


def build_realized(
    disposal: Transaction,
    allocations: Sequence[Allocation],
    transactions: Sequence[Transaction],
    provider: ExchangeRateProvider,
) -> Money:
    """Proceeds minus allocated cost basis, in the disposal's currency."""
    cost = build_cost_basis(disposal, allocations, transactions, provider)
    return disposal.total.subtract(cost)
