from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from .money import Money

# Consumption below this is float/rounding residue, not an open lot.
EPSILON = Decimal("0.0000001")

STABLECOINS = frozenset({"USDC", "USDT"})


class TransactionType(str, Enum):
    ADVANCED_TRADE_BUY = "Advanced Trade Buy"
    ADVANCED_TRADE_SELL = "Advanced Trade Sell"
    DEPOSIT = "Deposit"
    RECEIVE = "Receive"
    REWARD_INCOME = "Reward Income"
    SEND = "Send"
    SUBSCRIPTION_REBATE = "Subscription Rebate"
    SUBSCRIPTION_REBATES_24H = "Subscription Rebates (24 Hours)"
    WITHDRAWAL = "Withdrawal"

    @classmethod
    def lookup(cls, label: str) -> TransactionType | None:
        try:
            return cls(label)
        except ValueError:
            return None

    @property
    def is_acquisition(self) -> bool:
        return self in ACQUISITION_TYPES

    @property
    def is_disposal(self) -> bool:
        return self in DISPOSAL_TYPES


ACQUISITION_TYPES = frozenset(
    {TransactionType.ADVANCED_TRADE_BUY, TransactionType.RECEIVE}
)
DISPOSAL_TYPES = frozenset({TransactionType.ADVANCED_TRADE_SELL, TransactionType.SEND})
POSITION_DECREASING_TYPES = DISPOSAL_TYPES | {TransactionType.WITHDRAWAL}
POSITION_INCREASING_TYPES = ACQUISITION_TYPES | {
    TransactionType.DEPOSIT,
    TransactionType.REWARD_INCOME,
    TransactionType.SUBSCRIPTION_REBATE,
    TransactionType.SUBSCRIPTION_REBATES_24H,
}


@dataclass(frozen=True)
class Transaction:
    raw: str  # source line, kept for diagnostics
    id: str
    time: dt.datetime  # aware, UTC
    type: TransactionType
    asset: str
    quantity: Decimal  # always non-negative; direction comes from type
    price_currency: str
    price: Money
    subtotal: Money
    total: Money
    fee: Money
    notes: str = ""


@dataclass
class TransactionFile:
    transactions: list[Transaction] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Allocation:
    quantity: Decimal
    acquisition_index: int  # position of the lot in the matched sequence


@dataclass
class MatchState:
    quantity_consumed: Decimal = Decimal("0")  # acquisitions only
    allocations: list[Allocation] = field(default_factory=list)  # disposals only
    realized_gain_or_loss: Money | None = None  # disposals only


@dataclass
class ShortfallEvent:
    asset: str
    time: dt.datetime
    transaction_id: str
    remaining_qty: Decimal
    overstatement: Money
    message: str
