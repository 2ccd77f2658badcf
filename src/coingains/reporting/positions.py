from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from .fifo_domain import (
    EPSILON,
    POSITION_DECREASING_TYPES,
    POSITION_INCREASING_TYPES,
    Allocation,
    MatchState,
    Transaction,
)
from .money import Money


class MatchBook:
    """Matching state per transaction, keyed by index in the sorted sequence.

    Transactions themselves stay immutable; everything the FIFO pass learns
    (consumed lot quantity, allocations, realized results) lives here.
    """

    def __init__(self) -> None:
        self._states: dict[int, MatchState] = {}

    def state(self, index: int) -> MatchState:
        return self._states.setdefault(index, MatchState())

    def quantity_consumed(self, index: int) -> Decimal:
        st = self._states.get(index)
        return st.quantity_consumed if st is not None else Decimal("0")

    def allocations(self, index: int) -> list[Allocation]:
        st = self._states.get(index)
        return list(st.allocations) if st is not None else []

    def realized(self, index: int) -> Money | None:
        st = self._states.get(index)
        return st.realized_gain_or_loss if st is not None else None

    def set_realized(self, index: int, value: Money) -> None:
        self.state(index).realized_gain_or_loss = value

    def remaining(self, index: int, lot: Transaction) -> Decimal:
        return lot.quantity - self.quantity_consumed(index)

    def is_open(self, index: int, lot: Transaction) -> bool:
        """A lot within EPSILON of full consumption counts as exhausted."""
        return self.remaining(index, lot) > EPSILON

    def open_lots(
        self, transactions: Sequence[Transaction], disposal_index: int
    ) -> Iterable[int]:
        """Indices of acquisitions available to the disposal, oldest first.

        Relies on ``transactions`` being sorted by time: scanning the prefix in
        order yields FIFO without a per-asset queue.
        """
        disposal = transactions[disposal_index]
        for i in range(disposal_index):
            lot = transactions[i]
            if (
                lot.type.is_acquisition
                and lot.asset == disposal.asset
                and lot.time < disposal.time
                and self.is_open(i, lot)
            ):
                yield i

    def consume_fifo(
        self, transactions: Sequence[Transaction], disposal_index: int
    ) -> tuple[list[Allocation], Decimal]:
        """Allocate the disposal against open lots; return allocations and the
        quantity left unmatched."""
        disposal = transactions[disposal_index]
        qty_remaining = disposal.quantity
        allocations: list[Allocation] = []
        if qty_remaining <= 0:
            return allocations, Decimal("0")

        for i in self.open_lots(transactions, disposal_index):
            lot = transactions[i]
            take = min(self.remaining(i, lot), qty_remaining)
            lot_state = self.state(i)
            lot_state.quantity_consumed += take
            if lot_state.quantity_consumed > lot.quantity + EPSILON:
                raise ValueError("lot consumption cannot exceed lot quantity")

            allocation = Allocation(quantity=take, acquisition_index=i)
            self.state(disposal_index).allocations.append(allocation)
            allocations.append(allocation)

            qty_remaining -= take
            if qty_remaining == 0:
                break

        return allocations, qty_remaining


def remaining_quantity(transactions: Iterable[Transaction]) -> Decimal:
    """Net position: increasing types add, decreasing types subtract."""
    total = Decimal("0")
    for t in transactions:
        if t.type in POSITION_INCREASING_TYPES:
            total += t.quantity
        elif t.type in POSITION_DECREASING_TYPES:
            total -= t.quantity
    return total
