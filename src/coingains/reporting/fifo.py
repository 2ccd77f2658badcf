from __future__ import annotations

import logging
from typing import Optional, Sequence

from .events import EventRecorder
from .fifo_domain import ShortfallEvent, Transaction
from .fx import ExchangeRateProvider, UsdRateProvider
from .positions import MatchBook
from .realized_builder import build_realized
from .shortfall_policy import MaterialityShortfallPolicy, ShortfallPolicy

logger = logging.getLogger(__name__)


def ensure_time_ordered(transactions: Sequence[Transaction]) -> None:
    """FIFO is only correct over a sequence sorted ascending by time."""
    for i in range(1, len(transactions)):
        if transactions[i].time < transactions[i - 1].time:
            raise ValueError(
                "transactions must be sorted ascending by timestamp; "
                f"{transactions[i].id} precedes {transactions[i - 1].id}"
            )


class FifoMatcher:
    def __init__(
        self,
        *,
        provider: Optional[ExchangeRateProvider] = None,
        book: Optional[MatchBook] = None,
        shortfall_policy: Optional[ShortfallPolicy] = None,
        recorder: Optional[EventRecorder] = None,
    ) -> None:
        self.provider = provider or UsdRateProvider()
        self.book = book or MatchBook()
        self.recorder = recorder or EventRecorder()
        self._shortfall_policy = shortfall_policy or MaterialityShortfallPolicy()

    @property
    def shortfall_events(self) -> list[ShortfallEvent]:
        return self.recorder.shortfall_events

    @property
    def warnings(self) -> list[str]:
        return self.recorder.messages

    def match(self, transactions: Sequence[Transaction]) -> MatchBook:
        """Compute realized gain/loss for every disposal, oldest first.

        Disposals the book already holds a result for are left alone, so
        matching the same sequence twice allocates nothing new.
        """
        ensure_time_ordered(transactions)

        matched = 0
        for index, tx in enumerate(transactions):
            if not tx.type.is_disposal:
                continue
            if self.book.realized(index) is not None:
                logger.debug("Disposal %s already matched; skipping", tx.id)
                continue
            self._match_disposal(transactions, index)
            matched += 1

        logger.info(
            "FIFO matching: %d disposals matched, %d shortfall(s)",
            matched,
            len(self.shortfall_events),
        )
        return self.book

    def _match_disposal(self, transactions: Sequence[Transaction], index: int) -> None:
        disposal = transactions[index]
        allocations, qty_remaining = self.book.consume_fifo(transactions, index)

        if qty_remaining > 0:
            event = self._shortfall_policy.resolve(disposal, qty_remaining)
            if event is not None:
                logger.warning("%s", event.message)
                self.recorder.record_shortfall(event)

        realized = build_realized(disposal, allocations, transactions, self.provider)
        self.book.set_realized(index, realized)
