from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from .fifo_domain import ShortfallEvent, Transaction

# Unmatched value at or below this is rounding noise, not a missing buy.
MATERIALITY_THRESHOLD = Decimal("0.05")


class ShortfallPolicy(Protocol):
    def resolve(
        self, disposal: Transaction, qty_remaining: Decimal
    ) -> ShortfallEvent | None:  # pragma: no cover - protocol
        ...


class MaterialityShortfallPolicy:
    """Report unmatched disposal quantity whose value is material.

    The unmatched part keeps a zero cost basis either way, so the realized gain
    is overstated by its value at the disposal price.
    """

    def __init__(self, threshold: Decimal = MATERIALITY_THRESHOLD) -> None:
        self.threshold = threshold

    def resolve(
        self, disposal: Transaction, qty_remaining: Decimal
    ) -> ShortfallEvent | None:
        overstatement = disposal.price.multiply(qty_remaining)
        if overstatement.amount <= self.threshold:
            return None
        message = (
            f"Unable to find the buy for {qty_remaining} {disposal.asset} in "
            f"{disposal.raw} - gains can be overstated by {overstatement.amount}"
        )
        return ShortfallEvent(
            asset=disposal.asset,
            time=disposal.time,
            transaction_id=disposal.id,
            remaining_qty=qty_remaining,
            overstatement=overstatement,
            message=message,
        )
