from __future__ import annotations

from decimal import Decimal

from .money import Money, abs_decimal

# Relative and absolute tolerances; both must be exceeded to flag a row.
TOTAL_REL_TOLERANCE = Decimal("0.001")
TOTAL_ABS_TOLERANCE = Decimal("1")
SUBTOTAL_REL_TOLERANCE = Decimal("0.002")
SUBTOTAL_ABS_TOLERANCE = Decimal("1")


def expected_total(subtotal: Money, fee: Money, *, disposal: bool) -> Money:
    """Buys pay the fee on top of the subtotal; sells have it deducted."""
    return subtotal.add(fee.multiply(-1 if disposal else 1))


def gross_subtotal(price: Money, quantity: Decimal) -> Money:
    return Money(abs_decimal(price.amount * quantity), price.currency)


def exceeds_tolerance(
    actual: Decimal, expected: Decimal, rel_tolerance: Decimal, abs_tolerance: Decimal
) -> bool:
    """True when ``actual`` is off by more than both tolerances."""
    if expected == 0:
        rel_exceeded = actual != 0
    else:
        rel_exceeded = abs_decimal(1 - actual / expected) > rel_tolerance
    return rel_exceeded and abs_decimal(actual - expected) > abs_tolerance
