from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .fx import ExchangeRateProvider

MoneyLike = str | Decimal

USD = "USD"

_MONEY_Q = Decimal("0.01")
_ALLOCATION_Q = Decimal("0.00000001")

CASH_SYMBOLS: dict[str, str] = {
    "AUD": "A$",
    "CAD": "C$",
    "CHF": "CHF",
    "CNY": "¥",
    "EUR": "€",
    "GBP": "£",
    "HKD": "$",
    "JPY": "¥",
    "KRW": "₩",
    "NZD": "NZ$",
    "SGD": "SGD",
    "USD": "$",
}
CASH_ASSETS = frozenset(CASH_SYMBOLS)


class MoneyError(ValueError):
    """Base class for currency arithmetic and conversion failures."""


class CurrencyMismatch(MoneyError):
    pass


class UnsupportedConversion(MoneyError):
    pass


class RateUnavailable(MoneyError):
    pass


def quantize_money(value: Decimal, places: MoneyLike = _MONEY_Q) -> Decimal:
    """Quantize monetary values consistently across the codebase."""
    quant = Decimal(places)
    return value.quantize(quant)


def quantize_allocation(value: Decimal) -> Decimal:
    """Quantize allocation amounts (e.g., proportional basis)."""
    return value.quantize(_ALLOCATION_Q)


def abs_decimal(value: Decimal) -> Decimal:
    """Return the absolute value using Decimal.copy_abs for stability."""
    return value.copy_abs()


def print_currency(currency: str) -> str:
    """Display symbol for a currency code; unknown codes render as themselves."""
    return CASH_SYMBOLS.get(currency, currency)


def _as_decimal(value: Decimal | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class Money:
    """An immutable amount tagged with its currency.

    Arithmetic never coerces between currencies; mixing them raises
    CurrencyMismatch.
    """

    amount: Decimal
    currency: str

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", _as_decimal(self.amount))

    @classmethod
    def zero(cls, currency: str) -> Money:
        return cls(Decimal("0"), currency)

    def __str__(self) -> str:
        return self.format(2)

    def add(self, other: Money) -> Money:
        if self.currency != other.currency:
            raise CurrencyMismatch(f"Cannot add {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: Money) -> Money:
        if self.currency != other.currency:
            raise CurrencyMismatch(
                f"Cannot subtract {self.currency} and {other.currency}"
            )
        return Money(self.amount - other.amount, self.currency)

    def multiply(self, factor: Decimal | int | str) -> Money:
        return Money(self.amount * _as_decimal(factor), self.currency)

    def convert(
        self,
        date: dt.date,
        provider: ExchangeRateProvider,
        to_currency: str | None = None,
    ) -> Money:
        """Convert through the provider's USD rate for ``date``.

        Only USD -> provider currency and provider currency -> USD are
        supported; any other pairing raises UnsupportedConversion. A missing
        rate raises RateUnavailable.
        """
        target = to_currency or provider.target_currency
        if self.currency == target:
            return self

        if self.currency == USD and target == provider.target_currency:
            inverse = False
        elif target == USD and self.currency == provider.target_currency:
            inverse = True
        else:
            raise UnsupportedConversion(f"Cannot convert {self.currency} to {target}")

        day = date.date() if isinstance(date, dt.datetime) else date
        rate = provider.rate_for_date(day)
        if rate is None:
            raise RateUnavailable(
                f"Exchange rate for {provider.target_currency} at {day.isoformat()} "
                "not found"
            )
        if inverse:
            return Money(self.amount / rate, target)
        return Money(self.amount * rate, target)

    def format(self, digits: int = 2) -> str:
        """Fixed-point amount plus currency symbol; zero renders as ''."""
        if not self.amount:
            return ""
        places = Decimal(1).scaleb(-digits)
        return f"{quantize_money(self.amount, places)}{print_currency(self.currency)}"


def round_cost_piece(total_basis: Money, take: Decimal, lot_qty: Decimal) -> Money:
    """Allocate a proportional amount of basis with deterministic rounding."""
    if lot_qty == 0:
        return Money.zero(total_basis.currency)
    ratio = take / lot_qty
    alloc = total_basis.amount * ratio
    return Money(quantize_allocation(alloc), total_basis.currency)
