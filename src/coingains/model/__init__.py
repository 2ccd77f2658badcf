from .coinbase import CoinbaseCsvParser, CoinbaseModel, RawRow

__all__ = [
    "CoinbaseCsvParser",
    "CoinbaseModel",
    "RawRow",
]
