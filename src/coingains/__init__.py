"""FIFO realized gains for Coinbase transaction exports."""

__version__ = "0.1.0"
