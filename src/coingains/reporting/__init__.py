from .extract import (
    load_transaction_file,
    parse_transaction_file,
    parse_transactions,
)
from .fifo import FifoMatcher
from .fifo_domain import (
    Allocation,
    MatchState,
    Transaction,
    TransactionFile,
    TransactionType,
)
from .fx import (
    ExchangeRateProvider,
    RateTable,
    UsdRateProvider,
    needs_currency_conversion,
    resolve_rate_provider,
)
from .money import (
    CurrencyMismatch,
    Money,
    MoneyError,
    RateUnavailable,
    UnsupportedConversion,
)
from .positions import MatchBook, remaining_quantity
from .report_builder import ReportBuilder, group_transactions
from .report_sink import ExcelReportSink, ReportSink

__all__ = [
    "load_transaction_file",
    "parse_transaction_file",
    "parse_transactions",
    "FifoMatcher",
    "Allocation",
    "MatchState",
    "Transaction",
    "TransactionFile",
    "TransactionType",
    "ExchangeRateProvider",
    "RateTable",
    "UsdRateProvider",
    "needs_currency_conversion",
    "resolve_rate_provider",
    "CurrencyMismatch",
    "Money",
    "MoneyError",
    "RateUnavailable",
    "UnsupportedConversion",
    "MatchBook",
    "remaining_quantity",
    "ReportBuilder",
    "group_transactions",
    "ExcelReportSink",
    "ReportSink",
]
