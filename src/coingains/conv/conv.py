from __future__ import annotations

import datetime as dt
import logging
import re
from decimal import Decimal, InvalidOperation

# Optional sign followed by a single currency symbol, e.g. "-$220.87"
CURRENCY_PREFIX_RE = re.compile(r"^(-?)[$€£¥₩]")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Exported amounts never come near this; larger exponents are corrupt cells.
MAX_ADJUSTED_EXPONENT = 30


logger = logging.getLogger(__name__)


def parse_exchange_number(s: str | None) -> Decimal:
    """Convert an exported numeric cell to a non-negative Decimal.

    The export marks withdrawals and sends with a leading minus sign; direction
    is recovered from the transaction type, so the sign is dropped here.

    Handles:
    - None, "" -> Decimal("0")
    - "$220.87", "-$220.87" -> Decimal("220.87")
    - "-7.104" -> Decimal("7.104")
    - anything unparseable, infinite, signaling NaN or with an exponent beyond
      MAX_ADJUSTED_EXPONENT -> Decimal("NaN") so row validation can reject it
    """
    if s is None:
        return Decimal("0")

    s_stripped = s.strip()
    if not s_stripped:
        return Decimal("0")

    s_clean = CURRENCY_PREFIX_RE.sub(r"\1", s_stripped)
    try:
        value = Decimal(s_clean)
    except InvalidOperation:
        logger.debug("Failed to parse number from: %r", s)
        return Decimal("NaN")
    if not value.is_finite() or (
        value and abs(value.adjusted()) > MAX_ADJUSTED_EXPONENT
    ):
        logger.debug("Out of range number: %r", s)
        return Decimal("NaN")
    return value.copy_abs()


def to_dec_strict(s: str | float | int | Decimal | None) -> Decimal:
    """Convert a numeric string to Decimal.

    Raises ValueError on invalid/missing data.
    """
    if s is None:
        raise ValueError("Value is None")
    if isinstance(s, Decimal):
        return s
    if isinstance(s, (int, float)):
        return Decimal(str(s))

    s_stripped = s.strip()
    if not s_stripped:
        raise ValueError("Value is empty string")

    try:
        return Decimal(s_stripped)
    except InvalidOperation as e:
        raise ValueError(f"Invalid decimal format: {s!r}") from e


def parse_timestamp(timestamp: str) -> dt.datetime:
    """Parse '2025-03-10 13:17:55 UTC' into an aware UTC datetime.

    Any other timezone token or token count is rejected.
    """
    if not timestamp:
        raise ValueError(f"Invalid timestamp: {timestamp!r}")
    parts = timestamp.split(" ")
    if len(parts) != 3:
        raise ValueError(f"Invalid timestamp: {timestamp!r}")
    if parts[2] != "UTC":
        raise ValueError(f"Invalid timezone: {parts[2]!r}")
    try:
        naive = dt.datetime.strptime(f"{parts[0]} {parts[1]}", TIMESTAMP_FORMAT)
    except ValueError as e:
        raise ValueError(f"Invalid timestamp: {timestamp!r}") from e
    return naive.replace(tzinfo=dt.timezone.utc)


def date_key(d: str | dt.date) -> str:
    """Return YYYY-MM-DD string for a date (datetimes are truncated)."""
    if isinstance(d, dt.datetime):
        return d.date().isoformat()
    if isinstance(d, dt.date):
        return d.isoformat()
    return d.strip()
