from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

logger = logging.getLogger(__name__)

HEADER_SENTINEL = "ID"
DELIMITER = ","
QUOTE = '"'


@dataclass(frozen=True)
class RawRow:
    """One data line of the export, keyed by header column."""

    line_no: int
    raw: str
    values: Mapping[str, str]

    def get(self, column: str, default: str = "") -> str:
        return self.values.get(column, default)


@dataclass(frozen=True)
class CoinbaseModel:
    """
    In-memory representation of a Coinbase "Transactions" CSV export.

    The export opens with a few preamble lines (title, user name) that carry no
    data, followed by the header line and the data rows.
    """

    header: tuple[str, ...]
    rows: tuple[RawRow, ...] = field(default_factory=tuple)


class CoinbaseCsvParser:
    """
    Frames the export into header-keyed rows.

    The format is flat: rows split on DELIMITER and a value wrapped in quotes has
    the quotes stripped. There is no escaped-quote or embedded-delimiter
    handling. A row whose field count differs from the header is fatal for the
    whole document.
    """

    def parse_file(self, path: str | Path, *, encoding: str = "utf-8") -> CoinbaseModel:
        with open(path, "r", encoding=encoding, errors="replace", newline="") as fp:
            return self.parse_text(fp.read())

    def parse_text(self, text: str) -> CoinbaseModel:
        return self.parse_lines(text.split("\n"))

    def parse_lines(self, lines: Iterable[str]) -> CoinbaseModel:
        header: tuple[str, ...] | None = None
        rows: list[RawRow] = []

        line_no = 0
        skipped = 0
        for line in lines:
            line_no += 1
            text = line.strip().lstrip("\ufeff")

            if header is None:
                if text.startswith(HEADER_SENTINEL):
                    header = tuple(text.split(DELIMITER))
                    logger.debug(
                        "Header found on line %d after %d preamble line(s): %s",
                        line_no,
                        skipped,
                        header,
                    )
                else:
                    skipped += 1
                continue

            if not text:
                continue

            values = text.split(DELIMITER)
            if len(values) != len(header):
                raise ValueError(
                    f"Invalid row on line {line_no}: expected {len(header)} fields, "
                    f"got {len(values)}: {text}"
                )
            rows.append(
                RawRow(
                    line_no=line_no,
                    raw=text,
                    values=dict(zip(header, (_unquote(v) for v in values))),
                )
            )

        if header is None:
            raise ValueError(
                f"No header line starting with {HEADER_SENTINEL!r} found in document"
            )
        return CoinbaseModel(header=header, rows=tuple(rows))


def _unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith(QUOTE) and value.endswith(QUOTE):
        return value[1:-1]
    return value
