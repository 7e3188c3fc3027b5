"""Tokenizers and field parsers shared by the format adapters.

Tokenizing uses the stdlib :mod:`csv` module (quoted fields may contain the
delimiter; doubled quotes are escapes). Two record splitters are provided:

- :func:`parse_csv_lines` treats every physical line as one record, so a
  stray quote can only damage its own line.
- :func:`parse_records` follows quote state across line breaks, so a quoted
  field may span several lines. The delimiter is chosen from the first line.

Field parsers raise ``ValueError``; adapters catch it and drop the row.
"""

from __future__ import annotations

import csv
import io
import re
from collections.abc import Callable, Iterable, Iterator
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import NamedTuple

from ..logging_setup import get_logger
from ..models import RawParsedRow

BOM = "\ufeff"

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_AMOUNT_NOISE_RE = re.compile(r"[$,\s]")

_logger = get_logger("ledger_ingest.ingest.utils")


class CsvRecord(NamedTuple):
    """A tokenized record and the (last) physical line it came from."""

    line: int
    fields: list[str]


def strip_bom(text: str) -> str:
    return text[1:] if text.startswith(BOM) else text


def detect_delimiter(text: str) -> str:
    """Return ``"\\t"`` when the first line contains a tab, else ``","``."""

    first_line = _LINE_SPLIT_RE.split(text, maxsplit=1)[0]
    return "\t" if "\t" in first_line else ","


def parse_csv_lines(content: str) -> list[CsvRecord]:
    """Split ``content`` into one record per non-empty line."""

    text = strip_bom(content)
    records: list[CsvRecord] = []
    for lineno, line in enumerate(_LINE_SPLIT_RE.split(text), start=1):
        trimmed = line.strip()
        if not trimmed:
            continue
        try:
            fields = next(csv.reader([trimmed], skipinitialspace=True), [])
        except csv.Error as exc:
            _logger.debug("line %d: untokenizable (%s); skipped", lineno, exc)
            continue
        records.append(CsvRecord(lineno, [f.strip() for f in fields]))
    return records


def _iter_reader(reader: Iterator[list[str]]) -> Iterator[list[str]]:
    while True:
        try:
            yield next(reader)
        except StopIteration:
            return
        except csv.Error as exc:
            # The reader has already consumed the offending input; keep going.
            _logger.debug("untokenizable record (%s); skipped", exc)


def parse_records(content: str) -> list[CsvRecord]:
    """Split ``content`` into records, honoring quoted line breaks.

    Records whose fields are all empty are dropped.
    """

    text = strip_bom(content)
    reader = csv.reader(
        io.StringIO(text, newline=""),
        delimiter=detect_delimiter(text),
        skipinitialspace=True,
    )
    records: list[CsvRecord] = []
    for raw in _iter_reader(reader):
        fields = [f.strip() for f in raw]
        if any(fields):
            records.append(CsvRecord(reader.line_num, fields))
    return records


# ----------------------------------------------------------------------------
# Field parsers
# ----------------------------------------------------------------------------


def parse_amount(raw: str | None) -> Decimal:
    """Parse a money amount into a ``Decimal``.

    Currency symbols, thousands separators and whitespace are removed;
    accounting negatives ``(123.45)`` become ``-123.45``. Sign and parentheses
    may appear in any order (``-($1.00)``, ``$(1.00)``).
    """

    if raw is None:
        raise ValueError("amount is required")
    s = _AMOUNT_NOISE_RE.sub("", raw)
    if not s:
        raise ValueError("amount is empty")

    negative = False
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:]
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:]
            changed = True
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1]
            changed = True
        if not changed:
            break

    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc
    if not d.is_finite():
        raise ValueError(f"invalid amount: {raw!r}")
    return -abs(d) if negative else d


def expand_two_digit_year(year: int) -> int:
    """Map ``00-49`` to the 2000s and ``50-99`` to the 1900s."""

    if year < 100:
        return 2000 + year if year < 50 else 1900 + year
    return year


def _int_parts(value: str, sep: str, what: str) -> tuple[int, int, int]:
    parts = value.split(sep)
    if len(parts) != 3 or not all(p.strip().isdigit() for p in parts):
        raise ValueError(f"invalid {what} date: {value!r}")
    a, b, c = (int(p) for p in parts)
    return a, b, c


def parse_us_date(raw: str | None) -> date:
    """Parse ``M/D/YYYY`` or ``M/D/YY``; anything after whitespace is ignored."""

    s = (raw or "").strip()
    if not s:
        raise ValueError("date is empty")
    month, day, year = _int_parts(s.split()[0], "/", "M/D/Y")
    return date(expand_two_digit_year(year), month, day)


def parse_iso_date(raw: str | None) -> date:
    """Parse ``YYYY-MM-DD``."""

    s = (raw or "").strip()
    if not s:
        raise ValueError("date is empty")
    year, month, day = _int_parts(s, "-", "YYYY-MM-DD")
    return date(year, month, day)


def format_plain(d: Decimal) -> str:
    """Render ``d`` without exponent or trailing zeros (``2.500`` -> ``2.5``)."""

    return format(d.normalize(), "f")


def require_fields(fields: list[str], count: int) -> None:
    if len(fields) < count:
        raise ValueError(f"expected at least {count} fields, got {len(fields)}")


# ----------------------------------------------------------------------------
# Row collection
# ----------------------------------------------------------------------------


def collect_rows(
    records: Iterable[CsvRecord],
    build: Callable[[list[str]], RawParsedRow | None],
    *,
    source: str,
) -> list[RawParsedRow]:
    """Apply ``build`` to each record, keeping the rows it returns.

    ``build`` raises ``ValueError`` for a malformed record, or returns ``None``
    for a record that is well-formed but carries no transaction. Either way the
    record is dropped and logged at DEBUG; parsing continues.
    """

    rows: list[RawParsedRow] = []
    for record in records:
        try:
            row = build(record.fields)
        except ValueError as exc:
            _logger.debug("%s line %d: %s; skipped", source, record.line, exc)
            continue
        if row is None:
            _logger.debug("%s line %d: no transaction; skipped", source, record.line)
            continue
        rows.append(row)
    return rows


__all__ = [
    "BOM",
    "CsvRecord",
    "strip_bom",
    "detect_delimiter",
    "parse_csv_lines",
    "parse_records",
    "parse_amount",
    "expand_two_digit_year",
    "parse_us_date",
    "parse_iso_date",
    "format_plain",
    "require_fields",
    "collect_rows",
]
