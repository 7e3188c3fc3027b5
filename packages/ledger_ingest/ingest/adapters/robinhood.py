"""Adapter for Robinhood account activity exports.

Two flavors are in the wild and both are accepted:

- CSV: comma-delimited, every field quoted, four-digit years.
- TSV: tab-delimited, only multi-line fields quoted, two-digit years.

Header:
Activity Date, Process Date, Settle Date, Instrument, Description, Trans Code,
Quantity, Price, Amount

Descriptions may span several lines (CUSIP and lot details follow the first
line); only the first line is kept, prefixed by the ticker. Amounts use
accounting notation: ``($1.23)`` is a debit. Rows without an amount (stock
splits, symbol conversions) carry no cash movement and are dropped.
"""

from __future__ import annotations

from ...models import RawParsedRow
from ..formats import FormatId
from ..utils import collect_rows, parse_amount, parse_records, parse_us_date, require_fields


def _first_line(text: str) -> str:
    lines = text.splitlines()
    return lines[0].strip() if lines else ""


def _to_row(fields: list[str]) -> RawParsedRow | None:
    require_fields(fields, 9)
    activity_date = parse_us_date(fields[0])
    if not fields[8]:
        return None

    instrument = fields[3]
    first_line = _first_line(fields[4])
    description = f"{instrument} {first_line}" if instrument else first_line
    return RawParsedRow(
        date=activity_date,
        description=description,
        amount=parse_amount(fields[8]),
        bank_category=fields[5] or None,
    )


class RobinhoodParser:
    format_id = FormatId.ROBINHOOD

    def parse(self, content: str) -> list[RawParsedRow]:
        records = parse_records(content)
        return collect_rows(records[1:], _to_row, source=self.format_id)


__all__ = ["RobinhoodParser"]
