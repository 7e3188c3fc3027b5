"""Adapter for Chase credit card CSV exports.

CSV header:
Transaction Date, Post Date, Description, Category, Type, Amount, Memo

The bank's own ``Category`` is carried as ``bank_category`` so that it can
serve as the fallback when no user rule matches.
"""

from __future__ import annotations

from ...models import RawParsedRow
from ..formats import FormatId
from ..utils import collect_rows, parse_amount, parse_csv_lines, parse_us_date, require_fields


def _to_row(fields: list[str]) -> RawParsedRow:
    require_fields(fields, 6)
    return RawParsedRow(
        date=parse_us_date(fields[0]),
        description=fields[2],
        amount=parse_amount(fields[5]),
        bank_category=fields[3] or None,
    )


class ChaseCreditParser:
    format_id = FormatId.CHASE_CREDIT

    def parse(self, content: str) -> list[RawParsedRow]:
        records = parse_csv_lines(content)
        return collect_rows(records[1:], _to_row, source=self.format_id)


__all__ = ["ChaseCreditParser"]
