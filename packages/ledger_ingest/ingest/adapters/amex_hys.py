"""Adapter for American Express High Yield Savings CSV exports.

Rows look like ``2026-01-26,"Interest Payment",430.74``. The export ships
without a header, so no line is skipped up front; a header line, if someone
adds one, fails date parsing and is dropped like any other malformed row.
"""

from __future__ import annotations

from ...models import RawParsedRow
from ..formats import FormatId
from ..utils import collect_rows, parse_amount, parse_csv_lines, parse_iso_date, require_fields


def _to_row(fields: list[str]) -> RawParsedRow:
    require_fields(fields, 3)
    return RawParsedRow(
        date=parse_iso_date(fields[0]),
        description=fields[1],
        amount=parse_amount(fields[2]),
    )


class AmexHysParser:
    format_id = FormatId.AMEX_HYS

    def parse(self, content: str) -> list[RawParsedRow]:
        return collect_rows(parse_csv_lines(content), _to_row, source=self.format_id)


__all__ = ["AmexHysParser"]
