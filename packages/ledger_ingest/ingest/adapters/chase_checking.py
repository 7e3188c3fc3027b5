"""Adapter for Chase checking account CSV exports.

CSV header:
Details, Posting Date, Description, Amount, Type, Balance, Check or Slip #

Amounts are signed (debits negative). Chase checking exports carry no
category column.
"""

from __future__ import annotations

from ...models import RawParsedRow
from ..formats import FormatId
from ..utils import collect_rows, parse_amount, parse_csv_lines, parse_us_date, require_fields


def _to_row(fields: list[str]) -> RawParsedRow:
    require_fields(fields, 4)
    return RawParsedRow(
        date=parse_us_date(fields[1]),
        description=fields[2],
        amount=parse_amount(fields[3]),
    )


class ChaseCheckingParser:
    format_id = FormatId.CHASE_CHECKING

    def parse(self, content: str) -> list[RawParsedRow]:
        records = parse_csv_lines(content)
        return collect_rows(records[1:], _to_row, source=self.format_id)


__all__ = ["ChaseCheckingParser"]
