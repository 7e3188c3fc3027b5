"""Adapter for Fidelity 401(k) transaction history CSV exports.

CSV header:
Transaction Date, Investment, Contribution, Description, Activity, Price,
Units, Amount

Dates carry a time of day (``2/13/2026 12:00:00 AM``), which is ignored.
There is no free-text description worth keeping, so one is built from the
investment, contribution source and activity, plus ``"{units} units @
${price}"`` for purchases and sales. Cash receipts are recorded at a price
of 1 and get no units suffix.
"""

from __future__ import annotations

from decimal import Decimal

from ...models import RawParsedRow
from ..formats import FormatId
from ..utils import (
    collect_rows,
    format_plain,
    parse_amount,
    parse_csv_lines,
    parse_us_date,
    require_fields,
)

DESCRIPTION_SEPARATOR = " \u2014 "


def _optional_decimal(raw: str) -> Decimal | None:
    try:
        return parse_amount(raw)
    except ValueError:
        return None


def build_description(fields: list[str]) -> str:
    investment, contribution, activity = fields[1], fields[2], fields[4]
    parts = [p for p in (investment, contribution, activity) if p]

    price = _optional_decimal(fields[5])
    units = _optional_decimal(fields[6])
    if units is not None and price is not None and units != 0 and price != 1:
        parts.append(f"{format_plain(units)} units @ ${format_plain(price)}")

    return DESCRIPTION_SEPARATOR.join(parts)


def _to_row(fields: list[str]) -> RawParsedRow:
    require_fields(fields, 8)
    return RawParsedRow(
        date=parse_us_date(fields[0]),
        description=build_description(fields),
        amount=parse_amount(fields[7]),
        bank_category=fields[4] or None,
    )


class Fidelity401kParser:
    format_id = FormatId.FIDELITY_401K

    def parse(self, content: str) -> list[RawParsedRow]:
        records = parse_csv_lines(content)
        return collect_rows(records[1:], _to_row, source=self.format_id)


__all__ = ["DESCRIPTION_SEPARATOR", "Fidelity401kParser", "build_description"]
