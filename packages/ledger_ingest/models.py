"""Record types flowing through the ingestion pipeline.

``RawParsedRow`` is transient: a row parser creates it, the importer
fingerprints, categorizes and encrypts it, and it is never persisted as-is.
Amounts are ``Decimal`` throughout so that fingerprints and stored values do
not depend on binary float rounding.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class RawParsedRow:
    """One transaction as read from a bank/brokerage export."""

    date: date
    description: str
    amount: Decimal
    bank_category: str | None = None


@dataclass(frozen=True, slots=True)
class EncryptedRow:
    """A transaction ready for insertion: sensitive fields hold envelopes.

    ``category`` stays plaintext so that it can be filtered and grouped in SQL.
    """

    account_id: str
    date: date
    description: str
    amount: str
    dedupe_hash: str | None
    category: str | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class ImportResult:
    """Outcome of :meth:`TransactionImporter.import_batch`.

    ``skipped`` counts parsed rows that were not written, whether they were
    dropped by the fingerprint check or collided at insert time.
    """

    imported: int
    skipped: int


@dataclass(frozen=True, slots=True)
class PreviewRow:
    date: date
    description: str
    amount: Decimal
    category: str | None
    bank_category: str | None
    dedupe_hash: str
    is_duplicate: bool


@dataclass(frozen=True, slots=True)
class ImportPreview:
    """Dry-run view of an import: what would be written, nothing encrypted."""

    rows: tuple[PreviewRow, ...]
    duplicate_count: int
    categorized_count: int

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def new_rows(self) -> int:
        return self.total_rows - self.duplicate_count


__all__ = [
    "RawParsedRow",
    "EncryptedRow",
    "ImportResult",
    "PreviewRow",
    "ImportPreview",
]
