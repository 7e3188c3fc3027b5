"""Encrypted transaction ingestion.

Bank and brokerage exports are parsed per format, fingerprinted for
deduplication, categorized by user rules, encrypted field by field and stored
in one atomic batch. See :class:`ledger_ingest.importer.TransactionImporter`.
"""

from __future__ import annotations

from .errors import (
    DecryptionFailed,
    ImportFailed,
    ImportTooLarge,
    InvalidKeyLength,
    KeyNotInitialized,
    LedgerIngestError,
    UnknownFormat,
)
from .importer import ImportFlag, TransactionImporter, TransactionStore
from .ingest import FormatId, ParserRegistry, default_registry
from .models import ImportPreview, ImportResult, RawParsedRow
from .rules import CategoryRule, MatchType, categorize

__all__ = [
    "CategoryRule",
    "DecryptionFailed",
    "FormatId",
    "ImportFailed",
    "ImportFlag",
    "ImportPreview",
    "ImportResult",
    "ImportTooLarge",
    "InvalidKeyLength",
    "KeyNotInitialized",
    "LedgerIngestError",
    "MatchType",
    "ParserRegistry",
    "RawParsedRow",
    "TransactionImporter",
    "TransactionStore",
    "UnknownFormat",
    "categorize",
    "default_registry",
]
