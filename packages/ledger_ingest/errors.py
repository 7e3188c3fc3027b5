"""Exception taxonomy for the ingestion pipeline.

Row-level problems (bad dates, unparseable amounts, short rows) never surface
here: parsers raise and catch ``ValueError`` internally and drop the row.
Everything below aborts a whole batch before any write, except
:class:`ImportFailed`, which reports a storage failure after encryption.
"""

from __future__ import annotations


class LedgerIngestError(Exception):
    """Base class for all pipeline errors."""


# ---- Envelope cipher ---------------------------------------------------------


class KeyNotInitialized(LedgerIngestError):
    def __init__(self) -> None:
        super().__init__("Encryption key not initialized. Call init_key() first.")


class InvalidKeyLength(LedgerIngestError):
    def __init__(self, detail: str | None = None) -> None:
        msg = "ENCRYPTION_KEY must be a 64-character hex string (32 bytes)"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class DecryptionFailed(LedgerIngestError):
    """Tampered envelope, wrong key, or a value that is not an envelope."""


# ---- Batch-level -------------------------------------------------------------


class UnknownFormat(LedgerIngestError):
    def __init__(self, format_id: str, known: list[str] | None = None) -> None:
        self.format_id = format_id
        msg = f"Unknown import format: {format_id!r}"
        if known:
            msg += f". Known formats: {', '.join(known)}"
        super().__init__(msg)


class ImportTooLarge(LedgerIngestError):
    def __init__(self, rows: int, limit: int) -> None:
        self.rows = rows
        self.limit = limit
        super().__init__(f"Import file too large: {rows} rows (maximum {limit})")


# ---- Storage-level -----------------------------------------------------------


class ImportFailed(LedgerIngestError):
    """The batch insert failed; nothing was committed.

    ``pending`` is the number of encrypted rows that would have been inserted.
    """

    def __init__(self, pending: int, reason: str | None = None) -> None:
        self.pending = pending
        msg = f"Import failed; {pending} row(s) were not written"
        super().__init__(f"{msg}: {reason}" if reason else msg)


__all__ = [
    "LedgerIngestError",
    "KeyNotInitialized",
    "InvalidKeyLength",
    "DecryptionFailed",
    "UnknownFormat",
    "ImportTooLarge",
    "ImportFailed",
]
