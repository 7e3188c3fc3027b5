"""Ingestion coordinator: parse, fingerprint, dedupe, categorize, encrypt, store.

One call to :meth:`TransactionImporter.import_batch` handles one uploaded
export for one account:

1. Raise the shared import flag (cleared again on every exit path).
2. Resolve the row parser for the format; unknown formats abort the batch.
3. Parse the file. Malformed rows are dropped by the parser.
4. Fingerprint every parsed row over its plaintext fields.
5. Ask the store which fingerprints the account already holds.
6. Categorize the remaining rows with the supplied rules.
7. Encrypt description and amount of each remaining row.
8. Hand the batch to the store, which inserts atomically and silently skips
   rows that collide on ``(account_id, dedupe_hash)``.

The result reports ``imported`` (rows actually written) and ``skipped``
(every other parsed row), so re-importing the same file yields ``(0, N)``.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from typing import Protocol

from . import cipher
from .config import DEFAULT_MAX_IMPORT_ROWS
from .errors import ImportFailed, ImportTooLarge, KeyNotInitialized, UnknownFormat
from .fingerprint import compute_dedupe_hash
from .ingest.formats import FormatId
from .ingest.registry import ParserRegistry, RowParser, default_registry
from .logging_setup import get_logger
from .models import EncryptedRow, ImportPreview, ImportResult, PreviewRow, RawParsedRow
from .rules import CategoryRule, categorize

_logger = get_logger("ledger_ingest.importer")


class ImportFlag:
    """Process-wide "an import is running" signal.

    Shared by the importer (writer) and background jobs such as
    :class:`~ledger_ingest.scheduler.EvaluationScheduler` (readers), which
    skip work while it is raised. The flag is a boolean, not a counter: with
    overlapping imports the first one to finish clears it.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def is_set(self) -> bool:
        return self._event.is_set()

    def set(self) -> None:
        self._event.set()

    def clear(self) -> None:
        self._event.clear()

    @contextmanager
    def raised(self) -> Iterator[None]:
        self._event.set()
        try:
            yield
        finally:
            self._event.clear()


class TransactionStore(Protocol):
    def find_existing_hashes(self, account_id: str, hashes: Sequence[str]) -> set[str]:
        """Return the subset of ``hashes`` already stored for ``account_id``."""
        ...

    def bulk_insert(self, rows: Sequence[EncryptedRow]) -> int:
        """Insert ``rows`` atomically, skipping unique collisions; return rows written."""
        ...


class TransactionImporter:
    """Runs import batches against a :class:`TransactionStore`.

    Parameters
    ----------
    store:
        Persistence port used for the duplicate check and the insert.
    flag:
        Import flag raised for the duration of every batch.
    registry:
        Parser lookup; :func:`~ledger_ingest.ingest.registry.default_registry`
        when omitted.
    max_rows:
        Upper bound on parsed rows per batch; larger files are rejected whole.
    """

    def __init__(
        self,
        store: TransactionStore,
        flag: ImportFlag,
        *,
        registry: ParserRegistry | None = None,
        max_rows: int = DEFAULT_MAX_IMPORT_ROWS,
    ) -> None:
        if max_rows <= 0:
            raise ValueError("max_rows must be positive")
        self._store = store
        self._flag = flag
        self._registry = registry if registry is not None else default_registry()
        self._max_rows = max_rows

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def import_batch(
        self,
        account_id: str,
        format_id: str | FormatId,
        file_content: str,
        rules: Iterable[CategoryRule],
    ) -> ImportResult:
        """Import one export file into ``account_id``.

        ``rules`` must already be in evaluation order (ascending priority).

        Raises
        ------
        UnknownFormat
            ``format_id`` has no registered parser.
        ImportTooLarge
            The file parsed to more than ``max_rows`` rows.
        KeyNotInitialized
            The process-wide encryption key has not been installed.
        ImportFailed
            The store rejected the batch; nothing was written.
        """

        with self._flag.raised():
            parser = self._resolve(format_id)
            if not cipher.key_initialized():
                raise KeyNotInitialized()

            parsed = self._parse(parser, file_content)
            if not parsed:
                _logger.info("import %s/%s: no rows parsed", account_id, parser.format_id)
                return ImportResult(imported=0, skipped=0)

            hashes = [_fingerprint(account_id, row) for row in parsed]
            existing = self._existing(account_id, hashes)
            ordered_rules = list(rules)

            pending: list[EncryptedRow] = []
            for row, dedupe_hash in zip(parsed, hashes):
                if dedupe_hash in existing:
                    continue
                pending.append(
                    _encrypt_row(account_id, row, categorize(row, ordered_rules), dedupe_hash)
                )

            imported = self._insert(pending) if pending else 0
            result = ImportResult(imported=imported, skipped=len(parsed) - imported)
            _logger.info(
                "import %s/%s: parsed=%d duplicates=%d imported=%d skipped=%d",
                account_id,
                parser.format_id,
                len(parsed),
                len(parsed) - len(pending),
                result.imported,
                result.skipped,
            )
            return result

    def preview_batch(
        self,
        account_id: str,
        format_id: str | FormatId,
        file_content: str,
        rules: Iterable[CategoryRule],
    ) -> ImportPreview:
        """Dry run of :meth:`import_batch`: nothing is encrypted or written.

        Every parsed row is returned, duplicates included and flagged.
        """

        with self._flag.raised():
            parser = self._resolve(format_id)
            parsed = self._parse(parser, file_content)
            if not parsed:
                return ImportPreview(rows=(), duplicate_count=0, categorized_count=0)

            hashes = [_fingerprint(account_id, row) for row in parsed]
            existing = self._existing(account_id, hashes)
            ordered_rules = list(rules)

            rows: list[PreviewRow] = []
            for row, dedupe_hash in zip(parsed, hashes):
                rows.append(
                    PreviewRow(
                        date=row.date,
                        description=row.description,
                        amount=row.amount,
                        category=categorize(row, ordered_rules),
                        bank_category=row.bank_category,
                        dedupe_hash=dedupe_hash,
                        is_duplicate=dedupe_hash in existing,
                    )
                )

            return ImportPreview(
                rows=tuple(rows),
                duplicate_count=sum(1 for r in rows if r.is_duplicate),
                categorized_count=sum(1 for r in rows if r.category),
            )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _resolve(self, format_id: str | FormatId) -> RowParser:
        parser = self._registry.get_parser(format_id)
        if parser is None:
            raise UnknownFormat(str(format_id), self._registry.list_parser_ids())
        return parser

    def _parse(self, parser: RowParser, file_content: str) -> list[RawParsedRow]:
        parsed = parser.parse(file_content)
        if len(parsed) > self._max_rows:
            raise ImportTooLarge(len(parsed), self._max_rows)
        return parsed

    def _existing(self, account_id: str, hashes: list[str]) -> set[str]:
        unique = list(dict.fromkeys(hashes))
        return self._store.find_existing_hashes(account_id, unique)

    def _insert(self, pending: list[EncryptedRow]) -> int:
        try:
            return self._store.bulk_insert(pending)
        except Exception as exc:
            _logger.error("bulk insert of %d row(s) failed: %s", len(pending), exc)
            raise ImportFailed(len(pending), str(exc)) from exc


def _fingerprint(account_id: str, row: RawParsedRow) -> str:
    return compute_dedupe_hash(account_id, row.date, row.description, row.amount)


def _encrypt_row(
    account_id: str, row: RawParsedRow, category: str | None, dedupe_hash: str
) -> EncryptedRow:
    return EncryptedRow(
        account_id=account_id,
        date=row.date,
        description=cipher.encrypt_field(row.description),
        amount=cipher.encrypt_number(row.amount),
        category=category,
        dedupe_hash=dedupe_hash,
    )


__all__ = ["ImportFlag", "TransactionStore", "TransactionImporter"]
