"""Storage of encrypted transactions (SQLAlchemy ORM).

Two layers live here:

- :class:`SqlTransactionStore`: the importer's storage port. Its
  :meth:`~SqlTransactionStore.bulk_insert` owns the transaction boundary: a
  batch is written completely or not at all.
- Module-level helpers for direct entry and maintenance (list, get, create,
  update, delete, bulk re-categorization, retroactive rule application). They
  take an open session and leave commit/rollback to the caller, typically
  :func:`ledger_db.client.session_scope`.

Columns ``description``, ``amount`` and ``notes`` always hold envelopes;
:class:`Transaction` is the decrypted view handed to callers.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable, Iterator, Sequence
from decimal import Decimal
from enum import Enum
from typing import Any, Final, Literal, TypeVar

from pydantic import BaseModel, ConfigDict
from sqlalchemy import Select, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from ledger_db.models import LedgerTransaction

from . import cipher
from .logging_setup import get_logger
from .models import EncryptedRow
from .rules import CategoryRule, rule_matches

_logger = get_logger("ledger_ingest.persistence")

# Rows per INSERT statement and hashes per IN (...) list. Keeps every
# statement well under SQLite's bound-parameter limit.
CHUNK_SIZE = 500

DEFAULT_PAGE_SIZE: Final = 50
# Upper bound on rows decrypted for an in-memory description search.
SEARCH_SCAN_LIMIT: Final = 10_000

_T = TypeVar("_T")


class _Unset(Enum):
    UNSET = "UNSET"


UNSET: Final = _Unset.UNSET
"""Marker for "leave this field unchanged" in :func:`update_transaction`."""


def _chunks(items: Sequence[_T], size: int | None = None) -> Iterator[Sequence[_T]]:
    step = size or CHUNK_SIZE
    for start in range(0, len(items), step):
        yield items[start : start + step]


# ----------------------------------------------------------------------------
# Decrypted view
# ----------------------------------------------------------------------------


class Transaction(BaseModel):
    """A stored transaction with its sensitive fields decrypted."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    account_id: str
    date: dt.date
    description: str
    amount: Decimal
    category: str | None = None
    notes: str | None = None
    dedupe_hash: str | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


def decrypt_transaction(row: LedgerTransaction) -> Transaction:
    """Decrypt a persisted row; raises ``DecryptionFailed`` on a bad envelope."""

    return Transaction(
        id=row.id,
        account_id=row.account_id,
        date=row.date,
        description=cipher.decrypt_field(row.description),
        amount=cipher.decrypt_number(row.amount),
        category=row.category,
        notes=cipher.decrypt_optional_field(row.notes),
        dedupe_hash=row.dedupe_hash,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def encrypt_transaction_for_create(
    *,
    account_id: str,
    date: dt.date,
    description: str,
    amount: Decimal | int | float,
    category: str | None = None,
    notes: str | None = None,
    dedupe_hash: str | None = None,
) -> EncryptedRow:
    return EncryptedRow(
        account_id=account_id,
        date=date,
        description=cipher.encrypt_field(description),
        amount=cipher.encrypt_number(amount),
        category=category,
        notes=cipher.encrypt_optional_field(notes),
        dedupe_hash=dedupe_hash,
    )


def _row_values(row: EncryptedRow) -> dict[str, Any]:
    return {
        "account_id": row.account_id,
        "date": row.date,
        "description": row.description,
        "amount": row.amount,
        "category": row.category,
        "notes": row.notes,
        "dedupe_hash": row.dedupe_hash,
    }


# ----------------------------------------------------------------------------
# Importer storage port
# ----------------------------------------------------------------------------


def _insert_for(session: Session) -> Callable[..., Any]:
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"bulk insert with conflict skipping is not supported on {dialect!r}")


class SqlTransactionStore:
    """:class:`~ledger_ingest.importer.TransactionStore` over a SQLAlchemy session.

    Duplicate protection relies on the ``(account_id, dedupe_hash)`` unique
    constraint: inserts use ``ON CONFLICT DO NOTHING``, so a row that lost a
    race with a concurrent import (or repeats earlier in the same batch) is
    skipped rather than failing the batch.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_existing_hashes(self, account_id: str, hashes: Sequence[str]) -> set[str]:
        found: set[str] = set()
        for chunk in _chunks(list(hashes)):
            stmt = select(LedgerTransaction.dedupe_hash).where(
                LedgerTransaction.account_id == account_id,
                LedgerTransaction.dedupe_hash.in_(chunk),
            )
            found.update(h for h in self._session.scalars(stmt) if h is not None)
        return found

    def bulk_insert(self, rows: Sequence[EncryptedRow]) -> int:
        """Insert ``rows`` in one transaction and return how many were written.

        Commits on success. On any error the transaction is rolled back and
        the error re-raised, leaving no partial batch behind.
        """

        if not rows:
            return 0
        insert = _insert_for(self._session)
        written = 0
        try:
            for chunk in _chunks(rows):
                stmt = (
                    insert(LedgerTransaction)
                    .values([_row_values(r) for r in chunk])
                    .on_conflict_do_nothing(index_elements=["account_id", "dedupe_hash"])
                )
                result = self._session.execute(stmt)
                written += max(result.rowcount or 0, 0)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        _logger.debug("bulk insert: %d of %d row(s) written", written, len(rows))
        return written


# ----------------------------------------------------------------------------
# Direct entry and maintenance
# ----------------------------------------------------------------------------


def create_transaction(
    session: Session,
    *,
    account_id: str,
    date: dt.date,
    description: str,
    amount: Decimal | int | float,
    category: str | None = None,
    notes: str | None = None,
    dedupe_hash: str | None = None,
) -> Transaction:
    """Encrypt and add a single transaction; flushes to assign its id."""

    encrypted = encrypt_transaction_for_create(
        account_id=account_id,
        date=date,
        description=description,
        amount=amount,
        category=category,
        notes=notes,
        dedupe_hash=dedupe_hash,
    )
    row = LedgerTransaction(**_row_values(encrypted))
    session.add(row)
    session.flush()
    session.refresh(row)
    return decrypt_transaction(row)


def get_transaction(session: Session, transaction_id: int) -> Transaction | None:
    row = session.get(LedgerTransaction, transaction_id)
    return decrypt_transaction(row) if row is not None else None


def _filtered(
    stmt: Select[Any],
    *,
    account_id: str | None,
    category: str | None,
    start: dt.date | None,
    end: dt.date | None,
) -> Select[Any]:
    if account_id:
        stmt = stmt.where(LedgerTransaction.account_id == account_id)
    if category:
        stmt = stmt.where(LedgerTransaction.category == category)
    if start is not None:
        stmt = stmt.where(LedgerTransaction.date >= start)
    if end is not None:
        stmt = stmt.where(LedgerTransaction.date <= end)
    return stmt


def list_transactions(
    session: Session,
    *,
    account_id: str | None = None,
    category: str | None = None,
    start: dt.date | None = None,
    end: dt.date | None = None,
    search: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> tuple[list[Transaction], int]:
    """Return one page of decrypted transactions (newest first) and the total.

    Descriptions are encrypted, so ``search`` cannot run in SQL: up to
    ``SEARCH_SCAN_LIMIT`` rows matching the other filters are decrypted and
    searched case-insensitively in memory, then paginated.
    """

    filters = {"account_id": account_id, "category": category, "start": start, "end": end}
    ordered = _filtered(select(LedgerTransaction), **filters).order_by(
        LedgerTransaction.date.desc(), LedgerTransaction.id.desc()
    )

    if search:
        needle = search.lower()
        rows = session.scalars(ordered.limit(SEARCH_SCAN_LIMIT)).all()
        matches = [t for t in map(decrypt_transaction, rows) if needle in t.description.lower()]
        return matches[offset : offset + limit], len(matches)

    total = session.scalar(_filtered(select(func.count(LedgerTransaction.id)), **filters)) or 0
    rows = session.scalars(ordered.limit(limit).offset(offset)).all()
    return [decrypt_transaction(r) for r in rows], total


def update_transaction(
    session: Session,
    transaction_id: int,
    *,
    category: str | None | Literal[_Unset.UNSET] = UNSET,
    notes: str | None | Literal[_Unset.UNSET] = UNSET,
) -> Transaction | None:
    """Change category and/or notes; ``None`` clears a field, ``UNSET`` keeps it.

    Returns ``None`` when no transaction has ``transaction_id``.
    """

    row = session.get(LedgerTransaction, transaction_id)
    if row is None:
        return None
    if category is not UNSET:
        row.category = category
    if notes is not UNSET:
        row.notes = cipher.encrypt_optional_field(notes)
    session.flush()
    session.refresh(row)
    return decrypt_transaction(row)


def delete_transaction(session: Session, transaction_id: int) -> bool:
    result = session.execute(
        delete(LedgerTransaction).where(LedgerTransaction.id == transaction_id)
    )
    return (result.rowcount or 0) > 0


def bulk_update_category(
    session: Session, transaction_ids: Sequence[int], category: str | None
) -> int:
    """Set ``category`` on every listed transaction; returns rows updated."""

    updated = 0
    for chunk in _chunks(list(transaction_ids)):
        result = session.execute(
            update(LedgerTransaction)
            .where(LedgerTransaction.id.in_(chunk))
            .values(category=category)
        )
        updated += result.rowcount or 0
    return updated


def apply_rule_to_transactions(session: Session, rule: CategoryRule) -> int:
    """Retroactively categorize stored transactions matching ``rule``.

    Only rows whose category is missing or different from the rule's are
    considered; their descriptions are decrypted and matched the same way the
    importer matches new rows. Returns the number of rows re-categorized.
    """

    candidates = session.execute(
        select(LedgerTransaction.id, LedgerTransaction.description).where(
            or_(
                LedgerTransaction.category.is_(None),
                LedgerTransaction.category != rule.category,
            )
        )
    ).all()

    matching = [
        tx_id
        for tx_id, description in candidates
        if rule_matches(rule, cipher.decrypt_field(description))
    ]
    if not matching:
        return 0
    applied = bulk_update_category(session, matching, rule.category)
    _logger.info("rule %r -> %r applied to %d transaction(s)", rule.pattern, rule.category, applied)
    return applied


__all__ = [
    "CHUNK_SIZE",
    "UNSET",
    "SqlTransactionStore",
    "Transaction",
    "decrypt_transaction",
    "encrypt_transaction_for_create",
    "create_transaction",
    "get_transaction",
    "list_transactions",
    "update_transaction",
    "delete_transaction",
    "bulk_update_category",
    "apply_rule_to_transactions",
]
