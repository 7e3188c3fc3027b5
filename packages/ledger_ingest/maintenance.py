"""One-off data maintenance for the ledger tables.

:func:`encrypt_plaintext_fields` brings rows written before field encryption
was introduced (or inserted by hand) up to the encrypted storage format. It
is safe to re-run: values that already open under the current key are left
untouched.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_db.models import LedgerTransaction

from . import cipher
from .errors import KeyNotInitialized
from .logging_setup import get_logger

_logger = get_logger("ledger_ingest.maintenance")

_ENCRYPTED_COLUMNS = ("description", "amount", "notes")


def encrypt_plaintext_fields(session: Session) -> int:
    """Encrypt plaintext ``description``, ``amount`` and ``notes`` values.

    A value counts as plaintext when it does not decrypt under the installed
    key (see :func:`ledger_ingest.cipher.is_encrypted`). ``notes`` that are
    ``None`` stay ``None``. The caller commits.

    Returns
    -------
    int
        Number of transactions with at least one field rewritten.
    """

    if not cipher.key_initialized():
        raise KeyNotInitialized()

    rows = session.scalars(select(LedgerTransaction).order_by(LedgerTransaction.id)).all()
    changed = 0
    for row in rows:
        touched = False
        for column in _ENCRYPTED_COLUMNS:
            value = getattr(row, column)
            if value is None or cipher.is_encrypted(value):
                continue
            setattr(row, column, cipher.encrypt_field(value))
            touched = True
        if touched:
            changed += 1

    session.flush()
    _logger.info("encrypted plaintext fields in %d of %d transaction(s)", changed, len(rows))
    return changed


__all__ = ["encrypt_plaintext_fields"]
