"""Pytest configuration for test isolation.

Three pieces of process-wide state would otherwise leak between tests:

- the field-encryption key installed by ``ledger_ingest.cipher.init_key``;
- the per-URL engine cache in ``ledger_db.client``;
- the package log handler installed by ``configure_logging``.

All are reset around every test by autouse fixtures. Environment variables
read by the CLI are cleared so a developer's ``.env`` or shell cannot leak in.
"""

from __future__ import annotations

import secrets
from collections.abc import Iterator
from pathlib import Path

import pytest
from ledger_db.client import dispose_engines, session_scope
from sqlalchemy.orm import Session

from ledger_ingest import cipher, logging_setup
from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setattr(cipher, "_AEAD", None)
    for name in (
        "DATABASE_URL",
        "ENCRYPTION_KEY",
        "LEDGER_IMPORT_MAX_ROWS",
        "LEDGER_SCHEDULER_INTERVAL_SECONDS",
        "LEDGER_INGEST_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    dispose_engines()


@pytest.fixture(autouse=True)
def _reset_package_logging() -> Iterator[None]:
    """Undo ``configure_logging`` (run by the CLI callback) so caplog keeps working."""

    yield
    logging_setup.reset_logging()


@pytest.fixture
def key_hex() -> str:
    return secrets.token_hex(32)


@pytest.fixture
def encryption_key(key_hex: str) -> str:
    """Install a fresh random process-wide key and return it as hex."""

    cipher.init_key(key_hex)
    return key_hex


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "ledger.db")


@pytest.fixture
def session(db_url: str) -> Iterator[Session]:
    with session_scope(database_url=db_url) as s:
        yield s
