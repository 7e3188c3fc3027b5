"""DB helpers for tests: bootstrap a temporary SQLite ledger database."""

from __future__ import annotations

import os
from pathlib import Path

from ledger_db.client import create_schema, get_engine
from sqlalchemy import event


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):  # pragma: no cover - tiny bridge
        dbapi_conn.execute("PRAGMA foreign_keys = ON")

    create_schema(database_url=url)

    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url
