"""Runtime settings read from the environment.

Entrypoints load ``.env`` (``python-dotenv``, never overriding variables that
are already set) before calling :meth:`Settings.from_env`. Library code takes
explicit arguments and does not read the environment itself.

Variables
---------
- ``DATABASE_URL``: SQLAlchemy URL of the ledger database.
- ``ENCRYPTION_KEY``: 64-char hex AES-256 key for field encryption.
- ``LEDGER_IMPORT_MAX_ROWS``: parsed-row cap per import (default 5000).
- ``LEDGER_SCHEDULER_INTERVAL_SECONDS``: evaluation interval (default 900).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_MAX_IMPORT_ROWS = 5000
DEFAULT_SCHEDULER_INTERVAL_SECONDS = 15 * 60


class ConfigError(ValueError):
    """Raised when an environment value is present but invalid."""


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str | None = None
    encryption_key: str | None = None
    max_import_rows: int = DEFAULT_MAX_IMPORT_ROWS
    scheduler_interval_seconds: int = DEFAULT_SCHEDULER_INTERVAL_SECONDS

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        return cls(
            database_url=(env.get("DATABASE_URL") or "").strip() or None,
            encryption_key=(env.get("ENCRYPTION_KEY") or "").strip() or None,
            max_import_rows=_positive_int(env, "LEDGER_IMPORT_MAX_ROWS", DEFAULT_MAX_IMPORT_ROWS),
            scheduler_interval_seconds=_positive_int(
                env, "LEDGER_SCHEDULER_INTERVAL_SECONDS", DEFAULT_SCHEDULER_INTERVAL_SECONDS
            ),
        )

    def require_encryption_key(self) -> str:
        if not self.encryption_key:
            raise ConfigError("ENCRYPTION_KEY is not set")
        return self.encryption_key


__all__ = [
    "ConfigError",
    "DEFAULT_MAX_IMPORT_ROWS",
    "DEFAULT_SCHEDULER_INTERVAL_SECONDS",
    "Settings",
]
