from __future__ import annotations

import pytest

from ledger_ingest.config import (
    DEFAULT_MAX_IMPORT_ROWS,
    DEFAULT_SCHEDULER_INTERVAL_SECONDS,
    ConfigError,
    Settings,
)


def test_defaults_from_empty_environment():
    settings = Settings.from_env({})
    assert settings.database_url is None and settings.encryption_key is None
    assert settings.max_import_rows == DEFAULT_MAX_IMPORT_ROWS == 5000
    assert settings.scheduler_interval_seconds == DEFAULT_SCHEDULER_INTERVAL_SECONDS == 900


def test_reads_and_trims_values():
    settings = Settings.from_env(
        {
            "DATABASE_URL": " sqlite:///x.db ",
            "ENCRYPTION_KEY": "ab" * 32,
            "LEDGER_IMPORT_MAX_ROWS": "250",
            "LEDGER_SCHEDULER_INTERVAL_SECONDS": " 60 ",
        }
    )
    assert settings.database_url == "sqlite:///x.db"
    assert settings.require_encryption_key() == "ab" * 32
    assert (settings.max_import_rows, settings.scheduler_interval_seconds) == (250, 60)


@pytest.mark.parametrize("value", ["ten", "0", "-5"])
def test_rejects_invalid_row_cap(value: str):
    with pytest.raises(ConfigError, match="LEDGER_IMPORT_MAX_ROWS"):
        Settings.from_env({"LEDGER_IMPORT_MAX_ROWS": value})


def test_missing_key_is_a_config_error():
    with pytest.raises(ConfigError, match="ENCRYPTION_KEY"):
        Settings.from_env({}).require_encryption_key()


def test_reads_process_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LEDGER_IMPORT_MAX_ROWS", "12")
    assert Settings.from_env().max_import_rows == 12
