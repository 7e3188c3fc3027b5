from __future__ import annotations

import logging
import threading

import pytest

from ledger_ingest.importer import ImportFlag
from ledger_ingest.scheduler import EvaluationScheduler


def test_cycle_skipped_while_import_in_progress(caplog: pytest.LogCaptureFixture):
    calls: list[int] = []
    flag = ImportFlag()
    scheduler = EvaluationScheduler(flag, lambda: calls.append(1))

    with flag.raised(), caplog.at_level(logging.INFO, logger="ledger_ingest"):
        assert scheduler.run_cycle() is False
    assert calls == []
    assert "import in progress" in caplog.text

    assert scheduler.run_cycle() is True
    assert calls == [1]


def test_flag_is_cleared_even_when_the_block_raises():
    flag = ImportFlag()
    with pytest.raises(RuntimeError):
        with flag.raised():
            assert flag.is_set()
            raise RuntimeError("boom")
    assert not flag.is_set()


def test_evaluation_errors_do_not_escape(caplog: pytest.LogCaptureFixture):
    def explode() -> None:
        raise RuntimeError("evaluator down")

    scheduler = EvaluationScheduler(ImportFlag(), explode)
    with caplog.at_level(logging.ERROR, logger="ledger_ingest"):
        assert scheduler.run_cycle() is True
    assert "evaluation cycle failed" in caplog.text


def test_start_runs_cycles_until_stopped():
    ran = threading.Event()
    calls: list[int] = []

    def evaluate() -> None:
        calls.append(1)
        if len(calls) >= 2:
            ran.set()

    scheduler = EvaluationScheduler(
        ImportFlag(), evaluate, interval_seconds=0.01, initial_delay_seconds=0
    )
    scheduler.start()
    try:
        assert ran.wait(timeout=5)
        assert scheduler.running
    finally:
        scheduler.stop()
    assert not scheduler.running


@pytest.mark.parametrize("kwargs", [{"interval_seconds": 0}, {"initial_delay_seconds": -1}])
def test_rejects_bad_timing(kwargs: dict[str, float]):
    with pytest.raises(ValueError):
        EvaluationScheduler(ImportFlag(), lambda: None, **kwargs)
