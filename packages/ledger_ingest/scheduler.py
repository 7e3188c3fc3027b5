"""Periodic background evaluation that stands aside while imports run.

:class:`EvaluationScheduler` invokes a caller-supplied ``evaluate`` callable
on a fixed interval (notification/alert evaluation in the host service). A
cycle that starts while the shared :class:`~ledger_ingest.importer.ImportFlag`
is raised is skipped, so evaluation never sees a half-imported batch. What
``evaluate`` does with its results, e.g. delivery, is outside this module.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from .config import DEFAULT_SCHEDULER_INTERVAL_SECONDS
from .importer import ImportFlag
from .logging_setup import get_logger

_logger = get_logger("ledger_ingest.scheduler")

DEFAULT_INITIAL_DELAY_SECONDS = 30.0


class EvaluationScheduler:
    def __init__(
        self,
        flag: ImportFlag,
        evaluate: Callable[[], object],
        *,
        interval_seconds: float = DEFAULT_SCHEDULER_INTERVAL_SECONDS,
        initial_delay_seconds: float = DEFAULT_INITIAL_DELAY_SECONDS,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if initial_delay_seconds < 0:
            raise ValueError("initial_delay_seconds must not be negative")
        self._flag = flag
        self._evaluate = evaluate
        self._interval = interval_seconds
        self._initial_delay = initial_delay_seconds
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def run_cycle(self) -> bool:
        """Run one evaluation unless an import is in progress.

        Returns True when ``evaluate`` was called (even if it raised; the
        error is logged and the schedule continues), False when skipped.
        """

        if self._flag.is_set():
            _logger.info("evaluation cycle skipped: import in progress")
            return False
        try:
            self._evaluate()
        except Exception:
            _logger.exception("evaluation cycle failed")
        return True

    def start(self) -> None:
        """Schedule the first cycle after the initial delay, then every interval."""

        with self._lock:
            if self._running:
                return
            self._running = True
            self._schedule(self._initial_delay)
        _logger.info(
            "scheduler started: first cycle in %ss, then every %ss",
            self._initial_delay,
            self._interval,
        )

    def stop(self) -> None:
        with self._lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _schedule(self, delay: float) -> None:
        timer = threading.Timer(delay, self._tick)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _tick(self) -> None:
        with self._lock:
            if not self._running:
                return
        self.run_cycle()
        with self._lock:
            if self._running:
                self._schedule(self._interval)


__all__ = ["DEFAULT_INITIAL_DELAY_SECONDS", "EvaluationScheduler"]
