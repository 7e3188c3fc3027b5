"""Logging for the ``ledger_ingest`` package.

Library modules obtain loggers through :func:`get_logger` and never attach
handlers. Entrypoints (the CLI, a host service) call :func:`configure_logging`
once at startup; it installs a single ``StreamHandler`` on the package root
logger ``"ledger_ingest"``.

What gets logged
----------------
- INFO: one summary line per import batch, skipped scheduler cycles, rule
  applications and maintenance passes.
- DEBUG: every row a parser drops, with its line number and reason, and
  per-batch insert counts.
- ERROR: storage failures and evaluation-cycle failures.

Plaintext descriptions and amounts are never logged; row diagnostics carry
line numbers and parse errors only.

The level comes from the ``level`` argument, else ``LEDGER_INGEST_LOG_LEVEL``,
else INFO.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "ledger_ingest"
LEVEL_ENV = "LEDGER_INGEST_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_CONFIGURED = False


def resolve_level(level: int | str | None = None) -> int:
    """Map ``level`` (or the environment, when ``None``) to a numeric level.

    Unknown names resolve to INFO rather than failing startup.
    """

    if level is None:
        level = os.getenv(LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelNamesMapping().get(name)
    return numeric if numeric is not None else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Install the package handler; later calls are no-ops.

    Parameters
    ----------
    level:
        ``int`` or level name; see :func:`resolve_level`.
    fmt:
        Format string, ``DEFAULT_FORMAT`` when omitted.
    stream:
        Handler stream, resolved to the current ``sys.stderr`` when omitted.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = resolve_level(level)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False
    _CONFIGURED = True


def reset_logging() -> None:
    """Remove the package handler and restore library defaults.

    For test suites and hosts that reconfigure logging at runtime.
    """

    global _CONFIGURED
    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in list(logger.handlers):
        if not isinstance(h, logging.NullHandler):
            logger.removeHandler(h)
            h.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    _CONFIGURED = False


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``, silent until logging is configured."""

    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "DEFAULT_FORMAT",
    "LEVEL_ENV",
    "PACKAGE_LOGGER",
    "configure_logging",
    "get_logger",
    "reset_logging",
    "resolve_level",
]
