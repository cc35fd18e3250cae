"""Logging for the ``statement_ingest`` package.

Library modules log through ``get_logger("statement_ingest.<module>")`` and
never attach handlers. Until an entry point calls :func:`configure_logging`
the package logger only carries a ``NullHandler``, so importing the parsers
into another application stays silent.

What gets logged:

- INFO: one line per parsed file and per parser selection
  (``discount:parsed ...``, ``dispatch:selected ...``, ``store:merged ...``)
- DEBUG: every rejected row with its reason, and every parser the dispatcher
  tried and discarded

The CLI's ``--verbose`` flag (or ``STATEMENT_INGEST_LOG_LEVEL=DEBUG``) is the
way to find out why a row never made it into the store.
"""

from __future__ import annotations

import logging
from typing import IO

from rich.console import Console
from rich.logging import RichHandler

from .settings import LOG_LEVEL_ENV, get_env

PACKAGE_LOGGER = "statement_ingest"

_configured = False


def resolve_level(level: int | str | None = None) -> int:
    """Return a numeric level from ``level``, the environment, or ``INFO``.

    Strings may be level names in any case (``"debug"``) or digits
    (``"15"``). Unknown names resolve to ``INFO`` rather than failing a run.
    """

    if level is None:
        level = get_env(LOG_LEVEL_ENV)
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    stream: IO[str] | None = None,
) -> None:
    """Send package logs to stderr (or ``stream``) through a rich handler.

    Only the first call has an effect. Records stop at the package logger so
    a host that also configured the root logger does not print them twice.
    """

    global _configured
    if _configured:
        return

    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
        logger.removeHandler(h)

    resolved = resolve_level(level)
    console = Console(file=stream, stderr=stream is None)
    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(name)s %(message)s"))
    handler.setLevel(resolved)

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a named logger; the package logger holds a ``NullHandler`` until configured."""

    pkg = logging.getLogger(PACKAGE_LOGGER)
    if not _configured and not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["PACKAGE_LOGGER", "configure_logging", "get_logger", "resolve_level"]
