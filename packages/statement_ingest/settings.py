"""Environment-driven configuration.

All knobs are plain environment variables so the CLI can load them from a
local ``.env`` (``python-dotenv``) without this module knowing about it:

- ``STATEMENT_INGEST_LOG_LEVEL``: logging level name or number.
- ``STATEMENT_INGEST_STORE``: path of the JSON store snapshot. Default:
  ``./.statement_ingest/store.json`` under the current working directory.
- ``STATEMENT_INGEST_BANK``: default bank hint for imports (``auto``).
"""

from __future__ import annotations

import os
from pathlib import Path

LOG_LEVEL_ENV = "STATEMENT_INGEST_LOG_LEVEL"
STORE_PATH_ENV = "STATEMENT_INGEST_STORE"
BANK_HINT_ENV = "STATEMENT_INGEST_BANK"

BANK_HINTS: tuple[str, ...] = (
    "auto",
    "max",
    "max-shekel",
    "max-foreign",
    "discount",
    "discount-transactions",
    "discount-credit",
    "cal",
)


def get_env(name: str) -> str | None:
    val = os.getenv(name)
    if val is None or not val.strip():
        return None
    return val.strip()


def get_store_path() -> Path:
    """Return the store snapshot path (env override or CWD default)."""

    raw = get_env(STORE_PATH_ENV)
    if raw:
        return Path(raw).expanduser().resolve()
    return (Path.cwd() / ".statement_ingest" / "store.json").resolve()


def get_default_bank_hint() -> str:
    """Return the default bank hint, validated against ``BANK_HINTS``."""

    raw = get_env(BANK_HINT_ENV)
    if raw is None:
        return "auto"
    hint = raw.lower()
    if hint not in BANK_HINTS:
        raise ValueError(
            f"Invalid {BANK_HINT_ENV}={raw!r}. Allowed: {', '.join(BANK_HINTS)}"
        )
    return hint


__all__ = [
    "BANK_HINTS",
    "BANK_HINT_ENV",
    "LOG_LEVEL_ENV",
    "STORE_PATH_ENV",
    "get_default_bank_hint",
    "get_env",
    "get_store_path",
]
