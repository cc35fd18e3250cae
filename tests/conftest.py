"""Pytest configuration for test isolation.

The CLI and ``settings`` read the store location, default bank hint and log
level from ``STATEMENT_INGEST_*`` environment variables. A developer's shell
(or a local ``.env``) may set any of them, so each test gets a clean
environment with the store redirected into its own temporary directory.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest

from tests.helpers.workbooks import build_xlsx


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point the store at a per-test path and clear the other knobs."""

    monkeypatch.setenv("STATEMENT_INGEST_STORE", os.fspath(tmp_path / "store" / "store.json"))
    monkeypatch.delenv("STATEMENT_INGEST_BANK", raising=False)
    monkeypatch.delenv("STATEMENT_INGEST_LOG_LEVEL", raising=False)
    # Keep a developer's .env out of CLI runs.
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def xlsx() -> Callable[[Mapping[str, Sequence[Sequence[Any]]]], bytes]:
    return build_xlsx
