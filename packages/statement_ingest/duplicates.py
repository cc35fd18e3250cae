"""Duplicate detection for repeated imports.

Two records are the same movement when their booking date, normalized amount
and the first 50 characters of the description agree::

    2024-03-01|-150.5|סופרמרקט שופרסל דיל

Ids are not part of the key: a file re-exported by the bank may order rows
differently, which changes the ``seq`` component of the id but not the key.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Protocol, TypeVar

from .ingest.cells import format_amount
from .logging_setup import get_logger

DESCRIPTION_KEY_CHARS = 50

_logger = get_logger("statement_ingest.duplicates")


class Keyed(Protocol):
    @property
    def date(self) -> str: ...

    @property
    def amount(self) -> Decimal: ...

    @property
    def description(self) -> str: ...


def dedup_key(tx: Keyed) -> str:
    return f"{tx.date}|{format_amount(tx.amount)}|{tx.description[:DESCRIPTION_KEY_CHARS]}"


T = TypeVar("T", bound=Keyed)


def filter_new(existing: Iterable[Keyed], incoming: Iterable[T]) -> tuple[list[T], int]:
    """Return the incoming records whose key is new, and the number dropped.

    Keys are checked against ``existing`` and against earlier records of
    ``incoming``, so a batch that repeats a row keeps only its first copy.
    """

    seen = {dedup_key(t) for t in existing}
    fresh: list[T] = []
    dropped = 0
    for tx in incoming:
        key = dedup_key(tx)
        if key in seen:
            _logger.debug("dedup:duplicate_skipped key=%s", key)
            dropped += 1
            continue
        seen.add(key)
        fresh.append(tx)
    return fresh, dropped


__all__ = ["DESCRIPTION_KEY_CHARS", "dedup_key", "filter_new"]
