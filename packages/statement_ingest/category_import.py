"""Bulk category assignment from a two-column CSV.

The CSV maps a transaction description to a category name::

    description,category
    שופרסל דיל,מזון
    חברת החשמל,חשבונות

Accepted header names are ``transaction``/``description``/``תיאור`` and
``category``/``קטגוריה``. Category names that match no existing category
(by name or id, case-insensitive) are created with a palette color and no
rules. Each transaction is then matched against the CSV descriptions: exact
text, then case-insensitive, then substring in either direction.
"""

from __future__ import annotations

import random
import re
from collections.abc import Sequence
from dataclasses import dataclass

from .categorization import OTHER_CATEGORY_ID
from .ingest.reader import read_csv_records
from .logging_setup import get_logger
from .models import Category, Transaction

DESCRIPTION_HEADERS: tuple[str, ...] = ("transaction", "description", "תיאור")
CATEGORY_HEADERS: tuple[str, ...] = ("category", "קטגוריה")

PALETTE: tuple[str, ...] = (
    "#ef4444",
    "#f97316",
    "#f59e0b",
    "#eab308",
    "#84cc16",
    "#22c55e",
    "#10b981",
    "#14b8a6",
    "#06b6d4",
    "#0ea5e9",
    "#3b82f6",
    "#6366f1",
    "#8b5cf6",
    "#a855f7",
    "#d946ef",
    "#ec4899",
    "#f43f5e",
)

# Latin letters, digits and the Hebrew block survive in generated ids.
_ID_UNSAFE_RE = re.compile(r"[^a-z0-9\u0590-\u05ff]")

_logger = get_logger("statement_ingest.category_import")


@dataclass(frozen=True, slots=True)
class CategoryImportResult:
    categories: list[Category]
    transactions: list[Transaction]
    created: list[Category]
    updated: int


def category_id_for(name: str) -> str:
    return _ID_UNSAFE_RE.sub("_", name.lower())


def _pick(record: dict[str, str], names: Sequence[str]) -> str:
    lowered = {k.strip().lower(): v for k, v in record.items()}
    for name in names:
        value = lowered.get(name)
        if value and value.strip():
            return value.strip()
    return ""


def read_category_mapping(text: str) -> dict[str, str]:
    """Description → category name, keyed by both the exact and lowercased description."""

    mapping: dict[str, str] = {}
    for rec in read_csv_records(text):
        description = _pick(rec, DESCRIPTION_HEADERS)
        category = _pick(rec, CATEGORY_HEADERS)
        if not description or not category:
            continue
        mapping[description] = category
        mapping[description.lower()] = category
    return mapping


def _match(description: str, mapping: dict[str, str]) -> str | None:
    text = description.strip()
    if text in mapping:
        return mapping[text]
    lowered = text.lower()
    if lowered in mapping:
        return mapping[lowered]
    for key, category in mapping.items():
        k = key.lower()
        if k and (k in lowered or lowered in k):
            return category
    return None


def apply_category_csv(
    text: str,
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    rng: random.Random | None = None,
) -> CategoryImportResult:
    """Apply a description→category CSV to ``transactions``.

    Inputs are not modified; the result carries the new category list and
    the re-categorized transactions.
    """

    rng = rng or random.Random()
    mapping = read_category_mapping(text)

    name_to_id: dict[str, str] = {}
    for cat in categories:
        name_to_id[cat.name.lower()] = cat.id
        name_to_id[cat.id.lower()] = cat.id

    created: list[Category] = []
    for name in dict.fromkeys(mapping.values()):
        lowered = name.lower()
        if lowered in name_to_id:
            continue
        new = Category(id=category_id_for(name), name=name, color=rng.choice(PALETTE))
        created.append(new)
        name_to_id[lowered] = new.id
        _logger.debug("category_import:created name=%s id=%s", name, new.id)

    updated = 0
    out: list[Transaction] = []
    for tx in transactions:
        matched = _match(tx.description, mapping)
        if matched is None:
            out.append(tx)
            continue
        category_id = name_to_id.get(matched.lower(), OTHER_CATEGORY_ID)
        if tx.category != category_id:
            updated += 1
        out.append(tx.with_category(category_id))

    _logger.info(
        "category_import:applied keys=%d created=%d updated=%d",
        len(mapping),
        len(created),
        updated,
    )
    return CategoryImportResult(
        categories=[*categories, *created],
        transactions=out,
        created=created,
        updated=updated,
    )


__all__ = [
    "CategoryImportResult",
    "PALETTE",
    "apply_category_csv",
    "category_id_for",
    "read_category_mapping",
]
