"""Rule-based categorization of transactions.

Categories are checked in store order and each category's rules in their
own order; the first rule that is a substring of the lowercased description
decides. Descriptions no rule matches get a keyword fallback chosen by the
sign of the amount, and finally the ``"other"`` sentinel.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Protocol

from .models import Category

OTHER_CATEGORY_ID = "other"

_INCOME_FALLBACKS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("salary", ("משכורת", "שכר", "salary")),
)

_EXPENSE_FALLBACKS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("shopping", ("רכישה", "קניה", "קניות")),
    ("transport", ("דלק", "תחבורה", "רכבת", "מונית")),
    ("bills", ("חשמל", "מים", "ארנונה", "גז")),
    ("food", ("סופרמרקט", "מכולת", "מזון")),
)

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="food", name="מזון", color="#ef4444", rules=("שופרסל", "רמי לוי", "יוחננוף", "ויקטורי")),
    Category(id="transport", name="תחבורה", color="#3b82f6", rules=("פז", "סונול", "דלק", "רב קו", "גט טקסי")),
    Category(id="shopping", name="קניות", color="#8b5cf6", rules=("amazon", "aliexpress", "איקאה")),
    Category(id="bills", name="חשבונות", color="#f59e0b", rules=("חברת החשמל", "בזק", "סלקום", "פרטנר")),
    Category(id="healthcare", name="בריאות", color="#10b981", rules=("סופר-פארם", "מכבי", "כללית")),
    Category(id="entertainment", name="בילוי", color="#ec4899", rules=("סינמה", "מסעדה", "קפה")),
    Category(id="salary", name="משכורת", color="#22c55e", rules=("משכורת", "שכר")),
    Category(id=OTHER_CATEGORY_ID, name="אחר", color="#6b7280", rules=()),
)


class Describable(Protocol):
    @property
    def description(self) -> str: ...

    @property
    def amount(self) -> Decimal: ...


def _first_fallback(
    description: str, table: tuple[tuple[str, tuple[str, ...]], ...]
) -> str | None:
    for category_id, keywords in table:
        if any(k in description for k in keywords):
            return category_id
    return None


def categorize_transaction(tx: Describable, categories: Sequence[Category]) -> str:
    """Return the category id for ``tx``."""

    description = tx.description.lower()
    for category in categories:
        for rule in category.rules:
            if rule and rule in description:
                return category.id

    table = _INCOME_FALLBACKS if tx.amount > 0 else _EXPENSE_FALLBACKS
    return _first_fallback(description, table) or OTHER_CATEGORY_ID


__all__ = ["DEFAULT_CATEGORIES", "OTHER_CATEGORY_ID", "categorize_transaction"]
