"""Data models and type aliases for ``statement_ingest``.

The canonical :class:`Transaction` is a frozen ``dataclass`` with explicit
field order. Parsers emit bank-specific intermediate records (defined next to
each adapter) which the standardization adapter converts into this shape.

Amounts are ``Decimal`` values with the canonical sign convention:
positive means money entered the account, negative means it left. Dates are
ISO ``YYYY-MM-DD`` strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Generic, Literal, TypeAlias, TypeVar

from pydantic import BaseModel, ConfigDict, field_validator

BankType: TypeAlias = Literal["max", "discount", "cal", "unknown"]
"""Origin parser tag carried by every canonical transaction."""

BANK_TYPES: tuple[str, ...] = ("max", "discount", "cal", "unknown")


# ---------------------------------------------------------------------------
# Canonical records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single normalized transaction.

    Only ``category`` is expected to change after creation; use
    :meth:`with_category` to obtain an updated copy.
    """

    id: str
    date: str
    description: str
    amount: Decimal
    bank: BankType
    charge_date: str | None = None
    balance: Decimal | None = None
    category: str | None = None
    reference: str | None = None
    location: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Transaction.id must be non-empty")
        if self.amount.is_nan():
            raise ValueError(f"Transaction {self.id!r} has a NaN amount")

    def with_category(self, category: str | None) -> Transaction:
        return replace(self, category=category)


@dataclass(frozen=True, slots=True)
class UpcomingCharge:
    """A pending debit, e.g. a card charge not yet settled."""

    id: str
    date: str
    description: str
    amount: Decimal
    bank: BankType
    category: str | None = None

    def with_category(self, category: str | None) -> UpcomingCharge:
        return replace(self, category=category)


# ---------------------------------------------------------------------------
# Row-level outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SkippedRow:
    """A rejected input row: 1-based sheet row (or CSV data line) and why."""

    row: int
    reason: str


T = TypeVar("T")


@dataclass(slots=True)
class NormalizedRows(Generic[T]):
    """Records produced by a normalizer plus the rows it rejected."""

    records: list[T] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)

    def extend(self, other: NormalizedRows[T]) -> None:
        self.records.extend(other.records)
        self.skipped.extend(other.skipped)


@dataclass(slots=True)
class ParseResult:
    """Output contract of ``parse_file_data``.

    ``processed_upcoming_charges`` is ``None`` for every parser except the
    Discount dual-table parser.
    """

    processed_transactions: list[Transaction]
    processed_upcoming_charges: list[Transaction] | None = None
    skipped: list[SkippedRow] = field(default_factory=list)
    parser: str = ""

    @property
    def total(self) -> int:
        return len(self.processed_transactions) + len(self.processed_upcoming_charges or ())


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


class Category(BaseModel):
    """A user category with ordered substring rules.

    ``rules`` are stored lowercased and trimmed; empty entries are dropped so
    a blank rule can never match every description.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    name: str
    color: str = "#6b7280"
    rules: tuple[str, ...] = ()

    @field_validator("id")
    @classmethod
    def _id_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("category id must be non-empty")
        return v

    @field_validator("color")
    @classmethod
    def _color_hex(cls, v: str) -> str:
        if not _COLOR_RE.match(v):
            raise ValueError(f"color must be #rrggbb, got {v!r}")
        return v.lower()

    @field_validator("rules")
    @classmethod
    def _normalize_rules(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(r.strip().lower() for r in v if r and r.strip())


__all__ = [
    "BANK_TYPES",
    "BankType",
    "Category",
    "NormalizedRows",
    "ParseResult",
    "SkippedRow",
    "Transaction",
    "UpcomingCharge",
]
