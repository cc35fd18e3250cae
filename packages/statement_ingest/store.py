"""In-memory transaction store with JSON snapshot persistence.

``TransactionStore.add_parse_result`` is the merge step of an import:

1. drop incoming rows whose dedup key is already stored (or repeated earlier
   in the same batch)
2. categorize the survivors with the store's categories, replacing any
   default the parser assigned
3. append, then keep transactions newest-first and upcoming charges
   soonest-first

Snapshots are written atomically: ``<path>.tmp`` first, then ``os.replace``.
"""

from __future__ import annotations

import contextlib
import json
import os
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .categorization import DEFAULT_CATEGORIES, OTHER_CATEGORY_ID, categorize_transaction
from .duplicates import filter_new
from .errors import StoreFileError
from .logging_setup import get_logger
from .models import BANK_TYPES, Category, ParseResult, Transaction, UpcomingCharge

# Bump only when the on-disk snapshot shape changes.
SCHEMA_VERSION: int = 1

_logger = get_logger("statement_ingest.store")


@dataclass(frozen=True, slots=True)
class MergeSummary:
    added: int
    duplicates: int
    upcoming_added: int = 0
    upcoming_duplicates: int = 0


# ----------------------------------------------------------------------------
# Snapshot schema
# ----------------------------------------------------------------------------


class _BankTagged(BaseModel):
    model_config = ConfigDict(extra="forbid")

    @field_validator("bank", check_fields=False)
    @classmethod
    def _known_bank(cls, v: str) -> str:
        if v not in BANK_TYPES:
            raise ValueError(f"unknown bank {v!r}")
        return v


class TransactionRecord(_BankTagged):
    id: str
    date: str
    description: str
    amount: Decimal
    bank: str
    charge_date: str | None = None
    balance: Decimal | None = None
    category: str | None = None
    reference: str | None = None
    location: str | None = None

    @classmethod
    def from_transaction(cls, tx: Transaction) -> TransactionRecord:
        return cls(
            id=tx.id,
            date=tx.date,
            description=tx.description,
            amount=tx.amount,
            bank=tx.bank,
            charge_date=tx.charge_date,
            balance=tx.balance,
            category=tx.category,
            reference=tx.reference,
            location=tx.location,
        )

    def to_transaction(self) -> Transaction:
        return Transaction(
            id=self.id,
            date=self.date,
            description=self.description,
            amount=self.amount,
            bank=self.bank,  # type: ignore[arg-type]
            charge_date=self.charge_date,
            balance=self.balance,
            category=self.category,
            reference=self.reference,
            location=self.location,
        )


class UpcomingChargeRecord(_BankTagged):
    id: str
    date: str
    description: str
    amount: Decimal
    bank: str
    category: str | None = None

    @classmethod
    def from_charge(cls, ch: UpcomingCharge) -> UpcomingChargeRecord:
        return cls(
            id=ch.id,
            date=ch.date,
            description=ch.description,
            amount=ch.amount,
            bank=ch.bank,
            category=ch.category,
        )

    def to_charge(self) -> UpcomingCharge:
        return UpcomingCharge(
            id=self.id,
            date=self.date,
            description=self.description,
            amount=self.amount,
            bank=self.bank,  # type: ignore[arg-type]
            category=self.category,
        )


class StoreSnapshot(BaseModel):
    """Top-level schema of a store JSON file."""

    model_config = ConfigDict(extra="forbid")

    schema_version: int
    transactions: list[TransactionRecord]
    upcoming_charges: list[UpcomingChargeRecord]
    categories: list[Category]


# ----------------------------------------------------------------------------
# Store
# ----------------------------------------------------------------------------


def to_upcoming_charge(tx: Transaction) -> UpcomingCharge:
    return UpcomingCharge(
        id=tx.id,
        date=tx.charge_date or tx.date,
        description=tx.description,
        amount=tx.amount,
        bank=tx.bank,
        category=tx.category,
    )


class TransactionStore:
    """Accumulated transactions, upcoming charges and categories."""

    def __init__(
        self,
        transactions: Iterable[Transaction] = (),
        upcoming_charges: Iterable[UpcomingCharge] = (),
        categories: Iterable[Category] | None = None,
    ) -> None:
        self.transactions: list[Transaction] = list(transactions)
        self.upcoming_charges: list[UpcomingCharge] = list(upcoming_charges)
        self.categories: list[Category] = list(
            DEFAULT_CATEGORIES if categories is None else categories
        )

    # -- merge -----------------------------------------------------------------

    def add_parse_result(self, result: ParseResult) -> MergeSummary:
        """Merge one parse result; re-merging the same result adds nothing."""

        fresh, dupes = filter_new(self.transactions, result.processed_transactions)
        categorized = [
            tx.with_category(categorize_transaction(tx, self.categories)) for tx in fresh
        ]

        incoming_upcoming = [
            to_upcoming_charge(tx).with_category(categorize_transaction(tx, self.categories))
            for tx in result.processed_upcoming_charges or ()
        ]
        fresh_upcoming, upcoming_dupes = filter_new(self.upcoming_charges, incoming_upcoming)

        self.transactions = sorted(
            [*self.transactions, *categorized], key=lambda t: t.date, reverse=True
        )
        self.upcoming_charges = sorted(
            [*self.upcoming_charges, *fresh_upcoming], key=lambda c: c.date
        )

        summary = MergeSummary(
            added=len(categorized),
            duplicates=dupes,
            upcoming_added=len(fresh_upcoming),
            upcoming_duplicates=upcoming_dupes,
        )
        _logger.info(
            "store:merged parser=%s added=%d duplicates=%d upcoming_added=%d upcoming_duplicates=%d",
            result.parser,
            summary.added,
            summary.duplicates,
            summary.upcoming_added,
            summary.upcoming_duplicates,
        )
        return summary

    def update_transaction_category(self, tx_id: str, category_id: str) -> bool:
        """Set the category of one transaction; ``False`` when the id is unknown."""

        for i, tx in enumerate(self.transactions):
            if tx.id == tx_id:
                self.transactions[i] = tx.with_category(category_id)
                return True
        return False

    def add_category(self, category: Category) -> None:
        if any(c.id == category.id for c in self.categories):
            raise ValueError(f"category {category.id!r} already exists")
        self.categories.append(category)

    def delete_category(self, category_id: str) -> None:
        """Remove a category; its transactions fall back to ``other``."""

        if category_id == OTHER_CATEGORY_ID:
            raise ValueError("the 'other' category cannot be deleted")
        self.categories = [c for c in self.categories if c.id != category_id]
        self.transactions = [
            t.with_category(OTHER_CATEGORY_ID) if t.category == category_id else t
            for t in self.transactions
        ]

    def reset(self) -> None:
        self.transactions = []
        self.upcoming_charges = []
        self.categories = list(DEFAULT_CATEGORIES)

    # -- summaries -------------------------------------------------------------

    def by_category(self) -> dict[str, list[Transaction]]:
        groups: dict[str, list[Transaction]] = defaultdict(list)
        for tx in self.transactions:
            groups[tx.category or OTHER_CATEGORY_ID].append(tx)
        return dict(groups)

    def monthly_balance(self) -> list[tuple[str, Decimal]]:
        """Net amount per ``YYYY-MM``, oldest month first."""

        totals: dict[str, Decimal] = defaultdict(Decimal)
        for tx in self.transactions:
            totals[tx.date[:7]] += tx.amount
        return sorted(totals.items())

    def top_expenses(self, limit: int = 10) -> list[Transaction]:
        expenses = [t for t in self.transactions if t.amount < 0]
        return sorted(expenses, key=lambda t: t.amount)[:limit]

    # -- persistence -----------------------------------------------------------

    def to_snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            schema_version=SCHEMA_VERSION,
            transactions=[TransactionRecord.from_transaction(t) for t in self.transactions],
            upcoming_charges=[UpcomingChargeRecord.from_charge(c) for c in self.upcoming_charges],
            categories=list(self.categories),
        )

    @classmethod
    def from_snapshot(cls, snapshot: StoreSnapshot) -> TransactionStore:
        return cls(
            transactions=[r.to_transaction() for r in snapshot.transactions],
            upcoming_charges=[r.to_charge() for r in snapshot.upcoming_charges],
            categories=snapshot.categories,
        )

    def save(self, path: str | Path) -> None:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        tmp = p.with_suffix(p.suffix + ".tmp")
        payload = self.to_snapshot().model_dump(mode="json")
        try:
            tmp.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp, p)
        except Exception:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
            raise
        _logger.debug(
            "store:saved path=%s transactions=%d upcoming=%d",
            os.fspath(p),
            len(self.transactions),
            len(self.upcoming_charges),
        )

    @classmethod
    def load(cls, path: str | Path) -> TransactionStore:
        """Load a snapshot; a missing file yields an empty store."""

        p = Path(path)
        if not p.exists():
            _logger.debug("store:missing path=%s; starting empty", os.fspath(p))
            return cls()
        try:
            snapshot = StoreSnapshot.model_validate_json(p.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            raise StoreFileError(f"Unable to read store {p}: {exc}") from exc
        if snapshot.schema_version != SCHEMA_VERSION:
            raise StoreFileError(
                f"Store {p} has schema_version {snapshot.schema_version}; "
                f"expected {SCHEMA_VERSION}"
            )
        return cls.from_snapshot(snapshot)


__all__ = [
    "MergeSummary",
    "SCHEMA_VERSION",
    "StoreFileError",
    "StoreSnapshot",
    "TransactionStore",
    "to_upcoming_charge",
]
