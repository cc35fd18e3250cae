"""Standardization adapter: bank records → canonical ``Transaction``.

Identifiers are deterministic so golden-file tests can assert exact output::

    <bank>-<date>-<amount>-<sha256(bank|date|amount|description[|table])[:12]>-<seq>

Discount passes its table kind (``main`` or ``credit``) so a card charge and
a checking-account line with the same content never share an id, even
when they arrive in different imports.

``seq`` counts repeats of identical content within one :class:`IdFactory`
(one parse pass), keeping ids unique even when a file lists the same
purchase twice.
"""

from __future__ import annotations

import hashlib
from collections import Counter
from collections.abc import Callable, Iterable
from typing import TypeVar
from decimal import Decimal

from ..models import BankType, Transaction
from .cells import format_amount
from .records import CalRecord, DiscountRecord, DiscountType, GenericRecord, MaxRecord

_DISCOUNT_TYPE_CATEGORY: dict[DiscountType, str] = {
    "income": "salary",
    "credit-debit": "shopping",
    "direct-debit": "bills",
    "expense": "other",
    "other": "other",
}


class IdFactory:
    """Issue content-derived transaction ids for one parse pass."""

    def __init__(self) -> None:
        self._seen: Counter[str] = Counter()

    def make(
        self,
        bank: BankType,
        date: str,
        amount: Decimal,
        description: str,
        *,
        table: str | None = None,
    ) -> str:
        amount_s = format_amount(amount)
        payload = f"{bank}|{date}|{amount_s}|{description}"
        if table:
            payload += f"|{table}"
        digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()[:12]
        seq = self._seen[digest]
        self._seen[digest] += 1
        return f"{bank}-{date}-{amount_s}-{digest}-{seq}"


def discount_to_transaction(rec: DiscountRecord, ids: IdFactory) -> Transaction:
    """Credit-table rows carry their value date as ``charge_date``."""

    return Transaction(
        id=ids.make("discount", rec.date, rec.amount, rec.description, table=rec.table),
        date=rec.date,
        description=rec.description,
        amount=rec.amount,
        bank="discount",
        charge_date=rec.value_date if rec.table == "credit" else None,
        balance=rec.balance,
        category=_DISCOUNT_TYPE_CATEGORY[rec.type],
        reference=rec.reference,
    )


def max_description(rec: MaxRecord) -> str:
    if rec.category:
        return f"{rec.merchant} - {rec.category}"
    return rec.merchant


def max_to_transaction(rec: MaxRecord, ids: IdFactory) -> Transaction:
    description = max_description(rec)
    return Transaction(
        id=ids.make("max", rec.date, rec.charge_amount, description),
        date=rec.date,
        description=description,
        amount=rec.charge_amount,
        bank="max",
        charge_date=rec.charge_date,
        reference=rec.card_digits or None,
        location=rec.merchant or None,
    )


def cal_to_transaction(rec: CalRecord, ids: IdFactory) -> Transaction:
    return Transaction(
        id=ids.make("cal", rec.date, rec.amount, rec.merchant),
        date=rec.date,
        description=rec.merchant,
        amount=rec.amount,
        bank="cal",
        charge_date=rec.charge_date,
        reference=rec.card or None,
        location=rec.merchant or None,
    )


def generic_to_transaction(rec: GenericRecord, ids: IdFactory) -> Transaction:
    return Transaction(
        id=ids.make(rec.bank, rec.date, rec.amount, rec.description),
        date=rec.date,
        description=rec.description,
        amount=rec.amount,
        bank=rec.bank,
        balance=rec.balance,
        reference=rec.reference,
    )


R = TypeVar("R")


def standardize(
    records: Iterable[R],
    convert: Callable[[R, IdFactory], Transaction],
    ids: IdFactory | None = None,
) -> list[Transaction]:
    factory = ids if ids is not None else IdFactory()
    return [convert(rec, factory) for rec in records]


__all__ = [
    "IdFactory",
    "cal_to_transaction",
    "discount_to_transaction",
    "generic_to_transaction",
    "max_description",
    "max_to_transaction",
    "standardize",
]
