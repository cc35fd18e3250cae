"""Bank-specific intermediate records.

Row normalizers emit these; :mod:`statement_ingest.ingest.standardize`
converts them into canonical :class:`~statement_ingest.models.Transaction`
objects. Each record keeps the 1-based sheet row it came from so rejected
and accepted rows can be traced back to the source file.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal, TypeAlias

from ..models import BankType

DiscountType: TypeAlias = Literal["income", "credit-debit", "direct-debit", "expense", "other"]
DiscountTable: TypeAlias = Literal["main", "credit"]
MaxVariant: TypeAlias = Literal["max-shekel", "max-foreign"]


@dataclass(frozen=True, slots=True)
class DiscountRecord:
    row: int
    table: DiscountTable
    date: str
    description: str
    amount: Decimal
    type: DiscountType
    balance: Decimal | None = None
    reference: str | None = None
    value_date: str | None = None
    fee: Decimal | None = None
    channel: str | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class MaxRecord:
    row: int
    variant: MaxVariant
    date: str
    merchant: str
    charge_amount: Decimal
    category: str = ""
    card_digits: str = ""
    transaction_type: str = ""
    charge_currency: str = "ILS"
    original_amount: Decimal | None = None
    original_currency: str = "ILS"
    charge_date: str | None = None
    notes: str = ""
    tags: str = ""


@dataclass(frozen=True, slots=True)
class CalRecord:
    row: int
    date: str
    merchant: str
    amount: Decimal
    card: str = ""
    charge_date: str | None = None
    transaction_type: str = ""
    digital_wallet_id: str = ""
    notes: str = ""


@dataclass(frozen=True, slots=True)
class GenericRecord:
    row: int
    bank: BankType
    date: str
    description: str
    amount: Decimal
    balance: Decimal | None = None
    reference: str | None = None


__all__ = [
    "CalRecord",
    "DiscountRecord",
    "DiscountTable",
    "DiscountType",
    "GenericRecord",
    "MaxRecord",
    "MaxVariant",
]
