"""Adapter for Discount Bank XLSX exports.

A single Discount sheet may stack two independent tables, each with its own
header row:

- the main checking-account table::

    תאריך | יום ערך | תיאור התנועה | ₪ זכות/חובה | ₪ יתרה | אסמכתה | עמלה | ערוץ ביצוע

- the bank's own credit-card table::

    תאריך עסקה | תאריך חיוב | שם בית העסק | ₪ סכום חיוב | ₪ יתרה | הערות

A row is a header when at least four of its cells equal a table's labels
exactly, the date and amount labels among them. Each body runs until the
first fully blank row (or the next header, or the end of the sheet).

Main-table rows go to ``processed_transactions``. Credit-table rows go to
``processed_upcoming_charges`` with the charge date taken from the
``תאריך חיוב`` column. Main-table rows that are the monthly debit of an
external card company (keyword match on the description and a negative
amount) are dropped so they are not counted twice next to that company's own
statement.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Literal, TypeAlias

from ...errors import TableNotFoundError
from ...logging_setup import get_logger
from ...models import BankType, NormalizedRows, ParseResult, SkippedRow, Transaction
from ..cells import (
    DMY_DOT,
    DMY_SLASH,
    YMD_DASH,
    clean_text,
    is_blank,
    optional_text,
    parse_amount,
    parse_iso_date,
)
from ..reader import Workbook
from ..records import DiscountRecord, DiscountTable, DiscountType
from ..standardize import IdFactory, discount_to_transaction, standardize
from .base import HeaderSpec, LocatedTable, cell, locate_tables

DiscountVariant: TypeAlias = Literal["discount", "discount-transactions", "discount-credit"]

MAIN_TABLE = HeaderSpec.of(
    "main",
    {
        "date": "תאריך",
        "value_date": "יום ערך",
        "description": "תיאור התנועה",
        "amount": "₪ זכות/חובה",
        "balance": "₪ יתרה",
        "reference": "אסמכתה",
        "fee": "עמלה",
        "channel": "ערוץ ביצוע",
    },
    min_matches=4,
    required=("date", "amount"),
)

CREDIT_TABLE = HeaderSpec.of(
    "credit",
    {
        "date": "תאריך עסקה",
        "value_date": "תאריך חיוב",
        "description": "שם בית העסק",
        "amount": "₪ סכום חיוב",
        "balance": "₪ יתרה",
        "notes": "הערות",
    },
    min_matches=4,
    required=("date", "amount"),
)

DATE_PATTERNS = (DMY_SLASH, YMD_DASH, DMY_DOT)

# Monthly summary debits of other card issuers, matched case-insensitively.
EXTERNAL_CARD_KEYWORDS: tuple[str, ...] = (
    "cal",
    "max",
    "כאל",
    "מקס",
    "ישראכרט",
    "לאומי קארד",
    "אמריקן אקספרס",
    "דיינרס",
    "חיוב כרטיס אשראי",
)

CREDIT_CARD_KEYWORDS: tuple[str, ...] = (
    "חיוב כרטיס אשראי",
    "max",
    "cal",
    "ישראכרט",
    "לאומי קארד",
    "כאל",
    "מקס",
)

DIRECT_DEBIT_KEYWORDS: tuple[str, ...] = (
    "הוראת קבע",
    "חיוב ישיר",
    "חשמל",
    "מים",
    "ארנונה",
    "סלולר",
    "ביטוח",
    "טלוויזיה",
    "אינטרנט",
    "גז",
)

_logger = get_logger("statement_ingest.ingest.adapters.discount_xlsx")


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(k.lower() in lowered for k in keywords)


def classify_discount_type(description: str, amount: Decimal) -> DiscountType:
    """Coarse movement type, used only to pick a default category."""

    if amount > 0:
        return "income"
    if _contains_any(description, CREDIT_CARD_KEYWORDS):
        return "credit-debit"
    if _contains_any(description, DIRECT_DEBIT_KEYWORDS):
        return "direct-debit"
    if amount < 0:
        return "expense"
    return "other"


def is_external_card_summary(description: str, amount: Decimal) -> bool:
    return amount < 0 and _contains_any(description, EXTERNAL_CARD_KEYWORDS)


def normalize_discount_table(table: LocatedTable) -> NormalizedRows[DiscountRecord]:
    """Normalize the body of one located Discount table.

    Rows with neither date, description nor amount are ignored. Rows with an
    unparseable date, a missing description, or an amount that is missing,
    unparseable or exactly zero are rejected. The external-card filter only
    applies to the main table.
    """

    kind: DiscountTable = "credit" if table.spec.name == "credit" else "main"
    cols = table.columns
    out: NormalizedRows[DiscountRecord] = NormalizedRows()

    def skip(row_no: int, reason: str) -> None:
        _logger.debug("discount:row_skipped table=%s row=%d reason=%s", kind, row_no, reason)
        out.skipped.append(SkippedRow(row=row_no, reason=reason))

    for row_no, row in table.body:
        date_v = cell(row, cols.get("date"))
        description = clean_text(cell(row, cols.get("description")))
        amount_v = cell(row, cols.get("amount"))

        if is_blank(date_v) and not description and is_blank(amount_v):
            continue

        date = parse_iso_date(date_v, DATE_PATTERNS)
        if date is None:
            skip(row_no, f"invalid date: {date_v!r}")
            continue
        if not description:
            skip(row_no, "missing description")
            continue
        amount = parse_amount(amount_v)
        if amount is None:
            skip(row_no, f"invalid amount: {amount_v!r}")
            continue
        if amount == 0:
            skip(row_no, "no amount found")
            continue

        if kind == "main" and is_external_card_summary(description, amount):
            skip(row_no, "external card summary")
            continue

        out.records.append(
            DiscountRecord(
                row=row_no,
                table=kind,
                date=date,
                description=description,
                amount=amount,
                type=classify_discount_type(description, amount),
                balance=parse_amount(cell(row, cols.get("balance"))),
                reference=optional_text(cell(row, cols.get("reference"))),
                value_date=parse_iso_date(cell(row, cols.get("value_date")), DATE_PATTERNS),
                fee=parse_amount(cell(row, cols.get("fee"))),
                channel=optional_text(cell(row, cols.get("channel"))),
                notes=optional_text(cell(row, cols.get("notes"))),
            )
        )

    return out


class DiscountParser:
    """Discount Bank parser; the variant selects which tables are read."""

    bank: BankType = "discount"

    def __init__(self, variant: DiscountVariant = "discount") -> None:
        self.name = variant
        if variant == "discount-transactions":
            self._specs: tuple[HeaderSpec, ...] = (MAIN_TABLE,)
        elif variant == "discount-credit":
            self._specs = (CREDIT_TABLE,)
        else:
            self._specs = (MAIN_TABLE, CREDIT_TABLE)

    def locate(self, workbook: Workbook) -> list[LocatedTable]:
        return locate_tables(workbook.first_sheet(), self._specs)

    def detect(self, workbook: Workbook) -> bool:
        return bool(self.locate(workbook))

    def parse(self, workbook: Workbook) -> ParseResult:
        tables = self.locate(workbook)
        if not tables:
            raise TableNotFoundError(
                f"{self.name}: no Discount header row found in {workbook.filename}"
            )

        main: NormalizedRows[DiscountRecord] = NormalizedRows()
        credit: NormalizedRows[DiscountRecord] = NormalizedRows()
        for table in tables:
            rows = normalize_discount_table(table)
            (credit if table.spec.name == "credit" else main).extend(rows)

        ids = IdFactory()
        transactions: list[Transaction] = standardize(main.records, discount_to_transaction, ids)
        upcoming: list[Transaction] | None = None
        if CREDIT_TABLE in self._specs:
            upcoming = standardize(credit.records, discount_to_transaction, ids)

        skipped = sorted(main.skipped + credit.skipped, key=lambda s: s.row)
        _logger.info(
            "discount:parsed file=%s tables=%d transactions=%d upcoming=%d skipped=%d",
            workbook.filename,
            len(tables),
            len(transactions),
            len(upcoming or ()),
            len(skipped),
        )
        return ParseResult(
            processed_transactions=transactions,
            processed_upcoming_charges=upcoming,
            skipped=skipped,
            parser=self.name,
        )


__all__ = [
    "CREDIT_TABLE",
    "DiscountParser",
    "EXTERNAL_CARD_KEYWORDS",
    "MAIN_TABLE",
    "classify_discount_type",
    "is_external_card_summary",
    "normalize_discount_table",
]
