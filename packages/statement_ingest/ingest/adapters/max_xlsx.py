"""Adapter for Max credit-card XLSX exports.

Max splits a statement over two sheets with identical columns:

- ``עסקאות במועד החיוב``: shekel charges (variant ``max-shekel``)
- ``עסקאות חו"ל ומט"ח``: foreign-currency charges (variant ``max-foreign``)

The header row is the fourth row of the sheet; the three rows above it hold
the card holder and report period. When the named sheet is missing the first
sheet is read instead.

Every Max row is a card charge, so amounts are forced negative.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any

from ...errors import TableNotFoundError
from ...logging_setup import get_logger
from ...models import BankType, NormalizedRows, ParseResult, SkippedRow
from ..cells import (
    DMY_DASH,
    DMY_SLASH,
    YMD_DASH,
    clean_text,
    force_outflow,
    is_blank,
    is_blank_row,
    parse_amount,
    parse_iso_date,
)
from ..reader import Row, Sheet, Workbook
from ..records import MaxRecord, MaxVariant
from ..standardize import max_to_transaction, standardize
from .base import HeaderSpec, LocatedTable, cell, collect_body, is_header_row, resolve_exact

SHEET_NAMES: dict[MaxVariant, str] = {
    "max-shekel": "עסקאות במועד החיוב",
    "max-foreign": 'עסקאות חו"ל ומט"ח',
}

HEADER_ROW_INDEX = 3
# Exports with a shorter preamble put the header a little higher or lower.
_HEADER_SCAN_ROWS = 10

MAX_COLUMNS = HeaderSpec.of(
    "max",
    {
        "date": "תאריך עסקה",
        "merchant": "שם בית העסק",
        "category": "קטגוריה",
        "card_digits": "4 ספרות אחרונות של כרטיס האשראי",
        "transaction_type": "סוג עסקה",
        "charge_amount": "סכום חיוב",
        "charge_currency": "מטבע חיוב",
        "original_amount": "סכום עסקה מקורי",
        "original_currency": "מטבע עסקה מקורי",
        "charge_date": "תאריך חיוב",
        "notes": "הערות",
        "tags": "תיוגים",
        "discount_club": "מועדון הנחות",
        "discount_key": "מפתח דיסקונט",
        "execution_method": "אופן ביצוע ההעסקה",
        "exchange_rate": 'שער המרה ממטבע מקור/התחשבנות לש"ח',
    },
    min_matches=3,
    required=("date", "merchant", "charge_amount"),
)

DATE_PATTERNS = (DMY_DASH, DMY_SLASH, YMD_DASH)

_logger = get_logger("statement_ingest.ingest.adapters.max_xlsx")


def locate_max_table(sheet: Sheet) -> LocatedTable | None:
    """Return the Max table, preferring the header on the fourth row."""

    candidates = [HEADER_ROW_INDEX] + [
        i for i in range(min(_HEADER_SCAN_ROWS, len(sheet))) if i != HEADER_ROW_INDEX
    ]
    for idx in candidates:
        if idx >= len(sheet):
            continue
        if not is_header_row(sheet[idx], MAX_COLUMNS):
            continue
        return LocatedTable(
            spec=MAX_COLUMNS,
            header_row=idx + 1,
            columns=MappingProxyType(resolve_exact(sheet[idx], MAX_COLUMNS)),
            body=collect_body(sheet, idx, stop_at_blank=False),
        )
    return None


def normalize_max_table(table: LocatedTable, variant: MaxVariant) -> NormalizedRows[MaxRecord]:
    """Normalize Max body rows.

    A row needs a date, a merchant and a charge amount; anything else is
    optional. A charge date that does not parse is dropped, not the row.
    """

    cols = table.columns
    out: NormalizedRows[MaxRecord] = NormalizedRows()

    def get(row: Row, field: str) -> Any:
        return cell(row, cols.get(field))

    def skip(row_no: int, reason: str) -> None:
        _logger.debug("max:row_skipped variant=%s row=%d reason=%s", variant, row_no, reason)
        out.skipped.append(SkippedRow(row=row_no, reason=reason))

    for row_no, row in table.body:
        if is_blank_row(row):
            continue

        date_v = get(row, "date")
        merchant = clean_text(get(row, "merchant"))
        amount_v = get(row, "charge_amount")
        if is_blank(date_v) or not merchant or is_blank(amount_v):
            skip(row_no, "missing required field")
            continue

        date = parse_iso_date(date_v, DATE_PATTERNS)
        if date is None:
            skip(row_no, f"invalid date: {date_v!r}")
            continue
        amount = parse_amount(amount_v)
        if amount is None:
            skip(row_no, f"invalid amount: {amount_v!r}")
            continue
        amount = force_outflow(amount)

        original = parse_amount(get(row, "original_amount"))
        out.records.append(
            MaxRecord(
                row=row_no,
                variant=variant,
                date=date,
                merchant=merchant,
                charge_amount=amount,
                category=clean_text(get(row, "category")),
                card_digits=clean_text(get(row, "card_digits")),
                transaction_type=clean_text(get(row, "transaction_type")),
                charge_currency=clean_text(get(row, "charge_currency")) or "ILS",
                original_amount=original if original else amount,
                original_currency=clean_text(get(row, "original_currency")) or "ILS",
                charge_date=parse_iso_date(get(row, "charge_date"), DATE_PATTERNS),
                notes=clean_text(get(row, "notes")),
                tags=clean_text(get(row, "tags")),
            )
        )

    return out


class MaxParser:
    """Max credit-card parser for one sheet variant."""

    bank: BankType = "max"

    def __init__(self, variant: MaxVariant = "max-shekel") -> None:
        self.name: str = variant
        self.variant: MaxVariant = variant

    def sheet(self, workbook: Workbook) -> Sheet:
        name = SHEET_NAMES[self.variant]
        if workbook.has_sheet(name):
            return workbook.sheet(name)
        return workbook.first_sheet()

    def detect(self, workbook: Workbook) -> bool:
        return locate_max_table(self.sheet(workbook)) is not None

    def parse(self, workbook: Workbook) -> ParseResult:
        table = locate_max_table(self.sheet(workbook))
        if table is None:
            raise TableNotFoundError(
                f"{self.name}: Max header row not found in {workbook.filename}"
            )

        rows = normalize_max_table(table, self.variant)
        transactions = standardize(rows.records, max_to_transaction)
        _logger.info(
            "max:parsed file=%s variant=%s header_row=%d transactions=%d skipped=%d",
            workbook.filename,
            self.variant,
            table.header_row,
            len(transactions),
            len(rows.skipped),
        )
        return ParseResult(
            processed_transactions=transactions,
            skipped=rows.skipped,
            parser=self.name,
        )


__all__ = [
    "MAX_COLUMNS",
    "MaxParser",
    "SHEET_NAMES",
    "locate_max_table",
    "normalize_max_table",
]
