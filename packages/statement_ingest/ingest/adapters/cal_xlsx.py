"""Adapter for Cal credit-card XLSX exports.

Cal puts a title row or two above the table and wraps its header labels over
two lines (``"תאריך\\nעסקה"``). The header is the first of the top five rows
holding a date-like, a merchant-like and an amount-like cell; labels are
compared after whitespace is collapsed. Columns resolve by exact label first,
then by keyword for the fields that matter most.

Every Cal row is a card charge, so amounts are forced negative.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from ...errors import TableNotFoundError
from ...logging_setup import get_logger
from ...models import BankType, NormalizedRows, ParseResult, SkippedRow
from ..cells import (
    DMY_DASH,
    DMY_DOT,
    DMY_SLASH,
    DMY_SLASH_SHORT,
    YMD_DASH,
    clean_text,
    force_outflow,
    is_blank,
    is_blank_row,
    parse_amount,
    parse_iso_date,
)
from ..reader import Row, Sheet, Workbook
from ..records import CalRecord
from ..standardize import cal_to_transaction, standardize
from .base import HeaderSpec, LocatedTable, cell, collect_body, header_label, resolve_exact

CAL_COLUMNS = HeaderSpec.of(
    "cal",
    {
        "date": "תאריך עסקה",
        "merchant": "שם בית עסק",
        "amount": 'סכום בש"ח',
        "card": "כרטיס",
        "charge_date": "מועד חיוב",
        "transaction_type": "סוג עסקה",
        # Misspelled in the export itself.
        "digital_wallet_id": "מזהה כרטיס בארנק דיגילטי",
        "notes": "הערות",
    },
)

KEYWORD_FALLBACKS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "date": ("תאריך",),
        "merchant": ("בית עסק",),
        "amount": ("סכום", 'ש"ח'),
        "charge_date": ("מועד", "חיוב"),
    }
)

HEADER_SCAN_ROWS = 5

DATE_PATTERNS = (DMY_SLASH, DMY_DASH, YMD_DASH, DMY_DOT, DMY_SLASH_SHORT)

_logger = get_logger("statement_ingest.ingest.adapters.cal_xlsx")


def _any_contains(labels: list[str], needles: tuple[str, ...]) -> bool:
    return any(n in label for label in labels for n in needles)


def looks_like_cal_header(row: Row) -> bool:
    labels = [header_label(v) for v in row]
    return (
        _any_contains(labels, ("תאריך",))
        and _any_contains(labels, ("בית עסק",))
        and _any_contains(labels, ("סכום", 'ש"ח'))
    )


def resolve_cal_columns(row: Row) -> dict[str, int]:
    """Exact labels first; keyword fallback fills date/merchant/amount/charge date."""

    columns = resolve_exact(row, CAL_COLUMNS)
    used = set(columns.values())
    labels = [header_label(v) for v in row]
    for field, needles in KEYWORD_FALLBACKS.items():
        if field in columns:
            continue
        for idx, label in enumerate(labels):
            if idx in used or not label:
                continue
            if any(n in label for n in needles):
                columns[field] = idx
                used.add(idx)
                break
    return columns


def locate_cal_table(sheet: Sheet) -> LocatedTable | None:
    for idx, row in enumerate(sheet[:HEADER_SCAN_ROWS]):
        if not looks_like_cal_header(row):
            continue
        return LocatedTable(
            spec=CAL_COLUMNS,
            header_row=idx + 1,
            columns=MappingProxyType(resolve_cal_columns(row)),
            body=collect_body(sheet, idx, stop_at_blank=False),
        )
    return None


def normalize_cal_table(table: LocatedTable) -> NormalizedRows[CalRecord]:
    cols = table.columns
    out: NormalizedRows[CalRecord] = NormalizedRows()

    def skip(row_no: int, reason: str) -> None:
        _logger.debug("cal:row_skipped row=%d reason=%s", row_no, reason)
        out.skipped.append(SkippedRow(row=row_no, reason=reason))

    for row_no, row in table.body:
        if is_blank_row(row):
            continue

        date_v = cell(row, cols.get("date"))
        merchant = clean_text(cell(row, cols.get("merchant")))
        amount_v = cell(row, cols.get("amount"))
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

        out.records.append(
            CalRecord(
                row=row_no,
                date=date,
                merchant=merchant,
                amount=force_outflow(amount),
                card=clean_text(cell(row, cols.get("card"))),
                charge_date=parse_iso_date(cell(row, cols.get("charge_date")), DATE_PATTERNS),
                transaction_type=clean_text(cell(row, cols.get("transaction_type"))),
                digital_wallet_id=clean_text(cell(row, cols.get("digital_wallet_id"))),
                notes=clean_text(cell(row, cols.get("notes"))),
            )
        )

    return out


class CalParser:
    name = "cal"
    bank: BankType = "cal"

    def detect(self, workbook: Workbook) -> bool:
        return locate_cal_table(workbook.first_sheet()) is not None

    def parse(self, workbook: Workbook) -> ParseResult:
        table = locate_cal_table(workbook.first_sheet())
        if table is None:
            raise TableNotFoundError(f"cal: no Cal header row found in {workbook.filename}")

        rows = normalize_cal_table(table)
        transactions = standardize(rows.records, cal_to_transaction)
        _logger.info(
            "cal:parsed file=%s header_row=%d transactions=%d skipped=%d",
            workbook.filename,
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
    "CAL_COLUMNS",
    "CalParser",
    "locate_cal_table",
    "looks_like_cal_header",
    "normalize_cal_table",
    "resolve_cal_columns",
]
