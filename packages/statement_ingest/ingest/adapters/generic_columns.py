"""Generic column mapper: the fallback for CSV files and unrecognized sheets.

The bank is guessed from the header names alone (:func:`detect_bank_type`),
then that bank's :class:`ColumnConfig` picks the date, description and
amount columns. No sign convention is applied: amounts are taken as written.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from ...errors import NoRecognizedTableError
from ...logging_setup import get_logger
from ...models import BankType, NormalizedRows, ParseResult, SkippedRow
from ..cells import (
    DMY_DASH,
    DMY_DOT,
    DMY_SLASH,
    YMD_DASH,
    clean_text,
    is_blank,
    optional_text,
    parse_amount,
    parse_iso_date,
)
from ..reader import Sheet, read_csv_records
from ..records import GenericRecord
from ..standardize import generic_to_transaction, standardize
from .base import cell

PARSER_NAME = "generic"

HEADER_SCAN_ROWS = 10

DATE_PATTERNS = (DMY_SLASH, YMD_DASH, DMY_DOT, DMY_DASH)


@dataclass(frozen=True, slots=True)
class ColumnConfig:
    """Candidate header names per canonical field, most specific first."""

    name: str
    date: tuple[str, ...]
    description: tuple[str, ...]
    amount: tuple[str, ...]
    balance: tuple[str, ...] = ()
    reference: tuple[str, ...] = ()


COLUMN_CONFIGS: Mapping[BankType, ColumnConfig] = MappingProxyType(
    {
        "max": ColumnConfig(
            name="בנק מקס",
            date=("תאריך",),
            description=("תיאור",),
            amount=("סכום",),
            balance=("יתרה",),
        ),
        "discount": ColumnConfig(
            name="בנק דיסקונט",
            date=("DATE",),
            description=("DESCRIPTION",),
            amount=("AMOUNT",),
            balance=("BALANCE",),
        ),
        "cal": ColumnConfig(
            name="CAL",
            date=("Date",),
            description=("Description",),
            amount=("Amount",),
        ),
        "unknown": ColumnConfig(
            name="לא ידוע",
            date=("date", "תאריך"),
            description=("description", "תיאור"),
            amount=("amount", "סכום"),
            balance=("balance", "יתרה"),
            reference=("reference", "אסמכתה"),
        ),
    }
)

_logger = get_logger("statement_ingest.ingest.adapters.generic_columns")


def detect_bank_type(headers: Iterable[str]) -> BankType:
    """Guess the bank from header names.

    Any Hebrew date or balance header means Max; ``date``, ``description``
    and ``amount`` together mean Discount; ``date`` without ``balance``
    means Cal.
    """

    lowered = [h.strip().lower() for h in headers if h]
    if any("תאריך" in h or "יתרה" in h for h in lowered):
        return "max"
    if "date" in lowered and "description" in lowered and "amount" in lowered:
        return "discount"
    if "date" in lowered and "balance" not in lowered:
        return "cal"
    return "unknown"


def resolve_column(headers: Sequence[str], candidates: Sequence[str]) -> str | None:
    """First candidate equal to a header (case-insensitive), else contained in one."""

    if not candidates:
        return None
    index: dict[str, str] = {}
    for h in headers:
        if h:
            index.setdefault(h.strip().lower(), h)
    for c in candidates:
        match = index.get(c.strip().lower())
        if match is not None:
            return match
    for c in candidates:
        needle = c.strip().lower()
        for key, header in index.items():
            if needle and needle in key:
                return header
    return None


@dataclass(frozen=True, slots=True)
class ColumnMapping:
    bank: BankType
    date: str
    description: str
    amount: str
    balance: str | None = None
    reference: str | None = None


def resolve_mapping(headers: Sequence[str]) -> ColumnMapping | None:
    """Guess the bank, then resolve its columns.

    Returns ``None`` when the date, description or amount column is missing.
    """

    bank = detect_bank_type(headers)
    config = COLUMN_CONFIGS[bank]
    date = resolve_column(headers, config.date)
    description = resolve_column(headers, config.description)
    amount = resolve_column(headers, config.amount)
    if date is None or description is None or amount is None:
        return None
    return ColumnMapping(
        bank=bank,
        date=date,
        description=description,
        amount=amount,
        balance=resolve_column(headers, config.balance),
        reference=resolve_column(headers, config.reference),
    )


def map_records(
    records: Iterable[tuple[int, Mapping[str, Any]]],
    mapping: ColumnMapping,
) -> NormalizedRows[GenericRecord]:
    """Normalize header-keyed records, each tagged with its source row number."""

    out: NormalizedRows[GenericRecord] = NormalizedRows()

    def skip(row_no: int, reason: str) -> None:
        _logger.debug("generic:row_skipped row=%d reason=%s", row_no, reason)
        out.skipped.append(SkippedRow(row=row_no, reason=reason))

    for row_no, rec in records:
        date_v = rec.get(mapping.date)
        description = clean_text(rec.get(mapping.description))
        amount_v = rec.get(mapping.amount)
        if is_blank(date_v) or not description or is_blank(amount_v):
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
            GenericRecord(
                row=row_no,
                bank=mapping.bank,
                date=date,
                description=description,
                amount=amount,
                balance=parse_amount(rec.get(mapping.balance)) if mapping.balance else None,
                reference=optional_text(rec.get(mapping.reference)) if mapping.reference else None,
            )
        )
    return out


def _to_result(
    rows: NormalizedRows[GenericRecord], mapping: ColumnMapping, source: str
) -> ParseResult:
    transactions = standardize(rows.records, generic_to_transaction)
    _logger.info(
        "generic:parsed source=%s bank=%s transactions=%d skipped=%d",
        source,
        mapping.bank,
        len(transactions),
        len(rows.skipped),
    )
    return ParseResult(
        processed_transactions=transactions, skipped=rows.skipped, parser=PARSER_NAME
    )


def parse_csv_text(text: str, source: str = "<csv>") -> ParseResult:
    """Parse CSV text with a header row. Data lines are numbered from 2."""

    records = read_csv_records(text)
    if not records:
        raise NoRecognizedTableError(f"{source}: CSV contains no data rows")
    headers = list(records[0].keys())
    mapping = resolve_mapping(headers)
    if mapping is None:
        raise NoRecognizedTableError(
            f"{source}: could not find date, description and amount columns in {headers}"
        )
    return _to_result(map_records(enumerate(records, start=2), mapping), mapping, source)


def parse_sheet(sheet: Sheet, source: str = "<sheet>") -> ParseResult:
    """Map the first of the top rows whose labels resolve into a header."""

    for idx, row in enumerate(sheet[:HEADER_SCAN_ROWS]):
        headers = [clean_text(v) for v in row]
        mapping = resolve_mapping(headers)
        if mapping is None:
            continue
        _logger.debug(
            "generic:header_found source=%s row=%d bank=%s", source, idx + 1, mapping.bank
        )
        body = (
            (n + 1, {h: cell(r, i) for i, h in enumerate(headers) if h})
            for n, r in enumerate(sheet[idx + 1 :], start=idx + 1)
            if any(not is_blank(v) for v in r)
        )
        return _to_result(map_records(body, mapping), mapping, source)

    raise NoRecognizedTableError(
        f"{source}: no header row with date, description and amount columns"
    )


__all__ = [
    "COLUMN_CONFIGS",
    "ColumnConfig",
    "ColumnMapping",
    "PARSER_NAME",
    "detect_bank_type",
    "map_records",
    "parse_csv_text",
    "parse_sheet",
    "resolve_column",
    "resolve_mapping",
]
