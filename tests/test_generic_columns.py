from __future__ import annotations

from decimal import Decimal

import pytest

from statement_ingest.errors import NoRecognizedTableError
from statement_ingest.ingest.adapters.generic_columns import (
    detect_bank_type,
    parse_csv_text,
    parse_sheet,
    resolve_column,
    resolve_mapping,
)


@pytest.mark.parametrize(
    ("headers", "expected"),
    [
        (["תאריך", "תיאור", "סכום"], "max"),
        (["Date", "Details", "יתרה"], "max"),
        (["DATE", "DESCRIPTION", "AMOUNT", "BALANCE"], "discount"),
        (["Date", "Merchant", "Amount"], "cal"),
        (["Date", "Memo", "Balance"], "unknown"),
        (["when", "what"], "unknown"),
    ],
)
def test_detect_bank_type(headers, expected):
    assert detect_bank_type(headers) == expected


def test_resolve_column_exact_before_substring():
    headers = ["Transaction Date", "Date", "Amount (ILS)"]
    assert resolve_column(headers, ("date",)) == "Date"
    assert resolve_column(headers, ("amount",)) == "Amount (ILS)"
    assert resolve_column(headers, ("balance",)) is None
    assert resolve_column(headers, ()) is None


def test_resolve_mapping_requires_core_columns():
    assert resolve_mapping(["Date", "Memo", "Amount"]) is None
    mapping = resolve_mapping(["Date", "Transaction Description", "Amount"])
    assert mapping is not None
    assert mapping.bank == "cal"
    assert mapping.description == "Transaction Description"


def test_csv_amounts_are_taken_as_written():
    text = (
        "Date,Description,Amount,Balance\n"
        "2024-03-01,Salary,12000,15000\n"
        "01/03/2024,Coffee,-12.50,14987.5\n"
        "soon,Broken,1,\n"
        "2024-03-02,,5,\n"
    )
    result = parse_csv_text(text, "export.csv")

    assert result.parser == "generic"
    salary, coffee = result.processed_transactions
    assert salary.bank == "discount"
    assert salary.amount == Decimal("12000")
    assert salary.balance == Decimal("15000")
    assert coffee.date == "2024-03-01"
    assert coffee.amount == Decimal("-12.50")

    # CSV data lines count from 2 (line 1 is the header)
    assert [(s.row, s.reason.split(":")[0]) for s in result.skipped] == [
        (4, "invalid date"),
        (5, "missing required field"),
    ]


def test_hebrew_csv_maps_to_max_columns():
    text = "תאריך,תיאור,סכום,יתרה,אסמכתה\n05/03/2024,שופרסל,-230,1000,99\n"
    [tx] = parse_csv_text(text).processed_transactions

    assert tx.bank == "max"
    assert tx.amount == Decimal("-230")
    assert tx.balance == Decimal("1000")
    # Max's column set has no reference column
    assert tx.reference is None


def test_csv_without_rows_or_columns_is_not_recognized():
    with pytest.raises(NoRecognizedTableError):
        parse_csv_text("")
    with pytest.raises(NoRecognizedTableError):
        parse_csv_text("Date,Memo,Amount\n2024-03-01,x,1\n")


def test_parse_sheet_finds_header_below_title():
    sheet = [
        ["Account export"],
        [],
        ["Date", "Description", "Amount"],
        ["2024-03-01", "Rent", -4000],
        [],
        ["2024-03-02", "Refund", 20.5],
    ]
    result = parse_sheet(sheet, "sheet.xlsx")

    assert [t.description for t in result.processed_transactions] == ["Rent", "Refund"]
    assert result.processed_transactions[0].amount == Decimal("-4000")
    assert result.processed_transactions[1].amount == Decimal("20.5")


def test_parse_sheet_without_header_raises():
    with pytest.raises(NoRecognizedTableError):
        parse_sheet([["nothing"], ["here"]])
