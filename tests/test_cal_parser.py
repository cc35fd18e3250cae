from __future__ import annotations

from decimal import Decimal

import pytest

from statement_ingest.errors import TableNotFoundError
from statement_ingest.ingest.adapters.cal_xlsx import (
    CalParser,
    looks_like_cal_header,
    resolve_cal_columns,
)
from statement_ingest.ingest.reader import load_workbook
from tests.helpers.workbooks import CAL_HEADER, MAX_HEADER, build_xlsx, cal_rows


def _cal_workbook(rows):
    return load_workbook(build_xlsx({"Sheet1": rows}), "cal.xlsx")


def test_wrapped_header_and_rows_are_normalized():
    wb = _cal_workbook(
        cal_rows(
            [
                ["01/03/2024", "קפה גרג", 42.9, "5678", "10/04/2024", "רגילה", None, None],
                ["15/03/24", "סונול", "₪ 250.00", "5678", None, "רגילה", None, "תשלום 1 מ 2"],
            ]
        )
    )
    result = CalParser().parse(wb)

    assert result.parser == "cal"
    assert result.processed_upcoming_charges is None
    first, second = result.processed_transactions

    assert first.date == "2024-03-01"
    assert first.description == "קפה גרג"
    assert first.amount == Decimal("-42.9")
    assert first.charge_date == "2024-04-10"
    assert first.reference == "5678"
    assert first.bank == "cal"

    assert second.date == "2024-03-15"
    assert second.amount == Decimal("-250.00")
    assert second.charge_date is None


def test_exact_labels_resolve_after_whitespace_collapse():
    columns = resolve_cal_columns(list(CAL_HEADER))
    assert columns["date"] == 0
    assert columns["merchant"] == 1
    assert columns["amount"] == 2
    assert columns["charge_date"] == 4
    assert columns["digital_wallet_id"] == 6


def test_keyword_fallback_for_renamed_labels():
    header = ["תאריך העסקה", "שם בית עסק", "סכום החיוב", "מועד החיוב"]
    assert looks_like_cal_header(header)

    columns = resolve_cal_columns(header)
    assert columns == {"merchant": 1, "date": 0, "amount": 2, "charge_date": 3}


def test_max_header_does_not_look_like_cal():
    assert not looks_like_cal_header(MAX_HEADER)


def test_incomplete_rows_are_skipped():
    wb = _cal_workbook(
        cal_rows(
            [
                ["01/03/2024", None, 10, "5678"],
                ["32/13/2024", "חנות", 10, "5678"],
                ["02/03/2024", "חנות", 10, "5678"],
            ]
        )
    )
    result = CalParser().parse(wb)

    assert [(s.row, s.reason.split(":")[0]) for s in result.skipped] == [
        (3, "missing required field"),
        (4, "invalid date"),
    ]
    assert [t.date for t in result.processed_transactions] == ["2024-03-02"]


def test_header_must_be_in_top_rows():
    rows = [["פירוט"]] * 6 + [CAL_HEADER, ["01/03/2024", "חנות", 10]]
    wb = _cal_workbook(rows)
    parser = CalParser()

    assert parser.detect(wb) is False
    with pytest.raises(TableNotFoundError):
        parser.parse(wb)
