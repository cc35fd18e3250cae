from __future__ import annotations

from decimal import Decimal

import pytest

from statement_ingest.errors import NoRecognizedTableError, UnsupportedFormatError
from statement_ingest.ingest.adapters.discount_xlsx import DiscountParser
from statement_ingest.ingest.dispatch import normalize_hint, parse_file, parse_file_data
from tests.helpers.workbooks import (
    MAX_FOREIGN_SHEET,
    MAX_SHEKEL_SHEET,
    build_xlsx,
    cal_rows,
    discount_rows,
    max_row,
    max_rows,
)


@pytest.fixture
def discount_file() -> bytes:
    return build_xlsx(
        {
            "Sheet1": discount_rows(
                main=[["01/03/2024", "01/03/2024", "העברה לחיסכון", "-500", "4500", "7", "0", ""]],
                credit=[["03/03/2024", "10/04/2024", "שופרסל", "-80", None, None]],
            )
        }
    )


@pytest.fixture
def max_file() -> bytes:
    return build_xlsx(
        {
            MAX_SHEKEL_SHEET: max_rows([max_row("05-03-2024", "שופרסל", 120)]),
            MAX_FOREIGN_SHEET: max_rows([max_row("06-03-2024", "NETFLIX", 45)]),
        }
    )


@pytest.fixture
def cal_file() -> bytes:
    return build_xlsx(
        {"Sheet1": cal_rows([["01/03/2024", "קפה גרג", 42.9, "5678", "10/04/2024"]])}
    )


def test_unsupported_extension_is_rejected_before_reading():
    with pytest.raises(UnsupportedFormatError):
        parse_file_data("statement.pdf", b"%PDF-1.4")
    with pytest.raises(UnsupportedFormatError):
        parse_file_data("statement", b"")


def test_unknown_hint_raises_value_error(discount_file):
    with pytest.raises(ValueError, match="Unknown bank hint"):
        parse_file_data("s.xlsx", discount_file, "leumi")


@pytest.mark.parametrize(("raw", "expected"), [(None, "auto"), ("", "auto"), (" MAX ", "max")])
def test_normalize_hint(raw, expected):
    assert normalize_hint(raw) == expected


def test_auto_detects_discount(discount_file):
    result = parse_file_data("discount.xlsx", discount_file)

    assert result.parser == "discount"
    assert [t.description for t in result.processed_transactions] == ["העברה לחיסכון"]
    assert [t.description for t in result.processed_upcoming_charges or []] == ["שופרסל"]


def test_auto_detects_max_without_discount_claiming_it(max_file):
    result = parse_file_data("max.xlsx", max_file)

    assert result.parser == "max-shekel"
    assert result.processed_upcoming_charges is None
    [tx] = result.processed_transactions
    assert tx.amount == Decimal("-120")


def test_auto_detects_cal(cal_file):
    result = parse_file_data("cal.xlsx", cal_file)

    assert result.parser == "cal"
    assert [t.amount for t in result.processed_transactions] == [Decimal("-42.9")]


def test_hint_selects_variant(max_file):
    result = parse_file_data("max.xlsx", max_file, "max-foreign")

    assert result.parser == "max-foreign"
    assert [t.description for t in result.processed_transactions] == ["NETFLIX"]


def test_failed_hint_falls_back_to_auto_detection(max_file):
    result = parse_file_data("max.xlsx", max_file, "cal")
    assert result.parser == "max-shekel"


def test_hinted_parser_crash_falls_back_to_auto_detection(monkeypatch, discount_file):
    original = DiscountParser.parse

    def crash_credit_only(self, workbook):
        if self.name == "discount-credit":
            raise RuntimeError("unexpected layout")
        return original(self, workbook)

    monkeypatch.setattr(DiscountParser, "parse", crash_credit_only)
    result = parse_file_data("discount.xlsx", discount_file, "discount-credit")

    assert result.parser == "discount"
    assert len(result.processed_transactions) == 1


def test_auto_detection_skips_a_parser_that_crashes(monkeypatch, max_file):
    def boom(self, workbook):
        raise KeyError("column")

    monkeypatch.setattr(DiscountParser, "detect", boom)
    result = parse_file_data("max.xlsx", max_file)

    assert result.parser == "max-shekel"
    assert [t.description for t in result.processed_transactions] == ["שופרסל"]


def test_hinted_variant_without_its_table_falls_back():
    data = build_xlsx(
        {"Sheet1": discount_rows(main=[["01/03/2024", None, "העברה", "-10", None, None, None, None]])}
    )
    result = parse_file_data("discount.xlsx", data, "discount-credit")

    assert result.parser == "discount"
    assert [t.description for t in result.processed_transactions] == ["העברה"]


def test_hinted_parser_returns_empty_table_as_is():
    data = build_xlsx({MAX_SHEKEL_SHEET: max_rows([])})
    result = parse_file_data("max.xlsx", data, "max")

    assert result.parser == "max-shekel"
    assert result.processed_transactions == []


def test_empty_bank_tables_without_hint_are_not_recognized():
    data = build_xlsx({MAX_SHEKEL_SHEET: max_rows([])})
    with pytest.raises(NoRecognizedTableError, match="max.xlsx"):
        parse_file_data("max.xlsx", data)


def test_unrecognized_sheet_falls_back_to_generic_mapper():
    data = build_xlsx(
        {"Export": [["Date", "Description", "Amount"], ["2024-03-01", "Rent", -4000]]}
    )
    result = parse_file_data("export.xlsx", data)

    assert result.parser == "generic"
    [tx] = result.processed_transactions
    assert tx.bank == "discount"
    assert tx.amount == Decimal("-4000")


def test_nothing_recognized_raises():
    data = build_xlsx({"Sheet1": [["hello"], ["world"]]})
    with pytest.raises(NoRecognizedTableError, match="could not find any recognized table format"):
        parse_file_data("mystery.xlsx", data)


def test_csv_goes_to_generic_mapper_and_decodes_windows_hebrew():
    data = "תאריך,תיאור,סכום\n01/03/2024,קפה,-12\n".encode("cp1255")
    result = parse_file_data("export.csv", data, "discount")

    assert result.parser == "generic"
    [tx] = result.processed_transactions
    assert tx.description == "קפה"
    assert tx.bank == "max"


def test_parse_file_reads_from_disk(tmp_path, cal_file):
    path = tmp_path / "cal.xlsx"
    path.write_bytes(cal_file)

    result = parse_file(path)
    assert result.parser == "cal"
