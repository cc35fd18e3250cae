from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

import statement_ingest.cli as cli_mod
from tests.helpers.workbooks import build_xlsx, cal_rows, discount_rows

runner = CliRunner()


@pytest.fixture(autouse=True)
def _no_logging_handler(monkeypatch: pytest.MonkeyPatch) -> None:
    # A handler bound to one test's captured stderr would outlive it.
    monkeypatch.setattr(cli_mod, "configure_logging", lambda *a, **k: None)


@pytest.fixture
def statements(tmp_path: Path) -> dict[str, Path]:
    cal = tmp_path / "cal.xlsx"
    cal.write_bytes(
        build_xlsx(
            {
                "Sheet1": cal_rows(
                    [
                        ["01/03/2024", "VET CLINIC", 300, "5678", "10/04/2024"],
                        ["02/03/2024", "שופרסל", 120, "5678", "10/04/2024"],
                    ]
                )
            }
        )
    )
    discount = tmp_path / "discount.xlsx"
    discount.write_bytes(
        build_xlsx(
            {
                "Sheet1": discount_rows(
                    main=[
                        ["01/04/2024", None, "משכורת", "9000", "9500", None, None, None],
                        ["02/04/2024", None, "חיוב כאל", "-420", "9080", None, None, None],
                        ["bad", None, "שורה", "-1", None, None, None, None],
                    ],
                    credit=[["03/04/2024", "10/05/2024", "סונול", "-200", None, None]],
                )
            }
        )
    )
    bad = tmp_path / "notes.pdf"
    bad.write_bytes(b"%PDF")
    return {"cal": cal, "discount": discount, "bad": bad}


def _stored(tmp_path: Path) -> dict:
    return json.loads((tmp_path / "store" / "store.json").read_text(encoding="utf-8"))


def test_parse_prints_rows_and_skips(statements):
    res = runner.invoke(cli_mod.app, ["parse", str(statements["discount"])])

    assert res.exit_code == 0, res.output
    assert "discount.xlsx (discount)" in res.output
    assert "Upcoming charges" in res.output
    assert "Skipped 2 row(s)" in res.output
    assert "external card summary" in res.output


def test_parse_reports_unreadable_file(tmp_path):
    res = runner.invoke(cli_mod.app, ["parse", str(tmp_path / "nope.xlsx")])

    assert res.exit_code == 1
    assert "Error:" in res.output


def test_import_reports_each_file_and_persists(tmp_path, statements):
    # -------------------------
    # First import: one file fails, the rest are saved
    # -------------------------
    res = runner.invoke(
        cli_mod.app,
        ["import", str(statements["cal"]), str(statements["bad"]), str(statements["discount"])],
    )

    assert res.exit_code == 1
    assert "cal.xlsx: parser=cal added=2 duplicates=0" in res.output
    assert "notes.pdf: Unsupported file format" in res.output
    assert "discount.xlsx: parser=discount added=1 duplicates=0 upcoming_added=1" in res.output

    snapshot = _stored(tmp_path)
    assert [t["description"] for t in snapshot["transactions"]] == [
        "משכורת",
        "שופרסל",
        "VET CLINIC",
    ]
    assert [c["date"] for c in snapshot["upcoming_charges"]] == ["2024-05-10"]

    # -------------------------
    # Re-import: everything is a duplicate
    # -------------------------
    res = runner.invoke(cli_mod.app, ["import", str(statements["cal"])])

    assert res.exit_code == 0, res.output
    assert "added=0 duplicates=2" in res.output
    assert len(_stored(tmp_path)["transactions"]) == 3


def test_import_categories_and_summary(tmp_path, statements):
    assert runner.invoke(cli_mod.app, ["import", str(statements["cal"])]).exit_code == 0

    mapping = tmp_path / "categories.csv"
    mapping.write_text("description,category\nvet clinic,Pets\n", encoding="utf-8")
    res = runner.invoke(cli_mod.app, ["import-categories", str(mapping)])

    assert res.exit_code == 0, res.output
    assert "created=1 updated=1" in res.output
    snapshot = _stored(tmp_path)
    assert {c["id"] for c in snapshot["categories"]} >= {"pets", "other"}
    vet = next(t for t in snapshot["transactions"] if t["description"] == "VET CLINIC")
    assert vet["category"] == "pets"

    res = runner.invoke(cli_mod.app, ["summary", "--limit", "1"])
    assert res.exit_code == 0, res.output
    assert "Monthly balance" in res.output
    assert "2024-03" in res.output
    # March net, then the single largest expense
    assert "-420.00" in res.output
    assert "-300.00" in res.output


def test_summary_on_empty_store():
    res = runner.invoke(cli_mod.app, ["summary"])

    assert res.exit_code == 0
    assert "Store is empty." in res.output


def test_store_option_overrides_env(tmp_path, statements):
    target = tmp_path / "elsewhere.json"
    res = runner.invoke(cli_mod.app, ["import", str(statements["cal"]), "--store", str(target)])

    assert res.exit_code == 0, res.output
    assert target.exists()
    assert not (tmp_path / "store" / "store.json").exists()


def test_invalid_bank_env_is_reported(monkeypatch, statements):
    monkeypatch.setenv("STATEMENT_INGEST_BANK", "leumi")
    res = runner.invoke(cli_mod.app, ["parse", str(statements["cal"])])

    assert res.exit_code == 1
    assert "Invalid STATEMENT_INGEST_BANK" in res.output


def test_bank_option_passes_hint(statements):
    res = runner.invoke(cli_mod.app, ["parse", str(statements["cal"]), "--bank", "leumi"])

    assert res.exit_code == 1
    assert "Unknown bank hint" in res.output


def test_verbose_flag_requests_debug_logging(monkeypatch):
    levels: list[object] = []
    monkeypatch.setattr(cli_mod, "configure_logging", levels.append)

    runner.invoke(cli_mod.app, ["--verbose", "summary"])
    runner.invoke(cli_mod.app, ["summary"])

    assert levels == ["DEBUG", None]
