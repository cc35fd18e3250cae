"""CLI for the ``statement_ingest`` package.

Commands:

- ``parse FILE``: parse one statement and print the normalized rows
- ``import FILE...``: parse statements and merge them into the JSON store
- ``import-categories CSV``: apply a description→category CSV to the store
- ``summary``: monthly net balance and the largest expenses in the store

Environment variables are loaded from a local ``.env`` with
``python-dotenv`` before any command runs. Business logic lives in
``statement_ingest.ingest.dispatch``, ``statement_ingest.store`` and
``statement_ingest.category_import``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .category_import import apply_category_csv
from .errors import StatementFormatError, StoreFileError
from .ingest.dispatch import parse_file_data
from .ingest.reader import decode_text
from .logging_setup import configure_logging
from .models import ParseResult, Transaction
from .settings import BANK_HINTS, get_default_bank_hint, get_store_path
from .store import TransactionStore

app = typer.Typer(
    name="statement-ingest",
    no_args_is_help=True,
    add_completion=False,
    help="Parse Israeli bank and credit-card exports (Discount, Max, Cal) into one transaction store.",
)
console = Console()

BankOption = Annotated[
    str | None,
    typer.Option(
        "--bank",
        "-b",
        help=f"Bank hint ({', '.join(BANK_HINTS)}). Defaults to STATEMENT_INGEST_BANK or auto.",
    ),
]
StoreOption = Annotated[
    Path | None,
    typer.Option(
        "--store",
        help="Store snapshot path. Defaults to STATEMENT_INGEST_STORE or ./.statement_ingest/store.json.",
        dir_okay=False,
    ),
]


# ---- helpers -----------------------------------------------------------------


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)
    return typer.Exit(1)


def _resolve_bank(bank: str | None) -> str:
    if bank is not None:
        return bank
    try:
        return get_default_bank_hint()
    except ValueError as e:
        raise _fail(str(e)) from e


def _load_store(store: Path | None) -> tuple[TransactionStore, Path]:
    path = store or get_store_path()
    try:
        return TransactionStore.load(path), path
    except StoreFileError as e:
        raise _fail(str(e)) from e


def _transactions_table(title: str, rows: list[Transaction]) -> Table:
    table = Table(title=title)
    table.add_column("Date")
    table.add_column("Description")
    table.add_column("Amount", justify="right")
    table.add_column("Charge date")
    table.add_column("Category")
    for tx in rows:
        table.add_row(
            tx.date,
            tx.description,
            f"{tx.amount:,.2f}",
            tx.charge_date or "",
            tx.category or "",
        )
    return table


def _print_result(name: str, result: ParseResult) -> None:
    console.print(
        _transactions_table(f"{name} ({result.parser})", result.processed_transactions)
    )
    if result.processed_upcoming_charges is not None:
        console.print(_transactions_table("Upcoming charges", result.processed_upcoming_charges))
    if result.skipped:
        console.print(f"[yellow]Skipped {len(result.skipped)} row(s):[/yellow]")
        for s in result.skipped:
            console.print(f"  row {s.row}: {s.reason}", markup=False)


# ---- commands ------------------------------------------------------------------


@app.command("parse")
def parse_cmd(
    file: Annotated[Path, typer.Argument(help="Statement file (.xlsx, .xls or .csv)")],
    bank: BankOption = None,
) -> None:
    """Parse one statement file and print what would be imported."""

    hint = _resolve_bank(bank)
    try:
        result = parse_file_data(file.name, file.read_bytes(), hint)
    except (OSError, ValueError) as e:
        raise _fail(f"{file}: {e}") from e
    _print_result(file.name, result)


@app.command("import")
def import_cmd(
    files: Annotated[list[Path], typer.Argument(help="One or more statement files")],
    bank: BankOption = None,
    store: StoreOption = None,
) -> None:
    """Parse statement files and merge them into the store.

    Each file is reported on its own line; a failing file does not stop the
    rest. Exits with status 1 when any file failed.
    """

    hint = _resolve_bank(bank)
    ts, path = _load_store(store)

    failed = 0
    for file in files:
        try:
            result = parse_file_data(file.name, file.read_bytes(), hint)
        except (OSError, StatementFormatError, ValueError) as e:
            failed += 1
            console.print(
                f"[red]✗[/red] {file.name}: {escape(str(e))}",
                highlight=False,
                soft_wrap=True,
            )
            continue
        summary = ts.add_parse_result(result)
        console.print(
            f"[green]✓[/green] {file.name}: parser={result.parser} added={summary.added} "
            f"duplicates={summary.duplicates} upcoming_added={summary.upcoming_added} "
            f"skipped={len(result.skipped)}",
            highlight=False,
            soft_wrap=True,
        )

    if failed < len(files):
        ts.save(path)
    if failed:
        raise typer.Exit(1)


@app.command("import-categories")
def import_categories_cmd(
    csv_file: Annotated[Path, typer.Argument(help="CSV with description and category columns")],
    store: StoreOption = None,
) -> None:
    """Assign categories to stored transactions from a description→category CSV."""

    ts, path = _load_store(store)
    try:
        text = decode_text(csv_file.read_bytes())
        result = apply_category_csv(text, ts.transactions, ts.categories)
    except (OSError, ValueError) as e:
        raise _fail(f"{csv_file}: {e}") from e

    ts.transactions = result.transactions
    ts.categories = result.categories
    ts.save(path)
    console.print(
        f"created={len(result.created)} updated={result.updated}", highlight=False
    )
    for cat in result.created:
        console.print(f"  new category: {cat.name} ({cat.id})", markup=False)


@app.command("summary")
def summary_cmd(
    store: StoreOption = None,
    limit: Annotated[int, typer.Option(min=1, help="Number of top expenses to show")] = 10,
) -> None:
    """Print the monthly net balance and the largest expenses."""

    ts, _ = _load_store(store)
    if not ts.transactions:
        console.print("Store is empty.")
        return

    monthly = Table(title="Monthly balance")
    monthly.add_column("Month")
    monthly.add_column("Net", justify="right")
    for month, total in ts.monthly_balance():
        monthly.add_row(month, f"{total:,.2f}")
    console.print(monthly)
    console.print(_transactions_table("Top expenses", ts.top_expenses(limit)))


@app.callback()
def _root(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log skipped rows and parser selection.")
    ] = False,
) -> None:
    """Load ``.env`` from the current directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging("DEBUG" if verbose else None)


if __name__ == "__main__":  # pragma: no cover
    app()
