"""Spreadsheet reader: XLSX/XLS workbooks as row arrays, CSV as records.

No business logic lives here. Workbooks are opened with pandas (``openpyxl``
for ``.xlsx``, ``xlrd`` for ``.xls``) with no header assumed, and every
sheet is exposed as ``list[list[Any]]``:

- numbers stay numbers, so Excel serial dates survive as ``int``/``float``
- date-formatted cells become ``datetime``
- blank cells become ``None``

CSV text is parsed with the stdlib :mod:`csv` module into header-keyed
records (header row consumed, blank lines skipped).
"""

from __future__ import annotations

import csv
import io
import math
from pathlib import Path
from typing import Any, TypeAlias

import pandas as pd  # type: ignore[import-untyped]

from ..errors import StatementFormatError, UnsupportedFormatError
from ..logging_setup import get_logger

Row: TypeAlias = list[Any]
Sheet: TypeAlias = list[Row]

WORKBOOK_EXTENSIONS = frozenset({".xlsx", ".xls"})
CSV_EXTENSIONS = frozenset({".csv"})

_logger = get_logger("statement_ingest.ingest.reader")


def file_extension(filename: str) -> str:
    return Path(filename).suffix.lower()


def _clean_cell(value: Any) -> Any:
    """Map pandas/numpy cell values onto plain Python values."""

    if value is None:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    # numpy scalars -> Python scalars
    item = getattr(value, "item", None)
    if callable(item) and not isinstance(value, int | float):
        try:
            value = item()
        except (TypeError, ValueError):
            return value
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def _trim_trailing_blanks(row: Row) -> Row:
    end = len(row)
    while end and row[end - 1] is None:
        end -= 1
    return row[:end]


class Workbook:
    """Lazily-loaded view over a workbook buffer.

    Sheets are read on first access and cached, so a dispatcher that probes
    several bank parsers reads each sheet once.
    """

    def __init__(self, data: bytes, filename: str) -> None:
        self.filename = filename
        self._data = data
        self._engine = "xlrd" if file_extension(filename) == ".xls" else "openpyxl"
        try:
            with pd.ExcelFile(io.BytesIO(data), engine=self._engine) as xls:
                names = [str(n) for n in xls.sheet_names]
        except Exception as exc:  # engine-specific error types (zipfile, xlrd, openpyxl)
            raise StatementFormatError(
                f"Unable to read workbook {filename}: {exc}. "
                "Please provide a valid Excel export."
            ) from exc
        if not names:
            raise StatementFormatError(f"Workbook {filename} contains no worksheets")
        self.sheet_names: tuple[str, ...] = tuple(names)
        self._sheets: dict[str, Sheet] = {}

    def has_sheet(self, name: str) -> bool:
        return name in self.sheet_names

    def first_sheet(self) -> Sheet:
        return self.sheet(self.sheet_names[0])

    def sheet(self, name: str) -> Sheet:
        if name not in self.sheet_names:
            raise StatementFormatError(f'Sheet "{name}" not found in {self.filename}')
        cached = self._sheets.get(name)
        if cached is not None:
            return cached

        try:
            df = pd.read_excel(
                io.BytesIO(self._data),
                sheet_name=name,
                header=None,
                dtype=object,
                keep_default_na=False,
                engine=self._engine,
            )
        except Exception as exc:  # engine-specific error types
            raise StatementFormatError(
                f'Unable to read sheet "{name}" from {self.filename}: {exc}'
            ) from exc

        rows: Sheet = [
            _trim_trailing_blanks([_clean_cell(v) for v in raw])
            for raw in df.itertuples(index=False, name=None)
        ]
        _logger.debug(
            "reader:sheet_loaded file=%s sheet=%s rows=%d", self.filename, name, len(rows)
        )
        self._sheets[name] = rows
        return rows


def load_workbook(data: bytes, filename: str) -> Workbook:
    """Open an XLSX/XLS buffer; raises ``StatementFormatError`` when unreadable."""

    ext = file_extension(filename)
    if ext not in WORKBOOK_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported workbook extension: {ext or '<none>'}")
    return Workbook(data, filename)


def decode_text(data: bytes) -> str:
    """Decode CSV bytes: UTF-8 (BOM tolerated), then Windows Hebrew, then latin-1."""

    for encoding in ("utf-8-sig", "cp1255"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return data.decode("latin-1")


def read_csv_records(text: str) -> list[dict[str, str]]:
    """Parse CSV text with a header row into header-keyed records.

    Header names are trimmed. Extra cells without a header are dropped and
    missing cells become ``""``. Fully blank lines are skipped.
    """

    if text.startswith("\ufeff"):
        text = text[1:]
    if not text.strip():
        return []

    with io.StringIO(text, newline="") as f:
        try:
            reader = csv.reader(f)
            header = next(reader, None)
            if header is None or not any(h.strip() for h in header):
                raise StatementFormatError("CSV appears to have no header row")
            keys = [h.strip() for h in header]
            records: list[dict[str, str]] = []
            for raw in reader:
                if not any(cell.strip() for cell in raw):
                    continue
                padded = list(raw) + [""] * (len(keys) - len(raw))
                records.append({k: padded[i] for i, k in enumerate(keys) if k})
        except csv.Error as exc:
            raise StatementFormatError(f"Failed to parse CSV: {exc}") from exc
    return records


__all__ = [
    "CSV_EXTENSIONS",
    "Row",
    "Sheet",
    "WORKBOOK_EXTENSIONS",
    "Workbook",
    "decode_text",
    "file_extension",
    "load_workbook",
    "read_csv_records",
]
