"""Shared parser capability and table-locating helpers.

Every bank adapter implements :class:`StatementParser`:

- ``detect(workbook)``: cheap header sniff, no row normalization
- ``parse(workbook)``: locate the table(s), normalize rows and return a
  :class:`~statement_ingest.models.ParseResult`; raises
  :class:`~statement_ingest.errors.TableNotFoundError` when the expected
  header row is absent

Column dictionaries are immutable :class:`HeaderSpec` records passed into
pure helpers rather than shared mutable lookup tables.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Protocol

from ...models import BankType, ParseResult
from ..cells import clean_text, is_blank_row
from ..reader import Row, Sheet, Workbook


@dataclass(frozen=True, slots=True)
class HeaderSpec:
    """Field name → expected header label for one table layout."""

    name: str
    labels: Mapping[str, str]
    min_matches: int = 1
    required: tuple[str, ...] = ()

    @classmethod
    def of(
        cls,
        name: str,
        labels: Mapping[str, str],
        *,
        min_matches: int = 1,
        required: tuple[str, ...] = (),
    ) -> HeaderSpec:
        return cls(
            name=name,
            labels=MappingProxyType(dict(labels)),
            min_matches=min_matches,
            required=required,
        )


@dataclass(frozen=True, slots=True)
class LocatedTable:
    """A header row plus its body rows, each body row tagged with its 1-based row number."""

    spec: HeaderSpec
    header_row: int
    columns: Mapping[str, int]
    body: tuple[tuple[int, Row], ...]


def cell(row: Row, index: int | None) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


def header_label(value: Any) -> str:
    """Trimmed, single-spaced header text (Cal wraps labels over two lines)."""

    return clean_text(value)


def count_exact_matches(row: Row, spec: HeaderSpec) -> int:
    expected = set(spec.labels.values())
    return sum(1 for v in row if header_label(v) in expected)


def is_header_row(row: Row, spec: HeaderSpec) -> bool:
    """Enough exact label matches, and every ``required`` field present."""

    if count_exact_matches(row, spec) < spec.min_matches:
        return False
    present = {header_label(v) for v in row}
    return all(spec.labels[f] in present for f in spec.required)


def resolve_exact(row: Row, spec: HeaderSpec) -> dict[str, int]:
    """Map each field of ``spec`` to the first cell equal to its label."""

    by_label: dict[str, int] = {}
    for idx, value in enumerate(row):
        by_label.setdefault(header_label(value), idx)
    return {field: by_label[label] for field, label in spec.labels.items() if label in by_label}


def collect_body(
    sheet: Sheet,
    start: int,
    *,
    stop_at_blank: bool = True,
    is_header: Callable[[Row], bool] | None = None,
) -> tuple[tuple[int, Row], ...]:
    """Rows after ``start`` (0-based header index) until a blank row or next header.

    With ``stop_at_blank=False`` blank rows are skipped instead and the body
    runs to the end of the sheet.
    """

    body: list[tuple[int, Row]] = []
    for idx in range(start + 1, len(sheet)):
        row = sheet[idx]
        if is_blank_row(row):
            if stop_at_blank:
                break
            continue
        if is_header is not None and is_header(row):
            break
        body.append((idx + 1, row))
    return tuple(body)


def locate_tables(
    sheet: Sheet,
    specs: Sequence[HeaderSpec],
    *,
    stop_at_blank: bool = True,
) -> list[LocatedTable]:
    """Find every header row matching one of ``specs`` (first spec wins on ties).

    A row is a header for a spec when at least ``spec.min_matches`` of its
    cells equal one of the spec's labels exactly (after trimming) and the
    labels of ``spec.required`` are among them.
    """

    def match(row: Row) -> HeaderSpec | None:
        for spec in specs:
            if is_header_row(row, spec):
                return spec
        return None

    tables: list[LocatedTable] = []
    for idx, row in enumerate(sheet):
        spec = match(row)
        if spec is None:
            continue
        tables.append(
            LocatedTable(
                spec=spec,
                header_row=idx + 1,
                columns=MappingProxyType(resolve_exact(row, spec)),
                body=collect_body(
                    sheet,
                    idx,
                    stop_at_blank=stop_at_blank,
                    is_header=lambda r: match(r) is not None,
                ),
            )
        )
    return tables


class StatementParser(Protocol):
    """A bank-specific statement parser registered with the dispatcher."""

    name: str
    bank: BankType

    def detect(self, workbook: Workbook) -> bool: ...

    def parse(self, workbook: Workbook) -> ParseResult: ...


__all__ = [
    "HeaderSpec",
    "LocatedTable",
    "StatementParser",
    "cell",
    "collect_body",
    "count_exact_matches",
    "header_label",
    "is_header_row",
    "locate_tables",
    "resolve_exact",
]
