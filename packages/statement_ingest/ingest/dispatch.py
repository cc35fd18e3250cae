"""Parser selection for an uploaded statement file.

``parse_file_data(filename, data, bank_hint=None)`` is the single entry point:

1. Reject extensions other than ``.csv``, ``.xlsx`` and ``.xls``.
2. CSV goes straight to the generic column mapper.
3. A specific bank hint runs that parser first. If it raises for any reason
   (usually a missing table) the failure is logged and auto-detection takes
   over; a table that was found but held no valid rows is returned as-is.
4. Auto-detection walks :data:`AUTO_DETECT_ORDER`; the first parser whose
   ``detect`` accepts the workbook and whose ``parse`` yields at least one
   record wins. Errors from a parser are logged and the next one is tried.
5. The generic column mapper runs on the first sheet.
6. Otherwise :class:`~statement_ingest.errors.NoRecognizedTableError`.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TypeAlias
from pathlib import Path
from types import MappingProxyType

from ..errors import NoRecognizedTableError, StatementFormatError, UnsupportedFormatError
from ..logging_setup import get_logger
from ..models import ParseResult
from ..settings import BANK_HINTS
from .adapters.base import StatementParser
from .adapters.cal_xlsx import CalParser
from .adapters.discount_xlsx import DiscountParser
from .adapters.generic_columns import parse_csv_text, parse_sheet
from .adapters.max_xlsx import MaxParser
from .reader import (
    CSV_EXTENSIONS,
    WORKBOOK_EXTENSIONS,
    Workbook,
    decode_text,
    file_extension,
    load_workbook,
)

ParserFactory: TypeAlias = Callable[[], StatementParser]

PARSERS: Mapping[str, ParserFactory] = MappingProxyType(
    {
        "discount": lambda: DiscountParser("discount"),
        "discount-transactions": lambda: DiscountParser("discount-transactions"),
        "discount-credit": lambda: DiscountParser("discount-credit"),
        "max": lambda: MaxParser("max-shekel"),
        "max-shekel": lambda: MaxParser("max-shekel"),
        "max-foreign": lambda: MaxParser("max-foreign"),
        "cal": CalParser,
    }
)

AUTO_DETECT_ORDER: tuple[str, ...] = ("discount", "max-shekel", "cal")

_logger = get_logger("statement_ingest.ingest.dispatch")


def normalize_hint(bank_hint: str | None) -> str:
    """Lowercase and validate a bank hint; ``None`` and ``""`` mean ``auto``."""

    hint = (bank_hint or "auto").strip().lower()
    if hint not in BANK_HINTS:
        raise ValueError(f"Unknown bank hint {bank_hint!r}. Allowed: {', '.join(BANK_HINTS)}")
    return hint


def build_parser(hint: str) -> StatementParser:
    try:
        factory = PARSERS[hint]
    except KeyError:
        raise ValueError(f"No parser registered for bank hint {hint!r}") from None
    return factory()


def _run_hinted(workbook: Workbook, parser: StatementParser) -> ParseResult | None:
    try:
        result = parser.parse(workbook)
    except Exception as exc:  # any parser failure falls through to auto-detection
        _logger.info(
            "dispatch:hint_failed file=%s parser=%s error=%s; falling back to auto-detection",
            workbook.filename,
            parser.name,
            exc,
        )
        if not isinstance(exc, StatementFormatError):
            _logger.debug("dispatch:hint_traceback parser=%s", parser.name, exc_info=True)
        return None
    _logger.info(
        "dispatch:selected file=%s parser=%s records=%d",
        workbook.filename,
        parser.name,
        result.total,
    )
    return result


def _run_auto(workbook: Workbook, tried: set[str]) -> ParseResult | None:
    for hint in AUTO_DETECT_ORDER:
        parser = build_parser(hint)
        if parser.name in tried:
            continue
        tried.add(parser.name)
        try:
            if not parser.detect(workbook):
                _logger.debug(
                    "dispatch:not_detected file=%s parser=%s", workbook.filename, parser.name
                )
                continue
            result = parser.parse(workbook)
        except Exception as exc:  # one broken parser must not stop the others
            _logger.debug(
                "dispatch:parser_failed file=%s parser=%s error=%s",
                workbook.filename,
                parser.name,
                exc,
                exc_info=not isinstance(exc, StatementFormatError),
            )
            continue
        if result.total == 0:
            _logger.debug("dispatch:parser_empty file=%s parser=%s", workbook.filename, parser.name)
            continue
        _logger.info(
            "dispatch:selected file=%s parser=%s records=%d",
            workbook.filename,
            parser.name,
            result.total,
        )
        return result
    return None


def _run_generic(workbook: Workbook) -> ParseResult | None:
    try:
        result = parse_sheet(workbook.first_sheet(), workbook.filename)
    except NoRecognizedTableError as exc:
        _logger.debug("dispatch:generic_failed file=%s error=%s", workbook.filename, exc)
        return None
    if result.total == 0:
        _logger.debug("dispatch:generic_empty file=%s", workbook.filename)
        return None
    _logger.info(
        "dispatch:selected file=%s parser=%s records=%d",
        workbook.filename,
        result.parser,
        result.total,
    )
    return result


def parse_file_data(filename: str, data: bytes, bank_hint: str | None = None) -> ParseResult:
    """Parse one statement file into canonical transactions.

    Raises:
        UnsupportedFormatError: the extension is not ``.csv``/``.xlsx``/``.xls``.
        NoRecognizedTableError: no parser recognized the content.
        StatementFormatError: the file could not be read at all.
        ValueError: ``bank_hint`` is not a known hint.
    """

    ext = file_extension(filename)
    if ext not in CSV_EXTENSIONS and ext not in WORKBOOK_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported file format: {ext or '<none>'} ({filename})")
    hint = normalize_hint(bank_hint)

    if ext in CSV_EXTENSIONS:
        return parse_csv_text(decode_text(data), filename)

    workbook = load_workbook(data, filename)
    tried: set[str] = set()

    if hint != "auto":
        parser = build_parser(hint)
        tried.add(parser.name)
        result = _run_hinted(workbook, parser)
        if result is not None:
            return result

    result = _run_auto(workbook, tried) or _run_generic(workbook)
    if result is None:
        raise NoRecognizedTableError(
            f"could not find any recognized table format in {filename} "
            "(tried Discount, Max, Cal and generic column mapping)"
        )
    return result


def parse_file(path: str | Path, bank_hint: str | None = None) -> ParseResult:
    """Read ``path`` and hand its bytes to :func:`parse_file_data`."""

    p = Path(path)
    return parse_file_data(p.name, p.read_bytes(), bank_hint)


__all__ = [
    "AUTO_DETECT_ORDER",
    "PARSERS",
    "build_parser",
    "normalize_hint",
    "parse_file",
    "parse_file_data",
]
