"""Cell-level normalization shared by every bank adapter.

Covers:
  - Date parsing: Excel serial numbers, ``datetime`` cells, an ordered list of
    regex forms per bank, and a day-first ``dateutil`` fallback
  - Amount parsing: currency symbols, thousands separators, bidi marks,
    trailing minus, ``parseFloat``-style leading-number extraction
  - Text cleanup for descriptions and header labels

Every parser returns ``None`` for a value it cannot interpret; callers decide
whether that rejects the row.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from dateutil import parser as dateutil_parser

# ─────────────────────────────────────────────────────────────────────────────
# Dates
# ─────────────────────────────────────────────────────────────────────────────

# Excel serial 25569 is 1970-01-01.
_EXCEL_EPOCH = datetime(1970, 1, 1)
_EXCEL_UNIX_OFFSET = 25569

# Anything outside this window is treated as a misread cell, not a date.
_MIN_YEAR = 1900
_MAX_YEAR = 2100


@dataclass(frozen=True, slots=True)
class DatePattern:
    """A regex date form; ``order`` names the captured groups, e.g. ``"dmy"``."""

    name: str
    regex: re.Pattern[str]
    order: str


DMY_SLASH = DatePattern("DD/MM/YYYY", re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"), "dmy")
YMD_DASH = DatePattern("YYYY-MM-DD", re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"), "ymd")
DMY_DOT = DatePattern("DD.MM.YYYY", re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})"), "dmy")
DMY_DASH = DatePattern("DD-MM-YYYY", re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})"), "dmy")
DMY_SLASH_SHORT = DatePattern(
    "DD/MM/YY", re.compile(r"(?<!\d)(\d{1,2})/(\d{1,2})/(\d{2})(?!\d)"), "dmy"
)

DEFAULT_DATE_PATTERNS: tuple[DatePattern, ...] = (DMY_SLASH, YMD_DASH, DMY_DOT)


def _plausible(d: date) -> date | None:
    return d if _MIN_YEAR <= d.year <= _MAX_YEAR else None


# dateutil fills missing fields from `default`; two distinct defaults expose them.
_FILL_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def _parse_full_date(s: str) -> date | None:
    """Day-first dateutil parse that accepts only strings naming day, month and year."""

    try:
        first, second = (
            dateutil_parser.parse(s, dayfirst=True, default=d).date() for d in _FILL_DEFAULTS
        )
    except (ValueError, OverflowError):
        return None
    if first != second:
        return None
    return _plausible(first)


def excel_serial_to_date(serial: float) -> date | None:
    """Convert an Excel serial day number to a calendar date.

    ``44927`` maps to ``2023-01-01``. Fractions (time of day) are dropped.
    """

    if isinstance(serial, float) and (math.isnan(serial) or math.isinf(serial)):
        return None
    try:
        dt = _EXCEL_EPOCH + timedelta(days=float(serial) - _EXCEL_UNIX_OFFSET)
    except (OverflowError, ValueError):
        return None
    return _plausible(dt.date())


def _from_match(match: re.Match[str], order: str) -> date | None:
    parts = dict(zip(order, (int(g) for g in match.groups()), strict=True))
    year = parts["y"]
    if year < 100:
        year += 2000
    try:
        return _plausible(date(year, parts["m"], parts["d"]))
    except ValueError:
        return None


def parse_date(
    value: Any,
    patterns: tuple[DatePattern, ...] = DEFAULT_DATE_PATTERNS,
) -> date | None:
    """Return a ``date`` for a raw cell, or ``None`` when no form applies.

    Order: ``datetime``/``date`` objects, Excel serial numbers, each regex in
    ``patterns`` (first match that forms a valid calendar date wins), then a
    day-first ``dateutil`` parse of the whole string, accepted only when
    the string itself names the day, month and year.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _plausible(value.date())
    if isinstance(value, date):
        return _plausible(value)
    if isinstance(value, int | float):
        return excel_serial_to_date(value)
    if not isinstance(value, str):
        return None

    s = clean_text(value)
    if not s:
        return None

    for pattern in patterns:
        match = pattern.regex.search(s)
        if match is None:
            continue
        parsed = _from_match(match, pattern.order)
        if parsed is not None:
            return parsed

    return _parse_full_date(s)


def parse_iso_date(
    value: Any,
    patterns: tuple[DatePattern, ...] = DEFAULT_DATE_PATTERNS,
) -> str | None:
    parsed = parse_date(value, patterns)
    return parsed.isoformat() if parsed is not None else None


# ─────────────────────────────────────────────────────────────────────────────
# Amounts
# ─────────────────────────────────────────────────────────────────────────────

_CURRENCY_CHARS = "₪$€£¥"
# Left-to-right / right-to-left marks and embedding controls found in RTL exports.
_BIDI_CHARS = "\u200e\u200f\u202a\u202b\u202c\u202d\u202e\u2066\u2067\u2068\u2069"
_STRIP_TABLE = str.maketrans("", "", _CURRENCY_CHARS + _BIDI_CHARS + ",")
_LEADING_NUMBER_RE = re.compile(r"^[-+]?(?:\d+(?:\.\d*)?|\.\d+)")
_TRAILING_MINUS_RE = re.compile(r"^(\d+(?:\.\d*)?|\.\d+)-$")


def parse_amount(value: Any) -> Decimal | None:
    """Parse an amount cell into a ``Decimal``.

    Handles:
      -150.50  |  150.50-  |  ₪ 1,234.56  |  (42.99)  |  "12.5 ש\"ח"

    Strings are stripped of currency symbols, commas, whitespace and bidi
    marks, then the leading number is taken, mirroring ``parseFloat``.
    Returns ``None`` for blanks, NaN/inf and strings without a leading number.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        # str() keeps the shortest repr so 150.5 stays 150.5, not 150.4999...
        return Decimal(str(value))
    if isinstance(value, Decimal):
        return None if not value.is_finite() else value
    if not isinstance(value, str):
        return None

    s = "".join(value.translate(_STRIP_TABLE).split())
    if not s:
        return None

    negative = s.startswith("(") and s.endswith(")")
    if negative:
        s = s[1:-1]

    trailing = _TRAILING_MINUS_RE.match(s)
    if trailing:
        s = "-" + trailing.group(1)

    match = _LEADING_NUMBER_RE.match(s)
    if match is None:
        return None
    try:
        amount = Decimal(match.group(0))
    except InvalidOperation:
        return None
    return -abs(amount) if negative else amount


def force_outflow(amount: Decimal) -> Decimal:
    """Card charges are exported as positive magnitudes; flip them negative."""

    return -amount if amount > 0 else amount


def format_amount(amount: Decimal) -> str:
    """Stable textual form: ``-150.50`` and ``-150.5`` both give ``-150.5``."""

    if amount == 0:
        return "0"
    return format(amount.normalize(), "f")


# ─────────────────────────────────────────────────────────────────────────────
# Text
# ─────────────────────────────────────────────────────────────────────────────

_WS_RE = re.compile(r"\s+")


def clean_text(value: Any) -> str:
    """Return ``value`` as a single-spaced, trimmed string ('' for blanks).

    Integer-valued floats render without the ``.0`` Excel adds to numeric
    reference cells.
    """

    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            value = int(value)
    s = str(value).translate(str.maketrans("", "", _BIDI_CHARS))
    return _WS_RE.sub(" ", s).strip()


def optional_text(value: Any) -> str | None:
    s = clean_text(value)
    return s or None


def is_blank(value: Any) -> bool:
    return clean_text(value) == ""


def is_blank_row(row: list[Any] | tuple[Any, ...] | None) -> bool:
    return not row or all(is_blank(cell) for cell in row)


__all__ = [
    "DEFAULT_DATE_PATTERNS",
    "DMY_DASH",
    "DMY_DOT",
    "DMY_SLASH",
    "DMY_SLASH_SHORT",
    "DatePattern",
    "YMD_DASH",
    "clean_text",
    "excel_serial_to_date",
    "force_outflow",
    "format_amount",
    "is_blank",
    "is_blank_row",
    "optional_text",
    "parse_amount",
    "parse_date",
    "parse_iso_date",
]
