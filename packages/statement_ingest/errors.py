"""File-level error taxonomy.

Row-level problems never surface as exceptions; normalizers record them as
:class:`~statement_ingest.models.SkippedRow` entries instead. Everything here
is fatal for a single file and propagates out of ``parse_file_data``.
"""

from __future__ import annotations


class StatementFormatError(ValueError):
    """A file could not be read or interpreted as a bank statement."""


class UnsupportedFormatError(StatementFormatError):
    """The file extension is not one of ``.csv``, ``.xlsx`` or ``.xls``."""


class TableNotFoundError(StatementFormatError):
    """A bank-specific parser could not locate its header row."""


class NoRecognizedTableError(StatementFormatError):
    """Neither a bank parser nor the generic column mapper produced rows."""


class StoreFileError(ValueError):
    """A store snapshot exists but cannot be read."""


__all__ = [
    "NoRecognizedTableError",
    "StatementFormatError",
    "StoreFileError",
    "TableNotFoundError",
    "UnsupportedFormatError",
]
