"""Public interface for the ``statement_ingest`` package.

This module exposes the package's entry points and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .categorization import DEFAULT_CATEGORIES, categorize_transaction
from .category_import import CategoryImportResult, apply_category_csv
from .duplicates import dedup_key, filter_new
from .errors import (
    NoRecognizedTableError,
    StatementFormatError,
    StoreFileError,
    TableNotFoundError,
    UnsupportedFormatError,
)
from .ingest.dispatch import parse_file, parse_file_data
from .models import (
    BankType,
    Category,
    ParseResult,
    SkippedRow,
    Transaction,
    UpcomingCharge,
)
from .store import MergeSummary, TransactionStore

__all__ = [
    # Entry points
    "parse_file_data",
    "parse_file",
    "categorize_transaction",
    "apply_category_csv",
    "dedup_key",
    "filter_new",
    "TransactionStore",
    "DEFAULT_CATEGORIES",
    # Models / types
    "BankType",
    "Category",
    "CategoryImportResult",
    "MergeSummary",
    "ParseResult",
    "SkippedRow",
    "Transaction",
    "UpcomingCharge",
    # Errors
    "StatementFormatError",
    "UnsupportedFormatError",
    "TableNotFoundError",
    "NoRecognizedTableError",
    "StoreFileError",
]
