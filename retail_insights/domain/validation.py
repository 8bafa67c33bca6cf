"""
retail_insights/domain/validation.py

Schema definitions and validation result models for uploaded files.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ColumnKind:
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    DATE = "date"
    ALPHANUMERIC = "alphanumeric"


class RuleKind:
    POSITIVE = "positive"
    PATTERN = "pattern"
    ALLOWED_VALUES = "allowed_values"
    MIN_LENGTH = "min_length"


class IssueType:
    MISSING_COLUMN = "missing_column"
    INVALID_DATA_TYPE = "invalid_data_type"
    EMPTY_REQUIRED_FIELD = "empty_required_field"
    INVALID_FORMAT = "invalid_format"
    OUT_OF_RANGE = "out_of_range"
    UNEXPECTED_COLUMN = "unexpected_column"
    OTHER = "other"


class IssueSeverity:
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ColumnRule:
    """
    Extra content check applied after a cell passes its kind check.
    """

    kind: str
    message: str
    value: Any = None


@dataclass(frozen=True)
class ColumnSchema:
    """
    One column the backend expects in an uploaded file.
    """

    name: str
    expected_kind: str
    description: str = ""
    rules: tuple[ColumnRule, ...] = ()


@dataclass(frozen=True)
class FileSchema:
    """
    Column contract for one file category.
    """

    file_type: str
    required_columns: tuple[ColumnSchema, ...]
    optional_columns: tuple[ColumnSchema, ...] = ()
    # (start, end) column pairs where end must not precede start.
    date_ranges: tuple[tuple[str, str], ...] = ()

    @property
    def required_column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.required_columns)

    @property
    def known_column_names(self) -> frozenset[str]:
        return frozenset(
            column.name.lower() for column in (*self.required_columns, *self.optional_columns)
        )


@dataclass(frozen=True)
class ValidationIssue:
    """
    One problem detected in an uploaded file.
    """

    type: str
    message: str
    column: str | None = None
    row_index: int | None = None
    value: str | None = None
    severity: str = IssueSeverity.ERROR


@dataclass(frozen=True)
class ValidationSummary:
    total_rows: int
    valid_rows: int
    error_count: int
    warning_count: int
    missing_columns: tuple[str, ...] = ()
    extra_columns: tuple[str, ...] = ()
    column_coverage: float = 100.0


@dataclass(frozen=True)
class ValidationResult:
    """
    Errors block submission; warnings are informational only.
    """

    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()
    summary: ValidationSummary | None = None

    @property
    def is_valid(self) -> bool:
        return not self.errors
