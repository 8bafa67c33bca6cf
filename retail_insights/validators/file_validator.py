"""
retail_insights/validators/file_validator.py

Column and cell validation of parsed upload files against their schema.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from retail_insights.domain.tabular import ParsedFile, ParsedRow
from retail_insights.domain.validation import (
    ColumnKind,
    ColumnRule,
    ColumnSchema,
    FileSchema,
    IssueSeverity,
    IssueType,
    RuleKind,
    ValidationIssue,
    ValidationResult,
    ValidationSummary,
)
from retail_insights.validators.schema_registry import require_schema

TIMESTAMP_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
)

_NUMBER_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_ALPHANUMERIC_PATTERN = re.compile(r"[A-Za-z0-9]+")


def coerce_number(raw: str) -> Decimal | None:
    """
    Parse a plain decimal or scientific literal; None when not numeric.
    """

    text = raw.strip()
    if not _NUMBER_PATTERN.fullmatch(text):
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def coerce_integer(raw: str) -> int | None:
    number = coerce_number(raw)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def coerce_date(raw: str) -> datetime | None:
    """
    Parse ISO-8601 or one of TIMESTAMP_FORMATS into an aware UTC datetime.
    """

    text = raw.strip()
    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        parsed = datetime.fromisoformat(normalized)
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)
    except ValueError:
        pass

    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


class FileValidator:
    """
    Validates a ParsedFile against a FileSchema.

    Data problems never raise; they are collected into the ValidationResult.
    Instances hold no state between calls.
    """

    def validate(self, schema: FileSchema, parsed_file: ParsedFile) -> ValidationResult:
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        header_lookup = {header.lower(): header for header in parsed_file.headers}

        missing_columns = self._check_missing_columns(schema, header_lookup, errors)
        extra_columns = self._check_extra_columns(schema, parsed_file, warnings)

        present_required = [
            (column, header_lookup[column.name.lower()])
            for column in schema.required_columns
            if column.name.lower() in header_lookup
        ]
        present_optional = [
            (column, header_lookup[column.name.lower()])
            for column in schema.optional_columns
            if column.name.lower() in header_lookup
        ]

        for row_index, row in enumerate(parsed_file.rows, start=1):
            for column, header in present_required:
                self._check_cell(column, row.get(header), row_index, required=True, errors=errors)
            for column, header in present_optional:
                self._check_cell(column, row.get(header), row_index, required=False, errors=errors)
            self._check_date_ranges(schema, header_lookup, row, row_index, warnings)

        if parsed_file.truncated:
            warnings.append(
                ValidationIssue(
                    type=IssueType.OTHER,
                    message=(
                        f"Only the first {parsed_file.row_count} rows were read; "
                        "remaining rows were not validated."
                    ),
                    severity=IssueSeverity.WARNING,
                )
            )

        summary = self._summarize(
            schema=schema,
            parsed_file=parsed_file,
            errors=errors,
            warnings=warnings,
            missing_columns=missing_columns,
            extra_columns=extra_columns,
        )
        return ValidationResult(errors=tuple(errors), warnings=tuple(warnings), summary=summary)

    def _check_missing_columns(
        self,
        schema: FileSchema,
        header_lookup: dict[str, str],
        errors: list[ValidationIssue],
    ) -> list[str]:
        missing: list[str] = []
        for column in schema.required_columns:
            if column.name.lower() in header_lookup:
                continue
            missing.append(column.name)
            errors.append(
                ValidationIssue(
                    type=IssueType.MISSING_COLUMN,
                    column=column.name,
                    message=f"Required column '{column.name}' is missing from the file",
                )
            )
        return missing

    def _check_extra_columns(
        self,
        schema: FileSchema,
        parsed_file: ParsedFile,
        warnings: list[ValidationIssue],
    ) -> list[str]:
        known = schema.known_column_names
        extra = [header for header in parsed_file.headers if header.lower() not in known]
        for header in extra:
            warnings.append(
                ValidationIssue(
                    type=IssueType.UNEXPECTED_COLUMN,
                    column=header,
                    message=f"Column '{header}' is not expected in this file type and will be ignored",
                    severity=IssueSeverity.WARNING,
                )
            )
        return extra

    def _check_cell(
        self,
        column: ColumnSchema,
        value: str | None,
        row_index: int,
        *,
        required: bool,
        errors: list[ValidationIssue],
    ) -> None:
        if value is not None and not isinstance(value, str):
            value = str(value)
        if value is None or not value.strip():
            if required:
                errors.append(
                    ValidationIssue(
                        type=IssueType.EMPTY_REQUIRED_FIELD,
                        column=column.name,
                        row_index=row_index,
                        value=value,
                        message=f"Required field '{column.name}' is empty in row {row_index}",
                    )
                )
            return

        type_error = self._check_kind(column, value, row_index)
        if type_error is not None:
            errors.append(type_error)
            return

        for rule in column.rules:
            rule_error = self._check_rule(column, rule, value, row_index)
            if rule_error is not None:
                errors.append(rule_error)

    def _check_kind(self, column: ColumnSchema, value: str, row_index: int) -> ValidationIssue | None:
        kind = column.expected_kind
        if kind == ColumnKind.NUMBER:
            valid = coerce_number(value) is not None
            expected = "a valid number"
        elif kind == ColumnKind.INTEGER:
            valid = coerce_integer(value) is not None
            expected = "a valid integer"
        elif kind == ColumnKind.DATE:
            valid = coerce_date(value) is not None
            expected = "a valid date"
        elif kind == ColumnKind.ALPHANUMERIC:
            valid = _ALPHANUMERIC_PATTERN.fullmatch(value.strip()) is not None
            expected = "letters and numbers only"
        else:
            return None

        if valid:
            return None
        return ValidationIssue(
            type=IssueType.INVALID_DATA_TYPE,
            column=column.name,
            row_index=row_index,
            value=value,
            message=f"Value '{value}' in column '{column.name}' (row {row_index}) is not {expected}",
        )

    def _check_rule(
        self,
        column: ColumnSchema,
        rule: ColumnRule,
        value: str,
        row_index: int,
    ) -> ValidationIssue | None:
        text = value.strip()
        if rule.kind == RuleKind.POSITIVE:
            number = coerce_number(text)
            passed = number is not None and number > 0
            issue_type = IssueType.OUT_OF_RANGE
        elif rule.kind == RuleKind.ALLOWED_VALUES:
            integer = coerce_integer(text)
            candidate = str(integer) if integer is not None else text
            passed = candidate in {str(allowed) for allowed in rule.value}
            issue_type = IssueType.OUT_OF_RANGE
        elif rule.kind == RuleKind.PATTERN:
            passed = re.fullmatch(rule.value, text) is not None
            issue_type = IssueType.INVALID_FORMAT
        elif rule.kind == RuleKind.MIN_LENGTH:
            passed = len(text) >= int(rule.value)
            issue_type = IssueType.INVALID_FORMAT
        else:
            return None

        if passed:
            return None
        return ValidationIssue(
            type=issue_type,
            column=column.name,
            row_index=row_index,
            value=value,
            message=f"{rule.message} (row {row_index})",
        )

    def _check_date_ranges(
        self,
        schema: FileSchema,
        header_lookup: dict[str, str],
        row: ParsedRow,
        row_index: int,
        warnings: list[ValidationIssue],
    ) -> None:
        for start_name, end_name in schema.date_ranges:
            start_header = header_lookup.get(start_name.lower())
            end_header = header_lookup.get(end_name.lower())
            if start_header is None or end_header is None:
                continue
            start_raw = row.get(start_header)
            end_raw = row.get(end_header)
            if not start_raw or not end_raw:
                continue
            start = coerce_date(str(start_raw))
            end = coerce_date(str(end_raw))
            if start is None or end is None or end >= start:
                continue
            warnings.append(
                ValidationIssue(
                    type=IssueType.OTHER,
                    column=end_name,
                    row_index=row_index,
                    value=end_raw,
                    message=f"'{end_name}' precedes '{start_name}' in row {row_index}",
                    severity=IssueSeverity.WARNING,
                )
            )

    def _summarize(
        self,
        *,
        schema: FileSchema,
        parsed_file: ParsedFile,
        errors: list[ValidationIssue],
        warnings: list[ValidationIssue],
        missing_columns: list[str],
        extra_columns: list[str],
    ) -> ValidationSummary:
        rows_with_errors = {error.row_index for error in errors if error.row_index is not None}
        required_count = len(schema.required_columns)
        present_count = required_count - len(missing_columns)
        coverage = (present_count / required_count) * 100 if required_count else 100.0
        return ValidationSummary(
            total_rows=parsed_file.row_count,
            valid_rows=parsed_file.row_count - len(rows_with_errors),
            error_count=len(errors),
            warning_count=len(warnings),
            missing_columns=tuple(missing_columns),
            extra_columns=tuple(extra_columns),
            column_coverage=coverage,
        )


_DEFAULT_VALIDATOR = FileValidator()


def validate(schema: FileSchema, parsed_file: ParsedFile) -> ValidationResult:
    """
    Validate ``parsed_file`` against ``schema``.
    """

    return _DEFAULT_VALIDATOR.validate(schema, parsed_file)


def validate_file(file_type: str, parsed_file: ParsedFile) -> ValidationResult:
    """
    Resolve the schema for ``file_type`` and validate; raises SchemaNotFoundError.
    """

    return _DEFAULT_VALIDATOR.validate(require_schema(file_type), parsed_file)
