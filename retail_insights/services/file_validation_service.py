"""
retail_insights/services/file_validation_service.py

Parse-then-validate workflow for files selected for upload.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import BinaryIO

from retail_insights.config import (
    FileParserSettings,
    ValidationSettings,
    get_file_parser_settings,
    get_validation_settings,
)
from retail_insights.domain.dataset import UploadedFile
from retail_insights.domain.tabular import FileParserOptions, ParsedFile
from retail_insights.domain.validation import ValidationIssue, ValidationResult
from retail_insights.errors import ParseError, SchemaNotFoundError
from retail_insights.logging_utils import log_event
from retail_insights.parsers import parse_file
from retail_insights.validators.file_validator import FileValidator
from retail_insights.validators.schema_registry import require_schema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileValidationOutcome:
    """
    Result of checking one file; ``error`` is set when it could not be read.
    """

    file_name: str
    file_type: str
    parsed_file: ParsedFile | None = None
    result: ValidationResult | None = None
    error: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.error is None and self.result is not None and self.result.is_valid


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def error_summary(result: ValidationResult) -> str:
    """
    One-line summary such as "2 errors and 1 warning found".
    """

    error_count = len(result.errors)
    warning_count = len(result.warnings)
    if error_count == 0 and warning_count == 0:
        return "No issues found"
    if error_count and warning_count:
        return f"{_plural(error_count, 'error')} and {_plural(warning_count, 'warning')} found"
    if error_count:
        return f"{_plural(error_count, 'error')} found"
    return f"{_plural(warning_count, 'warning')} found"


def status_label(result: ValidationResult) -> str:
    if not result.is_valid:
        return "Invalid"
    if result.warnings:
        return f"Valid with {_plural(len(result.warnings), 'warning')}"
    return "Valid"


def group_issues_by_type(issues: tuple[ValidationIssue, ...] | list[ValidationIssue]) -> dict[str, list[ValidationIssue]]:
    grouped: dict[str, list[ValidationIssue]] = defaultdict(list)
    for issue in issues:
        grouped[issue.type].append(issue)
    return dict(grouped)


class FileValidationService:
    """
    Reads an uploaded file and validates it against its file-type schema.
    """

    def __init__(
        self,
        *,
        parser_settings: FileParserSettings | None = None,
        validation_settings: ValidationSettings | None = None,
        validator: FileValidator | None = None,
    ) -> None:
        parser_settings = parser_settings or get_file_parser_settings()
        self._validation_settings = validation_settings or get_validation_settings()
        self._validator = validator or FileValidator()
        self._options = FileParserOptions(
            delimiter=parser_settings.delimiter,
            max_rows=parser_settings.max_rows,
            max_preview_rows=parser_settings.max_preview_rows,
            encoding=parser_settings.encoding,
        )

    @property
    def parser_options(self) -> FileParserOptions:
        return self._options

    def validate_upload(
        self,
        source: UploadedFile | str | Path | BinaryIO,
        file_type: str,
        *,
        file_name: str | None = None,
    ) -> FileValidationOutcome:
        """
        Parse ``source`` and validate it; read failures become ``error``.
        """

        name = file_name or _source_name(source)
        try:
            schema = require_schema(file_type)
            parsed = parse_file(source, file_name=file_name, options=self._options)
        except (ParseError, SchemaNotFoundError) as exc:
            logger.warning("File could not be validated file_name=%s file_type=%s error=%s", name, file_type, exc)
            return FileValidationOutcome(file_name=name, file_type=file_type, error=str(exc))

        result = self._validator.validate(schema, parsed)
        self._log_result(parsed.file_name or name, file_type, result)
        return FileValidationOutcome(
            file_name=parsed.file_name or name,
            file_type=file_type,
            parsed_file=parsed,
            result=result,
        )

    def _log_result(self, file_name: str, file_type: str, result: ValidationResult) -> None:
        summary = result.summary
        log_event(
            logger,
            logging.INFO,
            "file_validated",
            file_name=file_name,
            file_type=file_type,
            is_valid=result.is_valid,
            error_count=len(result.errors),
            warning_count=len(result.warnings),
            total_rows=summary.total_rows if summary else None,
        )
        if not self._validation_settings.log_validation_issues:
            return
        limit = self._validation_settings.max_logged_issues
        for issue in (*result.errors, *result.warnings)[:limit]:
            logger.debug(
                "Validation issue file_name=%s type=%s column=%s row=%s severity=%s message=%s",
                file_name,
                issue.type,
                issue.column,
                issue.row_index,
                issue.severity,
                issue.message,
            )


def _source_name(source: UploadedFile | str | Path | BinaryIO) -> str:
    if isinstance(source, UploadedFile):
        return source.file_name
    if isinstance(source, (str, Path)):
        return Path(source).name
    name = getattr(source, "name", "")
    return Path(name).name if isinstance(name, str) else ""


@lru_cache(maxsize=1)
def get_file_validation_service() -> FileValidationService:
    return FileValidationService()
