"""
tests/test_file_validation_service.py

Pytest unit tests for the parse-then-validate workflow and its display helpers.
"""

from __future__ import annotations

import logging

import pytest

from retail_insights.config import FileParserSettings, ValidationSettings
from retail_insights.domain.dataset import UploadedFile
from retail_insights.domain.tabular import FileType
from retail_insights.domain.validation import IssueSeverity, IssueType, ValidationIssue, ValidationResult
from retail_insights.services.file_validation_service import (
    FileValidationService,
    error_summary,
    group_issues_by_type,
    status_label,
)


@pytest.fixture()
def service() -> FileValidationService:
    return FileValidationService(
        parser_settings=FileParserSettings(max_rows=None, max_preview_rows=2),
        validation_settings=ValidationSettings(log_validation_issues=True, max_logged_issues=5),
    )


def _issue(issue_type: str, severity: str = IssueSeverity.ERROR) -> ValidationIssue:
    return ValidationIssue(type=issue_type, message=issue_type, severity=severity)


class TestValidateUpload:
    def test_valid_transaction_file(self, service: FileValidationService) -> None:
        upload = UploadedFile("sales.csv", b"upc,dollar_sales,units\n001,2.5,1\n002,3,2\n003,1,1\n")

        outcome = service.validate_upload(upload, FileType.TRANSACTION)

        assert outcome.is_valid
        assert outcome.error is None
        assert outcome.file_name == "sales.csv"
        assert len(outcome.parsed_file.preview) == 2

    def test_validation_errors_are_reported(self, service: FileValidationService, caplog) -> None:
        upload = UploadedFile("sales.csv", b"upc,dollar_sales\n001,abc\n")

        with caplog.at_level(logging.INFO, logger="retail_insights.services.file_validation_service"):
            outcome = service.validate_upload(upload, FileType.TRANSACTION)

        assert outcome.is_valid is False
        types = {issue.type for issue in outcome.result.errors}
        assert types == {IssueType.MISSING_COLUMN, IssueType.INVALID_DATA_TYPE}
        assert any('"event": "file_validated"' in record.getMessage() for record in caplog.records)

    def test_unreadable_file_becomes_form_error(self, service: FileValidationService) -> None:
        outcome = service.validate_upload(UploadedFile("sales.pdf", b"%PDF"), FileType.TRANSACTION)

        assert outcome.is_valid is False
        assert outcome.result is None
        assert "Unsupported file format" in outcome.error

    def test_corrupt_xls_becomes_form_error(self, service: FileValidationService) -> None:
        upload = UploadedFile("sales.xls", b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 600)

        outcome = service.validate_upload(upload, FileType.TRANSACTION)

        assert outcome.is_valid is False
        assert outcome.result is None
        assert outcome.error.startswith("Failed to parse Excel file.")

    def test_unknown_file_type(self, service: FileValidationService) -> None:
        outcome = service.validate_upload(UploadedFile("sales.csv", b"upc\n1\n"), "inventory")

        assert outcome.error == "No validation schema found for file type: inventory"

    def test_parser_settings_are_applied(self) -> None:
        service = FileValidationService(
            parser_settings=FileParserSettings(max_rows=1, delimiter="|"),
            validation_settings=ValidationSettings(),
        )

        outcome = service.validate_upload(
            UploadedFile("sales.csv", b"upc|dollar_sales|units\n1|1|1\n2|2|2\n"),
            FileType.TRANSACTION,
        )

        assert outcome.parsed_file.truncated
        assert outcome.is_valid
        assert outcome.result.warnings


class TestDisplayHelpers:
    def test_error_summary(self) -> None:
        assert error_summary(ValidationResult()) == "No issues found"
        assert error_summary(ValidationResult(errors=(_issue("a"), _issue("b")))) == "2 errors found"
        assert (
            error_summary(
                ValidationResult(
                    errors=(_issue("a"), _issue("b")),
                    warnings=(_issue("c", IssueSeverity.WARNING),),
                )
            )
            == "2 errors and 1 warning found"
        )
        assert error_summary(ValidationResult(warnings=(_issue("c"), _issue("d")))) == "2 warnings found"

    def test_status_label(self) -> None:
        assert status_label(ValidationResult()) == "Valid"
        assert status_label(ValidationResult(warnings=(_issue("c", IssueSeverity.WARNING),))) == "Valid with 1 warning"
        assert status_label(ValidationResult(errors=(_issue("a"),))) == "Invalid"

    def test_group_issues_by_type(self) -> None:
        grouped = group_issues_by_type(
            [_issue(IssueType.MISSING_COLUMN), _issue(IssueType.OTHER), _issue(IssueType.MISSING_COLUMN)]
        )

        assert {key: len(value) for key, value in grouped.items()} == {
            IssueType.MISSING_COLUMN: 2,
            IssueType.OTHER: 1,
        }
