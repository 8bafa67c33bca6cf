"""
retail_insights/domain package marker.
"""

from retail_insights.domain.auth import AuthSession
from retail_insights.domain.dataset import (
    AnalysisStatus,
    CreateDatasetRequest,
    Dataset,
    DatasetFiles,
    ImportStatus,
    IngestionProgress,
    IngestionStep,
    UploadedFile,
)
from retail_insights.domain.tabular import FileParserOptions, FileType, ParsedFile, ParsedRow, RawCell
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

__all__ = [
    "AnalysisStatus",
    "AuthSession",
    "ColumnKind",
    "ColumnRule",
    "ColumnSchema",
    "CreateDatasetRequest",
    "Dataset",
    "DatasetFiles",
    "FileParserOptions",
    "FileSchema",
    "FileType",
    "ImportStatus",
    "IngestionProgress",
    "IngestionStep",
    "IssueSeverity",
    "IssueType",
    "ParsedFile",
    "ParsedRow",
    "RawCell",
    "RuleKind",
    "UploadedFile",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSummary",
]
