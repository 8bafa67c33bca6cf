"""
retail_insights/services package marker.
"""

from retail_insights.services.analytics_service import (
    VARIABLES_BY_TABLE,
    AnalyticsService,
    ProcessedCategoricalStats,
    ProcessedNumericalStats,
    process_categorical,
    process_numerical,
)
from retail_insights.services.campaign_service import CampaignService
from retail_insights.services.dataset_service import DatasetService
from retail_insights.services.decomposition_service import (
    DecompositionFilters,
    DecompositionService,
    SortOptions,
    export_csv,
    export_frame,
    filter_and_sort_results,
)
from retail_insights.services.file_validation_service import (
    FileValidationOutcome,
    FileValidationService,
    error_summary,
    get_file_validation_service,
    group_issues_by_type,
    status_label,
)
from retail_insights.services.ingestion_orchestrator import UPLOAD_STEPS, IngestionOrchestrator

__all__ = [
    "AnalyticsService",
    "CampaignService",
    "DatasetService",
    "DecompositionFilters",
    "DecompositionService",
    "FileValidationOutcome",
    "FileValidationService",
    "IngestionOrchestrator",
    "ProcessedCategoricalStats",
    "ProcessedNumericalStats",
    "SortOptions",
    "UPLOAD_STEPS",
    "VARIABLES_BY_TABLE",
    "error_summary",
    "export_csv",
    "export_frame",
    "filter_and_sort_results",
    "get_file_validation_service",
    "group_issues_by_type",
    "process_categorical",
    "process_numerical",
    "status_label",
]
