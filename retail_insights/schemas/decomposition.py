"""
retail_insights/schemas/decomposition.py

Demand-decomposition and campaign-impact request/response schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ConfidenceLevel = Literal["low", "medium", "high"]
DecompositionRunStatus = Literal["processing", "completed", "failed"]

CONFIDENCE_RANK: dict[str, int] = {"low": 1, "medium": 2, "high": 3}


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class DecompositionAnalysisRequest(BaseModel):
    """
    Target of one decomposition run.

    Fields are lenient so that every problem can be reported at once by
    ``validation_errors`` before anything is sent.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    upc: str = ""
    store_id: int = 0
    category: str = ""
    brand: str = ""
    start_time: datetime | None = None
    end_time: datetime | None = None
    campaign_id: int | None = None

    def validation_errors(self) -> list[str]:
        errors: list[str] = []
        if not self.upc:
            errors.append("UPC is required")
        if self.store_id <= 0:
            errors.append("Valid store ID is required")
        if not self.category:
            errors.append("Category is required")
        if not self.brand:
            errors.append("Brand is required")
        if self.start_time is None:
            errors.append("Start time is required")
        if self.end_time is None:
            errors.append("End time is required")
        if self.start_time is not None and self.end_time is not None and self.start_time >= self.end_time:
            errors.append("End time must be after start time")
        return errors

    @property
    def cache_key(self) -> str:
        return "_".join(
            [
                "decomp",
                self.upc,
                str(self.store_id),
                self.category,
                self.brand,
                _isoformat(self.start_time) or "",
                _isoformat(self.end_time) or "",
                str(self.campaign_id) if self.campaign_id is not None else "no_campaign",
            ]
        )

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(exclude_none=True, exclude={"start_time", "end_time"})
        payload["start_time"] = _isoformat(self.start_time)
        payload["end_time"] = _isoformat(self.end_time)
        return payload


class DecompositionResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    description: str = ""
    percentage_change: float = 0.0
    absolute_change: float = 0.0
    confidence_level: ConfidenceLevel = "low"
    baseline_demand: float = 0.0
    campaign_demand: float = 0.0
    decomposition_demand: float = 0.0


class DemandTotals(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_units: float = 0.0
    total_revenue: float = 0.0
    average_weekly_units: float = 0.0


class AnalysisTimePeriod(BaseModel):
    model_config = ConfigDict(extra="ignore")

    start_time: str
    end_time: str
    pre_period: list[str] = Field(default_factory=list)
    current_period: list[str] = Field(default_factory=list)
    post_period: list[str] = Field(default_factory=list)


class TargetParameters(BaseModel):
    """
    Target echoed back by the backend; history entries carry flat times.
    """

    model_config = ConfigDict(extra="ignore")

    upc: str
    store_id: int
    category: str
    brand: str = ""
    start_time: str | None = None
    end_time: str | None = None
    time_period: AnalysisTimePeriod | None = None

    @property
    def period_label(self) -> str:
        start = self.time_period.start_time if self.time_period else self.start_time
        end = self.time_period.end_time if self.time_period else self.end_time
        return f"{start} to {end}"


class DataCoverage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    missing_data_percentage: float = 0.0
    imputed_values: int = 0
    total_categories_analyzed: int = 0
    categories_with_errors: int = 0


class DecompositionSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_change_percentage: float = 0.0
    net_incremental_units: float = 0.0
    campaign_effectiveness: ConfidenceLevel = "low"
    data_coverage: DataCoverage | None = None


class AnalysisMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    analysis_date: str | None = None
    processing_time_ms: float | None = None
    campaign_id: int | None = None
    campaign_name: str | None = None
    model_versions: dict[str, str] = Field(default_factory=dict)


class DecompositionAnalysisResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    dataset_id: int
    analysis_id: str
    request_id: int
    target_parameters: TargetParameters
    baseline_demand: DemandTotals = Field(default_factory=DemandTotals)
    campaign_demand: DemandTotals = Field(default_factory=DemandTotals)
    decomposition_analysis: dict[str, DecompositionResult] = Field(default_factory=dict)
    summary: DecompositionSummary = Field(default_factory=DecompositionSummary)
    metadata: AnalysisMetadata = Field(default_factory=AnalysisMetadata)


class DecompositionStatusResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    request_id: int
    dataset_id: int
    status: DecompositionRunStatus
    created_at: str | None = None
    completed_at: str | None = None
    processing_time_ms: float | None = None
    target_parameters: TargetParameters | None = None
    campaign_id: int | None = None
    campaign_name: str | None = None
    results: DecompositionAnalysisResponse | None = None


class DecompositionHistoryEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    request_id: int
    target_parameters: TargetParameters
    campaign_id: int | None = None
    campaign_name: str | None = None
    status: DecompositionRunStatus
    created_at: str | None = None
    completed_at: str | None = None
    processing_time_ms: float | None = None
    summary: DecompositionSummary | None = None


class DecompositionHistoryResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    dataset_id: int
    requests: list[DecompositionHistoryEntry] = Field(default_factory=list)
    total_requests: int = 0
    filters_applied: dict[str, Any] = Field(default_factory=dict)


class CampaignImpactTarget(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    upc: str = Field(min_length=1)
    store_id: int = Field(gt=0)
    category: str = Field(min_length=1)
    brand: str = Field(min_length=1)


class CampaignImpactAnalysisRequest(BaseModel):
    targets: list[CampaignImpactTarget] = Field(min_length=1)
    start_time: datetime
    end_time: datetime

    def validation_errors(self) -> list[str]:
        if self.start_time >= self.end_time:
            return ["End time must be after start time"]
        return []

    def to_payload(self) -> dict[str, Any]:
        return {
            "targets": [target.model_dump() for target in self.targets],
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
        }


class AggregateImpactMetrics(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_targets_analyzed: int = 0
    successful_analyses: int = 0
    failed_analyses: int = 0
    aggregate_baseline_units: float = 0.0
    aggregate_campaign_units: float = 0.0
    aggregate_lift_percentage: float = 0.0
    aggregate_incremental_units: float = 0.0


class TargetImpactAnalysis(BaseModel):
    model_config = ConfigDict(extra="ignore")

    target_index: int
    target: CampaignImpactTarget
    analysis: DecompositionAnalysisResponse


class CampaignImpactAnalysisResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    campaign_id: int
    campaign_name: str = ""
    analysis_period: dict[str, str] = Field(default_factory=dict)
    aggregate_metrics: AggregateImpactMetrics = Field(default_factory=AggregateImpactMetrics)
    target_analyses: list[TargetImpactAnalysis] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class DecompositionCategory(BaseModel):
    model_config = ConfigDict(extra="ignore")

    category_id: int
    name: str
    code_name: str
    description: str = ""
    characteristics: dict[str, str] = Field(default_factory=dict)


class DecompositionCategoriesResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    categories: list[DecompositionCategory] = Field(default_factory=list)
    total_categories: int = 0
    description: str = ""


class CategoryInitializationResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str = ""
    total_categories: int = 0
