"""
retail_insights/schemas/dataset.py

Backend payload schemas for dataset and analytics endpoints.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from retail_insights.domain.dataset import AnalysisStatus, Dataset, ImportStatus

_FILE_UPLOAD_KEYS: tuple[tuple[str, str], ...] = (
    ("transactions", ImportStatus.IMPORTING_TRANSACTION),
    ("product_lookup", ImportStatus.IMPORTING_PRODUCT_LOOKUP),
    ("causal_lookup", ImportStatus.IMPORTING_CAUSAL_LOOKUP),
)


class CreateDatasetMasterRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    description: str | None = None


class DatasetMasterResponse(BaseModel):
    """
    Response of ``POST /datasets``.
    """

    model_config = ConfigDict(extra="ignore")

    dataset_id: int
    name: str
    description: str | None = None
    created_at: float | None = None

    def to_dataset(self, *, now: datetime | None = None) -> Dataset:
        created = (
            datetime.fromtimestamp(self.created_at, tz=timezone.utc)
            if self.created_at is not None
            else now or datetime.now(tz=timezone.utc)
        )
        return Dataset(
            id=self.dataset_id,
            name=self.name,
            description=self.description,
            import_status=ImportStatus.IMPORTING_TRANSACTION,
            analysis_status=AnalysisStatus.NOT_STARTED,
            created_at=created,
            updated_at=created,
        )


class FileUploadResponse(BaseModel):
    """
    Response of the per-file multipart upload endpoints.
    """

    model_config = ConfigDict(extra="ignore")

    file_upload_id: int | str
    task_id: int | str | None = None


class DatasetListItem(BaseModel):
    """
    One entry of ``GET /users/{uid}/datasets``.
    """

    model_config = ConfigDict(extra="ignore")

    dataset_id: int
    name: str | None = None
    description: str | None = None
    created_at: float
    status: str | None = None
    file_uploads: dict[str, Any] | None = None
    latest_training: dict[str, Any] | None = None

    def to_dataset(self) -> Dataset:
        created = datetime.fromtimestamp(self.created_at, tz=timezone.utc)
        return Dataset(
            id=self.dataset_id,
            name=self.name or f"Dataset {self.dataset_id}",
            description=self.description,
            import_status=import_status_from_file_uploads(self.file_uploads),
            analysis_status=analysis_status_from_training(self.latest_training),
            created_at=created,
            updated_at=created,
        )


def import_status_from_file_uploads(file_uploads: dict[str, Any] | None) -> str:
    """
    Derive the import status from per-file upload records.

    The first file whose upload is not ``completed`` determines the status.
    """

    if not file_uploads:
        return ImportStatus.IMPORTING_TRANSACTION
    for key, pending_status in _FILE_UPLOAD_KEYS:
        upload = file_uploads.get(key)
        if not isinstance(upload, dict) or upload.get("status") != "completed":
            return pending_status
    return ImportStatus.IMPORT_COMPLETED


def analysis_status_from_training(latest_training: dict[str, Any] | None) -> str:
    if not latest_training:
        return AnalysisStatus.NOT_STARTED
    status = latest_training.get("status")
    if status == "completed":
        return AnalysisStatus.ANALYZED
    if status in {"running", "pending"}:
        return AnalysisStatus.ANALYZING
    return AnalysisStatus.NOT_STARTED


class NumericalStatistics(BaseModel):
    """
    Backend statistics for a numerical variable.
    """

    model_config = ConfigDict(extra="ignore")

    type: Literal["numerical"] = "numerical"
    min: float | None = None
    q1: float | None = None
    median: float | None = None
    q3: float | None = None
    max: float | None = None
    mean: float | None = None
    std: float | None = None
    mode: list[float] = Field(default_factory=list)
    count: int = 0
    unique: int = 0
    bins: dict[str, int] = Field(default_factory=dict)


class CategoricalStatistics(BaseModel):
    """
    Backend statistics for a categorical variable.
    """

    model_config = ConfigDict(extra="ignore")

    type: Literal["categorical"] = "categorical"
    count: int = 0
    unique: int = 0
    bins: dict[str, int] = Field(default_factory=dict)


VariableStatistics = NumericalStatistics | CategoricalStatistics

_NUMERICAL_KEYS = frozenset({"min", "q1", "median", "q3", "max", "mean", "std"})


def parse_variable_statistics(payload: dict[str, Any]) -> VariableStatistics:
    """
    Pick the statistics model from the payload shape.

    An explicit ``type`` wins; otherwise any quantile/moment key means numerical.
    """

    declared = payload.get("type")
    if declared == "categorical":
        return CategoricalStatistics.model_validate(payload)
    if declared == "numerical" or _NUMERICAL_KEYS & payload.keys():
        return NumericalStatistics.model_validate(payload)
    return CategoricalStatistics.model_validate(payload)


class BivariateVisualization(BaseModel):
    """
    Correlation and chart-ready payload from the bivariate endpoint.
    """

    model_config = ConfigDict(extra="allow")

    chart_type: str | None = None
    correlation: float | None = None
    data: list[dict[str, Any]] = Field(default_factory=list)
