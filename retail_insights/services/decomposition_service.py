"""
retail_insights/services/decomposition_service.py

Demand-decomposition runs: local request checks, a short-lived result
cache, status polling, result filtering and CSV export.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, TypeVar

import pandas as pd
from pydantic import ValidationError

from retail_insights.clients.decomposition_client import DecompositionClient
from retail_insights.config import DecompositionSettings, get_decomposition_settings
from retail_insights.errors import (
    NOT_AUTHENTICATED_MESSAGE,
    AuthError,
    OperationResult,
    RetailInsightsError,
    describe_error,
    validation_message,
)
from retail_insights.logging_utils import log_event
from retail_insights.schemas.decomposition import (
    CONFIDENCE_RANK,
    CampaignImpactAnalysisRequest,
    CampaignImpactAnalysisResponse,
    CategoryInitializationResponse,
    DecompositionAnalysisRequest,
    DecompositionAnalysisResponse,
    DecompositionCategoriesResponse,
    DecompositionHistoryResponse,
    DecompositionResult,
    DecompositionStatusResponse,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ANALYZE_FAILED_MESSAGE = "Failed to analyze decomposition"
STATUS_FAILED_MESSAGE = "Failed to fetch analysis status"
HISTORY_FAILED_MESSAGE = "Failed to fetch history"
IMPACT_FAILED_MESSAGE = "Failed to analyze campaign impact"
CATEGORIES_FAILED_MESSAGE = "Failed to fetch decomposition categories"
INITIALIZE_FAILED_MESSAGE = "Failed to initialize decomposition categories"
ANALYSIS_FAILED_MESSAGE = "Analysis failed"
ANALYSIS_TIMEOUT_MESSAGE = "Analysis is still processing. Please check again later."
MISSING_RESULTS_MESSAGE = "Analysis completed without results"

EXPORT_COLUMNS: tuple[str, ...] = (
    "analysis_id",
    "target_upc",
    "target_store_id",
    "target_category",
    "target_brand",
    "campaign_period",
    "category_name",
    "category_description",
    "percentage_change",
    "absolute_change",
    "confidence_level",
    "baseline_demand",
    "campaign_demand",
    "decomposition_demand",
    "analysis_date",
    "campaign_name",
)


SORT_FIELDS: tuple[str, ...] = ("name", "percentage_change", "absolute_change", "confidence_level")


class ChangeType:
    ALL = "all"
    POSITIVE = "positive"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class DecompositionFilters:
    confidence_level: str | None = None
    change_type: str = ChangeType.ALL
    minimum_change: float | None = None


@dataclass(frozen=True)
class SortOptions:
    field: str = "percentage_change"
    direction: Literal["asc", "desc"] = "desc"


@dataclass(frozen=True)
class _CacheEntry:
    stored_at: float
    response: DecompositionAnalysisResponse


def _matches(result: DecompositionResult, filters: DecompositionFilters) -> bool:
    if filters.confidence_level and result.confidence_level != filters.confidence_level:
        return False
    if filters.change_type == ChangeType.POSITIVE and result.percentage_change <= 0:
        return False
    if filters.change_type == ChangeType.NEGATIVE and result.percentage_change >= 0:
        return False
    if filters.minimum_change and abs(result.percentage_change) < filters.minimum_change:
        return False
    return True


def _sort_value(result: DecompositionResult, field: str) -> Any:
    if field == "confidence_level":
        return CONFIDENCE_RANK.get(result.confidence_level, 1)
    return getattr(result, field)


def filter_and_sort_results(
    analysis: DecompositionAnalysisResponse,
    filters: DecompositionFilters | None = None,
    sort: SortOptions | None = None,
) -> list[tuple[str, DecompositionResult]]:
    """
    Category results of ``analysis`` that pass ``filters``, ordered by ``sort``.

    Unknown sort fields keep the backend order.
    """

    filters = filters or DecompositionFilters()
    sort = sort or SortOptions()
    results = [(key, result) for key, result in analysis.decomposition_analysis.items() if _matches(result, filters)]
    if sort.field not in SORT_FIELDS:
        return results
    return sorted(results, key=lambda item: _sort_value(item[1], sort.field), reverse=sort.direction == "desc")


def export_frame(
    analysis: DecompositionAnalysisResponse,
    results: Iterable[tuple[str, DecompositionResult]] | None = None,
) -> pd.DataFrame:
    """
    One row per category result, flattened with the analysis target.
    """

    if results is None:
        results = filter_and_sort_results(analysis)
    target = analysis.target_parameters
    rows = [
        {
            "analysis_id": analysis.analysis_id,
            "target_upc": target.upc,
            "target_store_id": target.store_id,
            "target_category": target.category,
            "target_brand": target.brand,
            "campaign_period": target.period_label,
            "category_name": result.name,
            "category_description": result.description,
            "percentage_change": result.percentage_change,
            "absolute_change": result.absolute_change,
            "confidence_level": result.confidence_level,
            "baseline_demand": result.baseline_demand,
            "campaign_demand": result.campaign_demand,
            "decomposition_demand": result.decomposition_demand,
            "analysis_date": analysis.metadata.analysis_date,
            "campaign_name": analysis.metadata.campaign_name,
        }
        for _, result in results
    ]
    return pd.DataFrame(rows, columns=list(EXPORT_COLUMNS))


def export_csv(
    analysis: DecompositionAnalysisResponse,
    results: Iterable[tuple[str, DecompositionResult]] | None = None,
) -> str:
    return export_frame(analysis, results).to_csv(index=False)


def export_file_name(analysis: DecompositionAnalysisResponse) -> str:
    return f"decomposition_analysis_{analysis.analysis_id}.csv"


class DecompositionService:
    """
    Runs decomposition requests for one signed-in session.

    Completed analyses are cached per dataset and target for
    ``cache_ttl_seconds``; the oldest entry is dropped once the cache is full.
    """

    def __init__(
        self,
        client: DecompositionClient,
        *,
        settings: DecompositionSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._settings = settings or get_decomposition_settings()
        self._clock = clock
        self._sleep = sleep
        self._cache: dict[str, _CacheEntry] = {}

    @staticmethod
    def validate_request(request: DecompositionAnalysisRequest) -> list[str]:
        return request.validation_errors()

    def analyze(
        self,
        dataset_id: int,
        request: DecompositionAnalysisRequest,
        *,
        use_cache: bool = True,
    ) -> OperationResult[DecompositionAnalysisResponse]:
        errors = request.validation_errors()
        if errors:
            return OperationResult.failure(", ".join(errors))

        key = f"{dataset_id}:{request.cache_key}"
        if use_cache:
            cached = self._cached(key)
            if cached is not None:
                logger.info("Decomposition served from cache dataset_id=%s key=%s", dataset_id, key)
                return OperationResult.ok(cached)

        result = self._call(
            ANALYZE_FAILED_MESSAGE,
            lambda: self._client.analyze(dataset_id, request),
            dataset_id=dataset_id,
        )
        if result.success:
            self._store(key, result.data)
            log_event(
                logger,
                logging.INFO,
                "decomposition_completed",
                dataset_id=dataset_id,
                analysis_id=result.data.analysis_id,
                categories=len(result.data.decomposition_analysis),
            )
        return result

    def get_status(self, request_id: int) -> OperationResult[DecompositionStatusResponse]:
        return self._call(STATUS_FAILED_MESSAGE, lambda: self._client.get_status(request_id), request_id=request_id)

    def wait_for_completion(self, request_id: int) -> OperationResult[DecompositionAnalysisResponse]:
        """
        Poll the status endpoint until the run completes, fails or times out.

        Transient polling errors are logged and polling continues.
        """

        deadline = self._clock() + self._settings.poll_timeout_seconds
        while True:
            try:
                status = self._client.get_status(request_id)
            except AuthError:
                return OperationResult.failure(NOT_AUTHENTICATED_MESSAGE)
            except RetailInsightsError as exc:
                logger.warning("Decomposition status poll failed request_id=%s error=%s", request_id, exc)
            else:
                if status.status == "completed":
                    if status.results is None:
                        return OperationResult.failure(MISSING_RESULTS_MESSAGE)
                    return OperationResult.ok(status.results)
                if status.status == "failed":
                    logger.warning("Decomposition run failed request_id=%s", request_id)
                    return OperationResult.failure(ANALYSIS_FAILED_MESSAGE)

            if self._clock() >= deadline:
                logger.warning("Decomposition polling timed out request_id=%s", request_id)
                return OperationResult.failure(ANALYSIS_TIMEOUT_MESSAGE)
            self._sleep(self._settings.poll_interval_seconds)

    def get_history(
        self,
        dataset_id: int,
        *,
        status: str | None = None,
        limit: int | None = None,
    ) -> OperationResult[DecompositionHistoryResponse]:
        return self._call(
            HISTORY_FAILED_MESSAGE,
            lambda: self._client.get_history(dataset_id, status=status, limit=limit),
            dataset_id=dataset_id,
        )

    def analyze_campaign_impact(
        self,
        campaign_id: int,
        targets: list[dict[str, Any]],
        start_time: datetime,
        end_time: datetime,
    ) -> OperationResult[CampaignImpactAnalysisResponse]:
        try:
            request = CampaignImpactAnalysisRequest(targets=targets, start_time=start_time, end_time=end_time)
        except ValidationError as exc:
            return OperationResult.failure(validation_message(exc))
        errors = request.validation_errors()
        if errors:
            return OperationResult.failure(", ".join(errors))
        return self._call(
            IMPACT_FAILED_MESSAGE,
            lambda: self._client.analyze_campaign_impact(campaign_id, request),
            campaign_id=campaign_id,
        )

    def get_categories(self) -> OperationResult[DecompositionCategoriesResponse]:
        return self._call(CATEGORIES_FAILED_MESSAGE, self._client.get_categories)

    def initialize_categories(self) -> OperationResult[CategoryInitializationResponse]:
        result = self._call(INITIALIZE_FAILED_MESSAGE, self._client.initialize_categories)
        if result.success:
            logger.info("Decomposition categories initialized total=%s", result.data.total_categories)
        return result

    def compare(
        self,
        dataset_id: int,
        scenarios: dict[str, DecompositionAnalysisRequest],
    ) -> dict[str, OperationResult[DecompositionAnalysisResponse]]:
        """
        Run each named scenario independently; one failure does not stop the rest.
        """

        return {name: self.analyze(dataset_id, request) for name, request in scenarios.items()}

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def cached_keys(self) -> list[str]:
        return list(self._cache)

    def _cached(self, key: str) -> DecompositionAnalysisResponse | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._settings.cache_ttl_seconds:
            del self._cache[key]
            return None
        return entry.response

    def _store(self, key: str, response: DecompositionAnalysisResponse) -> None:
        self._cache.pop(key, None)
        while len(self._cache) >= self._settings.cache_max_entries:
            oldest = min(self._cache, key=lambda candidate: self._cache[candidate].stored_at)
            del self._cache[oldest]
        self._cache[key] = _CacheEntry(stored_at=self._clock(), response=response)

    def _call(self, failure_message: str, call: Callable[[], T], **context: Any) -> OperationResult[T]:
        try:
            return OperationResult.ok(call())
        except AuthError:
            return OperationResult.failure(NOT_AUTHENTICATED_MESSAGE)
        except RetailInsightsError as exc:
            logger.warning("%s context=%s error=%s", failure_message, context, exc)
            return OperationResult.failure(failure_message)
        except Exception as exc:
            logger.exception("Unexpected decomposition failure context=%s", context)
            return OperationResult.failure(describe_error(exc).user_message)
