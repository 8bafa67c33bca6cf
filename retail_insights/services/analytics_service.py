"""
retail_insights/services/analytics_service.py

Exploratory statistics for one dataset variable, shaped for charts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pandas as pd

from retail_insights.clients.analytics_client import AnalyticsClient
from retail_insights.errors import OperationResult, RetailInsightsError, describe_error
from retail_insights.schemas.dataset import (
    BivariateVisualization,
    CategoricalStatistics,
    NumericalStatistics,
)

logger = logging.getLogger(__name__)

TOP_BINS = 10
OTHERS_LABEL = "Others"
STATISTICS_FAILED_MESSAGE = "Failed to fetch variable statistics"
BIVARIATE_FAILED_MESSAGE = "Failed to fetch bivariate visualization"


@dataclass(frozen=True)
class Variable:
    key: str
    label: str
    kind: str


VARIABLES_BY_TABLE: dict[str, tuple[Variable, ...]] = {
    "transactions": (
        Variable("upc", "UPC", "categorical"),
        Variable("dollar_sales", "Dollar Sales", "numerical"),
        Variable("units", "Unit Sales", "numerical"),
        Variable("time_of_transaction", "Time of Transaction", "categorical"),
        Variable("day", "Day", "categorical"),
        Variable("week", "Week", "categorical"),
        Variable("store", "Store", "categorical"),
        Variable("geography", "Geography", "categorical"),
        Variable("basket", "Basket", "categorical"),
        Variable("household", "Household", "categorical"),
        Variable("coupon", "Coupon", "categorical"),
    ),
    "productlookups": (
        Variable("upc", "UPC", "categorical"),
        Variable("product_description", "Product Description", "categorical"),
        Variable("commodity", "Commodity", "categorical"),
        Variable("brand", "Brand", "categorical"),
        Variable("product_size", "Product Size", "numerical"),
    ),
    "causallookups": (
        Variable("upc", "UPC", "categorical"),
        Variable("week", "Week", "categorical"),
        Variable("store", "Store", "categorical"),
        Variable("geography", "Geography", "categorical"),
        Variable("feature_desc", "Feature", "categorical"),
        Variable("display_desc", "Display", "categorical"),
    ),
}


@dataclass(frozen=True)
class ProcessedNumericalStats:
    mean: float
    median: float
    mode: float | str
    min: float
    max: float
    q1: float
    q3: float
    std: float
    count: int
    unique: int
    histogram: list[tuple[float, int]] = field(default_factory=list)
    kind: str = "numerical"

    def histogram_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.histogram, columns=["value", "count"])


@dataclass(frozen=True)
class ProcessedCategoricalStats:
    mode: str
    count: int
    unique: int
    frequency: dict[str, int] = field(default_factory=dict)
    pie_slices: list[tuple[str, int]] = field(default_factory=list)
    kind: str = "categorical"

    def histogram_frame(self) -> pd.DataFrame:
        return pd.DataFrame(list(self.frequency.items()), columns=["category", "count"])

    def pie_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.pie_slices, columns=["name", "value"])


ProcessedStats = ProcessedNumericalStats | ProcessedCategoricalStats


def _sorted_bins(bins: dict[str, int]) -> list[tuple[str, int]]:
    return sorted(bins.items(), key=lambda item: item[1], reverse=True)


def process_numerical(stats: NumericalStatistics) -> ProcessedNumericalStats:
    histogram: list[tuple[float, int]] = []
    for value, count in _sorted_bins(stats.bins)[:TOP_BINS]:
        try:
            histogram.append((float(value), count))
        except ValueError:
            logger.debug("Skipping non-numeric histogram bin value=%s", value)
    return ProcessedNumericalStats(
        mean=stats.mean or 0.0,
        median=stats.median or 0.0,
        mode=stats.mode[0] if stats.mode else "N/A",
        min=stats.min or 0.0,
        max=stats.max or 0.0,
        q1=stats.q1 or 0.0,
        q3=stats.q3 or 0.0,
        std=stats.std or 0.0,
        count=stats.count,
        unique=stats.unique,
        histogram=histogram,
    )


def process_categorical(stats: CategoricalStatistics) -> ProcessedCategoricalStats:
    ordered = _sorted_bins(stats.bins)
    pie_slices = list(ordered[:TOP_BINS])
    remaining = ordered[TOP_BINS:]
    if remaining:
        pie_slices.append((OTHERS_LABEL, sum(count for _, count in remaining)))
    return ProcessedCategoricalStats(
        mode=ordered[0][0] if ordered else "N/A",
        count=stats.count,
        unique=stats.unique,
        frequency=dict(stats.bins),
        pie_slices=pie_slices,
    )


def find_variable(table: str, variable: str) -> Variable | None:
    for candidate in VARIABLES_BY_TABLE.get(table, ()):
        if candidate.key == variable:
            return candidate
    return None


class AnalyticsService:
    def __init__(self, client: AnalyticsClient) -> None:
        self._client = client

    def variable_statistics(self, dataset_id: int, table: str, variable: str) -> OperationResult[ProcessedStats]:
        if find_variable(table, variable) is None:
            return OperationResult.failure(f"Unknown variable '{variable}' for table '{table}'")
        try:
            stats = self._client.get_variable_statistics(dataset_id, table, variable)
        except RetailInsightsError as exc:
            logger.warning(
                "Variable statistics failed dataset_id=%s table=%s variable=%s error=%s",
                dataset_id,
                table,
                variable,
                exc,
            )
            return OperationResult.failure(STATISTICS_FAILED_MESSAGE)
        except Exception as exc:
            logger.exception("Unexpected failure fetching statistics dataset_id=%s", dataset_id)
            return OperationResult.failure(describe_error(exc).user_message)

        if isinstance(stats, NumericalStatistics):
            return OperationResult.ok(process_numerical(stats))
        return OperationResult.ok(process_categorical(stats))

    def bivariate(
        self,
        dataset_id: int,
        table1: str,
        variable1: str,
        table2: str,
        variable2: str,
    ) -> OperationResult[BivariateVisualization]:
        try:
            payload = self._client.get_bivariate_visualization(dataset_id, table1, variable1, table2, variable2)
        except RetailInsightsError as exc:
            logger.warning("Bivariate visualization failed dataset_id=%s error=%s", dataset_id, exc)
            return OperationResult.failure(BIVARIATE_FAILED_MESSAGE)
        except Exception as exc:
            logger.exception("Unexpected failure fetching bivariate data dataset_id=%s", dataset_id)
            return OperationResult.failure(describe_error(exc).user_message)
        return OperationResult.ok(payload)
