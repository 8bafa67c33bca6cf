"""
retail_insights/clients/analytics_client.py

Exploratory statistics and bivariate visualization endpoints.
"""

from __future__ import annotations

from pydantic import ValidationError

from retail_insights.clients.base import BackendClient, unwrap_payload
from retail_insights.errors import BackendRequestError
from retail_insights.schemas.dataset import (
    BivariateVisualization,
    VariableStatistics,
    parse_variable_statistics,
)


class AnalyticsClient:
    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend

    def get_variable_statistics(self, dataset_id: int, table: str, variable: str) -> VariableStatistics:
        body = unwrap_payload(self._backend.get_json(f"/datasets/{dataset_id}/{table}/{variable}"))
        if not isinstance(body, dict):
            raise BackendRequestError("Variable statistics response was malformed")
        try:
            return parse_variable_statistics(body)
        except ValidationError as exc:
            raise BackendRequestError("Variable statistics response was malformed") from exc

    def get_bivariate_visualization(
        self,
        dataset_id: int,
        table1: str,
        variable1: str,
        table2: str,
        variable2: str,
    ) -> BivariateVisualization:
        body = unwrap_payload(
            self._backend.get_json(
                f"/datasets/{dataset_id}/visualizations/bivariate",
                params={
                    "table1": table1,
                    "variable1": variable1,
                    "table2": table2,
                    "variable2": variable2,
                },
            )
        )
        try:
            return BivariateVisualization.model_validate(body)
        except ValidationError as exc:
            raise BackendRequestError("Bivariate visualization response was malformed") from exc
