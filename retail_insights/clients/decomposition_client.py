"""
retail_insights/clients/decomposition_client.py

Demand-decomposition, campaign-impact and decomposition-category endpoints.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from retail_insights.clients.base import BackendClient, unwrap_payload
from retail_insights.errors import BackendRequestError
from retail_insights.schemas.decomposition import (
    CampaignImpactAnalysisRequest,
    CampaignImpactAnalysisResponse,
    CategoryInitializationResponse,
    DecompositionAnalysisRequest,
    DecompositionAnalysisResponse,
    DecompositionCategoriesResponse,
    DecompositionHistoryResponse,
    DecompositionStatusResponse,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: type[ModelT], body: Any, label: str) -> ModelT:
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise BackendRequestError(f"{label} response was malformed") from exc


class DecompositionClient:
    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend

    def analyze(self, dataset_id: int, request: DecompositionAnalysisRequest) -> DecompositionAnalysisResponse:
        body = unwrap_payload(
            self._backend.post_json(f"/datasets/{dataset_id}/demand-decomposition", payload=request.to_payload())
        )
        return _parse(DecompositionAnalysisResponse, body, "Demand decomposition")

    def get_status(self, request_id: int) -> DecompositionStatusResponse:
        body = unwrap_payload(self._backend.get_json(f"/demand-decomposition/{request_id}/status"))
        return _parse(DecompositionStatusResponse, body, "Decomposition status")

    def get_history(
        self,
        dataset_id: int,
        *,
        status: str | None = None,
        limit: int | None = None,
    ) -> DecompositionHistoryResponse:
        params: dict[str, Any] = {}
        if status:
            params["status"] = status
        if limit:
            params["limit"] = limit
        body = unwrap_payload(
            self._backend.get_json(
                f"/datasets/{dataset_id}/demand-decomposition/history",
                params=params or None,
            )
        )
        return _parse(DecompositionHistoryResponse, body, "Decomposition history")

    def analyze_campaign_impact(
        self,
        campaign_id: int,
        request: CampaignImpactAnalysisRequest,
    ) -> CampaignImpactAnalysisResponse:
        body = unwrap_payload(
            self._backend.post_json(f"/campaigns/{campaign_id}/impact-analysis", payload=request.to_payload())
        )
        return _parse(CampaignImpactAnalysisResponse, body, "Campaign impact analysis")

    def get_categories(self) -> DecompositionCategoriesResponse:
        body = unwrap_payload(self._backend.get_json("/decomposition-categories"))
        return _parse(DecompositionCategoriesResponse, body, "Decomposition categories")

    def initialize_categories(self) -> CategoryInitializationResponse:
        body = unwrap_payload(self._backend.post_json("/decomposition-categories"))
        return _parse(CategoryInitializationResponse, body, "Category initialization")
