"""
retail_insights/clients/campaign_client.py

Campaign and promotion-rule endpoints.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from retail_insights.clients.base import BackendClient, unwrap_payload
from retail_insights.errors import BackendRequestError
from retail_insights.schemas.campaign import (
    Campaign,
    CreateCampaignRequest,
    CreatePromotionRuleRequest,
    PromotionRule,
    PromotionRuleValidationResult,
)

logger = logging.getLogger(__name__)


class CampaignClient:
    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend

    def create_campaign(self, request: CreateCampaignRequest) -> Campaign:
        payload = request.model_dump(exclude_none=True, exclude={"dataset_id"})
        body = unwrap_payload(self._backend.post_json(f"/datasets/{request.dataset_id}/campaigns", payload=payload))
        if isinstance(body, dict):
            body = {"dataset_id": request.dataset_id, **body}
        return _parse_one(Campaign, body)

    def list_campaigns_by_dataset(self, dataset_id: int) -> list[Campaign]:
        body = unwrap_payload(self._backend.get_json(f"/datasets/{dataset_id}/campaigns"))
        return _parse_list(Campaign, body, "campaigns")

    def list_user_campaigns(self, user_id: str) -> list[Campaign]:
        body = unwrap_payload(self._backend.get_json(f"/users/{user_id}/campaigns"))
        return _parse_list(Campaign, body, "campaigns")

    def list_promotion_rules(self, campaign_id: int) -> list[PromotionRule]:
        body = unwrap_payload(self._backend.get_json(f"/campaigns/{campaign_id}/promotionrules"))
        return _parse_list(PromotionRule, body, "promotion_rules")

    def create_promotion_rule(self, campaign_id: int, request: CreatePromotionRuleRequest) -> PromotionRule:
        body = unwrap_payload(
            self._backend.post_json(f"/campaigns/{campaign_id}/promotionrules", payload=request.to_payload())
        )
        if isinstance(body, dict):
            body = {**request.to_payload(), **body}
        return _parse_one(PromotionRule, body)

    def validate_promotion_rule(
        self,
        campaign_id: int,
        request: CreatePromotionRuleRequest,
    ) -> PromotionRuleValidationResult:
        body = unwrap_payload(
            self._backend.post_json(
                f"/campaigns/{campaign_id}/promotionrules/validate",
                payload=request.to_payload(),
            )
        )
        result = _parse_one(PromotionRuleValidationResult, body)
        if not result.is_valid:
            logger.info("Promotion rule rejected campaign_id=%s errors=%s", campaign_id, result.errors)
        return result


def _parse_one(model, body: Any):
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise BackendRequestError(f"Unexpected {model.__name__} response") from exc


def _parse_list(model, body: Any, key: str) -> list:
    items = body.get(key, []) if isinstance(body, dict) else body
    if items is None:
        return []
    if not isinstance(items, list):
        raise BackendRequestError(f"Unexpected {model.__name__} list response")
    return [_parse_one(model, item) for item in items]
