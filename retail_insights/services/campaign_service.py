"""
retail_insights/services/campaign_service.py

Campaign and promotion-rule workflows with optimistic cache merges.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from retail_insights.cache.stores import CampaignStore
from retail_insights.clients.auth_client import SessionManager
from retail_insights.clients.campaign_client import CampaignClient
from retail_insights.errors import (
    NOT_AUTHENTICATED_MESSAGE,
    AuthError,
    OperationResult,
    describe_error,
    validation_message,
)
from retail_insights.schemas.campaign import (
    Campaign,
    CreateCampaignRequest,
    CreatePromotionRuleRequest,
    PromotionRule,
    PromotionRuleValidationResult,
)

logger = logging.getLogger(__name__)


class CampaignService:
    def __init__(self, *, client: CampaignClient, store: CampaignStore, sessions: SessionManager) -> None:
        self._client = client
        self._store = store
        self._sessions = sessions

    def get_campaigns_for_dataset(self, dataset_id: int) -> OperationResult[list[Campaign]]:
        view = self._store.campaigns_for_dataset(dataset_id)
        if view.data is None:
            return OperationResult.failure(view.error or "Failed to fetch campaigns")
        return OperationResult.ok(list(view.data))

    def fetch_all_campaigns(self, *, refresh: bool = False) -> OperationResult[list[Campaign]]:
        try:
            user_id = self._sessions.require_session().user_id
        except AuthError:
            return OperationResult.failure(NOT_AUTHENTICATED_MESSAGE)
        view = self._store.campaigns_for_user(user_id, refresh=refresh)
        if view.data is None:
            return OperationResult.failure(view.error or "Failed to fetch campaigns")
        return OperationResult.ok(list(view.data))

    def get_promotion_rules_for_campaign(self, campaign_id: int) -> OperationResult[list[PromotionRule]]:
        view = self._store.rules_for_campaign(campaign_id)
        if view.data is None:
            return OperationResult.failure(view.error or "Failed to fetch promotion rules")
        return OperationResult.ok(list(view.data))

    def create_campaign(
        self,
        dataset_id: int,
        name: str,
        description: str | None = None,
    ) -> OperationResult[Campaign]:
        try:
            request = CreateCampaignRequest(dataset_id=dataset_id, name=name, description=description)
        except ValidationError as exc:
            return OperationResult.failure(validation_message(exc))
        try:
            campaign = self._client.create_campaign(request)
        except Exception as exc:
            processed = describe_error(exc, default_message="Failed to create campaign")
            logger.warning("Campaign create failed dataset_id=%s error=%s", dataset_id, processed.message)
            return OperationResult.failure(processed.user_message)
        self._store.add_campaign(campaign)
        logger.info("Created campaign campaign_id=%s dataset_id=%s", campaign.campaign_id, dataset_id)
        return OperationResult.ok(campaign)

    def create_promotion_rule(self, campaign_id: int, fields: dict[str, object]) -> OperationResult[PromotionRule]:
        try:
            request = CreatePromotionRuleRequest.model_validate(fields)
        except ValidationError as exc:
            return OperationResult.failure(validation_message(exc))
        try:
            rule = self._client.create_promotion_rule(campaign_id, request)
        except Exception as exc:
            processed = describe_error(exc, default_message="Failed to create promotion rule")
            logger.warning("Promotion rule create failed campaign_id=%s error=%s", campaign_id, processed.message)
            return OperationResult.failure(processed.user_message)
        self._store.add_promotion_rule(campaign_id, rule)
        return OperationResult.ok(rule)

    def validate_promotion_rule(
        self,
        campaign_id: int,
        fields: dict[str, object],
    ) -> OperationResult[PromotionRuleValidationResult]:
        """
        Check a rule locally, then ask the backend whether its targets exist.
        """

        try:
            request = CreatePromotionRuleRequest.model_validate(fields)
        except ValidationError as exc:
            return OperationResult.ok(
                PromotionRuleValidationResult(is_valid=False, errors=[validation_message(exc)])
            )
        try:
            return OperationResult.ok(self._client.validate_promotion_rule(campaign_id, request))
        except Exception as exc:
            processed = describe_error(exc, default_message="Failed to validate promotion rule")
            logger.warning("Promotion rule validation failed campaign_id=%s error=%s", campaign_id, processed.message)
            return OperationResult.failure(processed.user_message)
