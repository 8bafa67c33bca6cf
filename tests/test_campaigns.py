"""
tests/test_campaigns.py

Pytest unit tests for promotion-rule schemas, CampaignClient and CampaignService.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from retail_insights.schemas.campaign import CreatePromotionRuleRequest
from retail_insights.services.campaign_service import CampaignService
from tests.conftest import make_response


def _rule(**overrides) -> dict[str, object]:
    fields: dict[str, object] = {
        "name": "Ten percent off",
        "rule_type": "price_reduction",
        "target_type": "category",
        "target_categories": ["Pasta"],
        "price_reduction_percentage": 10,
        "start_date": 1_700_000_000,
        "end_date": 1_700_086_400,
    }
    fields.update(overrides)
    return fields


class TestPromotionRuleSchema:
    def test_valid_price_reduction(self) -> None:
        request = CreatePromotionRuleRequest.model_validate(_rule())

        assert request.target_selectors == ["Pasta"]
        assert "price_reduction_amount" not in request.to_payload()

    def test_price_reduction_needs_exactly_one_effect(self) -> None:
        with pytest.raises(ValidationError, match="exactly one"):
            CreatePromotionRuleRequest.model_validate(_rule(price_reduction_amount=1.5))
        with pytest.raises(ValidationError, match="exactly one"):
            CreatePromotionRuleRequest.model_validate(_rule(price_reduction_percentage=None))

    def test_effect_field_must_match_rule_type(self) -> None:
        with pytest.raises(ValidationError, match="not valid for rule_type"):
            CreatePromotionRuleRequest.model_validate(
                _rule(rule_type="feature_yes_no", feature_enabled=True)
            )

    def test_flag_rules_need_their_flag(self) -> None:
        request = CreatePromotionRuleRequest.model_validate(
            _rule(rule_type="display_yes_no", price_reduction_percentage=None, display_enabled=True)
        )
        assert request.display_enabled is True

        with pytest.raises(ValidationError, match="requires display_enabled"):
            CreatePromotionRuleRequest.model_validate(_rule(rule_type="display_yes_no", price_reduction_percentage=None))

    def test_selectors_must_match_target_type(self) -> None:
        with pytest.raises(ValidationError, match="requires a non-empty target_brands"):
            CreatePromotionRuleRequest.model_validate(_rule(target_type="brand"))
        with pytest.raises(ValidationError, match="cannot be set"):
            CreatePromotionRuleRequest.model_validate(_rule(target_upcs=["001"]))

    @pytest.mark.parametrize("end_date", [1_700_000_000, 1_600_000_000])
    def test_end_must_follow_start(self, end_date: int) -> None:
        with pytest.raises(ValidationError, match="end_date must be after start_date"):
            CreatePromotionRuleRequest.model_validate(_rule(end_date=end_date))

    def test_percentage_is_bounded(self) -> None:
        with pytest.raises(ValidationError):
            CreatePromotionRuleRequest.model_validate(_rule(price_reduction_percentage=150))


@pytest.fixture()
def service(campaign_client, campaign_store, sessions) -> CampaignService:
    return CampaignService(client=campaign_client, store=campaign_store, sessions=sessions)


class TestCampaignService:
    def test_campaigns_for_dataset_are_memoized(self, service, fake_http) -> None:
        fake_http.add_json(
            "GET",
            "/datasets/4/campaigns",
            {"campaigns": [{"campaign_id": 1, "name": "Spring", "dataset_id": 4, "created_at": 1704067200}]},
        )

        first = service.get_campaigns_for_dataset(4)
        second = service.get_campaigns_for_dataset(4)

        assert first.success and second.success
        assert first.data[0].updated_at == first.data[0].created_at
        assert fake_http.paths() == ["/datasets/4/campaigns"]

    def test_create_campaign_merges_into_cache(self, service, fake_http) -> None:
        fake_http.add_json("GET", "/datasets/4/campaigns", {"campaigns": [{"campaign_id": 1, "name": "Spring"}]})
        fake_http.add_json("POST", "/datasets/4/campaigns", {"campaign_id": 2, "name": "Summer"})
        service.get_campaigns_for_dataset(4)

        result = service.create_campaign(4, "Summer")

        assert result.success
        assert result.data.dataset_id == 4
        assert fake_http.calls[-1].kwargs["json"] == {"name": "Summer"}
        listed = service.get_campaigns_for_dataset(4).data
        assert [campaign.campaign_id for campaign in listed] == [2, 1]
        assert fake_http.paths("GET") == ["/datasets/4/campaigns"]

    def test_create_campaign_rejects_blank_name(self, service, fake_http) -> None:
        result = service.create_campaign(4, "   ")

        assert result.success is False
        assert fake_http.calls == []

    def test_create_campaign_backend_failure(self, service, fake_http) -> None:
        fake_http.add("POST", "/datasets/4/campaigns", make_response(500, {}))

        result = service.create_campaign(4, "Summer")

        assert result.success is False
        assert result.error == "Server error. Please try again later."

    def test_invalid_rule_is_reported_locally(self, service, fake_http) -> None:
        result = service.validate_promotion_rule(3, _rule(target_type="upc"))

        assert result.success
        assert result.data.is_valid is False
        assert "target_upcs" in result.data.errors[0]
        assert fake_http.calls == []

    def test_backend_rule_validation(self, service, fake_http) -> None:
        fake_http.add_json(
            "POST",
            "/campaigns/3/promotionrules/validate",
            {"is_valid": False, "errors": ["Unknown category"], "invalid_categories": ["Pasta"]},
        )

        result = service.validate_promotion_rule(3, _rule())

        assert result.success
        assert result.data.invalid_categories == ["Pasta"]
        assert fake_http.calls[0].kwargs["json"]["target_categories"] == ["Pasta"]

    def test_create_rule_updates_rule_cache(self, service, fake_http) -> None:
        fake_http.add_json("GET", "/campaigns/3/promotionrules", {"promotion_rules": []})
        fake_http.add_json("POST", "/campaigns/3/promotionrules", {"promotion_rule_id": 11})
        service.get_promotion_rules_for_campaign(3)

        result = service.create_promotion_rule(3, _rule())

        assert result.success
        assert result.data.promotion_rule_id == 11
        assert [rule.promotion_rule_id for rule in service.get_promotion_rules_for_campaign(3).data] == [11]

    def test_all_campaigns_need_session(self, service, sessions, fake_http) -> None:
        sessions.clear()

        result = service.fetch_all_campaigns()

        assert result.error == "User not authenticated"
        assert fake_http.calls == []

    def test_all_campaigns_for_user(self, service, fake_http) -> None:
        fake_http.add_json("GET", "/users/user-1/campaigns", {"campaigns": [{"campaign_id": 5, "name": "Fall"}]})

        result = service.fetch_all_campaigns()

        assert [campaign.name for campaign in result.data] == ["Fall"]
