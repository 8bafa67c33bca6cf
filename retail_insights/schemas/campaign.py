"""
retail_insights/schemas/campaign.py

Campaign and promotion-rule payload schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

RuleType = Literal["price_reduction", "product_size_increase", "feature_yes_no", "display_yes_no"]
TargetType = Literal["category", "brand", "upc"]

_EFFECT_FIELDS_BY_RULE_TYPE: dict[str, tuple[str, ...]] = {
    "price_reduction": ("price_reduction_percentage", "price_reduction_amount"),
    "product_size_increase": ("size_increase_percentage",),
    "feature_yes_no": ("feature_enabled",),
    "display_yes_no": ("display_enabled",),
}

_SELECTOR_FIELD_BY_TARGET_TYPE: dict[str, str] = {
    "category": "target_categories",
    "brand": "target_brands",
    "upc": "target_upcs",
}

ALL_EFFECT_FIELDS: tuple[str, ...] = tuple(
    field_name for fields in _EFFECT_FIELDS_BY_RULE_TYPE.values() for field_name in fields
)


class Campaign(BaseModel):
    model_config = ConfigDict(extra="ignore")

    campaign_id: int
    name: str
    description: str | None = None
    dataset_id: int | None = None
    is_active: bool = True
    promotion_rules_count: int = Field(default=0, ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _default_updated_at(self) -> "Campaign":
        if self.updated_at is None and self.created_at is not None:
            self.updated_at = self.created_at
        return self


class CreateCampaignRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    dataset_id: int
    description: str | None = None


class PromotionRuleFields(BaseModel):
    """
    Targeting and effect fields shared by rule payloads.

    The populated effect field(s) must match ``rule_type`` and the populated
    selector list must match ``target_type``.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    rule_type: RuleType
    target_type: TargetType
    target_categories: list[str] | None = None
    target_brands: list[str] | None = None
    target_upcs: list[str] | None = None
    price_reduction_percentage: float | None = Field(default=None, gt=0, le=100)
    price_reduction_amount: float | None = Field(default=None, gt=0)
    size_increase_percentage: float | None = Field(default=None, gt=0)
    feature_enabled: bool | None = None
    display_enabled: bool | None = None
    start_date: int = Field(ge=0, description="Epoch seconds")
    end_date: int = Field(ge=0, description="Epoch seconds")

    @model_validator(mode="after")
    def _check_rule_consistency(self) -> "PromotionRuleFields":
        allowed = _EFFECT_FIELDS_BY_RULE_TYPE[self.rule_type]
        populated = [name for name in ALL_EFFECT_FIELDS if getattr(self, name) is not None]

        unexpected = [name for name in populated if name not in allowed]
        if unexpected:
            raise ValueError(
                f"Fields {', '.join(unexpected)} are not valid for rule_type '{self.rule_type}'."
            )
        if self.rule_type == "price_reduction":
            if len(populated) != 1:
                raise ValueError(
                    "price_reduction rules require exactly one of "
                    "price_reduction_percentage or price_reduction_amount."
                )
        elif not populated:
            raise ValueError(f"rule_type '{self.rule_type}' requires {allowed[0]}.")

        selector_field = _SELECTOR_FIELD_BY_TARGET_TYPE[self.target_type]
        selectors = getattr(self, selector_field)
        if not selectors or not any(value.strip() for value in selectors):
            raise ValueError(f"target_type '{self.target_type}' requires a non-empty {selector_field}.")
        for field_name in _SELECTOR_FIELD_BY_TARGET_TYPE.values():
            if field_name != selector_field and getattr(self, field_name):
                raise ValueError(f"{field_name} cannot be set when target_type is '{self.target_type}'.")

        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date.")
        return self

    @property
    def target_selectors(self) -> list[str]:
        return list(getattr(self, _SELECTOR_FIELD_BY_TARGET_TYPE[self.target_type]) or [])


class CreatePromotionRuleRequest(PromotionRuleFields):
    def to_payload(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)


class PromotionRule(PromotionRuleFields):
    promotion_rule_id: int
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PromotionRuleValidationResult(BaseModel):
    """
    Response of ``POST /campaigns/{id}/promotionrules/validate``.
    """

    model_config = ConfigDict(extra="ignore")

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    invalid_categories: list[str] = Field(default_factory=list)
    invalid_brands: list[str] = Field(default_factory=list)
    invalid_upcs: list[str] = Field(default_factory=list)
