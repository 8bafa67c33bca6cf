"""
retail_insights/cache/stores.py

Dataset and campaign caches built on EntityCache.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from retail_insights.cache.entity_cache import CacheView, EntityCache
from retail_insights.clients.campaign_client import CampaignClient
from retail_insights.clients.dataset_client import DatasetClient
from retail_insights.domain.dataset import Dataset
from retail_insights.schemas.campaign import Campaign, PromotionRule

logger = logging.getLogger(__name__)


def _upsert_front(items: list, item, key) -> list:
    """
    Return ``items`` with ``item`` first, dropping any entry with the same key.
    """

    item_key = key(item)
    return [item, *(existing for existing in items if key(existing) != item_key)]


def _replace_in(items: list, item, key) -> list:
    item_key = key(item)
    return [item if key(existing) == item_key else existing for existing in items]


class DatasetStore:
    """
    Client-side cache of datasets by id and dataset lists by user id.
    """

    def __init__(self, client: DatasetClient) -> None:
        self.by_id: EntityCache[int, Dataset] = EntityCache(client.get_dataset, name="dataset")
        self.by_user: EntityCache[str, list[Dataset]] = EntityCache(client.list_datasets, name="user_datasets")

    def get_for_id(self, dataset_id: int) -> CacheView[Dataset]:
        return self.by_id.get_for_id(dataset_id)

    def peek(self, dataset_id: int) -> Dataset | None:
        return self.by_id.peek(dataset_id).data

    def list_for_user(self, user_id: str, *, refresh: bool = False) -> CacheView[list[Dataset]]:
        if refresh:
            return self.by_user.refresh(user_id)
        view = self.by_user.get_for_id(user_id)
        if view.data is not None:
            for dataset in view.data:
                if not self.by_id.peek(dataset.id).has_data:
                    self.by_id.merge(dataset.id, dataset)
        return view

    def put(self, dataset: Dataset, *, user_id: str | None = None) -> None:
        """
        Merge a backend-confirmed dataset into the id slot and the user list.
        """

        self.by_id.merge(dataset.id, dataset)
        if user_id is not None and self.by_user.peek(user_id).has_data:
            self.by_user.update(user_id, lambda items: _upsert_front(items, dataset, lambda d: d.id))
        else:
            self.by_user.update_all(lambda items: _replace_in(items, dataset, lambda d: d.id))

    def advance_import_status(self, dataset_id: int, status: str) -> Dataset | None:
        """
        Move the cached import status forward; an older status is ignored.
        """

        now = datetime.now(tz=timezone.utc)
        view = self.by_id.update(dataset_id, lambda dataset: dataset.with_import_status(status, updated_at=now))
        if view is None or view.data is None:
            return None
        updated = view.data
        self.by_user.update_all(lambda items: _replace_in(items, updated, lambda d: d.id))
        logger.debug("Cached import status dataset_id=%s status=%s", dataset_id, updated.import_status)
        return updated

    def evict(self, dataset_id: int) -> None:
        self.by_id.evict(dataset_id)
        self.by_user.update_all(lambda items: [item for item in items if item.id != dataset_id])


class CampaignStore:
    """
    Client-side cache of campaigns and their promotion rules.
    """

    def __init__(self, client: CampaignClient) -> None:
        self.by_dataset: EntityCache[int, list[Campaign]] = EntityCache(
            client.list_campaigns_by_dataset, name="dataset_campaigns"
        )
        self.by_user: EntityCache[str, list[Campaign]] = EntityCache(client.list_user_campaigns, name="user_campaigns")
        self.rules_by_campaign: EntityCache[int, list[PromotionRule]] = EntityCache(
            client.list_promotion_rules, name="promotion_rules"
        )

    def campaigns_for_dataset(self, dataset_id: int) -> CacheView[list[Campaign]]:
        return self.by_dataset.get_for_id(dataset_id)

    def campaigns_for_user(self, user_id: str, *, refresh: bool = False) -> CacheView[list[Campaign]]:
        if refresh:
            return self.by_user.refresh(user_id)
        return self.by_user.get_for_id(user_id)

    def rules_for_campaign(self, campaign_id: int) -> CacheView[list[PromotionRule]]:
        return self.rules_by_campaign.get_for_id(campaign_id)

    def add_campaign(self, campaign: Campaign) -> None:
        """
        Prepend a newly created campaign to every loaded list it belongs to.
        """

        if campaign.dataset_id is not None:
            self.by_dataset.update(
                campaign.dataset_id,
                lambda items: _upsert_front(items, campaign, lambda c: c.campaign_id),
            )
        self.by_user.update_all(lambda items: _upsert_front(items, campaign, lambda c: c.campaign_id))

    def add_promotion_rule(self, campaign_id: int, rule: PromotionRule) -> None:
        self.rules_by_campaign.update(
            campaign_id,
            lambda items: _upsert_front(items, rule, lambda r: r.promotion_rule_id),
        )

        def bump(items: list[Campaign]) -> list[Campaign]:
            return [
                item.model_copy(update={"promotion_rules_count": item.promotion_rules_count + 1})
                if item.campaign_id == campaign_id
                else item
                for item in items
            ]

        self.by_dataset.update_all(bump)
        self.by_user.update_all(bump)
