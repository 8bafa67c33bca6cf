"""
retail_insights/cache package marker.
"""

from retail_insights.cache.entity_cache import CacheSlot, CacheView, EntityCache
from retail_insights.cache.stores import CampaignStore, DatasetStore

__all__ = [
    "CacheSlot",
    "CacheView",
    "CampaignStore",
    "DatasetStore",
    "EntityCache",
]
