"""
retail_insights/clients package marker.
"""

from retail_insights.clients.analytics_client import AnalyticsClient
from retail_insights.clients.auth_client import SessionManager
from retail_insights.clients.base import RETRYABLE_STATUS_CODES, BackendClient, unwrap_payload
from retail_insights.clients.campaign_client import CampaignClient
from retail_insights.clients.dataset_client import DatasetClient
from retail_insights.clients.decomposition_client import DecompositionClient

__all__ = [
    "AnalyticsClient",
    "BackendClient",
    "CampaignClient",
    "DatasetClient",
    "DecompositionClient",
    "RETRYABLE_STATUS_CODES",
    "SessionManager",
    "unwrap_payload",
]
