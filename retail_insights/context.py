"""
retail_insights/context.py

Wires clients, caches and services around one authenticated session.
"""

from __future__ import annotations

from dataclasses import dataclass

import requests

from retail_insights.cache.stores import CampaignStore, DatasetStore
from retail_insights.clients.analytics_client import AnalyticsClient
from retail_insights.clients.auth_client import SessionManager
from retail_insights.clients.base import BackendClient
from retail_insights.clients.campaign_client import CampaignClient
from retail_insights.clients.dataset_client import DatasetClient
from retail_insights.clients.decomposition_client import DecompositionClient
from retail_insights.config import BackendSettings, get_backend_settings
from retail_insights.services.analytics_service import AnalyticsService
from retail_insights.services.campaign_service import CampaignService
from retail_insights.services.dataset_service import DatasetService
from retail_insights.services.decomposition_service import DecompositionService
from retail_insights.services.file_validation_service import FileValidationService
from retail_insights.services.ingestion_orchestrator import IngestionOrchestrator


@dataclass(frozen=True)
class ClientContext:
    sessions: SessionManager
    datasets: DatasetService
    campaigns: CampaignService
    analytics: AnalyticsService
    decomposition: DecompositionService
    ingestion: IngestionOrchestrator
    file_validation: FileValidationService
    dataset_store: DatasetStore
    campaign_store: CampaignStore


def build_context(
    *,
    settings: BackendSettings | None = None,
    http_session: requests.Session | None = None,
) -> ClientContext:
    """
    Build a fresh context; callers keep one per signed-in user.
    """

    resolved = settings or get_backend_settings()
    http = http_session or requests.Session()
    sessions = SessionManager(BackendClient(settings=resolved, http_session=http))
    backend = BackendClient(session_provider=sessions.require_session, settings=resolved, http_session=http)

    dataset_client = DatasetClient(backend)
    campaign_client = CampaignClient(backend)
    dataset_store = DatasetStore(dataset_client)
    campaign_store = CampaignStore(campaign_client)

    return ClientContext(
        sessions=sessions,
        datasets=DatasetService(client=dataset_client, store=dataset_store, sessions=sessions),
        campaigns=CampaignService(client=campaign_client, store=campaign_store, sessions=sessions),
        analytics=AnalyticsService(AnalyticsClient(backend)),
        decomposition=DecompositionService(DecompositionClient(backend)),
        ingestion=IngestionOrchestrator(client=dataset_client, store=dataset_store),
        file_validation=FileValidationService(),
        dataset_store=dataset_store,
        campaign_store=campaign_store,
    )
