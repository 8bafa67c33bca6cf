"""
retail_insights/services/dataset_service.py

Dataset listing, lookup and deletion for the signed-in user.
"""

from __future__ import annotations

import logging

from retail_insights.cache.stores import DatasetStore
from retail_insights.clients.auth_client import SessionManager
from retail_insights.clients.dataset_client import DatasetClient
from retail_insights.domain.dataset import Dataset
from retail_insights.errors import (
    NOT_AUTHENTICATED_MESSAGE,
    AuthError,
    OperationResult,
    describe_error,
)

logger = logging.getLogger(__name__)


class DatasetService:
    def __init__(self, *, client: DatasetClient, store: DatasetStore, sessions: SessionManager) -> None:
        self._client = client
        self._store = store
        self._sessions = sessions

    def fetch_datasets(self, *, refresh: bool = False) -> OperationResult[list[Dataset]]:
        try:
            user_id = self._sessions.require_session().user_id
        except AuthError:
            return OperationResult.failure(NOT_AUTHENTICATED_MESSAGE)

        view = self._store.list_for_user(user_id, refresh=refresh)
        if view.error is not None and view.data is None:
            return OperationResult.failure(view.error)
        return OperationResult.ok(list(view.data or []))

    def get_dataset(self, dataset_id: int) -> OperationResult[Dataset]:
        view = self._store.get_for_id(dataset_id)
        if view.data is None:
            return OperationResult.failure(view.error or f"Dataset {dataset_id} not found")
        return OperationResult.ok(view.data)

    def refresh_dataset(self, dataset_id: int) -> OperationResult[Dataset]:
        view = self._store.by_id.refresh(dataset_id)
        if view.error is not None:
            return OperationResult.failure(view.error)
        return OperationResult.ok(view.data)

    def delete_dataset(self, dataset_id: int) -> OperationResult[None]:
        try:
            self._client.delete_dataset(dataset_id)
        except Exception as exc:
            processed = describe_error(exc)
            logger.warning("Dataset delete failed dataset_id=%s error=%s", dataset_id, processed.message)
            return OperationResult.failure(processed.user_message)
        self._store.evict(dataset_id)
        logger.info("Deleted dataset dataset_id=%s", dataset_id)
        return OperationResult.ok(None)
