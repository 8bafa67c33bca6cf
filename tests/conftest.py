"""
tests/conftest.py

Shared fixtures: an in-memory HTTP session standing in for the backend.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import pytest
import requests

from retail_insights.cache.stores import CampaignStore, DatasetStore
from retail_insights.clients.auth_client import SessionManager
from retail_insights.clients.base import BackendClient
from retail_insights.clients.campaign_client import CampaignClient
from retail_insights.clients.dataset_client import DatasetClient
from retail_insights.config import BackendSettings
from retail_insights.domain.auth import AuthSession
from retail_insights.domain.dataset import DatasetFiles, UploadedFile

BASE_URL = "http://backend.test"


def make_response(status_code: int = 200, body: Any = None, *, text: str | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    if text is not None:
        response._content = text.encode("utf-8")
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = b""
    return response


@dataclass
class RecordedCall:
    method: str
    path: str
    kwargs: dict[str, Any] = field(default_factory=dict)


class FakeHTTPSession:
    """
    Routes ``(method, path)`` to queued responses and records every call.

    The last queued item for a route is reused once the queue drains.
    """

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self._routes: dict[tuple[str, str], list[Any]] = {}

    def add(self, method: str, path: str, *items: Any) -> None:
        self._routes.setdefault((method.upper(), path), []).extend(items)

    def add_json(self, method: str, path: str, body: Any, *, status_code: int = 200) -> None:
        self.add(method, path, make_response(status_code, body))

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        path = url[len(BASE_URL) :] if url.startswith(BASE_URL) else url
        self.calls.append(RecordedCall(method=method, path=path, kwargs=kwargs))
        queue = self._routes.get((method.upper(), path))
        if not queue:
            return make_response(404, {"message": f"No route for {method} {path}"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        return item

    def paths(self, method: str | None = None) -> list[str]:
        return [call.path for call in self.calls if method is None or call.method == method]


@pytest.fixture()
def backend_settings() -> BackendSettings:
    return BackendSettings(
        base_url=BASE_URL,
        timeout_seconds=5.0,
        max_retries=2,
        backoff_initial_seconds=0.0,
        backoff_multiplier=1.0,
    )


@pytest.fixture()
def fake_http() -> FakeHTTPSession:
    return FakeHTTPSession()


@pytest.fixture()
def sessions(backend_settings: BackendSettings, fake_http: FakeHTTPSession) -> SessionManager:
    manager = SessionManager(BackendClient(settings=backend_settings, http_session=fake_http))
    manager.use_session(AuthSession(access_token="token-123", user_id="user-1"))
    return manager


@pytest.fixture()
def backend(
    backend_settings: BackendSettings,
    fake_http: FakeHTTPSession,
    sessions: SessionManager,
) -> BackendClient:
    return BackendClient(
        session_provider=sessions.require_session,
        settings=backend_settings,
        http_session=fake_http,
    )


@pytest.fixture()
def dataset_client(backend: BackendClient) -> DatasetClient:
    return DatasetClient(backend)


@pytest.fixture()
def dataset_store(dataset_client: DatasetClient) -> DatasetStore:
    return DatasetStore(dataset_client)


@pytest.fixture()
def campaign_client(backend: BackendClient) -> CampaignClient:
    return CampaignClient(backend)


@pytest.fixture()
def campaign_store(campaign_client: CampaignClient) -> CampaignStore:
    return CampaignStore(campaign_client)


@pytest.fixture()
def dataset_files() -> DatasetFiles:
    return DatasetFiles(
        transaction=UploadedFile("transactions.csv", b"upc,dollar_sales,units\n001,2.50,1\n", "text/csv"),
        product_lookup=UploadedFile(
            "products.csv",
            b"upc,product_description,category,brand,product_size\n001,Pasta,Dry,Acme,16\n",
            "text/csv",
        ),
        causal_lookup=UploadedFile(
            "causal.csv",
            b"upc,store_id,feature,display,start_time,end_time\n001,S1,1,0,2024-01-01,2024-01-07\n",
            "text/csv",
        ),
    )
