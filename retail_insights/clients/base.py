"""
retail_insights/clients/base.py

Shared HTTP mechanics for analytics backend clients.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import requests

from retail_insights.config import BackendSettings, get_backend_settings
from retail_insights.domain.auth import AuthSession
from retail_insights.errors import AuthError, BackendRequestError, NetworkError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
AUTH_STATUS_CODES = {401, 403}
RETRYABLE_METHODS = {"GET"}

SessionProvider = Callable[[], AuthSession]


class BackendClient:
    """
    Authenticated JSON client for the analytics backend.

    Only idempotent GET requests are retried. Uploads and other mutations are
    sent exactly once so a lost response never creates duplicate records.
    """

    def __init__(
        self,
        *,
        session_provider: SessionProvider | None = None,
        settings: BackendSettings | None = None,
        http_session: requests.Session | None = None,
    ) -> None:
        resolved = settings or get_backend_settings()
        self._session_provider = session_provider
        self._http = http_session or requests.Session()
        self._base_url = resolved.base_url.rstrip("/")
        self._timeout_seconds = resolved.timeout_seconds
        self._max_retries = resolved.max_retries
        self._backoff_initial_seconds = resolved.backoff_initial_seconds
        self._backoff_multiplier = resolved.backoff_multiplier

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def get_json(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return self.request_json(method="GET", path=path, params=params)

    def post_json(self, path: str, *, payload: Any = None) -> Any:
        return self.request_json(method="POST", path=path, json_body=payload)

    def post_file(
        self,
        path: str,
        *,
        file_name: str,
        content: bytes,
        content_type: str | None = None,
        fields: dict[str, str] | None = None,
    ) -> Any:
        """
        Send one file as multipart form data under the ``file`` field.
        """

        files = {"file": (file_name, content, content_type or "application/octet-stream")}
        return self.request_json(method="POST", path=path, files=files, data=fields)

    def delete(self, path: str) -> Any:
        return self.request_json(method="DELETE", path=path, allow_empty=True)

    def request_json(
        self,
        *,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        files: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
        authenticated: bool = True,
        allow_empty: bool = False,
    ) -> Any:
        """
        Execute a request and return the decoded JSON body.
        """

        headers = self._auth_headers() if authenticated else {}
        response = self._request(
            method=method,
            url=self.url_for(path),
            params=params,
            json_body=json_body,
            files=files,
            data=data,
            headers=headers,
        )
        if allow_empty and not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendRequestError(
                f"{method} {path}: response was not valid JSON.",
                status_code=response.status_code,
            ) from exc

    def _auth_headers(self) -> dict[str, str]:
        if self._session_provider is None:
            raise AuthError("User not authenticated")
        return dict(self._session_provider().authorization_header)

    def _request(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        files: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        """
        Execute an HTTP request, retrying GETs with exponential backoff.
        """

        method = method.upper()
        max_retries = self._max_retries if method in RETRYABLE_METHODS else 0
        last_error: Exception | None = None
        last_status: int | None = None

        for attempt in range(max_retries + 1):
            try:
                response = self._http.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json_body,
                    files=files,
                    data=data,
                    headers=headers,
                    timeout=self._timeout_seconds,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc
                last_status = None
            else:
                status_code = response.status_code
                if status_code in AUTH_STATUS_CODES:
                    logger.warning("Backend rejected credentials method=%s status=%s url=%s", method, status_code, url)
                    raise AuthError(_error_message(response, "Not authorized"), status_code=status_code)
                if status_code < 400:
                    return response
                last_status = status_code
                last_error = BackendRequestError(
                    _error_message(response, f"Request failed with status {status_code}"),
                    status_code=status_code,
                )
                if status_code not in RETRYABLE_STATUS_CODES:
                    logger.error("Backend request failed method=%s status=%s url=%s", method, status_code, url)
                    raise last_error

            if attempt >= max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Backend request retry method=%s attempt=%s/%s wait_seconds=%.2f url=%s",
                method,
                attempt + 1,
                max_retries,
                backoff_seconds,
                url,
            )
            time.sleep(backoff_seconds)

        logger.error("Backend request gave up method=%s url=%s error=%s", method, url, last_error)
        if isinstance(last_error, BackendRequestError):
            raise last_error
        raise NetworkError(f"{method} {url}: backend unreachable.", status_code=last_status) from last_error


def _error_message(response: requests.Response, default: str) -> str:
    """
    Prefer the backend's ``message``/``detail`` field over a generic message.
    """

    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return default


def unwrap_payload(body: Any) -> Any:
    """
    Return ``payload`` from a ``{success, message, payload}`` envelope.

    Bodies without the envelope are returned unchanged. An envelope with
    ``success`` false raises BackendRequestError.
    """

    if not isinstance(body, dict) or "success" not in body or "payload" not in body:
        return body
    if not body.get("success"):
        raise BackendRequestError(str(body.get("message") or "Request was not successful"))
    return body.get("payload")
