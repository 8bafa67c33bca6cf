"""
retail_insights/clients/auth_client.py

Identity token exchange and the single authenticated session.
"""

from __future__ import annotations

import logging
import threading
import time

from pydantic import ValidationError

from retail_insights.clients.base import BackendClient
from retail_insights.domain.auth import AuthSession
from retail_insights.errors import NOT_AUTHENTICATED_MESSAGE, AuthError
from retail_insights.schemas.auth import TokenExchangeResponse

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Owns the current AuthSession and hands it to backend clients.
    """

    def __init__(self, backend: BackendClient | None = None) -> None:
        self._backend = backend or BackendClient()
        self._lock = threading.Lock()
        self._session: AuthSession | None = None

    @property
    def current(self) -> AuthSession | None:
        with self._lock:
            return self._session

    @property
    def is_authenticated(self) -> bool:
        session = self.current
        return session is not None and not session.is_expired()

    def exchange(self, id_token: str) -> AuthSession:
        """
        Trade an identity-provider token for a backend access token.
        """

        if not id_token or not id_token.strip():
            raise AuthError("Identity token is required")

        body = self._backend.request_json(
            method="POST",
            path="/auth/",
            json_body={"firebase_id_token": id_token.strip()},
            authenticated=False,
        )
        try:
            parsed = TokenExchangeResponse.model_validate(body)
        except ValidationError as exc:
            raise AuthError("Authentication response was malformed") from exc
        if not parsed.success or parsed.payload is None:
            raise AuthError(parsed.message or "Authentication failed")

        expires_at = time.time() + parsed.payload.expires_in if parsed.payload.expires_in else None
        session = AuthSession(
            access_token=parsed.payload.access_token,
            user_id=parsed.payload.user_id,
            expires_at=expires_at,
        )
        with self._lock:
            self._session = session
        logger.info("Authenticated user_id=%s", session.user_id)
        return session

    def use_session(self, session: AuthSession) -> None:
        with self._lock:
            self._session = session

    def require_session(self) -> AuthSession:
        """
        Return the active session or raise AuthError when missing or expired.
        """

        session = self.current
        if session is None or session.is_expired():
            raise AuthError(NOT_AUTHENTICATED_MESSAGE)
        return session

    def clear(self) -> None:
        with self._lock:
            self._session = None
