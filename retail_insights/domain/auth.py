"""
Authenticated backend session.
"""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    user_id: str
    expires_at: float | None = None

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        current = time.time() if now is None else now
        return current >= self.expires_at

    @property
    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Token {self.access_token}"}
