"""
retail_insights/schemas/auth.py

Token exchange payload schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TokenExchangePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    expires_in: float | None = Field(default=None, gt=0)


class TokenExchangeResponse(BaseModel):
    """
    Response of ``POST /auth/``.
    """

    model_config = ConfigDict(extra="ignore")

    success: bool
    message: str | None = None
    payload: TokenExchangePayload | None = None
