"""
Auth & Billing Schemas

Pydantic models for sign-in and plan upgrade requests.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GoogleAuthRequest(BaseModel):
    """Body of POST /auth/google. An empty credential is rejected with 400."""

    model_config = ConfigDict(extra="ignore")

    credential: str | None = Field(
        default=None,
        description="Google ID token from Google Identity Services",
    )


class UpgradeRequest(BaseModel):
    """Body of POST /billing/upgrade."""

    model_config = ConfigDict(extra="ignore")

    code: str | None = Field(
        default=None,
        description="Pro activation code (required when codes are configured)",
    )
