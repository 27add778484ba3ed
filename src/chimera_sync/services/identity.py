"""
Identity Verification

Turns a Google ID token into a verified identity. Verification (signature,
expiry, issuer, audience) is delegated to ``google-auth``; this module only
adapts its result and failures to the service's types.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from chimera_sync.core.config import settings
from chimera_sync.core.exceptions import AuthenticationError
from chimera_sync.services.plans import PlanTier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Verified claims of the signed-in user."""

    subject_id: str
    email: str | None = None
    name: str | None = None
    picture: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.subject_id,
            "email": self.email,
            "name": self.name,
            "picture": self.picture,
        }


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity plus the plan tier stored for it."""

    identity: Identity
    plan: PlanTier

    @property
    def user_id(self) -> str:
        return self.identity.subject_id


class IdentityVerifier(Protocol):
    async def verify(self, token: str) -> Identity: ...


def extract_bearer(header: str | None) -> str | None:
    """Token from an ``Authorization: Bearer <token>`` header, or None."""
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


class GoogleIdentityVerifier:
    """Verifies Google ID tokens against a fixed audience (the OAuth client id)."""

    def __init__(self, client_id: str | None = None) -> None:
        self._client_id = client_id if client_id is not None else settings.GOOGLE_CLIENT_ID
        self._request = google_requests.Request()

    async def verify(self, token: str) -> Identity:
        """
        Verify ``token`` and return its identity.

        Raises:
            AuthenticationError: Token is malformed, expired, for another
                audience, or the verifier is not configured.
        """
        if not self._client_id:
            logger.error("GOOGLE_CLIENT_ID is not set; rejecting sign-in")
            raise AuthenticationError("Unauthorized")

        try:
            # Blocking: may fetch Google's signing certificates over HTTP
            claims = await asyncio.to_thread(
                id_token.verify_oauth2_token,
                token,
                self._request,
                self._client_id,
            )
        except (ValueError, GoogleAuthError) as e:
            logger.info("ID token rejected: %s", type(e).__name__)
            raise AuthenticationError("Unauthorized") from e

        subject = claims.get("sub")
        if not subject:
            raise AuthenticationError("Unauthorized")

        return Identity(
            subject_id=str(subject),
            email=claims.get("email"),
            name=claims.get("name"),
            picture=claims.get("picture"),
        )
