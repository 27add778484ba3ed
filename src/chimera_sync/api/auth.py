"""
Auth API Router

    POST /auth/google — Exchange a Google ID token for the user profile,
                        plan and limits. The ID token itself is the bearer
                        token for subsequent requests.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chimera_sync.api.deps import get_identity_verifier, get_user_repository
from chimera_sync.core.config import settings
from chimera_sync.core.database import get_db
from chimera_sync.core.exceptions import ValidationError
from chimera_sync.repositories.users import UserRepository
from chimera_sync.schemas.auth import GoogleAuthRequest
from chimera_sync.services.identity import IdentityVerifier
from chimera_sync.services.plans import plan_snapshot

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/google", summary="Sign in with a Google ID token")
async def google_sign_in(
    body: GoogleAuthRequest | None = None,
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    db: AsyncSession = Depends(get_db),
    users: UserRepository = Depends(get_user_repository),
) -> dict[str, Any]:
    """
    Verify the credential, create or refresh the user document and return
    ``{user, token, plan, limits, supportEmail}``.

    Raises:
        400 if the credential is missing, 401 if verification fails.
    """
    credential = ((body.credential if body else None) or "").strip()
    if not credential:
        raise ValidationError("Missing credential")

    identity = await verifier.verify(credential)
    user = await users.record_login(
        db,
        user_id=identity.subject_id,
        email=identity.email,
        name=identity.name,
        picture=identity.picture,
    )
    snapshot = plan_snapshot(user.plan)
    logger.info("User %s signed in (plan=%s)", identity.subject_id, snapshot["plan"])

    return {
        "user": {**identity.to_dict(), "plan": snapshot["plan"]},
        "token": credential,
        **snapshot,
        "supportEmail": settings.SUPPORT_EMAIL,
    }
