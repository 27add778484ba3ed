"""
Billing API Router

    GET  /billing/status  — Current plan and limits.
    POST /billing/upgrade — Switch the caller to the pro plan.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chimera_sync.api.deps import get_current_user, get_user_repository
from chimera_sync.core.config import settings
from chimera_sync.core.database import get_db
from chimera_sync.core.exceptions import UpgradeRejectedError
from chimera_sync.repositories.users import UserRepository
from chimera_sync.schemas.auth import UpgradeRequest
from chimera_sync.services.identity import AuthenticatedUser
from chimera_sync.services.plans import PlanTier, plan_snapshot

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status", summary="Current plan and limits")
async def billing_status(
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    return {**plan_snapshot(user.plan), "supportEmail": settings.SUPPORT_EMAIL}


@router.post("/upgrade", summary="Activate the pro plan")
async def upgrade(
    body: UpgradeRequest | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    users: UserRepository = Depends(get_user_repository),
) -> dict[str, Any]:
    """
    Upgrade the caller to pro.

    When PRO_UPGRADE_CODES is set the body must carry one of the codes
    (compared trimmed and case-insensitively); otherwise any signed-in
    user may upgrade.
    """
    accepted = settings.upgrade_codes
    if accepted:
        code = ((body.code if body else None) or "").strip().lower()
        if code not in accepted:
            logger.info("Rejected upgrade code for %s", user.user_id)
            raise UpgradeRejectedError(
                "Invalid upgrade code",
                {"errorCode": "INVALID_UPGRADE_CODE"},
            )

    await users.set_plan(db, user.user_id, PlanTier.PRO.value)
    return {
        "ok": True,
        **plan_snapshot(PlanTier.PRO),
        "supportEmail": settings.SUPPORT_EMAIL,
    }
