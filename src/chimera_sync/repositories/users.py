"""
User Repository

Profile and plan-tier persistence keyed by the Google subject id.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chimera_sync.models.base import utcnow
from chimera_sync.models.orm import UserRecord

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user documents. Methods take an external session."""

    async def get(self, session: AsyncSession, user_id: str) -> UserRecord | None:
        stmt = select(UserRecord).where(UserRecord.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalars().first()

    async def get_plan(self, session: AsyncSession, user_id: str) -> str:
        """Stored plan for ``user_id``; "free" when no user row exists."""
        stmt = select(UserRecord.plan).where(UserRecord.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none() or "free"

    async def record_login(
        self,
        session: AsyncSession,
        *,
        user_id: str,
        email: str | None,
        name: str | None,
        picture: str | None,
    ) -> UserRecord:
        """
        Create or refresh a user after sign-in.

        Profile fields and ``last_login_at`` are overwritten; ``plan`` and
        ``created_at`` are only set on first sign-in.
        """
        now = utcnow()
        user = await self.get(session, user_id)
        if user is None:
            user = UserRecord(user_id=user_id, plan="free", created_at=now)
            session.add(user)
            logger.info("Created user %s", user_id)
        user.email = email
        user.name = name
        user.picture = picture
        user.last_login_at = now
        await session.commit()
        return user

    async def set_plan(self, session: AsyncSession, user_id: str, plan: str) -> UserRecord:
        """Persist ``plan``; creates the user row if sign-in never recorded one."""
        user = await self.get(session, user_id)
        if user is None:
            user = UserRecord(user_id=user_id, plan=plan, created_at=utcnow())
            session.add(user)
        user.plan = plan
        if plan == "pro" and user.pro_activated_at is None:
            user.pro_activated_at = utcnow()
        await session.commit()
        logger.info("User %s plan set to %s", user_id, plan)
        return user


# Module-level singleton for convenience imports
user_repository = UserRepository()
