"""
API Dependencies

FastAPI dependencies shared by the routers: authentication, the note
store, repositories and the AI client. Tests replace them through
``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from chimera_sync.core.database import get_db
from chimera_sync.core.exceptions import AuthenticationError
from chimera_sync.repositories.users import UserRepository, user_repository
from chimera_sync.services.ai import AiProviderClient
from chimera_sync.services.identity import (
    AuthenticatedUser,
    GoogleIdentityVerifier,
    Identity,
    IdentityVerifier,
    extract_bearer,
)
from chimera_sync.services.notes import NoteStore, note_store
from chimera_sync.services.plans import normalize_plan

_verifier: GoogleIdentityVerifier | None = None


def get_identity_verifier() -> IdentityVerifier:
    """Process-wide Google verifier, created on first use."""
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = GoogleIdentityVerifier()
    return _verifier


def get_user_repository() -> UserRepository:
    return user_repository


def get_note_store() -> NoteStore:
    return note_store


def get_ai_client(request: Request) -> AiProviderClient:
    """The client created in the application lifespan."""
    return request.app.state.ai_client


async def get_identity(
    authorization: str | None = Header(default=None),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> Identity:
    """Verified identity from the bearer token; 401 with one generic message otherwise."""
    token = extract_bearer(authorization)
    if token is None:
        raise AuthenticationError("Unauthorized")
    return await verifier.verify(token)


async def get_current_user(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    users: UserRepository = Depends(get_user_repository),
) -> AuthenticatedUser:
    """Verified identity with its stored plan tier (free when no user row exists)."""
    plan = await users.get_plan(db, identity.subject_id)
    return AuthenticatedUser(identity=identity, plan=normalize_plan(plan))
