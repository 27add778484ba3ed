"""
Notes API Router

    GET    /notes      — The caller's notes, most recently modified first.
    POST   /notes      — Create or update a note (by id, else by localId).
    DELETE /notes/{id} — Delete a note; always succeeds for well-formed ids.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chimera_sync.api.deps import get_current_user, get_note_store
from chimera_sync.core.database import get_db
from chimera_sync.schemas.notes import NoteSaveRequest
from chimera_sync.services.identity import AuthenticatedUser
from chimera_sync.services.notes import NoteStore

router = APIRouter()


@router.get("", summary="List notes")
async def list_notes(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: NoteStore = Depends(get_note_store),
) -> list[dict[str, Any]]:
    notes = await store.list(db, user.user_id)
    return [note.to_api() for note in notes]


@router.post(
    "",
    summary="Save a note",
    responses={
        400: {"description": "Malformed note id"},
        403: {"description": "Plan quota exceeded (body carries errorCode, limits, usage)"},
        404: {"description": "Note id not found for this user"},
    },
)
async def save_note(
    payload: NoteSaveRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: NoteStore = Depends(get_note_store),
) -> dict[str, Any]:
    """Upsert a note and return ``{ok, id, plan, limits}``."""
    result = await store.save(db, user.user_id, payload, payload.id)
    return result.to_response()


@router.delete("/{note_id}", summary="Delete a note")
async def delete_note(
    note_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: NoteStore = Depends(get_note_store),
) -> dict[str, bool]:
    await store.delete(db, user.user_id, note_id)
    return {"ok": True}
