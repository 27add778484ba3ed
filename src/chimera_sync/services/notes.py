"""
Note Store

Owner-scoped idempotent upsert, listing and deletion of synced notes.

Save resolution order:
    1. ``id`` supplied → must name a note the caller owns, else 404.
       A malformed id is rejected with 400 before the store is touched.
    2. ``localId`` supplied → an existing note with that key is updated.
    3. Otherwise a new note is inserted with a fresh id.

The quota check reads the owner's current notes and the write happens
afterwards. Both run inside a per-owner lock, which serializes saves for
the same owner within this process. Separate worker processes can still
interleave near a quota boundary; the ``(user_id, local_id)`` unique index
only protects the duplicate-localId case.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chimera_sync.core.config import Settings, settings
from chimera_sync.core.exceptions import (
    InvalidNoteIdError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from chimera_sync.models.orm import NoteRecord
from chimera_sync.models.schemas import Note, StoredNote
from chimera_sync.repositories.notes import NoteRepository
from chimera_sync.repositories.users import UserRepository
from chimera_sync.services.plans import PlanLimits, PlanTier, limits_for, normalize_plan
from chimera_sync.services.quota import QuotaAccountant

logger = logging.getLogger(__name__)


def parse_note_id(raw_id: str) -> uuid.UUID:
    """Parse a client-supplied note id. Raises InvalidNoteIdError when malformed."""
    try:
        return uuid.UUID(str(raw_id).strip())
    except ValueError as e:
        raise InvalidNoteIdError(str(raw_id)) from e


class OwnerLocks:
    """One asyncio.Lock per owner, dropped once nobody holds or awaits it."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, owner_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(owner_id, asyncio.Lock())
        self._users[owner_id] = self._users.get(owner_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[owner_id] -= 1
            if self._users[owner_id] == 0:
                del self._users[owner_id]
                del self._locks[owner_id]

    def __len__(self) -> int:
        return len(self._locks)


@dataclass(frozen=True)
class SaveResult:
    """Outcome of a successful save."""

    id: uuid.UUID
    created: bool
    plan: PlanTier
    limits: PlanLimits

    def to_response(self) -> dict[str, object]:
        return {
            "ok": True,
            "id": str(self.id),
            "plan": self.plan.value,
            "limits": self.limits.to_dict(),
        }


class NoteStore:
    """
    Orchestrates note persistence with plan-quota enforcement.

    Usage::

        store = NoteStore()
        async with session_factory() as session:
            result = await store.save(session, "google-sub", Note(title="Hi"))
            notes = await store.list(session, "google-sub")
    """

    def __init__(
        self,
        notes: NoteRepository | None = None,
        users: UserRepository | None = None,
        accountant: QuotaAccountant | None = None,
        config: Settings | None = None,
    ) -> None:
        self._notes = notes or NoteRepository()
        self._users = users or UserRepository()
        self._accountant = accountant or QuotaAccountant()
        self._config = config or settings
        self._locks = OwnerLocks()

    async def save(
        self,
        session: AsyncSession,
        owner_id: str,
        note: Note,
        note_id: str | None = None,
    ) -> SaveResult:
        """
        Create or update a note for ``owner_id``.

        Raises:
            InvalidNoteIdError: ``note_id`` is malformed.
            NotFoundError: ``note_id`` does not name a note owned by the caller.
            ValidationError: ``localId`` already belongs to another of the owner's notes.
            QuotaExceededError: The write would exceed the owner's plan.
        """
        target_id = parse_note_id(note_id) if note_id else None

        async with self._locks.hold(owner_id):
            records = await self._notes.list_for_owner(session, owner_id)
            existing = [StoredNote.from_record(r) for r in records]
            by_id = {r.id: r for r in records}

            target: NoteRecord | None = None
            if target_id is not None:
                target = by_id.get(target_id)
                if target is None:
                    raise NotFoundError("Note not found")
                if note.local_id is not None and any(
                    n.local_id == note.local_id and n.id != target_id for n in existing
                ):
                    raise ValidationError("localId is already used by another note")
            elif note.local_id is not None:
                target = next((r for r in records if r.local_id == note.local_id), None)

            if target is not None and note.local_id is None:
                # An update by id without a localId keeps the stored key; size it as written
                note = note.model_copy(update={"local_id": target.local_id})

            tier = normalize_plan(await self._users.get_plan(session, owner_id))
            limits = limits_for(tier, self._config)

            denial = self._accountant.check_write(
                owner_id,
                note,
                existing,
                limits,
                plan=tier,
                candidate_id=target.id if target is not None else None,
            )
            if denial is not None:
                raise QuotaExceededError(denial)

            values = note.record_values()
            if target is not None:
                record = await self._notes.update(session, target, values)
                return SaveResult(id=record.id, created=False, plan=tier, limits=limits)

            record, created = await self._insert(session, owner_id, note, values)
            return SaveResult(id=record.id, created=created, plan=tier, limits=limits)

    async def _insert(
        self,
        session: AsyncSession,
        owner_id: str,
        note: Note,
        values: dict[str, object],
    ) -> tuple[NoteRecord, bool]:
        try:
            return await self._notes.insert(session, owner_id, values), True
        except IntegrityError:
            await session.rollback()
            if note.local_id is None:
                raise
            # Another process inserted the same localId first; update its row
            winner = await self._notes.get_by_local_id(session, owner_id, note.local_id)
            if winner is None:
                raise
            logger.info(
                "localId collision for %s resolved onto note %s", owner_id, winner.id
            )
            return await self._notes.update(session, winner, values), False

    async def list(self, session: AsyncSession, owner_id: str) -> list[StoredNote]:
        """Owner's notes, ``lastModified`` descending then ``updatedAt`` descending."""
        records = await self._notes.list_for_owner(session, owner_id)
        return [StoredNote.from_record(r) for r in records]

    async def delete(self, session: AsyncSession, owner_id: str, note_id: str) -> None:
        """Delete a note owned by ``owner_id``. Unknown or foreign ids are a no-op."""
        parsed = parse_note_id(note_id)
        removed = await self._notes.delete_owned(session, owner_id, parsed)
        if not removed:
            logger.debug("Delete of %s by %s matched nothing", parsed, owner_id)


# Module-level singleton; owns the per-owner locks for this process
note_store = NoteStore()
