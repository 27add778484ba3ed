"""
Note Repository

Data access layer for synced notes. Every query is filtered by owner, so a
caller holding another user's note id can neither read nor modify it.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from chimera_sync.models.orm import NoteRecord

logger = logging.getLogger(__name__)


class NoteRepository:
    """
    Repository for owner-scoped note persistence.

    All methods expect an externally managed ``AsyncSession``
    (injected via FastAPI dependency or created in a service layer).
    Write methods commit before returning.
    """

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def list_for_owner(
        self,
        session: AsyncSession,
        owner_id: str,
    ) -> Sequence[NoteRecord]:
        """All notes of an owner, newest ``last_modified`` first, ``updated_at`` breaking ties."""
        stmt = (
            select(NoteRecord)
            .where(NoteRecord.user_id == owner_id)
            .order_by(NoteRecord.last_modified.desc(), NoteRecord.updated_at.desc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_by_local_id(
        self,
        session: AsyncSession,
        owner_id: str,
        local_id: str,
    ) -> NoteRecord | None:
        """Look up a note by its client idempotency key."""
        stmt = select(NoteRecord).where(
            NoteRecord.user_id == owner_id,
            NoteRecord.local_id == local_id,
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    async def insert(
        self,
        session: AsyncSession,
        owner_id: str,
        values: dict[str, Any],
    ) -> NoteRecord:
        """
        Insert a new note with a fresh id.

        Raises:
            sqlalchemy.exc.IntegrityError: If ``local_id`` already exists for
                the owner. The session is left for the caller to roll back.
        """
        record = NoteRecord(id=uuid.uuid4(), user_id=owner_id, **values)
        session.add(record)
        await session.commit()
        logger.debug("Inserted note %s for %s", record.id, owner_id)
        return record

    async def update(
        self,
        session: AsyncSession,
        record: NoteRecord,
        values: dict[str, Any],
    ) -> NoteRecord:
        """Overwrite the mutable fields of ``record`` in place; id and owner are kept."""
        for field, value in values.items():
            setattr(record, field, value)
        await session.commit()
        logger.debug("Updated note %s for %s", record.id, record.user_id)
        return record

    async def delete_owned(
        self,
        session: AsyncSession,
        owner_id: str,
        note_id: uuid.UUID,
    ) -> bool:
        """Delete a note if both id and owner match. Returns whether a row was removed."""
        stmt = delete(NoteRecord).where(
            NoteRecord.id == note_id,
            NoteRecord.user_id == owner_id,
        )
        result = await session.execute(stmt)
        await session.commit()
        return bool(result.rowcount)
