"""
Note API Schemas

Request body for POST /notes. Field normalization is inherited from the
domain ``Note``; only the raw server id is added here, kept as a string
so that a malformed id surfaces as a 400 from the note store rather than
a schema error.
"""

from __future__ import annotations

from typing import Any

from pydantic import field_validator

from chimera_sync.models.schemas import Note


class NoteSaveRequest(Note):
    """Body of POST /notes: a note plus an optional server id to update."""

    id: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _blank_id_to_none(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = (value if isinstance(value, str) else str(value)).strip()
        return text or None
