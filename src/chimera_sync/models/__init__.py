"""Models package — Pydantic note schemas and SQLAlchemy ORM records."""

from chimera_sync.models.base import Base
from chimera_sync.models.orm import NoteRecord, UserRecord
from chimera_sync.models.schemas import DEFAULT_FOLDER, DEFAULT_TITLE, Note, StoredNote

__all__ = [
    # SQLAlchemy ORM (persistence layer)
    "Base",
    "NoteRecord",
    "UserRecord",
    # Pydantic schemas (normalized notes)
    "DEFAULT_FOLDER",
    "DEFAULT_TITLE",
    "Note",
    "StoredNote",
]
