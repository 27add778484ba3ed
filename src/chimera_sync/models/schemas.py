"""
Chimera Note Schemas

Pydantic models for notes flowing between the API, quota accounting
and persistence.

Client payloads are loosely typed (offline-first browser clients send
whatever they have), so every field is normalized on the way in:
blank titles and folders fall back to defaults, ``lastModified`` is
derived from ``updatedAt`` when missing, and ``links`` is always a list.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from chimera_sync.models.orm import NoteRecord

DEFAULT_TITLE = "Untitled Note"
DEFAULT_FOLDER = "General"


def now_ms() -> int:
    return int(datetime.now(UTC).timestamp() * 1000)


def parse_iso(value: str) -> datetime | None:
    """UTC datetime for an ISO-8601 string (naive means UTC), or None if unparseable."""
    try:
        parsed = datetime.fromisoformat(value.strip())
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)
    except (ValueError, OverflowError):
        return None


def parse_iso_ms(value: str) -> int | None:
    """Epoch milliseconds for an ISO-8601 string, or None if unparseable."""
    parsed = parse_iso(value)
    return None if parsed is None else int(parsed.timestamp() * 1000)


def format_iso(moment: datetime) -> str:
    """``2024-01-02T03:04:05.000Z``: fixed width, so string order is time order."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _text_or_default(value: Any, default: str) -> str:
    if value is None:
        return default
    text = value if isinstance(value, str) else str(value)
    return text if text.strip() else default


class Note(BaseModel):
    """
    A normalized note as written by its owner.

    After validation ``updated_at`` and ``last_modified`` are always set.

    Attributes:
        title: Defaults to "Untitled Note" when blank.
        content: Free-form UTF-8 text.
        folder: Defaults to "General" when blank.
        local_id: Client idempotency key; blank becomes None.
        updated_at: ISO-8601 timestamp; defaults to now. Parseable values are
            rewritten as UTC with millisecond precision.
        last_modified: Epoch ms; derived from updated_at, else now.
        links: Ordered opaque reference strings.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = DEFAULT_TITLE
    content: str = ""
    folder: str = DEFAULT_FOLDER
    local_id: str | None = Field(default=None, alias="localId")
    updated_at: str | None = Field(default=None, alias="updatedAt")
    last_modified: int | None = Field(default=None, alias="lastModified")
    links: list[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _normalize_title(cls, value: Any) -> str:
        return _text_or_default(value, DEFAULT_TITLE)

    @field_validator("folder", mode="before")
    @classmethod
    def _normalize_folder(cls, value: Any) -> str:
        return _text_or_default(value, DEFAULT_FOLDER)

    @field_validator("content", mode="before")
    @classmethod
    def _normalize_content(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("local_id", "updated_at", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = (value if isinstance(value, str) else str(value)).strip()
        return text or None

    @field_validator("last_modified", mode="before")
    @classmethod
    def _normalize_last_modified(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        if not isinstance(value, int | float | str):
            return None
        try:
            return int(float(value)) if isinstance(value, str) else int(value)
        except (ValueError, OverflowError):
            # NaN, infinity and non-numeric strings
            return None

    @field_validator("links", mode="before")
    @classmethod
    def _normalize_links(cls, value: Any) -> list[str]:
        if not isinstance(value, list | tuple):
            return []
        return [item if isinstance(item, str) else str(item) for item in value if item is not None]

    @model_validator(mode="after")
    def _fill_timestamps(self) -> Note:
        parsed = parse_iso(self.updated_at) if self.updated_at is not None else None
        if self.updated_at is None:
            self.updated_at = format_iso(datetime.now(UTC))
        elif parsed is not None:
            self.updated_at = format_iso(parsed)
        if self.last_modified is None:
            self.last_modified = (
                int(parsed.timestamp() * 1000) if parsed is not None else now_ms()
            )
        return self

    def storage_fields(self) -> dict[str, Any]:
        """Fields counted towards storage, keyed as the client sends them."""
        return {
            "title": self.title,
            "content": self.content,
            "folder": self.folder,
            "updatedAt": self.updated_at,
            "lastModified": self.last_modified,
            "localId": self.local_id,
            "links": self.links,
        }

    def storage_bytes(self) -> int:
        """UTF-8 size of the JSON-serialized storage fields."""
        encoded = json.dumps(self.storage_fields(), ensure_ascii=False, separators=(",", ":"))
        return len(encoded.encode("utf-8"))

    def record_values(self) -> dict[str, Any]:
        """Column values for NoteRecord (mutable fields only)."""
        return {
            "title": self.title,
            "content": self.content,
            "folder": self.folder,
            "local_id": self.local_id,
            "updated_at": self.updated_at,
            "last_modified": self.last_modified,
            "links": list(self.links),
        }


class StoredNote(Note):
    """A note that has been persisted and carries its server id and owner."""

    id: UUID
    owner_id: str

    @classmethod
    def from_record(cls, record: NoteRecord) -> StoredNote:
        return cls(
            id=record.id,
            owner_id=record.user_id,
            title=record.title,
            content=record.content,
            folder=record.folder,
            local_id=record.local_id,
            updated_at=record.updated_at,
            last_modified=record.last_modified,
            links=record.links or [],
        )

    def to_api(self) -> dict[str, Any]:
        """Client representation; ``_id`` kept for document-store era clients."""
        note_id = str(self.id)
        return {
            "id": note_id,
            "_id": note_id,
            "userId": self.owner_id,
            **self.storage_fields(),
        }
