"""
Chimera Database Models

SQLAlchemy 2.0 ORM models for the user and note storage layer.

Tables:
    users — One row per Google subject, holding profile and plan tier.
    notes — Synced notes, scoped by owner. ``(user_id, local_id)`` is unique
            when ``local_id`` is set; ``(user_id, last_modified)`` backs the
            list ordering.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from chimera_sync.models.base import Base, JSONVariant, utcnow


class UserRecord(Base):
    """
    Persistent user profile and plan tier.

    Attributes:
        user_id: Google subject identifier (primary key).
        plan: "free" or "pro".
        pro_activated_at: Set the first time the plan becomes pro.
    """

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    picture: Mapped[str | None] = mapped_column(Text, nullable=True)
    plan: Mapped[str] = mapped_column(String(16), nullable=False, default="free")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    pro_activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<UserRecord(user_id='{self.user_id}', plan='{self.plan}')>"


class NoteRecord(Base):
    """
    Persistent note owned by exactly one user.

    Attributes:
        id: UUID primary key (generated Python-side at first insert).
        user_id: Owner subject id, never changed after insert.
        local_id: Client idempotency key, unique per owner when present.
        updated_at: ISO-8601 string as sent by the client.
        last_modified: Epoch milliseconds, the authoritative ordering key.
        links: Ordered list of opaque reference strings.
    """

    __tablename__ = "notes"
    __table_args__ = (
        Index(
            "uq_notes_user_local_id",
            "user_id",
            "local_id",
            unique=True,
            postgresql_where=text("local_id IS NOT NULL"),
            sqlite_where=text("local_id IS NOT NULL"),
        ),
        Index("ix_notes_user_last_modified", "user_id", "last_modified"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    folder: Mapped[str] = mapped_column(String(255), nullable=False)
    local_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    updated_at: Mapped[str] = mapped_column(String(64), nullable=False)
    last_modified: Mapped[int] = mapped_column(BigInteger, nullable=False)
    links: Mapped[list[str]] = mapped_column(JSONVariant, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<NoteRecord(id={self.id!s:.8}, user='{self.user_id}')>"
