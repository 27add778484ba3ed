"""create users and notes

Revision ID: 3f1c9a2b7d40
Revises:
Create Date: 2026-10-19 09:12:44.218305

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "3f1c9a2b7d40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create users and notes tables with the owner-scoped indexes."""
    # -- users table --
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("picture", sa.Text(), nullable=True),
        sa.Column("plan", sa.String(16), nullable=False, server_default="free"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pro_activated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("user_id"),
    )

    # -- notes table --
    op.create_table(
        "notes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("folder", sa.String(255), nullable=False),
        sa.Column("local_id", sa.String(255), nullable=True),
        sa.Column("updated_at", sa.String(64), nullable=False),
        sa.Column("last_modified", sa.BigInteger(), nullable=False),
        sa.Column(
            "links",
            JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # One localId per owner; notes without a localId are unconstrained
    op.create_index(
        "uq_notes_user_local_id",
        "notes",
        ["user_id", "local_id"],
        unique=True,
        postgresql_where=sa.text("local_id IS NOT NULL"),
    )
    op.create_index(
        "ix_notes_user_last_modified",
        "notes",
        ["user_id", "last_modified"],
    )


def downgrade() -> None:
    """Drop notes and users tables."""
    op.drop_index("ix_notes_user_last_modified", table_name="notes")
    op.drop_index("uq_notes_user_local_id", table_name="notes")
    op.drop_table("notes")
    op.drop_table("users")
