"""Create users, sessions, albums, user_albums and track_ratings

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

What:  Initial schema for accounts, login sessions and the music journal.
How:   Portable column types (Uuid, DateTime with timezone) so the same
       revision runs on PostgreSQL, MySQL/MariaDB and SQLite.

Rollback: downgrade() drops every table (destructive, all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "username",
            sa.String(100),
            nullable=False,
            comment="Login name, unique and case-sensitive",
        ),
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=False,
            comment="Salted bcrypt hash of the password",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )

    op.create_table(
        "sessions",
        sa.Column(
            "session_id",
            sa.String(128),
            nullable=False,
            comment="Opaque random token stored in the session cookie",
        ),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("session_id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    # The expiry sweep deletes WHERE expires_at <= now
    op.create_index("idx_sessions_expires_at", "sessions", ["expires_at"])

    op.create_table(
        "albums",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "external_id",
            sa.String(255),
            nullable=False,
            comment="Stable album key from the external music catalog",
        ),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("artist", sa.String(500), nullable=False),
        sa.Column("cover_url", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        # resolve_or_create relies on this for ON CONFLICT / INSERT IGNORE
        sa.UniqueConstraint("external_id", name="uq_albums_external_id"),
    )

    op.create_table(
        "user_albums",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("album_id", sa.Uuid(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("user_id", "album_id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["album_id"], ["albums.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "idx_user_albums_user_created",
        "user_albums",
        ["user_id", "created_at"],
    )

    op.create_table(
        "track_ratings",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("album_id", sa.Uuid(), nullable=False),
        sa.Column("track_id", sa.String(255), nullable=False),
        sa.Column("track_name", sa.String(500), nullable=False),
        sa.Column("rating", sa.SmallInteger(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("user_id", "album_id", "track_id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["album_id"], ["albums.id"], ondelete="CASCADE"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_track_ratings_rating_range"),
    )


def downgrade() -> None:
    op.drop_table("track_ratings")
    op.drop_index("idx_user_albums_user_created", table_name="user_albums")
    op.drop_table("user_albums")
    op.drop_table("albums")
    op.drop_index("idx_sessions_expires_at", table_name="sessions")
    op.drop_table("sessions")
    op.drop_table("users")
