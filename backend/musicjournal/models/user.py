"""
Music Journal Backend - User and Session Models
================================================

What:  ORM models for the `users` and `sessions` tables.
Why:   Accounts and their login sessions live in the same store, so a session
       can be joined against its user on every authenticated request.
Who:   CredentialService (users) and SessionService (sessions); Alembic.

Table Design Rationale:
    users.username: UNIQUE and compared case-sensitively. It is never changed
        after registration.
    users.password_hash: bcrypt output ("$2b$10$..."), 60 characters.
    sessions.session_id: The opaque token stored in the client's cookie.
    sessions.expires_at: Fixed at creation (no sliding renewal). Indexed for
        the expiry sweep.
    sessions.user_id: ON DELETE CASCADE, so deleting a user ends their sessions.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from musicjournal.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """A registered account. Created by /register, never mutated."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    username: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Login name, unique and case-sensitive",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Salted bcrypt hash of the password",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"


class UserSession(Base):
    """
    A login session, addressed by the token in the `mj_session` cookie.

    Lifecycle:
        1. Created at login or registration with expires_at = now + TTL
        2. Read on every authenticated request (never extended)
        3. Deleted on logout, or by the expiry sweep once expires_at passes
    """

    __tablename__ = "sessions"

    session_id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Opaque random token stored in the session cookie",
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    username: Mapped[str] = mapped_column(String(100), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_sessions_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<UserSession(user_id={self.user_id}, expires_at='{self.expires_at}')>"
