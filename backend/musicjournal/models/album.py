"""
Music Journal Backend - Album, Journal and Rating Models
=========================================================

What:  ORM models for `albums`, `user_albums` and `track_ratings`.
Why:   Albums are a shared catalog keyed by an external id (the music
       database the frontend searches). A user's journal links to that
       catalog instead of copying album metadata per user.

Uniqueness (all enforced by the store, relied on by the upserts):
    albums:         UNIQUE (external_id)
    user_albums:    PRIMARY KEY (user_id, album_id)
    track_ratings:  PRIMARY KEY (user_id, album_id, track_id)

Query Patterns:
    - Journal listing: WHERE user_id = :u ORDER BY created_at DESC
      → idx_user_albums_user_created
    - Ratings for one album: WHERE user_id = :u AND album_id = :a
      → primary key prefix
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    SmallInteger,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from musicjournal.database import Base
from musicjournal.models.user import utcnow


class Album(Base):
    """
    A catalog album, shared by every user who journals it.

    Created lazily on first reference. Never updated: title/artist/cover
    from later references are ignored (first write wins).
    """

    __tablename__ = "albums"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    external_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Stable album key from the external music catalog",
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    artist: Mapped[str] = mapped_column(String(500), nullable=False)
    cover_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Album(external_id='{self.external_id}', title='{self.title}')>"


class UserAlbum(Base):
    """Marks that a user has journaled an album, plus their free-text notes."""

    __tablename__ = "user_albums"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    album_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("albums.id", ondelete="CASCADE"),
        primary_key=True,
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # When the album entered the journal; drives the listing order
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("idx_user_albums_user_created", "user_id", "created_at"),
    )


class TrackRating(Base):
    """One user's 1-5 rating of one track on one album."""

    __tablename__ = "track_ratings"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    album_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("albums.id", ondelete="CASCADE"),
        primary_key=True,
    )

    # External catalog's track id, stored as text whatever the JSON type was
    track_id: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Name at first rating; later upserts only change rating/updated_at
    track_name: Mapped[str] = mapped_column(String(500), nullable=False)

    rating: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_track_ratings_rating_range"),
    )

    def __repr__(self) -> str:
        return f"<TrackRating(track_id='{self.track_id}', rating={self.rating})>"
