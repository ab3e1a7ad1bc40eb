"""
Music Journal Backend - Journal Service (Business Logic Orchestrator)
======================================================================

What:  A user's journal: saved albums, per-album notes, per-track ratings.
Why:   Keeps the idempotency rules in one place, independent of HTTP.
How:   Composes CatalogService (album resolution) with the atomic
       insert_ignore/upsert statements from the database module.
Who:   Called by the /api/user/* route handlers.

Orchestration Flow (every write endpoint):
    ┌────────────┐    ┌─────────────────┐    ┌──────────────┐    ┌───────────────┐
    │  Validate  │───▶│ resolve_or_     │───▶│ attach_album │───▶│ set_notes /   │
    │  input     │    │ create (album)  │    │ (ignore dup) │    │ upsert_rating │
    └────────────┘    └─────────────────┘    └──────────────┘    └───────────────┘

    All steps share the request's transaction (committed by get_db_session).

State per key (no deletion path):
    user_albums    (user, album):        absent → present, re-attach is a no-op
    track_ratings  (user, album, track): absent → present, re-rate overwrites
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from musicjournal.database import insert_ignore, store_errors, upsert
from musicjournal.exceptions import NotFoundError, ValidationError
from musicjournal.models.album import Album, TrackRating, UserAlbum
from musicjournal.models.user import utcnow
from musicjournal.schemas.journal import TrackRatingItem, UserAlbumItem
from musicjournal.services.catalog_service import catalog_service

logger = logging.getLogger(__name__)

RATING_MIN = 1
RATING_MAX = 5

UNKNOWN_ALBUM_TITLE = "Unknown album"
UNKNOWN_ALBUM_ARTIST = "Unknown artist"


def coerce_rating(value: Any) -> int:
    """
    Validate a rating from a JSON body and return it as an int.

    Accepted: 1..5 as an int, an integral float (5.0) or a numeric string ("4").
    Rejected: 0, 6, 3.5, booleans, "abc", None.
    """
    error = ValidationError(
        message=f"Rating must be an integer between {RATING_MIN} and {RATING_MAX}",
        field="rating",
    )
    if value is None or isinstance(value, bool):
        raise error

    if isinstance(value, int):
        number = value
    elif isinstance(value, (float, str)):
        try:
            as_float = float(value)
        except ValueError:
            raise error
        if not as_float.is_integer():
            raise error
        number = int(as_float)
    else:
        raise error

    if not RATING_MIN <= number <= RATING_MAX:
        raise error
    return number


class JournalService:
    """
    Business logic for the per-user journal.

    The primitive operations (attach_album, set_notes, list_albums,
    upsert_rating, get_ratings) take internal ids. The save_* methods are
    what the routes call: they validate request fields, resolve the album
    through the catalog, then apply the primitives.
    """

    # ── Primitives ────────────────────────────────────────────────────────

    async def attach_album(self, db: AsyncSession, user_id: uuid.UUID, album_id: uuid.UUID) -> None:
        """Add the album to the user's journal; no-op if it is already there."""
        with store_errors("attaching album"):
            await insert_ignore(
                db,
                UserAlbum,
                {"user_id": user_id, "album_id": album_id, "created_at": utcnow()},
                conflict_columns=["user_id", "album_id"],
            )

    async def set_notes(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        album_id: uuid.UUID,
        notes: Optional[str],
    ) -> None:
        """
        Overwrite the notes on a journal entry. None or "" clears them.

        Raises:
            NotFoundError: the album is not in the user's journal
                           (attach_album must run first)
        """
        with store_errors("saving notes"):
            result = await db.execute(
                update(UserAlbum)
                .where(UserAlbum.user_id == user_id, UserAlbum.album_id == album_id)
                .values(notes=notes or None)
            )
        if result.rowcount == 0:
            raise NotFoundError(resource="journal entry", resource_id=str(album_id))

    async def list_albums(self, db: AsyncSession, user_id: uuid.UUID) -> List[UserAlbumItem]:
        """The user's journaled albums, most recently journaled first."""
        query = (
            select(
                Album.external_id,
                Album.title,
                Album.artist,
                Album.cover_url,
                UserAlbum.created_at,
                UserAlbum.notes,
            )
            .join(Album, UserAlbum.album_id == Album.id)
            .where(UserAlbum.user_id == user_id)
            .order_by(UserAlbum.created_at.desc())
        )
        with store_errors("listing albums"):
            result = await db.execute(query)
            rows = result.mappings().all()

        return [UserAlbumItem(**row) for row in rows]

    async def upsert_rating(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        album_id: uuid.UUID,
        track_id: Union[str, int],
        track_name: str,
        rating: Any,
    ) -> int:
        """
        Insert the rating, or overwrite rating + updated_at if it exists.

        Returns the stored (validated) rating.

        Raises:
            ValidationError: rating is not an integer in 1..5
        """
        value = coerce_rating(rating)

        with store_errors("saving rating"):
            await upsert(
                db,
                TrackRating,
                {
                    "user_id": user_id,
                    "album_id": album_id,
                    "track_id": str(track_id),
                    "track_name": track_name,
                    "rating": value,
                    "updated_at": utcnow(),
                },
                conflict_columns=["user_id", "album_id", "track_id"],
                update_columns=["rating", "updated_at"],
            )
        return value

    async def get_ratings(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        external_id: str,
    ) -> Dict[str, TrackRatingItem]:
        """
        The user's ratings for one album, keyed by track id.

        An album nobody has referenced yet simply has no ratings: the result
        is an empty mapping, not an error.
        """
        album_id = await catalog_service.find_album_id(db, external_id)
        if album_id is None:
            return {}

        with store_errors("fetching ratings"):
            result = await db.execute(
                select(TrackRating).where(
                    TrackRating.user_id == user_id,
                    TrackRating.album_id == album_id,
                )
            )
            ratings = result.scalars().all()

        return {
            r.track_id: TrackRatingItem(track_id=r.track_id, track_name=r.track_name, rating=r.rating)
            for r in ratings
        }

    # ── Request-level operations ──────────────────────────────────────────

    async def save_album(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        external_id: Optional[str],
        title: Optional[str],
        artist: Optional[str],
        cover_url: Optional[str] = None,
    ) -> uuid.UUID:
        """POST /api/user/albums: resolve the album and add it to the journal."""
        if not external_id or not title or not artist:
            raise ValidationError(message="Missing album data")

        album_id = await catalog_service.resolve_or_create(
            db, external_id, title, artist, cover_url or None
        )
        await self.attach_album(db, user_id, album_id)
        logger.info("User %s saved album %s", user_id, external_id)
        return album_id

    async def save_notes(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        album_external_id: Optional[str],
        album_title: Optional[str] = None,
        album_artist: Optional[str] = None,
        cover_url: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        """POST /api/user/album-notes: journal the album if needed, then set notes."""
        if not album_external_id:
            raise ValidationError(message="Missing albumExternalId", field="albumExternalId")

        album_id = await catalog_service.resolve_or_create(
            db,
            album_external_id,
            album_title or UNKNOWN_ALBUM_TITLE,
            album_artist or UNKNOWN_ALBUM_ARTIST,
            cover_url or None,
        )
        await self.attach_album(db, user_id, album_id)
        await self.set_notes(db, user_id, album_id, notes)

    async def save_rating(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        album_external_id: Optional[str],
        track_id: Optional[Union[str, int]],
        track_name: Optional[str],
        rating: Any,
        album_title: Optional[str] = None,
        album_artist: Optional[str] = None,
        cover_url: Optional[str] = None,
    ) -> None:
        """
        POST /api/user/ratings: journal the album if needed, then upsert the rating.

        The rating is validated before any write, so a bad value never
        leaves behind a half-created journal entry.
        """
        if not album_external_id or track_id in (None, "") or not track_name or rating is None:
            raise ValidationError(message="Missing rating data")

        value = coerce_rating(rating)

        album_id = await catalog_service.resolve_or_create(
            db,
            album_external_id,
            album_title or UNKNOWN_ALBUM_TITLE,
            album_artist or UNKNOWN_ALBUM_ARTIST,
            cover_url or None,
        )
        await self.attach_album(db, user_id, album_id)
        await self.upsert_rating(db, user_id, album_id, track_id, track_name, value)
        logger.info("User %s rated track %s on %s", user_id, track_id, album_external_id)


journal_service = JournalService()
