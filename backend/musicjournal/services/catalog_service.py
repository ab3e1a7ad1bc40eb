"""
Music Journal Backend - Catalog Service
========================================

What:  Maps an external album id to the internal `albums` row, creating the
       row the first time any user references the album.
Why:   Albums are shared across users; the journal tables reference them by
       internal id.

Resolve-or-create flow:
    1. SELECT id WHERE external_id = :x       → found? return it (fast path)
    2. INSERT ... ON CONFLICT DO NOTHING      → atomic against UNIQUE(external_id)
    3. SELECT id ... FOR SHARE                → the row we (or a racer) inserted

    Two concurrent requests for a new album both reach step 2; the store
    lets exactly one insert through and the other becomes a no-op. Both then
    read the same id in step 3.

    Step 3 is a locking read. Under MySQL's REPEATABLE READ a plain SELECT
    would reuse the snapshot taken in step 1 and miss the racer's row;
    a locking read always sees the latest committed version. SQLite has no
    row locks and compiles the clause away.

First write wins:
    Title, artist and cover URL come from whoever created the row. Later
    calls with different metadata return the existing id and change nothing.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from musicjournal.database import insert_ignore, store_errors
from musicjournal.exceptions import InternalError
from musicjournal.models.album import Album
from musicjournal.models.user import utcnow

logger = logging.getLogger(__name__)


def album_id_query(external_id: str, locking: bool = False) -> Select:
    query = select(Album.id).where(Album.external_id == external_id)
    if locking:
        query = query.with_for_update(read=True)
    return query


class CatalogService:

    async def find_album_id(
        self,
        db: AsyncSession,
        external_id: str,
        locking: bool = False,
    ) -> Optional[uuid.UUID]:
        """
        Internal id for an external album id, or None if never seen.

        locking=True takes a shared row lock, which also makes the read see
        rows committed after this transaction's snapshot.
        """
        with store_errors("looking up album"):
            result = await db.execute(album_id_query(external_id, locking=locking))
            return result.scalar_one_or_none()

    async def resolve_or_create(
        self,
        db: AsyncSession,
        external_id: str,
        title: str,
        artist: str,
        cover_url: Optional[str] = None,
    ) -> uuid.UUID:
        """
        Return the album id for `external_id`, inserting the album if needed.

        Safe under concurrent calls for the same external id: never raises on
        the duplicate and never creates a second row.
        """
        album_id = await self.find_album_id(db, external_id)
        if album_id is not None:
            return album_id

        with store_errors("creating album"):
            await insert_ignore(
                db,
                Album,
                {
                    "id": uuid.uuid4(),
                    "external_id": external_id,
                    "title": title,
                    "artist": artist,
                    "cover_url": cover_url,
                    "created_at": utcnow(),
                },
                conflict_columns=["external_id"],
            )

        album_id = await self.find_album_id(db, external_id, locking=True)
        if album_id is None:
            # Only possible if the row vanished between insert and re-read
            raise InternalError(context={"external_id": external_id})

        logger.info("Album %s resolved to %s", external_id, album_id)
        return album_id


catalog_service = CatalogService()
