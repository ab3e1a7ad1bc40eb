"""
Music Journal Backend - Catalog Service Unit Tests
===================================================

What we test:
    ✅ resolve_or_create is idempotent per external id
    ✅ First write wins for album metadata
    ✅ find_album_id returns None for unseen albums
    ✅ A lost insert race re-reads the winner's row (locking read)
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import mysql, postgresql, sqlite

from musicjournal.models.album import Album
from musicjournal.services.catalog_service import CatalogService, album_id_query


class TestCatalogService:

    def setup_method(self):
        self.service = CatalogService()

    @pytest.mark.asyncio
    async def test_unknown_album(self, db_session):
        assert await self.service.find_album_id(db_session, "mbid-missing") is None

    @pytest.mark.asyncio
    async def test_resolve_creates_once(self, db_session):
        first = await self.service.resolve_or_create(db_session, "mbid-1", "Blue", "Joni Mitchell")
        second = await self.service.resolve_or_create(db_session, "mbid-1", "Blue", "Joni Mitchell")

        assert first == second
        count = await db_session.scalar(select(func.count()).select_from(Album))
        assert count == 1
        assert await self.service.find_album_id(db_session, "mbid-1") == first

    @pytest.mark.asyncio
    async def test_first_write_wins(self, db_session):
        album_id = await self.service.resolve_or_create(
            db_session, "mbid-1", "Blue", "Joni Mitchell", "http://covers/blue.jpg"
        )
        again = await self.service.resolve_or_create(
            db_session, "mbid-1", "Different Title", "Someone Else", None
        )
        assert again == album_id

        album = (await db_session.execute(
            select(Album).where(Album.id == album_id)
        )).scalar_one()
        assert album.title == "Blue"
        assert album.artist == "Joni Mitchell"
        assert album.cover_url == "http://covers/blue.jpg"

    @pytest.mark.asyncio
    async def test_distinct_external_ids(self, db_session):
        a = await self.service.resolve_or_create(db_session, "mbid-a", "A", "X")
        b = await self.service.resolve_or_create(db_session, "mbid-b", "B", "Y")
        assert a != b


class TestConcurrentCreate:
    """
    The insert-or-ignore branch: another request created the album between
    our first lookup and our insert.
    """

    def setup_method(self):
        self.service = CatalogService()

    @pytest.mark.asyncio
    async def test_lost_race_returns_existing_row(self, db_session, monkeypatch):
        existing = await self.service.resolve_or_create(db_session, "mbid-1", "Blue", "Joni Mitchell")

        real_lookup = self.service.find_album_id
        calls = []

        async def miss_first_lookup(db, external_id, locking=False):
            calls.append(locking)
            if len(calls) == 1:
                return None
            return await real_lookup(db, external_id, locking=locking)

        monkeypatch.setattr(self.service, "find_album_id", miss_first_lookup)

        album_id = await self.service.resolve_or_create(db_session, "mbid-1", "Second", "Someone Else")

        assert album_id == existing
        assert calls == [False, True]
        count = await db_session.scalar(select(func.count()).select_from(Album))
        assert count == 1
        title = await db_session.scalar(select(Album.title).where(Album.id == album_id))
        assert title == "Blue"

    @pytest.mark.parametrize(
        "dialect,clause",
        [(postgresql.dialect(), "FOR SHARE"), (mysql.dialect(), "SHARE")],
    )
    def test_relookup_is_a_locking_read(self, dialect, clause):
        sql = str(album_id_query("mbid-1", locking=True).compile(dialect=dialect))
        assert clause in sql

    def test_fast_path_lookup_does_not_lock(self):
        sql = str(album_id_query("mbid-1").compile(dialect=postgresql.dialect()))
        assert "FOR SHARE" not in sql

    def test_sqlite_drops_the_lock_clause(self):
        sql = str(album_id_query("mbid-1", locking=True).compile(dialect=sqlite.dialect()))
        assert "SHARE" not in sql
