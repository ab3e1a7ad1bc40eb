"""
Music Journal Backend - Session Service Unit Tests
===================================================

What we test:
    ✅ start() → authenticate() returns the user
    ✅ Unknown, missing and expired tokens authenticate to None
    ✅ destroy() is idempotent
    ✅ purge_expired() removes only expired rows
"""

from datetime import timedelta

import pytest
from sqlalchemy import select, update

from musicjournal.models.user import UserSession, utcnow
from musicjournal.services.session_service import SessionService


async def _expire(db, token):
    await db.execute(
        update(UserSession)
        .where(UserSession.session_id == token)
        .values(expires_at=utcnow() - timedelta(seconds=1))
    )


class TestSessionService:

    def setup_method(self):
        self.service = SessionService(ttl_seconds=3600)

    @pytest.mark.asyncio
    async def test_start_then_authenticate(self, db_session, user_id):
        token = await self.service.start(db_session, user_id, "alice")

        assert len(token) >= 40
        assert await self.service.authenticate(db_session, token) == user_id

    @pytest.mark.asyncio
    async def test_tokens_are_unique(self, db_session, user_id):
        first = await self.service.start(db_session, user_id, "alice")
        second = await self.service.start(db_session, user_id, "alice")
        assert first != second

    @pytest.mark.asyncio
    async def test_expiry_is_fixed_at_creation(self, db_session, user_id):
        token = await self.service.start(db_session, user_id, "alice")

        row = (await db_session.execute(
            select(UserSession).where(UserSession.session_id == token)
        )).scalar_one()
        assert row.expires_at - row.created_at == timedelta(seconds=3600)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "no-such-token"])
    async def test_unknown_tokens(self, db_session, user_id, token):
        assert await self.service.authenticate(db_session, token) is None

    @pytest.mark.asyncio
    async def test_expired_session_is_rejected(self, db_session, user_id):
        token = await self.service.start(db_session, user_id, "alice")
        await _expire(db_session, token)

        assert await self.service.authenticate(db_session, token) is None

    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self, db_session, user_id):
        token = await self.service.start(db_session, user_id, "alice")

        await self.service.destroy(db_session, token)
        await self.service.destroy(db_session, token)
        await self.service.destroy(db_session, None)

        assert await self.service.authenticate(db_session, token) is None

    @pytest.mark.asyncio
    async def test_purge_removes_only_expired(self, db_session, user_id):
        stale = await self.service.start(db_session, user_id, "alice")
        live = await self.service.start(db_session, user_id, "alice")
        await _expire(db_session, stale)

        assert await self.service.purge_expired(db_session) == 1
        assert await self.service.purge_expired(db_session) == 0
        assert await self.service.authenticate(db_session, live) == user_id

    @pytest.mark.asyncio
    async def test_start_sweeps_expired_sessions(self, db_session, user_id):
        stale = await self.service.start(db_session, user_id, "alice")
        await _expire(db_session, stale)

        await self.service.start(db_session, user_id, "alice")

        remaining = (await db_session.execute(select(UserSession.session_id))).scalars().all()
        assert stale not in remaining
        assert len(remaining) == 1
