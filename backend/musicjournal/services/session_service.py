"""
Music Journal Backend - Session Service
========================================

What:  Issues, validates and destroys login sessions stored in `sessions`.
Why:   The session token in the `mj_session` cookie is the only credential
       presented after login. It is looked up on every /user/* request.
How:   Tokens are 256-bit random values (secrets.token_urlsafe). Each row
       holds the user id and a fixed expiry; nothing is kept in memory, so
       any worker process can validate any session.

Lifetime:
    expires_at = created_at + SESSION_TTL_SECONDS (default 7 days).
    Not sliding: using a session does not extend it. Expired rows are swept
    at startup and whenever a new session is started.

The token is always an explicit argument. There is no ambient "current
session" object anywhere in the application.
"""

import logging
import secrets
import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from musicjournal.config import settings
from musicjournal.database import store_errors
from musicjournal.models.user import User, UserSession, utcnow

logger = logging.getLogger(__name__)


class SessionService:

    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl = timedelta(seconds=ttl_seconds or settings.session_ttl_seconds)

    async def start(self, db: AsyncSession, user_id: uuid.UUID, username: str) -> str:
        """Create a session for the user and return its opaque token."""
        with store_errors("starting session"):
            await self.purge_expired(db)

            now = utcnow()
            token = secrets.token_urlsafe(32)
            db.add(
                UserSession(
                    session_id=token,
                    user_id=user_id,
                    username=username,
                    created_at=now,
                    expires_at=now + self.ttl,
                )
            )
            await db.flush()

        logger.info("Session started for user %s", user_id)
        return token

    async def authenticate(self, db: AsyncSession, token: Optional[str]) -> Optional[uuid.UUID]:
        """
        Return the user id behind `token`, or None.

        None covers: no token, unknown token, expired session, and a session
        whose user no longer exists (the join drops it).
        """
        if not token:
            return None

        query = (
            select(UserSession.user_id)
            .join(User, User.id == UserSession.user_id)
            .where(
                UserSession.session_id == token,
                UserSession.expires_at > utcnow(),
            )
        )
        with store_errors("authenticating session"):
            result = await db.execute(query)
            return result.scalar_one_or_none()

    async def destroy(self, db: AsyncSession, token: Optional[str]) -> None:
        """Invalidate a session. Idempotent: an absent session is not an error."""
        if not token:
            return
        with store_errors("destroying session"):
            await db.execute(delete(UserSession).where(UserSession.session_id == token))

    async def purge_expired(self, db: AsyncSession) -> int:
        """Delete every expired session; returns how many were removed."""
        with store_errors("purging expired sessions"):
            result = await db.execute(
                delete(UserSession).where(UserSession.expires_at <= utcnow())
            )
        removed = result.rowcount or 0
        if removed:
            logger.info("Purged %d expired sessions", removed)
        return removed


session_service = SessionService()
