"""
Music Journal Backend - Route Dependencies
===========================================

What:  FastAPI dependencies that read the session cookie and gate /user/*.
Why:   The cookie is the only place the HTTP layer touches session state;
       from here on the token/user id is passed explicitly.
"""

import uuid
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from musicjournal.config import settings
from musicjournal.database import get_db_session
from musicjournal.exceptions import NotAuthenticatedError
from musicjournal.services.session_service import session_service


def get_session_token(request: Request) -> Optional[str]:
    """The raw session token from the cookie, or None."""
    return request.cookies.get(settings.session_cookie_name) or None


async def require_user_id(
    token: Optional[str] = Depends(get_session_token),
    db: AsyncSession = Depends(get_db_session),
) -> uuid.UUID:
    """
    Gate for every /api/user/* route.

    Raises:
        NotAuthenticatedError (→ 401): no cookie, or the session is unknown,
        expired, or belongs to a deleted user.
    """
    user_id = await session_service.authenticate(db, token)
    if user_id is None:
        raise NotAuthenticatedError()
    return user_id
