"""
Music Journal Backend - Auth Route Handlers
============================================

What:  POST /api/register, POST /api/login, GET /api/me, POST /api/logout.
How:   Delegates to CredentialService and SessionService, then sets or
       clears the session cookie on the response.

Session cookie contract (any client relies on these):
    name      mj_session (SESSION_COOKIE_NAME)
    HttpOnly  yes, scripts can't read it
    SameSite  Lax
    Max-Age   SESSION_TTL_SECONDS (7 days)
    Path      /
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from musicjournal.config import settings
from musicjournal.database import get_db_session
from musicjournal.routes.dependencies import get_session_token
from musicjournal.schemas.auth import (
    AuthResponse,
    CredentialsRequest,
    CurrentUser,
    MeResponse,
    SuccessResponse,
    UserSummary,
)
from musicjournal.schemas.common import ErrorResponse
from musicjournal.services.credential_service import credential_service
from musicjournal.services.session_service import session_service

router = APIRouter(prefix="/api", tags=["Auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    responses={400: {"description": "Missing fields, weak password, or username taken", "model": ErrorResponse}},
    summary="Create an account and log in",
)
async def register(
    body: CredentialsRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user_id = await credential_service.register(db, body.username, body.password)
    token = await session_service.start(db, user_id, body.username)
    _set_session_cookie(response, token)
    return AuthResponse(user=UserSummary(id=user_id, username=body.username))


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={400: {"description": "Missing fields or invalid credentials", "model": ErrorResponse}},
    summary="Log in with username and password",
)
async def login(
    body: CredentialsRequest,
    response: Response,
    current_token: Optional[str] = Depends(get_session_token),
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    """
    Verify credentials and start a fresh session.

    A session the browser already holds is destroyed first, so a token
    obtained before login can never become an authenticated one.
    """
    user_id = await credential_service.verify(db, body.username, body.password)
    await session_service.destroy(db, current_token)
    token = await session_service.start(db, user_id, body.username)
    _set_session_cookie(response, token)
    return AuthResponse(user=UserSummary(id=user_id, username=body.username))


@router.get(
    "/me",
    response_model=MeResponse,
    summary="The logged-in user, or null",
)
async def me(
    token: Optional[str] = Depends(get_session_token),
    db: AsyncSession = Depends(get_db_session),
) -> MeResponse:
    """Never 401: an anonymous caller just gets `{"user": null}`."""
    user_id = await session_service.authenticate(db, token)
    if user_id is None:
        return MeResponse(user=None)

    user = await credential_service.get_user(db, user_id)
    if user is None:
        return MeResponse(user=None)
    return MeResponse(user=CurrentUser.model_validate(user))


@router.post(
    "/logout",
    response_model=SuccessResponse,
    responses={500: {"description": "Session could not be removed", "model": ErrorResponse}},
    summary="End the current session",
)
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await session_service.destroy(db, token)
    _clear_session_cookie(response)
    return SuccessResponse()
