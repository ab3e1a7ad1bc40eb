"""
Music Journal Backend - Journal Route Handlers
===============================================

What:  The /api/user/* endpoints: saved albums, album notes, track ratings.
Why:   Every route requires a session; `require_user_id` raises 401 before
       the handler body runs.
How:   Thin handlers. Validation and idempotency live in JournalService.

Caching:
    Responses are per-user and change on every write, so all of them are
    sent with `Cache-Control: no-store`.
"""

import uuid
from typing import Dict, List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from musicjournal.database import get_db_session
from musicjournal.routes.dependencies import require_user_id
from musicjournal.schemas.auth import SuccessResponse
from musicjournal.schemas.common import ErrorResponse
from musicjournal.schemas.journal import (
    AlbumNotesRequest,
    AlbumSaveRequest,
    AlbumSaveResponse,
    RatingRequest,
    TrackRatingItem,
    UserAlbumItem,
)
from musicjournal.services.journal_service import journal_service

router = APIRouter(
    prefix="/api/user",
    tags=["Journal"],
    responses={401: {"description": "Not authenticated", "model": ErrorResponse}},
)


@router.post(
    "/albums",
    response_model=AlbumSaveResponse,
    responses={400: {"description": "Missing album data", "model": ErrorResponse}},
    summary="Save an album to the journal",
)
async def save_album(
    body: AlbumSaveRequest,
    user_id: uuid.UUID = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> AlbumSaveResponse:
    album_id = await journal_service.save_album(
        db,
        user_id,
        external_id=body.external_id,
        title=body.title,
        artist=body.artist,
        cover_url=body.cover_url,
    )
    return AlbumSaveResponse(album_id=album_id)


@router.get(
    "/albums",
    response_model=List[UserAlbumItem],
    summary="List journaled albums, newest first",
)
async def list_albums(
    response: Response,
    user_id: uuid.UUID = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserAlbumItem]:
    response.headers["Cache-Control"] = "no-store"
    return await journal_service.list_albums(db, user_id)


@router.post(
    "/album-notes",
    response_model=SuccessResponse,
    responses={400: {"description": "Missing albumExternalId", "model": ErrorResponse}},
    summary="Set notes on an album (journals it if needed)",
)
async def save_album_notes(
    body: AlbumNotesRequest,
    user_id: uuid.UUID = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await journal_service.save_notes(
        db,
        user_id,
        album_external_id=body.album_external_id,
        album_title=body.album_title,
        album_artist=body.album_artist,
        cover_url=body.cover_url,
        notes=body.notes,
    )
    return SuccessResponse()


@router.post(
    "/ratings",
    response_model=SuccessResponse,
    responses={400: {"description": "Missing rating data or rating out of range", "model": ErrorResponse}},
    summary="Rate a track 1-5 (journals the album if needed)",
)
async def save_rating(
    body: RatingRequest,
    user_id: uuid.UUID = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await journal_service.save_rating(
        db,
        user_id,
        album_external_id=body.album_external_id,
        track_id=body.track_id,
        track_name=body.track_name,
        rating=body.rating,
        album_title=body.album_title,
        album_artist=body.album_artist,
        cover_url=body.cover_url,
    )
    return SuccessResponse()


@router.get(
    "/ratings/{external_id}",
    response_model=Dict[str, TrackRatingItem],
    summary="Ratings for one album, keyed by track id",
)
async def get_ratings(
    external_id: str,
    response: Response,
    user_id: uuid.UUID = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, TrackRatingItem]:
    """Unknown album → `{}` with 200, never 404."""
    response.headers["Cache-Control"] = "no-store"
    return await journal_service.get_ratings(db, user_id, external_id)
