"""
Music Journal Backend - Journal Request/Response Schemas
=========================================================

What:  Pydantic models for the /api/user/* endpoints.
Why:   The frontend speaks camelCase (`externalId`, `trackName`); Python code
       uses snake_case. Aliases bridge the two, and FastAPI serializes
       response models by alias.

Wire format note:
    The journal listing (UserAlbumItem) keeps the snake_case column names
    (`external_id`, `cover_url`, `created_at`) that existing clients read.
"""

import uuid
from datetime import datetime
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, Field, StringConstraints


# Column sizes: albums.external_id / track_ratings.track_id String(255),
# titles, artists and track names String(500). Longer values get a 400 here
# instead of a driver error at insert time.
ID_MAX_LENGTH = 255
NAME_MAX_LENGTH = 500

TrackId = Union[Annotated[str, StringConstraints(max_length=ID_MAX_LENGTH)], int]


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class AlbumSaveRequest(BaseModel):
    """Body of POST /api/user/albums. All but coverUrl are required by the service."""
    external_id: Optional[str] = Field(default=None, alias="externalId", max_length=ID_MAX_LENGTH)
    title: Optional[str] = Field(default=None, max_length=NAME_MAX_LENGTH)
    artist: Optional[str] = Field(default=None, max_length=NAME_MAX_LENGTH)
    cover_url: Optional[str] = Field(default=None, alias="coverUrl")

    model_config = {"populate_by_name": True}


class AlbumNotesRequest(BaseModel):
    """
    Body of POST /api/user/album-notes.

    Album metadata is optional: notes can be written for an album the user
    has not saved yet, in which case placeholders are used for title/artist.
    """
    album_external_id: Optional[str] = Field(
        default=None, alias="albumExternalId", max_length=ID_MAX_LENGTH
    )
    album_title: Optional[str] = Field(default=None, alias="albumTitle", max_length=NAME_MAX_LENGTH)
    album_artist: Optional[str] = Field(default=None, alias="albumArtist", max_length=NAME_MAX_LENGTH)
    cover_url: Optional[str] = Field(default=None, alias="coverUrl")
    notes: Optional[str] = Field(default=None, description="Free text; empty or null clears")

    model_config = {"populate_by_name": True}


class RatingRequest(BaseModel):
    """
    Body of POST /api/user/ratings.

    `rating` is deliberately untyped here. Range and integer checks live in
    JournalService so that 3.5 and "7" get the same 400 message as 0 and 6.
    """
    album_external_id: Optional[str] = Field(
        default=None, alias="albumExternalId", max_length=ID_MAX_LENGTH
    )
    album_title: Optional[str] = Field(default=None, alias="albumTitle", max_length=NAME_MAX_LENGTH)
    album_artist: Optional[str] = Field(default=None, alias="albumArtist", max_length=NAME_MAX_LENGTH)
    cover_url: Optional[str] = Field(default=None, alias="coverUrl")
    track_id: Optional[TrackId] = Field(default=None, alias="trackId")
    track_name: Optional[str] = Field(default=None, alias="trackName", max_length=NAME_MAX_LENGTH)
    rating: Optional[Any] = None

    model_config = {"populate_by_name": True}


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AlbumSaveResponse(BaseModel):
    success: bool = True
    album_id: uuid.UUID = Field(alias="albumId", description="Internal album id")

    model_config = {"populate_by_name": True}


class UserAlbumItem(BaseModel):
    """One journaled album, newest first in GET /api/user/albums."""
    external_id: str
    title: str
    artist: str
    cover_url: Optional[str] = None
    created_at: datetime = Field(description="When the user journaled the album (UTC)")
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class TrackRatingItem(BaseModel):
    """Value type of the GET /api/user/ratings/{externalId} mapping."""
    track_id: str = Field(alias="trackId")
    track_name: str = Field(alias="trackName")
    rating: int

    model_config = {"populate_by_name": True}
