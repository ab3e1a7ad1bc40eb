"""
Music Journal Backend - Auth Request/Response Schemas
======================================================

What:  Pydantic models for /register, /login, /me and /logout.
Why:   FastAPI validates bodies and serializes responses from these.

Request fields are Optional on purpose: a missing username must produce the
service's own "Username and password required" 400, not FastAPI's generic
422 field report.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

# Matches users.username String(100)
USERNAME_MAX_LENGTH = 100


class CredentialsRequest(BaseModel):
    """Body of POST /api/register and POST /api/login."""
    username: Optional[str] = Field(
        default=None,
        max_length=USERNAME_MAX_LENGTH,
        description="Account name (case-sensitive)",
    )
    password: Optional[str] = Field(
        default=None,
        description="Plain-text password; never logged or stored",
    )


class UserSummary(BaseModel):
    id: uuid.UUID
    username: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by register and login, alongside the Set-Cookie header."""
    success: bool = True
    user: UserSummary


class CurrentUser(BaseModel):
    id: uuid.UUID
    username: str
    created_at: datetime

    model_config = {"from_attributes": True}


class MeResponse(BaseModel):
    """`user` is null when there is no valid session (not an error)."""
    user: Optional[CurrentUser] = None


class SuccessResponse(BaseModel):
    success: bool = True
