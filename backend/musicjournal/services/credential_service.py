"""
Music Journal Backend - Credential Service
===========================================

What:  Account registration and password verification.
Why:   The only place that touches plain-text passwords or their hashes.
How:   bcrypt (salted, cost from settings) run in Starlette's threadpool,
       since a single hash at cost 10 takes tens of milliseconds of CPU.
Who:   Called by the /register, /login and /me route handlers.

Password Policy:
    At least 8 characters, with at least one lowercase letter, one uppercase
    letter, one digit, and one character outside [A-Za-z0-9].
        "abcdefg1" → rejected (no uppercase, no special character)
        "Abcdef1!" → accepted

Enumeration Resistance:
    verify() raises the same InvalidCredentialsError for "no such user" and
    "wrong password". An unknown username still runs one bcrypt comparison
    (against a fixed dummy hash) so response timing doesn't reveal it either.
"""

import logging
import re
import uuid
from functools import lru_cache
from typing import Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from musicjournal.config import settings
from musicjournal.database import store_errors
from musicjournal.exceptions import (
    ConflictError,
    InvalidCredentialsError,
    ValidationError,
    WeakPasswordError,
)
from musicjournal.models.user import User

logger = logging.getLogger(__name__)

PASSWORD_PATTERN = re.compile(
    r"(?=.*[a-z])(?=.*[A-Z])(?=.*[0-9])(?=.*[^A-Za-z0-9]).{8,}",
    re.DOTALL,
)

# bcrypt only reads the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


def password_meets_requirements(password: str) -> bool:
    return PASSWORD_PATTERN.fullmatch(password) is not None


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def check_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison; a malformed stored hash counts as a mismatch."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("ascii"))
    except ValueError:
        logger.error("Stored password hash is malformed")
        return False


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    return hash_password("dummy-password-for-timing", rounds)


class CredentialService:
    """
    Business logic for accounts.

    Responsibilities:
        - register(): validate, check uniqueness, hash, insert
        - verify(): username + password → user id, or a generic failure
        - get_user(): load the account shown by /me
    """

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds or settings.bcrypt_rounds

    async def _find_user(self, db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def register(self, db: AsyncSession, username: Optional[str], password: Optional[str]) -> uuid.UUID:
        """
        Create a new account and return its id.

        Raises:
            ValidationError:   username or password missing/empty
            WeakPasswordError: password fails the policy above
            ConflictError:     username already taken (including a racing
                               registration caught by the unique constraint)
            InternalError:     store failure
        """
        if not username or not password:
            raise ValidationError(message="Username and password required")

        if not password_meets_requirements(password):
            raise WeakPasswordError()

        with store_errors("registering user"):
            if await self._find_user(db, username) is not None:
                raise ConflictError(context={"username": username})

            password_hash = await run_in_threadpool(hash_password, password, self.rounds)

            user = User(username=username, password_hash=password_hash)
            db.add(user)
            try:
                await db.flush()
            except IntegrityError:
                # Lost a race with a concurrent registration of the same name
                await db.rollback()
                raise ConflictError(context={"username": username, "race": True})

        logger.info("Registered user %s", user.id)
        return user.id

    async def verify(self, db: AsyncSession, username: Optional[str], password: Optional[str]) -> uuid.UUID:
        """
        Check a username/password pair and return the user id.

        Raises:
            ValidationError:         username or password missing/empty
            InvalidCredentialsError: unknown user OR wrong password (same message)
        """
        if not username or not password:
            raise ValidationError(message="Username and password required")

        with store_errors("looking up user for login"):
            user = await self._find_user(db, username)

        if user is None:
            await run_in_threadpool(check_password, password, _dummy_hash(self.rounds))
            raise InvalidCredentialsError(context={"reason": "unknown_user"})

        if not await run_in_threadpool(check_password, password, user.password_hash):
            raise InvalidCredentialsError(context={"reason": "password_mismatch", "user_id": str(user.id)})

        return user.id

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        with store_errors("fetching user"):
            return await db.get(User, user_id)


credential_service = CredentialService()
