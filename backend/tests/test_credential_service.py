"""
Music Journal Backend - Credential Service Unit Tests
======================================================

What:  Tests for registration, password policy and login verification.
How:   Runs against the in-memory SQLite database from conftest.py.

What we test:
    ✅ Password policy accepts/rejects the documented examples
    ✅ Register stores a bcrypt hash, never the password
    ✅ Duplicate usernames are rejected (case-sensitive comparison),
       including a registration that races past the lookup
    ✅ verify() gives the same error for unknown user and wrong password
"""

import pytest
from sqlalchemy import select

from musicjournal.exceptions import (
    ConflictError,
    InvalidCredentialsError,
    ValidationError,
    WeakPasswordError,
)
from musicjournal.models.user import User
from musicjournal.services.credential_service import (
    CredentialService,
    check_password,
    hash_password,
    password_meets_requirements,
)

from conftest import STRONG_PASSWORD


class TestPasswordPolicy:

    @pytest.mark.parametrize("password", ["Abcdef1!", "Zz9#zzzz", "pässWörd1 ", "Aa1!Aa1!Aa1!"])
    def test_accepts_strong_passwords(self, password):
        assert password_meets_requirements(password)

    @pytest.mark.parametrize(
        "password",
        [
            "abcdefg1",   # no uppercase, no special
            "ABCDEFG1!",  # no lowercase
            "Abcdefgh!",  # no digit
            "Abcdefg1",   # no special
            "Ab1!",       # too short
            "",
        ],
    )
    def test_rejects_weak_passwords(self, password):
        assert not password_meets_requirements(password)

    def test_hash_round_trip_and_mismatch(self):
        hashed = hash_password("Abcdef1!", rounds=4)
        assert hashed.startswith("$2")
        assert check_password("Abcdef1!", hashed)
        assert not check_password("Abcdef1?", hashed)

    def test_malformed_hash_is_a_mismatch(self):
        assert check_password("Abcdef1!", "not-a-bcrypt-hash") is False


class TestRegister:

    def setup_method(self):
        self.service = CredentialService(rounds=4)

    @pytest.mark.asyncio
    async def test_register_stores_hash_not_password(self, db_session):
        user_id = await self.service.register(db_session, "alice", STRONG_PASSWORD)

        user = await db_session.get(User, user_id)
        assert user.username == "alice"
        assert user.password_hash != STRONG_PASSWORD
        assert check_password(STRONG_PASSWORD, user.password_hash)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "username,password",
        [(None, STRONG_PASSWORD), ("alice", None), ("", STRONG_PASSWORD), ("alice", "")],
    )
    async def test_missing_fields(self, db_session, username, password):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.register(db_session, username, password)
        assert exc_info.value.message == "Username and password required"

    @pytest.mark.asyncio
    async def test_weak_password_creates_nothing(self, db_session):
        with pytest.raises(WeakPasswordError):
            await self.service.register(db_session, "alice", "abcdefg1")

        result = await db_session.execute(select(User))
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self, db_session):
        await self.service.register(db_session, "alice", STRONG_PASSWORD)

        with pytest.raises(ConflictError) as exc_info:
            await self.service.register(db_session, "alice", "Other-pass9")
        assert exc_info.value.message == "Username already taken"
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_racing_registration_hits_unique_constraint(self, db_session, monkeypatch):
        """Both requests pass the lookup; the unique index rejects the second."""
        await self.service.register(db_session, "alice", STRONG_PASSWORD)

        async def not_found_yet(db, username):
            return None

        monkeypatch.setattr(self.service, "_find_user", not_found_yet)

        with pytest.raises(ConflictError) as exc_info:
            await self.service.register(db_session, "alice", "Other-pass9")
        assert exc_info.value.message == "Username already taken"
        assert exc_info.value.context["race"] is True

    @pytest.mark.asyncio
    async def test_usernames_are_case_sensitive(self, db_session):
        first = await self.service.register(db_session, "alice", STRONG_PASSWORD)
        second = await self.service.register(db_session, "Alice", STRONG_PASSWORD)
        assert first != second


class TestVerify:

    def setup_method(self):
        self.service = CredentialService(rounds=4)

    @pytest.mark.asyncio
    async def test_correct_password_returns_user_id(self, db_session):
        user_id = await self.service.register(db_session, "alice", STRONG_PASSWORD)
        assert await self.service.verify(db_session, "alice", STRONG_PASSWORD) == user_id

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_user_look_the_same(self, db_session):
        await self.service.register(db_session, "alice", STRONG_PASSWORD)

        with pytest.raises(InvalidCredentialsError) as wrong_password:
            await self.service.verify(db_session, "alice", "Wrong-pass1")
        with pytest.raises(InvalidCredentialsError) as unknown_user:
            await self.service.verify(db_session, "nobody", STRONG_PASSWORD)

        assert wrong_password.value.message == unknown_user.value.message
        assert wrong_password.value.status_code == unknown_user.value.status_code == 400
        # Which half failed is only in the logged context
        assert wrong_password.value.context["reason"] == "password_mismatch"
        assert unknown_user.value.context["reason"] == "unknown_user"

    @pytest.mark.asyncio
    async def test_missing_fields(self, db_session):
        with pytest.raises(ValidationError):
            await self.service.verify(db_session, "alice", None)

    @pytest.mark.asyncio
    async def test_get_user(self, db_session):
        user_id = await self.service.register(db_session, "alice", STRONG_PASSWORD)
        user = await self.service.get_user(db_session, user_id)
        assert user.username == "alice"
        assert user.created_at is not None
