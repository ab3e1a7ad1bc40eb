"""
Music Journal Backend - Test Configuration (conftest.py)
=========================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Services and routes run against a real (in-memory SQLite) database,
       so the ON CONFLICT statements and constraints are exercised for real.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped, a fresh database per test):
    engine
    ├── session_factory
    │   ├── db_session: one AsyncSession for service-level tests
    │   └── test_client: HTTPX AsyncClient; each request gets its own session
    └── user_id / other_user_id: registered accounts for journal tests
"""

import os

# Override settings for testing BEFORE any musicjournal imports
# Why: settings and the module-level engine are built at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["BCRYPT_ROUNDS"] = "4"  # minimum cost; hashing speed dominates otherwise
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from musicjournal.database import Base, get_db_session
from musicjournal.models.album import Album, TrackRating, UserAlbum  # noqa: F401
from musicjournal.models.user import User, UserSession  # noqa: F401
from musicjournal.services.credential_service import credential_service

# Satisfies the password policy: upper, lower, digit, special, 8+ chars
STRONG_PASSWORD = "Abcdef1!"


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    """
    An empty in-memory database with the full schema.

    StaticPool keeps a single connection, so every session in the test sees
    the same in-memory database.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    One session for a service-level test.

    Usage:
        async def test_register(db_session):
            user_id = await credential_service.register(db_session, "alice", STRONG_PASSWORD)
    """
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user_id(db_session):
    """A registered user ("alice") for journal and session tests."""
    return await credential_service.register(db_session, "alice", STRONG_PASSWORD)


@pytest_asyncio.fixture
async def other_user_id(db_session):
    return await credential_service.register(db_session, "bob", STRONG_PASSWORD)


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    Provides an async HTTP test client for endpoint testing.

    What:    HTTPX AsyncClient talking to a fresh FastAPI app.
    Why:     A fresh app per test means fresh rate-limit counters.
    How:     get_db_session is overridden to use the test database with the
             same commit-or-rollback behavior as production.

    Usage:
        async def test_me(test_client):
            response = await test_client.get("/api/me")
            assert response.json() == {"user": None}
    """
    from musicjournal.main import create_app

    app = create_app()

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
