"""
Music Journal Backend - Application Package
============================================

What: Personal music journal API: accounts, saved albums, notes, track ratings.
Who:  Imported by uvicorn (`musicjournal.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP, cookies, status codes
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← credentials, sessions,
    │                                     │    catalog, journal
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← async sessions, upserts
    └─────────────────────────────────────┘

    Services never see a Request object. The session token read from the
    cookie is passed to them explicitly.
"""

__version__ = "1.0.0"
