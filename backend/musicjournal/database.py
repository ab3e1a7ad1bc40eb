"""
Music Journal Backend - Database Session Management
====================================================

What:  Async SQLAlchemy engine, session factory, FastAPI dependency, and the
       atomic insert-or-ignore / upsert statements the services rely on.
Why:   Centralizes all database connection logic in one place, and keeps the
       dialect-specific upsert SQL out of the business logic.
How:   Creates an async engine with connection pooling, provides a session
       dependency that commits on success and rolls back on error.
Who:   Route handlers via Depends(get_db_session); services via the helpers.
When:  Engine is created at module import; sessions are created per-request.

Idempotent writes:
    Every "create if absent" in this project is ONE statement that the store
    executes atomically against a unique constraint, so two racing requests
    can never create duplicate rows and no application lock is needed:

        PostgreSQL / SQLite:  INSERT ... ON CONFLICT (cols) DO NOTHING | DO UPDATE
        MySQL / MariaDB:      INSERT IGNORE ... | INSERT ... ON DUPLICATE KEY UPDATE
"""

import logging
from contextlib import contextmanager
from typing import Any, AsyncGenerator, Dict, Iterator, Sequence

from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from musicjournal.config import settings
from musicjournal.exceptions import InternalError

logger = logging.getLogger(__name__)


def _engine_options() -> Dict[str, Any]:
    """Pool options for server databases; SQLite picks its own pool class."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after the request commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object, which Alembic reads for migrations and the
    test suite uses for create_all().
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global error handler
        5. Always: closes the session (returns connection to pool)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Store Error Translation ───────────────────────────────────────────────
@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """
    Translate driver/ORM failures inside the block into InternalError.

    What:    Logs the real SQLAlchemy error server-side, then raises the
             generic InternalError (500, no detail) for the client.
    Why:     Services stay free of per-query try/except boilerplate, and a
             store failure never leaks SQL or schema names in a response.
    Nesting: An InternalError from an inner block passes through untouched,
             so each failure is logged exactly once.
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Database error while %s: %s", operation, str(e), exc_info=True)
        raise InternalError(
            context={"operation": operation, "error_type": type(e).__name__},
        ) from e


# ── Atomic Upsert Helpers ─────────────────────────────────────────────────
def _dialect_name(db: AsyncSession) -> str:
    return db.get_bind().dialect.name


async def insert_ignore(
    db: AsyncSession,
    model: type,
    values: Dict[str, Any],
    conflict_columns: Sequence[str],
) -> None:
    """
    Insert one row unless a row with the same key already exists.

    What:    The "idempotent attach" primitive. A duplicate key is a silent
             no-op, never an IntegrityError.
    Args:
        model:            ORM class to insert into
        values:           Column name → value for the new row
        conflict_columns: The unique/primary key that defines "already exists"
                          (ignored on MySQL, where INSERT IGNORE covers every key)
    """
    dialect = _dialect_name(db)
    if dialect == "postgresql":
        stmt = postgresql.insert(model).values(**values).on_conflict_do_nothing(
            index_elements=list(conflict_columns)
        )
    elif dialect == "sqlite":
        stmt = sqlite.insert(model).values(**values).on_conflict_do_nothing(
            index_elements=list(conflict_columns)
        )
    elif dialect in ("mysql", "mariadb"):
        stmt = mysql.insert(model).values(**values).prefix_with("IGNORE")
    else:
        raise InternalError(context={"unsupported_dialect": dialect})

    await db.execute(stmt)


async def upsert(
    db: AsyncSession,
    model: type,
    values: Dict[str, Any],
    conflict_columns: Sequence[str],
    update_columns: Sequence[str],
) -> None:
    """
    Insert one row, or overwrite `update_columns` of the existing row.

    What:    Single-statement insert-or-update keyed on a unique constraint.
             Racing writers never duplicate the row; the last one wins.
    Args:
        update_columns: Columns copied from `values` onto an existing row.
                        Columns not listed keep their stored value.
    """
    dialect = _dialect_name(db)
    if dialect in ("postgresql", "sqlite"):
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = insert(model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict_columns),
            set_={col: getattr(stmt.excluded, col) for col in update_columns},
        )
    elif dialect in ("mysql", "mariadb"):
        stmt = mysql.insert(model).values(**values)
        stmt = stmt.on_duplicate_key_update(
            {col: getattr(stmt.inserted, col) for col in update_columns}
        )
    else:
        raise InternalError(context={"unsupported_dialect": dialect})

    await db.execute(stmt)


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections. Called during application shutdown."""
    await engine.dispose()
