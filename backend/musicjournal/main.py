"""
Music Journal Backend - FastAPI Application Factory
====================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (`uvicorn musicjournal.main:app`) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Rate Limit  │→│ Req ID   │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌──────────────┐ ┌────────────┐   │
    │  │ /api (auth)  │ │ /api/user/*  │ │ /health    │   │
    │  └──────────────┘ └──────────────┘ └────────────┘   │
    │                                                     │
    │  Exception Handlers → {"error": "<message>"}        │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration warnings, expired-session sweep
    Shutdown: dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from musicjournal import __version__
from musicjournal.config import settings
from musicjournal.database import async_session_factory, dispose_engine
from musicjournal.exceptions import (
    InternalError,
    MusicJournalError,
)
from musicjournal.middleware.logging import RequestLoggingMiddleware
from musicjournal.middleware.rate_limit import RateLimitMiddleware
from musicjournal.middleware.request_id import RequestIDMiddleware, request_id_var
from musicjournal.routes import auth, health, journal
from musicjournal.services.session_service import session_service

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Server error. Please try again later."


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] musicjournal.services.catalog_service: ...
    Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


async def sweep_expired_sessions() -> None:
    """Startup sweep; a down database is logged, not fatal (health shows it)."""
    try:
        async with async_session_factory() as db:
            removed = await session_service.purge_expired(db)
            await db.commit()
        logger.info("Startup session sweep removed %d expired sessions", removed)
    except (InternalError, OSError) as e:
        logger.warning("Startup session sweep skipped, database unavailable: %s", str(e))


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("Music Journal Backend %s starting up...", __version__)

    for warning in settings.validate_required_for_production():
        logger.warning("Configuration: %s", warning)

    await sweep_expired_sessions()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Music Journal Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes, always with an `{"error": ...}` body.

    Handler hierarchy:
        InternalError           → 500, generic message, context logged
        MusicJournalError       → exc.status_code (400/401/404), exc.message
        RequestValidationError  → 400 (malformed JSON / wrong field types)
        HTTPException           → its own status (e.g. 404 unknown route)
        Exception (fallback)    → 500, generic message, stack trace logged

    429s never reach these handlers: RateLimitMiddleware answers before the
    app runs.

    Security: responses never carry stack traces, SQL, or exception context.
    """

    @app.exception_handler(InternalError)
    async def handle_internal_error(request: Request, exc: InternalError):
        rid = request_id_var.get("")
        logger.error("[%s] Internal error on %s: %s | Context: %s", rid, request.url.path, exc.message, exc.context)
        return _error(500, GENERIC_SERVER_ERROR)

    @app.exception_handler(MusicJournalError)
    async def handle_app_error(request: Request, exc: MusicJournalError):
        rid = request_id_var.get("")
        # Context may say which half of a failed login was wrong; log only
        logger.warning("[%s] %s on %s: %s | Context: %s",
                       rid, type(exc).__name__, request.url.path, exc.message, exc.context)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "Invalid request body"
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            detail = first.get("msg", "invalid value")
            message = f"Invalid request: {location}: {detail}" if location else f"Invalid request: {detail}"
        logger.warning("[%s] Request validation failed on %s: %s",
                       request_id_var.get(""), request.url.path, message)
        return _error(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error on %s: %s", rid, request.url.path, str(exc), exc_info=True)
        return _error(500, GENERIC_SERVER_ERROR)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns a fresh instance each call, so tests get their own middleware
    state (e.g. rate-limit counters) and dependency overrides.
    """
    app = FastAPI(
        title="Music Journal API",
        description=(
            "Personal music journal: save albums, keep notes on them, "
            "and rate individual tracks from 1 to 5."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS → route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,  # the session cookie must cross origins
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(journal.router)
    app.include_router(health.router)

    return app


app = create_app()
