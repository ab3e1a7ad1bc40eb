"""
Music Journal Backend - Health Check and Ping Routes
=====================================================

What:  GET /health for container/load balancer probes, GET /api/ping as a
       cheap liveness check for the frontend.
Why:   The API is useless without its database, so /health probes it.

Status levels:
    - healthy:   database reachable (HTTP 200)
    - unhealthy: database unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Response
from sqlalchemy import text

from musicjournal import __version__
from musicjournal.database import engine
from musicjournal.schemas.common import HealthResponse, PingResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    """Runs SELECT 1 against the pool and reports the result."""
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )


@router.get("/api/ping", response_model=PingResponse, summary="Liveness ping")
async def ping() -> PingResponse:
    return PingResponse(time=datetime.now(timezone.utc))
