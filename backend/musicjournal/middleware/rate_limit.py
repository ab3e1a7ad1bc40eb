"""
Music Journal Backend - Credential Endpoint Rate Limiting
==========================================================

What:  Per-IP sliding window limit on POST /api/register and /api/login.
Why:   Slows password guessing and mass account creation. Journal endpoints
       are already behind a session and are not limited.
How:   Each IP keeps a list of recent request timestamps. Timestamps older
       than the window are dropped; at the limit the request gets a 429.

Scope:
    In-memory, so the limit is per worker process. That is enough for this
    single-instance deployment.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from musicjournal.config import settings
from musicjournal.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

LIMITED_PATHS = {"/api/register", "/api/login"}


class RateLimitMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, max_requests: Optional[int] = None, window_seconds: Optional[int] = None):
        super().__init__(app)
        self.max_requests = max_requests or settings.auth_rate_limit_requests
        self.window = window_seconds or settings.auth_rate_limit_window
        self._requests: Dict[str, List[float]] = defaultdict(list)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method != "POST" or request.url.path not in LIMITED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - self.window

        recent = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = recent

        if len(recent) >= self.max_requests:
            retry_after = int(recent[0] + self.window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s on %s: %d requests in %ds window",
                client_ip,
                request.url.path,
                len(recent),
                self.window,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": exc.message},
                headers={"Retry-After": str(retry_after)},
            )

        recent.append(now)
        self._cleanup_inactive_ips(window_start)
        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        """Forget IPs whose newest request has left the window."""
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]
