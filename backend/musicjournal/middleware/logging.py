"""
Music Journal Backend - Request Logging Middleware
===================================================

What:  One access-log line per request on the `musicjournal.access` logger.
How:   Measures wall time around the downstream app and logs method, path,
       status, duration, request id and client IP, plus an outcome label and
       whether the request carried a session cookie.

Outcome labels (the `outcome` record attribute):
    ok              2xx/3xx
    bad_input       400: missing fields, weak password, bad credentials
    no_session      401: the /api/user/* session gate refused the request
    not_found       404
    rate_limited    429 from the credential endpoint limiter
    client_error    any other 4xx
    server_error    5xx

    A burst of `no_session` with `session=yes` means cookies are being sent
    but no longer match a live session (expired, or logged out elsewhere).

What we log vs what we DON'T log (privacy):
    ✅ Log: method, path, status, duration, IP, request ID, cookie presence
    ❌ Don't log: request bodies (passwords, notes), cookie values (session tokens)

Log level follows the status: 5xx → ERROR, 4xx → WARNING, else INFO.
Probe endpoints (/health, /api/ping) are not logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from musicjournal.config import settings
from musicjournal.middleware.request_id import request_id_var

logger = logging.getLogger("musicjournal.access")

QUIET_PATHS = {"/health", "/api/ping"}

_CLIENT_OUTCOMES = {
    400: "bad_input",
    401: "no_session",
    404: "not_found",
    429: "rate_limited",
}


def classify_status(status: int) -> str:
    if status >= 500:
        return "server_error"
    if status >= 400:
        return _CLIENT_OUTCOMES.get(status, "client_error")
    return "ok"


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        has_session = settings.session_cookie_name in request.cookies

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        outcome = classify_status(status)
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        logger.log(
            log_level,
            "%s %s %d %s %.1fms [%s] from %s session=%s",
            request.method,
            path,
            status,
            outcome,
            duration_ms,
            rid,
            client_ip,
            "yes" if has_session else "no",
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "outcome": outcome,
                "has_session": has_session,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
