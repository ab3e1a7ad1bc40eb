"""
Music Journal Backend - Request ID Middleware
==============================================

What:  Tags each request with a short correlation id.
How:   Reuses the client's X-Request-ID when it is a plain token (letters,
       digits, `.`, `_`, `-`, at most 64 characters), otherwise makes an
       8-character one. It is stored in a ContextVar for log lines and
       echoed back in the X-Request-ID response header.

The id ends up verbatim in every log line of the request, so anything that
could forge or split a line (spaces, control characters) is not reused.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def resolve_request_id(supplied: Optional[str]) -> str:
    """The client's id if it is safe to log, else a fresh one."""
    if supplied and SAFE_REQUEST_ID.fullmatch(supplied.strip()):
        return supplied.strip()
    return new_request_id()


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get("X-Request-ID"))

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
