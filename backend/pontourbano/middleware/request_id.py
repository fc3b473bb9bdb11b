"""
Ponto Urbano Backend — Request ID Middleware
==============================================

What:  Assigns a short correlation id to each request and echoes it back.
Why:   Error bodies carry `request_id`; a user reporting "it failed" can hand it
       over and every log line of that request can be found.
How:   Uses the client's X-Request-ID if present, else a fresh 8-char UUID
       prefix. Stored in a ContextVar (coroutine-local) and request.state.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ContextVar, not threading.local: concurrent requests share one thread
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware that assigns a unique ID to each request for tracing."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
