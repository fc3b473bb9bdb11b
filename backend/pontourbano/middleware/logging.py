"""
Ponto Urbano Backend — Request Logging Middleware
===================================================

What:  One access-log line per request: method, path, status, duration, request id.
Why:   Uvicorn's access log has no request id and no duration.

What we log vs what we DON'T log (privacy):
    ✅ Log: method, path, status, duration, client IP, request ID
    ❌ Don't log: request bodies (passwords, emails), cookies, photo bytes
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


logger = logging.getLogger("pontourbano.access")

# Paths polled by load balancers; logging them only buries real traffic
QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs structured information about each HTTP request and response.

    Level follows the status class:
        5xx → ERROR, 4xx → WARNING, everything else → INFO
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        # RequestIDMiddleware runs inside this one, in a child task: its
        # ContextVar is not visible here, request.state is
        rid = getattr(request.state, "request_id", "")
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
