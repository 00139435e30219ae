"""
NoteCraft Backend: Request Logging Middleware
===============================================

What:  One access log line per request on the "notecraft.access" logger.
How:   Times the downstream call, then logs method, path, status, duration,
       request ID, owner and client address.
Who:   Applied to every request via Starlette middleware.
When:  Runs inside RequestIDMiddleware, so request_id_var is already set.

Log line:
    POST /api/ingest 200 3456.8ms [a1b2c3d4] owner=user-42 from 192.168.1.100

The same fields are attached as `extra` so a JSON formatter can emit them
as separate keys:
    request_id, method, path, status, duration_ms, client_ip

Levels:
    5xx      → ERROR
    4xx      → WARNING
    2xx/3xx  → INFO

What we log vs what we DON'T log:
    ✅ Log: method, path, status, duration, client IP, request ID, owner id
    ❌ Don't log: request bodies, uploaded file contents, extracted text
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from notecraft.auth import USER_ID_HEADER
from notecraft.middleware.request_id import request_id_var

logger = logging.getLogger("notecraft.access")

# Load balancer probes hit these every few seconds
SKIPPED_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs one line per HTTP request once the response is ready.

    Duration:
        Measured with time.perf_counter() around call_next, so it covers
        validation, storage writes, Gemini extraction and database work.

        Typical durations:
        - GET /api/notes: 10-50ms
        - POST /api/render: under 5ms
        - POST /api/ingest: seconds when binary files go through Gemini

    Owner:
        Taken from the X-User-ID header; "-" for anonymous callers. The
        header is the only identity NoteCraft ever sees.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        # request.client is None under some test transports
        client_ip = request.client.host if request.client else "unknown"
        owner = request.headers.get(USER_ID_HEADER) or "-"
        rid = request_id_var.get("")
        status = response.status_code

        logger.log(
            _level_for(status),
            "%s %s %d %.1fms [%s] owner=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            owner,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
