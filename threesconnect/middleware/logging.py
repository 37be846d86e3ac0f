"""
3sConnect Backend — Access Logging Middleware
=============================================

What:  One log line per API request on the `threesconnect.access` logger.
How:   Measures wall time around the downstream app and picks the level
       from the status class (5xx ERROR, 4xx WARNING, otherwise INFO).

Line format:
    POST /api/posts/3f0c.../like 200 12.4ms [a1b2c3d4] from 10.0.0.7

Logged fields are also attached as `extra` for structured handlers.
Bodies, tokens and uploaded media are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from threesconnect.middleware.request_id import request_id_var

logger = logging.getLogger("threesconnect.access")

# Probes hit these every few seconds
QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        logger.log(
            level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
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
