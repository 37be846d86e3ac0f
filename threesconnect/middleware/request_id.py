"""
3sConnect Backend — Request ID Middleware
=========================================

What:  Tags each request with a short correlation id and echoes it back in
       the X-Request-ID response header.
How:   A client-supplied X-Request-ID (the mobile client may send one with
       every mutation) is reused; otherwise an 8-character id is generated.
       The id is stored in a ContextVar so loggers and exception handlers
       can read it without access to the request object.

Error responses carry the same id in their `request_id` field, so a user
report can be matched to the server log line.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests share the thread, not the value
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns the correlation id before any other application middleware runs."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
