"""
DentalHub Backend: Request ID Middleware
========================================

What:  Assigns a correlation id to every request and echoes it back in the
       ``X-Request-ID`` response header.
How:   Accepts a client-supplied ``X-Request-ID`` or generates a short UUID,
       stores it in a ContextVar (for loggers) and ``request.state`` (for
       exception handlers).
When:  Outermost application middleware, so every later log line and every
       error body can carry the id.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 8 hex chars are enough to correlate lines within a log window
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
