"""
DentalHub Backend: Request Logging Middleware
=============================================

What:  One access-log line per RPC call, keyed by procedure name
       (``forum.posts.vote``) rather than by raw URL.
When:  Runs inside RequestIDMiddleware so the id is already set.

Log levels:
    5xx                          → ERROR
    4xx, or slower than 1 second → WARNING
    everything else              → INFO

Request bodies are never logged; registration and login carry passwords.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from dentalhub.middleware.request_id import request_id_var

logger = logging.getLogger("dentalhub.access")

RPC_PREFIX = "/rpc/"
SLOW_CALL_MS = 1000.0

# Load balancer probes, polled every few seconds
QUIET_PATHS = {"/health", "/rpc/healthcheck"}


def procedure_name(path: str) -> str:
    """``/rpc/cases.files.upload`` → ``cases.files.upload``; other paths unchanged."""
    if path.startswith(RPC_PREFIX):
        return path[len(RPC_PREFIX):]
    return path


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        procedure = procedure_name(path)
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400 or elapsed_ms > SLOW_CALL_MS:
            level = logging.WARNING
        else:
            level = logging.INFO

        rid = request_id_var.get("")
        logger.log(
            level,
            "%s → %d in %.1fms [%s]",
            procedure,
            status,
            elapsed_ms,
            rid,
            extra={
                "request_id": rid,
                "procedure": procedure,
                "status": status,
                "duration_ms": round(elapsed_ms, 2),
                "slow": elapsed_ms > SLOW_CALL_MS,
            },
        )
        return response
