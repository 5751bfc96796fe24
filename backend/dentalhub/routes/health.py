"""
DentalHub Backend: Health Check Routes
======================================

Two probes with different audiences:

    /rpc/healthcheck   liveness for RPC clients; never touches the database
    /health            readiness for load balancers; runs ``SELECT 1``

Status levels for /health:
    healthy:   database reachable (HTTP 200)
    unhealthy: database unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from dentalhub import __version__
from dentalhub.database import engine
from dentalhub.schemas.common import HealthcheckResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Module load time, for uptime reporting
_start_time = time.time()


@router.api_route(
    "/rpc/healthcheck",
    methods=["GET", "POST"],
    response_model=HealthcheckResponse,
    summary="RPC liveness probe",
)
async def healthcheck() -> HealthcheckResponse:
    return HealthcheckResponse(status="ok", timestamp=datetime.now(timezone.utc))


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"model": HealthResponse}},
)
async def health_check():
    """Probe database connectivity with a lightweight ``SELECT 1``."""
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    payload = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall != "healthy":
        return JSONResponse(status_code=503, content=payload.model_dump())
    return payload
