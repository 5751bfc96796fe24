"""
DentalHub Backend: FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   ``create_app()`` wires middleware, exception handlers and the RPC
       routers; the lifespan configures logging and disposes the engine.
Who:   uvicorn (``uvicorn dentalhub.main:app``) and the test client.

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                      FastAPI App                        │
    │                                                         │
    │  Middleware Chain:                                      │
    │  ┌──────────┐ ┌──────────┐ ┌────────┐ ┌──────────────┐  │
    │  │  Req ID  │→│ Logging  │→│  GZip  │→│     CORS     │  │
    │  └──────────┘ └──────────┘ └────────┘ └──────────────┘  │
    │                                                         │
    │  Routes:                                                │
    │  POST /rpc/auth.*  /rpc/users.*  /rpc/forum.*           │
    │       /rpc/cases.*  /rpc/notifications.*                │
    │       /rpc/dashboard.*                                  │
    │  GET|POST /rpc/healthcheck      GET /health             │
    │                                                         │
    │  Exception Handlers:                                    │
    │  ┌───────────────────────────────────────────────────┐  │
    │  │ Validation→400 │ Forbidden→403 │ NotFound→404     │  │
    │  │ Conflict→409   │ Database→500  │ Exception→500    │  │
    │  └───────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from dentalhub import __version__
from dentalhub.config import settings
from dentalhub.database import dispose_engine
from dentalhub.exceptions import (
    ConflictError,
    DatabaseError,
    DentalHubError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from dentalhub.middleware.logging import RequestLoggingMiddleware
from dentalhub.middleware.request_id import RequestIDMiddleware, request_id_var
from dentalhub.routes import auth, cases, dashboard, forum, health, notifications

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s on stdout
    (containers collect stdout). Chatty third-party loggers are capped at
    WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("DentalHub Backend %s starting up...", __version__)
    logger.info("Activity window: %d days", settings.activity_window_days)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("DentalHub Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(request: Request, error: str, message: str, details=None) -> dict:
    rid = getattr(request.state, "request_id", "") or request_id_var.get("")
    body = {"error": error, "message": message, "request_id": rid}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the DentalHubError hierarchy to HTTP responses.

    Handler hierarchy:
        ValidationError  → 400 Bad Request
        ForbiddenError   → 403 Forbidden
        NotFoundError    → 404 Not Found
        ConflictError    → 409 Conflict
        DatabaseError    → 500 (generic message, context logged)
        DentalHubError   → 500 (any other application error)
        Exception        → 500 (traceback logged, generic message)

    Schema validation failures keep FastAPI's default 422 response.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body(request, "validation_error", exc.message, exc.context),
        )

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        logger.warning("Forbidden: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=403,
            content=_error_body(request, "forbidden", exc.message),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body(request, "not_found", exc.message),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content=_error_body(request, "conflict", exc.message),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        # Context goes to the log only
        logger.error("Database error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                request,
                "server_error",
                "An internal error occurred. Please try again later.",
            ),
        )

    @app.exception_handler(DentalHubError)
    async def handle_application_error(request: Request, exc: DentalHubError):
        logger.error("Application error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body(request, "server_error", exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                request,
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="DentalHub API",
        description=(
            "Dental case collaboration and professional forum. Every procedure is "
            "a POST to /rpc/<name> with a JSON body."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executed in reverse order of addition: RequestID runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(forum.router)
    app.include_router(cases.router)
    app.include_router(notifications.router)
    app.include_router(dashboard.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
