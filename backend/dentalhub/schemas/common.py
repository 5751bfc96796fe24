"""
DentalHub Backend: Shared Request/Response Schemas
===================================================

What:  Pagination inputs, error envelope and health payloads shared by every
       RPC procedure.
How:   Pydantic v2 models. FastAPI validates request bodies against them
       (422 on failure) and serializes responses through them.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Pagination
# ══════════════════════════════════════════════════════════════════════════


class PageParams(BaseModel):
    """
    Offset pagination used by users, posts and cases.

    page:  1-based page number
    limit: items per page (1-100, default 10)
    """
    page: int = Field(default=1, ge=1, description="1-based page number")
    limit: int = Field(default=10, ge=1, le=100, description="Items per page (max 100)")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class FeedPageParams(PageParams):
    """Pagination for notification and activity feeds (default 20 per page)."""
    limit: int = Field(default=20, ge=1, le=100, description="Items per page (max 100)")


# ══════════════════════════════════════════════════════════════════════════
# Error Response
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "forbidden",
            "message": "Only the author can update this post",
            "request_id": "1f0c2a7b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


# ══════════════════════════════════════════════════════════════════════════
# Health
# ══════════════════════════════════════════════════════════════════════════


class HealthcheckResponse(BaseModel):
    """Payload of the ``healthcheck`` RPC query."""
    status: str = Field(default="ok")
    timestamp: datetime


class HealthResponse(BaseModel):
    """Load balancer probe: process status plus database reachability."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
