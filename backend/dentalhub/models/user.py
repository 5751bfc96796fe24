"""
DentalHub Backend: User SQLAlchemy Model
=========================================

What:  ORM model representing the `users` table.
Who:   Used by AuthService for registration/login and by every other service
       as the owner of posts, votes, cases, notifications and activity.

Table Design:
    - Integer surrogate key (serial on PostgreSQL)
    - email: unique, login identifier
    - password: passlib pbkdf2_sha256 hash, never the plain text
    - updated_at: also drives the dashboard's "active users" metric
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, Text, false, func
from sqlalchemy.orm import Mapped, mapped_column

from dentalhub.database import Base
from dentalhub.models.enums import ProfessionalType, sa_enum


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp used as the Python-side column default."""
    return datetime.now(timezone.utc)


class User(Base):
    """A registered platform member (clinician, technician, student, ...)."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    # Hash only. The RPC layer strips this field from every user response.
    password: Mapped[str] = mapped_column(Text, nullable=False)

    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    professional_type: Mapped[ProfessionalType] = mapped_column(
        sa_enum(ProfessionalType, "professional_type"),
        nullable=False,
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
