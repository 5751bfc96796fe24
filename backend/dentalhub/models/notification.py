"""
DentalHub Backend: Notification and Activity Log Models
========================================================

What:  ORM models for per-user notifications and the platform activity feed.
Who:   Written by NotificationService / DashboardService directly and as a
       side effect of forum and case mutations.

The ``metadata`` column name is reserved on declarative classes, so both
models map it to the ``extra_metadata`` attribute. Its content is opaque
text whose shape is defined by whoever produced the row.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text, false, func
from sqlalchemy.orm import Mapped, mapped_column

from dentalhub.database import Base
from dentalhub.models.enums import ActivityType, NotificationType, sa_enum
from dentalhub.models.user import utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        sa_enum(NotificationType, "notification_type"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    extra_metadata: Mapped[Optional[str]] = mapped_column("metadata", Text, nullable=True)

    # Inbox queries filter by recipient and read flag, newest first
    __table_args__ = (
        Index("idx_notifications_user_id_is_read", "user_id", "is_read"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, type='{self.type}')>"


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    type: Mapped[ActivityType] = mapped_column(
        sa_enum(ActivityType, "activity_type"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    extra_metadata: Mapped[Optional[str]] = mapped_column("metadata", Text, nullable=True)

    __table_args__ = (
        Index("idx_activity_logs_timestamp", timestamp.desc()),
        Index("idx_activity_logs_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<ActivityLog(id={self.id}, type='{self.type}')>"
