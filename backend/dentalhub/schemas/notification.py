"""
DentalHub Backend: Notification, Activity and Dashboard Schemas
================================================================

``metadata`` is opaque structured text chosen by the producer. On the ORM
side it lives in the ``extra_metadata`` attribute; the response models read
either name and always serialize it as ``metadata``.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from dentalhub.models.enums import ActivityType, NotificationType
from dentalhub.schemas.common import FeedPageParams


# ══════════════════════════════════════════════════════════════════════════
# Notifications
# ══════════════════════════════════════════════════════════════════════════


class NotificationsQuery(FeedPageParams):
    unread_only: bool = False


class NotificationsRequest(NotificationsQuery):
    user_id: int


class CreateNotificationInput(BaseModel):
    user_id: int
    type: NotificationType
    message: str
    metadata: Optional[str] = None


class MarkNotificationReadInput(BaseModel):
    notification_id: int


class MarkNotificationReadRequest(MarkNotificationReadInput):
    user_id: int


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    type: NotificationType
    message: str
    is_read: bool
    created_at: datetime
    metadata: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("extra_metadata", "metadata"),
    )

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Activity Feed
# ══════════════════════════════════════════════════════════════════════════


class ActivityFeedQuery(FeedPageParams):
    user_id: Optional[int] = None


class UserActivityRequest(FeedPageParams):
    user_id: int


class CreateActivityLogInput(BaseModel):
    user_id: int
    type: ActivityType
    title: str
    description: str
    metadata: Optional[str] = None


class ActivityLogResponse(BaseModel):
    id: int
    user_id: int
    type: ActivityType
    title: str
    description: str
    timestamp: datetime
    metadata: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("extra_metadata", "metadata"),
    )

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Dashboard
# ══════════════════════════════════════════════════════════════════════════


class DashboardStatsResponse(BaseModel):
    """
    Platform-wide counters.

    active_cases / active_users count rows whose ``updated_at`` falls inside
    the configured activity window (30 days by default).
    total_engagement = number of votes + number of comments.
    """
    total_cases: int
    active_cases: int
    total_posts: int
    active_users: int
    total_engagement: int
