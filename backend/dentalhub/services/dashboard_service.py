"""
DentalHub Backend: Dashboard Service
====================================

What:  Platform-wide statistics and the activity feed.
Who:   ``dashboard.*`` RPC procedures. ForumService and CaseService call
       ``create_activity_log`` so that posts, comments, cases, uploads and
       collaborations show up in the feed.

Activity Window:
    "Active" cases and users are rows whose ``updated_at`` lies within the
    last ``settings.activity_window_days`` days (30 by default). For users
    that column only moves on profile changes, so the figure approximates
    recent sign-ups rather than recent logins.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dentalhub.config import settings
from dentalhub.exceptions import DatabaseError
from dentalhub.models import ActivityLog, Case, ForumComment, ForumPost, User, UserPostVote
from dentalhub.models.enums import CaseStatus
from dentalhub.schemas.notification import (
    ActivityFeedQuery,
    ActivityLogResponse,
    CreateActivityLogInput,
    DashboardStatsResponse,
)
from dentalhub.schemas.common import FeedPageParams

logger = logging.getLogger(__name__)


class DashboardService:

    def __init__(self, activity_window_days: Optional[int] = None):
        self.activity_window_days = activity_window_days or settings.activity_window_days

    async def get_dashboard_stats(self, db: AsyncSession) -> DashboardStatsResponse:
        """
        Five scalar counts, each its own ``SELECT count(...)``:

            total_cases       all cases
            active_cases      status=active AND updated inside the window
            total_posts       all forum posts
            active_users      users updated inside the window
            total_engagement  votes + comments
        """
        since = datetime.now(timezone.utc) - timedelta(days=self.activity_window_days)

        try:
            total_cases = await db.scalar(select(func.count(Case.id)))
            active_cases = await db.scalar(
                select(func.count(Case.id)).where(
                    Case.status == CaseStatus.ACTIVE,
                    Case.updated_at >= since,
                )
            )
            total_posts = await db.scalar(select(func.count(ForumPost.id)))
            active_users = await db.scalar(
                select(func.count(User.id)).where(User.updated_at >= since)
            )
            total_votes = await db.scalar(select(func.count()).select_from(UserPostVote))
            total_comments = await db.scalar(select(func.count(ForumComment.id)))
        except SQLAlchemyError as e:
            logger.error("Database error computing dashboard stats: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not compute dashboard statistics. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return DashboardStatsResponse(
            total_cases=total_cases or 0,
            active_cases=active_cases or 0,
            total_posts=total_posts or 0,
            active_users=active_users or 0,
            total_engagement=(total_votes or 0) + (total_comments or 0),
        )

    async def get_activity_feed(
        self, db: AsyncSession, filters: ActivityFeedQuery
    ) -> List[ActivityLogResponse]:
        """Newest first, optionally narrowed to one user. Default page size 20."""
        return await self._list_activity(db, filters, filters.user_id)

    async def get_user_activity(
        self, db: AsyncSession, user_id: int, filters: FeedPageParams
    ) -> List[ActivityLogResponse]:
        return await self._list_activity(db, filters, user_id)

    async def create_activity_log(
        self, db: AsyncSession, data: CreateActivityLogInput
    ) -> ActivityLogResponse:
        entry = ActivityLog(
            user_id=data.user_id,
            type=data.type,
            title=data.title,
            description=data.description,
            extra_metadata=data.metadata,
        )
        try:
            db.add(entry)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error writing activity log: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not record the activity. Please try again.",
                context={"user_id": data.user_id, "type": data.type.value},
            )
        logger.debug("Activity %s (%s) by user %s", entry.id, data.type.value, data.user_id)
        return ActivityLogResponse.model_validate(entry)

    async def _list_activity(
        self, db: AsyncSession, page: FeedPageParams, user_id: Optional[int]
    ) -> List[ActivityLogResponse]:
        query = select(ActivityLog)
        if user_id is not None:
            query = query.where(ActivityLog.user_id == user_id)
        query = (
            query.order_by(desc(ActivityLog.timestamp), desc(ActivityLog.id))
            .limit(page.limit)
            .offset(page.offset)
        )

        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error listing activity: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve activity. Please try again.",
                context={"user_id": user_id},
            )
        return [ActivityLogResponse.model_validate(a) for a in result.scalars().all()]


# ── Singleton Instance ────────────────────────────────────────────────────
dashboard_service = DashboardService()
