"""
DentalHub Backend: Notification Service
=======================================

What:  Per-user notification inbox: list, create, mark read, unread count.
Who:   ``notifications.*`` RPC procedures, plus ForumService and CaseService
       which raise notifications as side effects of comments, invitations
       and case updates.

Ownership:
    Every read and every mark-read is scoped to ``user_id``. Marking someone
    else's notification looks exactly like marking a missing one (False).
"""

import logging
from typing import List

from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dentalhub.exceptions import DatabaseError
from dentalhub.models import Notification
from dentalhub.schemas.notification import (
    CreateNotificationInput,
    MarkNotificationReadInput,
    NotificationResponse,
    NotificationsQuery,
)

logger = logging.getLogger(__name__)


class NotificationService:

    async def get_user_notifications(
        self, db: AsyncSession, user_id: int, filters: NotificationsQuery
    ) -> List[NotificationResponse]:
        """Newest first; ``unread_only`` hides read entries. Default page size 20."""
        query = select(Notification).where(Notification.user_id == user_id)
        if filters.unread_only:
            query = query.where(Notification.is_read.is_(False))
        query = (
            query.order_by(desc(Notification.created_at), desc(Notification.id))
            .limit(filters.limit)
            .offset(filters.offset)
        )

        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error listing notifications: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve notifications. Please try again.",
                context={"user_id": user_id},
            )
        return [NotificationResponse.model_validate(n) for n in result.scalars().all()]

    async def create_notification(
        self, db: AsyncSession, data: CreateNotificationInput
    ) -> NotificationResponse:
        notification = Notification(
            user_id=data.user_id,
            type=data.type,
            message=data.message,
            extra_metadata=data.metadata,
            is_read=False,
        )
        try:
            db.add(notification)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating notification: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the notification. Please try again.",
                context={"user_id": data.user_id, "type": data.type.value},
            )
        logger.info(
            "Notification %s (%s) queued for user %s",
            notification.id, data.type.value, data.user_id,
        )
        return NotificationResponse.model_validate(notification)

    async def mark_notification_read(
        self, db: AsyncSession, data: MarkNotificationReadInput, user_id: int
    ) -> bool:
        """True when a notification owned by ``user_id`` was found and marked."""
        try:
            result = await db.execute(
                update(Notification)
                .where(
                    Notification.id == data.notification_id,
                    Notification.user_id == user_id,
                )
                .values(is_read=True)
            )
        except SQLAlchemyError as e:
            logger.error("Database error marking notification read: %s", str(e))
            raise DatabaseError(context={"notification_id": data.notification_id})
        return result.rowcount > 0

    async def mark_all_notifications_read(self, db: AsyncSession, user_id: int) -> bool:
        try:
            result = await db.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(False))
                .values(is_read=True)
            )
        except SQLAlchemyError as e:
            logger.error("Database error marking all notifications read: %s", str(e))
            raise DatabaseError(context={"user_id": user_id})
        logger.info("Marked %d notifications read for user %s", result.rowcount, user_id)
        return True

    async def get_unread_notification_count(self, db: AsyncSession, user_id: int) -> int:
        try:
            result = await db.execute(
                select(func.count(Notification.id)).where(
                    Notification.user_id == user_id,
                    Notification.is_read.is_(False),
                )
            )
        except SQLAlchemyError as e:
            logger.error("Database error counting notifications: %s", str(e))
            raise DatabaseError(context={"user_id": user_id})
        return result.scalar() or 0


# ── Singleton Instance ────────────────────────────────────────────────────
notification_service = NotificationService()
