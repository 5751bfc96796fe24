"""
DentalHub Backend: Notification Procedures
==========================================
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dentalhub.database import get_db_session
from dentalhub.schemas.notification import (
    CreateNotificationInput,
    MarkNotificationReadRequest,
    NotificationResponse,
    NotificationsRequest,
)
from dentalhub.schemas.user import UserIdInput
from dentalhub.services.notification_service import notification_service

router = APIRouter(prefix="/rpc", tags=["Notifications"])


@router.post("/notifications.list", response_model=List[NotificationResponse])
async def list_notifications(
    body: NotificationsRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await notification_service.get_user_notifications(db, body.user_id, body)


@router.post("/notifications.create", response_model=NotificationResponse)
async def create_notification(
    body: CreateNotificationInput,
    db: AsyncSession = Depends(get_db_session),
):
    return await notification_service.create_notification(db, body)


@router.post(
    "/notifications.markRead",
    response_model=bool,
    description="False when the notification is missing or belongs to someone else.",
)
async def mark_read(
    body: MarkNotificationReadRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await notification_service.mark_notification_read(db, body, body.user_id)


@router.post("/notifications.markAllRead", response_model=bool)
async def mark_all_read(
    body: UserIdInput,
    db: AsyncSession = Depends(get_db_session),
):
    return await notification_service.mark_all_notifications_read(db, body.user_id)


@router.post("/notifications.unreadCount", response_model=int)
async def unread_count(
    body: UserIdInput,
    db: AsyncSession = Depends(get_db_session),
):
    return await notification_service.get_unread_notification_count(db, body.user_id)
