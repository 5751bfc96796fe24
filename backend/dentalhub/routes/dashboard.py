"""
DentalHub Backend: Dashboard Procedures
=======================================
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dentalhub.database import get_db_session
from dentalhub.schemas.notification import (
    ActivityFeedQuery,
    ActivityLogResponse,
    CreateActivityLogInput,
    DashboardStatsResponse,
    UserActivityRequest,
)
from dentalhub.services.dashboard_service import dashboard_service

router = APIRouter(prefix="/rpc", tags=["Dashboard"])


@router.post(
    "/dashboard.stats",
    response_model=DashboardStatsResponse,
    summary="Platform statistics",
)
async def stats(db: AsyncSession = Depends(get_db_session)):
    return await dashboard_service.get_dashboard_stats(db)


@router.post("/dashboard.activity", response_model=List[ActivityLogResponse])
async def activity_feed(
    body: ActivityFeedQuery,
    db: AsyncSession = Depends(get_db_session),
):
    return await dashboard_service.get_activity_feed(db, body)


@router.post("/dashboard.createActivity", response_model=ActivityLogResponse)
async def create_activity(
    body: CreateActivityLogInput,
    db: AsyncSession = Depends(get_db_session),
):
    return await dashboard_service.create_activity_log(db, body)


@router.post("/dashboard.userActivity", response_model=List[ActivityLogResponse])
async def user_activity(
    body: UserActivityRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await dashboard_service.get_user_activity(db, body.user_id, body)
