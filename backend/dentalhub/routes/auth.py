"""
DentalHub Backend: Auth & User Procedures
=========================================

Every user that leaves this module passes through ``to_public`` so the
password hash never reaches the wire, whatever the service returned.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dentalhub.database import get_db_session
from dentalhub.schemas.common import ErrorResponse
from dentalhub.schemas.user import (
    CreateUserInput,
    LoginInput,
    UserIdInput,
    UserRecord,
    UserResponse,
    UsersQuery,
)
from dentalhub.services.auth_service import auth_service

router = APIRouter(prefix="/rpc", tags=["Auth & Users"])


def to_public(user: Optional[UserRecord]) -> Optional[UserResponse]:
    if user is None:
        return None
    return UserResponse(**user.model_dump(exclude={"password"}))


@router.post(
    "/auth.register",
    response_model=UserResponse,
    summary="Register a new user",
    responses={409: {"model": ErrorResponse, "description": "Email already registered"}},
)
async def register(
    body: CreateUserInput,
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await auth_service.register_user(db, body)
    return to_public(user)


@router.post(
    "/auth.login",
    response_model=Optional[UserResponse],
    summary="Check credentials",
    description="Returns the user for a matching email/password pair, null otherwise.",
)
async def login(
    body: LoginInput,
    db: AsyncSession = Depends(get_db_session),
) -> Optional[UserResponse]:
    return to_public(await auth_service.login_user(db, body))


@router.post("/auth.me", response_model=Optional[UserResponse], summary="Current user")
async def me(
    body: UserIdInput,
    db: AsyncSession = Depends(get_db_session),
) -> Optional[UserResponse]:
    return to_public(await auth_service.get_current_user(db, body.user_id))


@router.post("/users.getById", response_model=Optional[UserResponse], summary="User profile")
async def get_user(
    body: UserIdInput,
    db: AsyncSession = Depends(get_db_session),
) -> Optional[UserResponse]:
    return to_public(await auth_service.get_user_by_id(db, body.user_id))


@router.post("/users.list", response_model=List[UserResponse], summary="List users")
async def list_users(
    body: UsersQuery,
    db: AsyncSession = Depends(get_db_session),
) -> List[UserResponse]:
    users = await auth_service.get_users(db, body)
    return [to_public(user) for user in users]
