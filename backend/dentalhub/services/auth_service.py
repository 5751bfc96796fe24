"""
DentalHub Backend: Auth Service
===============================

What:  User registration, credential checks and profile lookups.
Who:   Called by the ``auth.*`` and ``users.*`` RPC procedures.

Identity Model:
    There is no session or token layer. Procedures that act on behalf of a
    user receive the numeric user id as part of their input, and
    ``get_current_user`` is simply a lookup of that id.

Return Contract:
    register_user   UserRecord (hash included) | ConflictError
    login_user      UserRecord | None (never raises for bad credentials)
    get_*           UserRecord | None
    get_users       List[UserRecord]
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dentalhub.exceptions import ConflictError, DatabaseError
from dentalhub.models import User
from dentalhub.schemas.user import CreateUserInput, LoginInput, UserRecord, UsersQuery
from dentalhub.services.passwords import hash_password, verify_password

logger = logging.getLogger(__name__)


def _email_conflict(email: str) -> ConflictError:
    return ConflictError(
        message="A user with this email already exists",
        context={"email": email},
    )


class AuthService:
    """Stateless; every method receives the request's session."""

    async def register_user(self, db: AsyncSession, data: CreateUserInput) -> UserRecord:
        """
        Create a new account.

        Steps:
            1. Reject the email if any user already owns it (no row written)
            2. Hash the password
            3. Insert with is_verified=False

        Two concurrent signups for one email can both pass step 1; the loser
        hits the unique index on flush and gets the same ConflictError.

        Raises:
            ConflictError: email already registered (→ 409)
            DatabaseError: insert failed (→ 500)
        """
        try:
            if await self._email_taken(db, data.email):
                raise _email_conflict(data.email)

            user = User(
                name=data.name,
                email=data.email,
                password=hash_password(data.password),
                avatar_url=str(data.avatar_url) if data.avatar_url else None,
                professional_type=data.professional_type,
                is_verified=False,
            )
            db.add(user)
            await db.flush()
            logger.info("Registered user %s (%s)", user.id, user.professional_type.value)
            return UserRecord.model_validate(user)

        except IntegrityError:
            logger.info("Concurrent registration lost the race for %s", data.email)
            raise _email_conflict(data.email)
        except SQLAlchemyError as e:
            logger.error("Database error registering user: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not register the user. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def login_user(self, db: AsyncSession, data: LoginInput) -> Optional[UserRecord]:
        """
        Check an email/password pair.

        Returns the user on success and None for an unknown email or a wrong
        password; both failures look identical to the caller.
        """
        user = await self._get_by_email(db, data.email)
        if user is None or not verify_password(data.password, user.password):
            logger.info("Failed login attempt for %s", data.email)
            return None
        return UserRecord.model_validate(user)

    async def get_current_user(self, db: AsyncSession, user_id: int) -> Optional[UserRecord]:
        return await self.get_user_by_id(db, user_id)

    async def get_user_by_id(self, db: AsyncSession, user_id: int) -> Optional[UserRecord]:
        try:
            user = await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the user. Please try again.",
                context={"user_id": user_id},
            )
        return UserRecord.model_validate(user) if user else None

    async def get_users(
        self, db: AsyncSession, filters: Optional[UsersQuery] = None
    ) -> List[UserRecord]:
        """
        List users, optionally filtered by professional type.

        Pagination: page 1 / 10 per page unless the query says otherwise.
        Order: id ascending (registration order).
        """
        filters = filters or UsersQuery()
        query = select(User)
        if filters.professional_type is not None:
            query = query.where(User.professional_type == filters.professional_type)
        query = query.order_by(User.id).limit(filters.limit).offset(filters.offset)

        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error listing users: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve users. Please try again.",
                context={"error_type": type(e).__name__},
            )
        return [UserRecord.model_validate(user) for user in result.scalars().all()]

    async def _email_taken(self, db: AsyncSession, email: str) -> bool:
        existing = await db.execute(select(User.id).where(User.email == email))
        return existing.scalar_one_or_none() is not None

    async def _get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(User.email == email))
        except SQLAlchemyError as e:
            logger.error("Database error looking up email: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})
        return result.scalar_one_or_none()


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
