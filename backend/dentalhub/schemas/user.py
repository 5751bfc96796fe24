"""
DentalHub Backend: User Schemas
===============================

Two output shapes exist on purpose:

    UserRecord    the stored row including the password hash, returned by
                  AuthService to trusted callers
    UserResponse  the public profile; every RPC procedure that returns a
                  user serializes through this model, which drops the hash
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, HttpUrl

from dentalhub.models.enums import ProfessionalType
from dentalhub.schemas.common import PageParams


# ── Inputs ────────────────────────────────────────────────────────────────

class CreateUserInput(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)
    avatar_url: Optional[HttpUrl] = None
    professional_type: ProfessionalType


class LoginInput(BaseModel):
    email: EmailStr
    password: str


class UserIdInput(BaseModel):
    user_id: int


class UsersQuery(PageParams):
    """Filters for ``users.list``; pagination defaults to page 1, 10 per page."""
    professional_type: Optional[ProfessionalType] = None


# ── Outputs ───────────────────────────────────────────────────────────────

class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    avatar_url: Optional[str] = None
    professional_type: ProfessionalType
    is_verified: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserRecord(UserResponse):
    """Stored user row; ``password`` holds the hash."""
    password: str
