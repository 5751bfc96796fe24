"""
DentalHub Backend: Case Schemas
===============================

What:  Inputs and outputs for clinical cases, collaborators, files and file
       annotations.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from dentalhub.models.enums import (
    CaseStatus,
    CaseType,
    CollaboratorRole,
    Priority,
    ProfessionalType,
)
from dentalhub.schemas.common import PageParams


class CaseSortBy(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    PRIORITY = "priority"
    STATUS = "status"


# ══════════════════════════════════════════════════════════════════════════
# Cases
# ══════════════════════════════════════════════════════════════════════════


class CasesQuery(PageParams):
    """
    Filters for ``cases.list``. All filters are ANDed onto the visibility
    rule (public OR created by ``user_id`` OR collaborated on by ``user_id``).
    Without ``user_id`` only public cases are returned.
    """
    case_type: Optional[CaseType] = None
    priority: Optional[Priority] = None
    status: Optional[CaseStatus] = None
    is_public: Optional[bool] = None
    creator_id: Optional[int] = None
    tag: Optional[str] = None
    sort_by: CaseSortBy = CaseSortBy.NEWEST
    user_id: Optional[int] = None


class CreateCaseInput(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    case_type: CaseType
    priority: Priority
    patient_age: Optional[int] = Field(default=None, ge=0, le=150)
    is_public: Optional[bool] = None
    tags: Optional[List[str]] = None


class UpdateCaseInput(BaseModel):
    """Partial update; fields absent from the request keep their value."""
    id: int
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    case_type: Optional[CaseType] = None
    priority: Optional[Priority] = None
    patient_age: Optional[int] = Field(default=None, ge=0, le=150)
    is_public: Optional[bool] = None
    status: Optional[CaseStatus] = None
    tags: Optional[List[str]] = None


class CreateCaseRequest(CreateCaseInput):
    creator_id: int


class UpdateCaseRequest(UpdateCaseInput):
    user_id: int


class CaseLookup(BaseModel):
    case_id: int
    user_id: Optional[int] = None


class CaseAccessRequest(BaseModel):
    """Identity-scoped case operation (delete, list collaborators/files)."""
    case_id: int
    user_id: int


class CaseResponse(BaseModel):
    id: int
    title: str
    description: str
    case_type: CaseType
    priority: Priority
    patient_age: Optional[int] = None
    is_public: bool
    creator_id: int
    created_at: datetime
    updated_at: datetime
    status: CaseStatus

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Collaborators
# ══════════════════════════════════════════════════════════════════════════


class AddCollaboratorInput(BaseModel):
    case_id: int
    user_id: int
    role: CollaboratorRole


class AddCollaboratorRequest(AddCollaboratorInput):
    requester_id: int


class RemoveCollaboratorRequest(BaseModel):
    case_id: int
    user_id: int
    requester_id: int


class CaseCollaboratorResponse(BaseModel):
    """A collaborator row joined with the public part of the user profile."""
    case_id: int
    user_id: int
    role: CollaboratorRole
    name: str
    email: str
    avatar_url: Optional[str] = None
    professional_type: ProfessionalType


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════


class UploadFileInput(BaseModel):
    case_id: int
    file_name: str = Field(min_length=1)
    file_type: str = Field(min_length=1)
    file_size: int


class UploadFileRequest(UploadFileInput):
    user_id: int


class CaseFileResponse(BaseModel):
    id: int
    case_id: int
    file_name: str
    file_url: str
    file_type: str
    file_size: int
    upload_date: datetime
    uploaded_by: int
    annotations: Optional[str] = None

    model_config = {"from_attributes": True}


class FileLookup(BaseModel):
    file_id: int
    user_id: int


class UpdateAnnotationsInput(BaseModel):
    file_id: int
    annotations: str


class UpdateAnnotationsRequest(UpdateAnnotationsInput):
    user_id: int


class CaseDetailResponse(CaseResponse):
    """Single-case view: the case plus its tags, collaborators and files."""
    tags: List[str] = Field(default_factory=list)
    collaborators: List[CaseCollaboratorResponse] = Field(default_factory=list)
    files: List[CaseFileResponse] = Field(default_factory=list)
