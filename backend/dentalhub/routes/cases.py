"""
DentalHub Backend: Case Procedures
==================================

cases.*, cases.collaborators.*, cases.files.* and file annotations.
Permission checks live in CaseService; a refused call surfaces here as a
403 through the global ForbiddenError handler.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dentalhub.database import get_db_session
from dentalhub.schemas.case import (
    AddCollaboratorRequest,
    CaseAccessRequest,
    CaseCollaboratorResponse,
    CaseDetailResponse,
    CaseFileResponse,
    CaseLookup,
    CaseResponse,
    CasesQuery,
    CreateCaseRequest,
    FileLookup,
    RemoveCollaboratorRequest,
    UpdateAnnotationsRequest,
    UpdateCaseRequest,
    UploadFileRequest,
)
from dentalhub.schemas.common import ErrorResponse
from dentalhub.services.case_service import case_service

router = APIRouter(prefix="/rpc", tags=["Cases"])

_FORBIDDEN = {403: {"model": ErrorResponse, "description": "Caller lacks rights on the case"}}


# ── Cases ─────────────────────────────────────────────────────────────────

@router.post(
    "/cases.list",
    response_model=List[CaseResponse],
    summary="List visible cases",
    description=(
        "Anonymous callers see public cases only. With user_id the caller also "
        "sees the cases they created or collaborate on."
    ),
)
async def list_cases(
    body: CasesQuery,
    db: AsyncSession = Depends(get_db_session),
):
    return await case_service.get_cases(db, body, user_id=body.user_id)


@router.post("/cases.getById", response_model=Optional[CaseDetailResponse], responses=_FORBIDDEN)
async def get_case(
    body: CaseLookup,
    db: AsyncSession = Depends(get_db_session),
):
    return await case_service.get_case_by_id(db, body.case_id, user_id=body.user_id)


@router.post("/cases.create", response_model=CaseResponse)
async def create_case(
    body: CreateCaseRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await case_service.create_case(db, body, body.creator_id)


@router.post("/cases.update", response_model=Optional[CaseResponse], responses=_FORBIDDEN)
async def update_case(
    body: UpdateCaseRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await case_service.update_case(db, body, body.user_id)


@router.post("/cases.delete", response_model=bool, responses=_FORBIDDEN)
async def delete_case(
    body: CaseAccessRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await case_service.delete_case(db, body.case_id, body.user_id)


# ── Collaborators ─────────────────────────────────────────────────────────

@router.post(
    "/cases.collaborators.list",
    response_model=List[CaseCollaboratorResponse],
    responses=_FORBIDDEN,
)
async def list_collaborators(
    body: CaseAccessRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await case_service.get_case_collaborators(db, body.case_id, body.user_id)


@router.post(
    "/cases.collaborators.add",
    response_model=bool,
    summary="Add a collaborator or change their role",
    responses={
        **_FORBIDDEN,
        400: {"model": ErrorResponse, "description": "Target is the case creator"},
        404: {"model": ErrorResponse, "description": "Case or user missing"},
    },
)
async def add_collaborator(
    body: AddCollaboratorRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await case_service.add_case_collaborator(db, body, body.requester_id)


@router.post("/cases.collaborators.remove", response_model=bool, responses=_FORBIDDEN)
async def remove_collaborator(
    body: RemoveCollaboratorRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await case_service.remove_case_collaborator(
        db, body.case_id, body.user_id, body.requester_id
    )


# ── Files ─────────────────────────────────────────────────────────────────

@router.post("/cases.files.list", response_model=List[CaseFileResponse], responses=_FORBIDDEN)
async def list_files(
    body: CaseAccessRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await case_service.get_case_files(db, body.case_id, body.user_id)


@router.post(
    "/cases.files.upload",
    response_model=CaseFileResponse,
    summary="Register a case file",
    description=(
        "Stores file metadata and returns the generated storage URL. Supported "
        "types: .dcm .stl .ply .obj .png .jpg .jpeg .pdf"
    ),
    responses={
        **_FORBIDDEN,
        400: {"model": ErrorResponse, "description": "Unsupported file type or size"},
        404: {"model": ErrorResponse, "description": "Case missing"},
    },
)
async def upload_file(
    body: UploadFileRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await case_service.upload_case_file(db, body, body.user_id)


@router.post(
    "/cases.files.annotations.get",
    response_model=Optional[str],
    responses=_FORBIDDEN,
)
async def get_annotations(
    body: FileLookup,
    db: AsyncSession = Depends(get_db_session),
):
    return await case_service.get_file_annotations(db, body.file_id, body.user_id)


@router.post("/cases.files.annotations.update", response_model=bool, responses=_FORBIDDEN)
async def update_annotations(
    body: UpdateAnnotationsRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await case_service.update_file_annotations(db, body, body.user_id)
