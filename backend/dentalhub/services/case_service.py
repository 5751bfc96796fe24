"""
DentalHub Backend: Case Service
===============================

What:  Clinical cases with their tags, collaborators, files and file
       annotations.
Who:   ``cases.*`` RPC procedures.
How:   One AsyncSession per request; permission checks are evaluated
       against the stored case and the caller's collaborator row before any
       write happens.

Permission Model:
    ┌──────────────────────┬─────────────────────────────────────────────┐
    │ action               │ allowed for                                 │
    ├──────────────────────┼─────────────────────────────────────────────┤
    │ view                 │ public case, creator, any collaborator      │
    │ edit / upload /      │ creator, collaborator with role editor or   │
    │ manage collaborators │ owner                                       │
    │ delete               │ creator                                     │
    │ remove collaborator  │ creator, or the collaborator themselves     │
    └──────────────────────┴─────────────────────────────────────────────┘

Visibility Predicate (cases.list):
    anonymous:      is_public
    authenticated:  is_public OR creator_id = me OR id IN (my collaborations)
    Expressed as one WHERE clause, so a case matching several branches is
    still returned once.
"""

import json
import logging
from typing import List, Optional

from sqlalchemy import asc, case as sql_case, delete, desc, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dentalhub.exceptions import DatabaseError, ForbiddenError, NotFoundError, ValidationError
from dentalhub.models import Case, CaseCollaborator, CaseFile, CaseTag, User
from dentalhub.models.enums import (
    ActivityType,
    CaseStatus,
    CollaboratorRole,
    NotificationType,
    Priority,
)
from dentalhub.models.user import utcnow
from dentalhub.schemas.case import (
    AddCollaboratorInput,
    CaseCollaboratorResponse,
    CaseDetailResponse,
    CaseFileResponse,
    CaseResponse,
    CaseSortBy,
    CasesQuery,
    CreateCaseInput,
    UpdateAnnotationsInput,
    UpdateCaseInput,
    UploadFileInput,
)
from dentalhub.schemas.notification import CreateActivityLogInput, CreateNotificationInput
from dentalhub.services.dashboard_service import dashboard_service
from dentalhub.services.file_service import case_file_service
from dentalhub.services.forum_service import normalize_tags
from dentalhub.services.notification_service import notification_service

logger = logging.getLogger(__name__)

EDIT_ROLES = {CollaboratorRole.EDITOR, CollaboratorRole.OWNER}

# urgent → 1 ... low → 4
_PRIORITY_RANK = sql_case(
    *[
        (Case.priority == p, rank)
        for rank, p in enumerate(
            [Priority.URGENT, Priority.HIGH, Priority.MEDIUM, Priority.LOW], start=1
        )
    ],
    else_=5,
)
# Declaration order of CaseStatus
_STATUS_RANK = sql_case(
    *[(Case.status == s, rank) for rank, s in enumerate(CaseStatus, start=1)],
    else_=len(CaseStatus) + 1,
)

_CASE_ORDERING = {
    CaseSortBy.NEWEST: (desc(Case.created_at), desc(Case.id)),
    CaseSortBy.OLDEST: (asc(Case.created_at), asc(Case.id)),
    CaseSortBy.PRIORITY: (asc(_PRIORITY_RANK), desc(Case.created_at), desc(Case.id)),
    CaseSortBy.STATUS: (asc(_STATUS_RANK), desc(Case.created_at), desc(Case.id)),
}

# Columns a case update may touch, besides tags
_UPDATABLE_FIELDS = (
    "title", "description", "case_type", "priority", "patient_age", "is_public", "status",
)


class CaseService:
    """
    Business logic for case collaboration.

    Return Contract:
        missing target case / file   → None, False or [] (per operation)
        missing referenced entity    → NotFoundError
        insufficient rights          → ForbiddenError
        SQLAlchemy failure           → DatabaseError
    """

    # ── Permission helpers ────────────────────────────────────────────────

    async def _collaborator_role(
        self, db: AsyncSession, case_id: int, user_id: Optional[int]
    ) -> Optional[CollaboratorRole]:
        if user_id is None:
            return None
        result = await db.execute(
            select(CaseCollaborator.role).where(
                CaseCollaborator.case_id == case_id,
                CaseCollaborator.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def _find_collaborator(
        self, db: AsyncSession, case_id: int, user_id: int
    ) -> Optional[CaseCollaborator]:
        result = await db.execute(
            select(CaseCollaborator).where(
                CaseCollaborator.case_id == case_id,
                CaseCollaborator.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def can_view(self, db: AsyncSession, case: Case, user_id: Optional[int]) -> bool:
        if case.is_public:
            return True
        if user_id is None:
            return False
        if case.creator_id == user_id:
            return True
        return await self._collaborator_role(db, case.id, user_id) is not None

    async def can_edit(self, db: AsyncSession, case: Case, user_id: Optional[int]) -> bool:
        if user_id is None:
            return False
        if case.creator_id == user_id:
            return True
        return await self._collaborator_role(db, case.id, user_id) in EDIT_ROLES

    # ── Cases ─────────────────────────────────────────────────────────────

    async def get_cases(
        self,
        db: AsyncSession,
        filters: CasesQuery,
        user_id: Optional[int] = None,
    ) -> List[CaseResponse]:
        """
        Visible cases matching every given filter.

        Query plan (authenticated, no tag):
            SELECT * FROM cases
            WHERE (is_public OR creator_id = :me
                   OR id IN (SELECT case_id FROM case_collaborators WHERE user_id = :me))
              AND <filters>
            ORDER BY <sort> LIMIT :limit OFFSET :offset
        """
        try:
            query = select(Case)

            if user_id is None:
                query = query.where(Case.is_public.is_(True))
            else:
                collaborated = select(CaseCollaborator.case_id).where(
                    CaseCollaborator.user_id == user_id
                )
                query = query.where(
                    or_(
                        Case.is_public.is_(True),
                        Case.creator_id == user_id,
                        Case.id.in_(collaborated),
                    )
                )

            if filters.tag is not None:
                tagged = await db.execute(
                    select(CaseTag.case_id).where(CaseTag.tag == filters.tag.strip())
                )
                case_ids = list(tagged.scalars().all())
                if not case_ids:
                    return []
                query = query.where(Case.id.in_(case_ids))

            if filters.case_type is not None:
                query = query.where(Case.case_type == filters.case_type)
            if filters.priority is not None:
                query = query.where(Case.priority == filters.priority)
            if filters.status is not None:
                query = query.where(Case.status == filters.status)
            if filters.is_public is not None:
                query = query.where(Case.is_public.is_(filters.is_public))
            if filters.creator_id is not None:
                query = query.where(Case.creator_id == filters.creator_id)

            query = (
                query.order_by(*_CASE_ORDERING[filters.sort_by])
                .limit(filters.limit)
                .offset(filters.offset)
            )
            result = await db.execute(query)
            return [CaseResponse.model_validate(c) for c in result.scalars().all()]

        except SQLAlchemyError as e:
            logger.error("Database error listing cases: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve cases. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_case_by_id(
        self, db: AsyncSession, case_id: int, user_id: Optional[int] = None
    ) -> Optional[CaseDetailResponse]:
        """The case with its tags, collaborators and files; None if absent."""
        try:
            case = await db.get(Case, case_id)
            if case is None:
                return None
            if not await self.can_view(db, case, user_id):
                raise ForbiddenError(
                    message="You do not have access to this case",
                    context={"case_id": case_id, "user_id": user_id},
                )

            tags = await db.execute(
                select(CaseTag.tag).where(CaseTag.case_id == case_id).order_by(CaseTag.tag)
            )
            detail = CaseDetailResponse.model_validate(case)
            return detail.model_copy(update={
                "tags": list(tags.scalars().all()),
                "collaborators": await self._list_collaborators(db, case_id),
                "files": await self._list_files(db, case_id),
            })

        except SQLAlchemyError as e:
            logger.error("Database error fetching case %s: %s", case_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the case. Please try again.",
                context={"case_id": case_id},
            )

    async def create_case(
        self, db: AsyncSession, data: CreateCaseInput, creator_id: int
    ) -> CaseResponse:
        """New cases start as ``draft`` and private unless ``is_public`` is set."""
        try:
            case = Case(
                title=data.title,
                description=data.description,
                case_type=data.case_type,
                priority=data.priority,
                patient_age=data.patient_age,
                is_public=bool(data.is_public),
                creator_id=creator_id,
                status=CaseStatus.DRAFT,
            )
            db.add(case)
            await db.flush()

            tags = normalize_tags(data.tags)
            if tags:
                db.add_all([CaseTag(case_id=case.id, tag=tag) for tag in tags])
                await db.flush()

            await dashboard_service.create_activity_log(
                db,
                CreateActivityLogInput(
                    user_id=creator_id,
                    type=ActivityType.CASE_CREATED,
                    title="New case",
                    description=case.title,
                    metadata=json.dumps({"case_id": case.id}),
                ),
            )

            logger.info("Case %s created by user %s", case.id, creator_id)
            return CaseResponse.model_validate(case)

        except SQLAlchemyError as e:
            logger.error("Database error creating case: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the case. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def update_case(
        self, db: AsyncSession, data: UpdateCaseInput, user_id: int
    ) -> Optional[CaseResponse]:
        """
        Partial update by the creator or an editor/owner collaborator.

        Supplied non-null fields are copied onto the case (``patient_age``
        may be cleared with an explicit null); ``tags`` replaces the whole
        tag set. Everyone else involved in the case is notified.
        """
        try:
            case = await db.get(Case, data.id)
            if case is None:
                return None
            if not await self.can_edit(db, case, user_id):
                raise ForbiddenError(
                    message="You do not have permission to edit this case",
                    context={"case_id": data.id, "user_id": user_id},
                )

            for field in _UPDATABLE_FIELDS:
                if field not in data.model_fields_set:
                    continue
                value = getattr(data, field)
                if value is not None or field == "patient_age":
                    setattr(case, field, value)

            if data.tags is not None:
                await db.execute(delete(CaseTag).where(CaseTag.case_id == case.id))
                tags = normalize_tags(data.tags)
                if tags:
                    db.add_all([CaseTag(case_id=case.id, tag=tag) for tag in tags])

            case.updated_at = utcnow()
            await db.flush()

            await dashboard_service.create_activity_log(
                db,
                CreateActivityLogInput(
                    user_id=user_id,
                    type=ActivityType.CASE_UPDATED,
                    title="Case updated",
                    description=case.title,
                    metadata=json.dumps({"case_id": case.id}),
                ),
            )
            await self._notify_participants(
                db,
                case,
                exclude_user_id=user_id,
                message=f"Case \"{case.title}\" was updated",
            )

            logger.info("Case %s updated by user %s", case.id, user_id)
            return CaseResponse.model_validate(case)

        except SQLAlchemyError as e:
            logger.error("Database error updating case %s: %s", data.id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not update the case. Please try again.",
                context={"case_id": data.id},
            )

    async def delete_case(self, db: AsyncSession, case_id: int, user_id: int) -> bool:
        """Creator-only. Tags, collaborators and files are removed first."""
        try:
            case = await db.get(Case, case_id)
            if case is None:
                return False
            if case.creator_id != user_id:
                raise ForbiddenError(
                    message="Only the creator can delete this case",
                    context={"case_id": case_id, "user_id": user_id},
                )

            for dependent in (CaseTag, CaseCollaborator, CaseFile):
                await db.execute(delete(dependent).where(dependent.case_id == case_id))
            await db.delete(case)
            await db.flush()

            logger.info("Case %s deleted by user %s", case_id, user_id)
            return True

        except SQLAlchemyError as e:
            logger.error("Database error deleting case %s: %s", case_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the case. Please try again.",
                context={"case_id": case_id},
            )

    # ── Collaborators ─────────────────────────────────────────────────────

    async def add_case_collaborator(
        self, db: AsyncSession, data: AddCollaboratorInput, requester_id: int
    ) -> bool:
        """
        Add a collaborator or change an existing collaborator's role.

        The case row is locked for the rest of the transaction. If the
        membership row appears between the lookup and the insert anyway,
        the insert's SAVEPOINT is rolled back and the row's role is updated
        instead; the invite side effects then belong to whoever inserted it.

        Raises:
            NotFoundError:   case or target user missing
            ForbiddenError:  requester cannot manage collaborators
            ValidationError: target is the case creator
        """
        try:
            locked = await db.execute(
                select(Case).where(Case.id == data.case_id).with_for_update()
            )
            case = locked.scalar_one_or_none()
            if case is None:
                raise NotFoundError(resource="case", resource_id=data.case_id)
            if not await self.can_edit(db, case, requester_id):
                raise ForbiddenError(
                    message="You do not have permission to manage collaborators on this case",
                    context={"case_id": data.case_id, "user_id": requester_id},
                )
            user = await db.get(User, data.user_id)
            if user is None:
                raise NotFoundError(resource="user", resource_id=data.user_id)
            if data.user_id == case.creator_id:
                raise ValidationError(
                    message="The case creator cannot be added as a collaborator",
                    field="user_id",
                    context={"case_id": data.case_id},
                )

            existing = await self._find_collaborator(db, data.case_id, data.user_id)
            if existing is not None:
                existing.role = data.role
                await db.flush()
                logger.info(
                    "Collaborator %s on case %s is now %s",
                    data.user_id, data.case_id, data.role.value,
                )
                return True

            try:
                async with db.begin_nested():
                    db.add(CaseCollaborator(
                        case_id=data.case_id, user_id=data.user_id, role=data.role,
                    ))
            except IntegrityError:
                await db.execute(
                    update(CaseCollaborator)
                    .where(
                        CaseCollaborator.case_id == data.case_id,
                        CaseCollaborator.user_id == data.user_id,
                    )
                    .values(role=data.role)
                )
                logger.info(
                    "Collaborator %s on case %s was added concurrently; role set to %s",
                    data.user_id, data.case_id, data.role.value,
                )
                return True

            await dashboard_service.create_activity_log(
                db,
                CreateActivityLogInput(
                    user_id=requester_id,
                    type=ActivityType.COLLABORATION_STARTED,
                    title="Collaboration started",
                    description=f"{user.name} joined \"{case.title}\" as {data.role.value}",
                    metadata=json.dumps({"case_id": case.id, "user_id": user.id}),
                ),
            )
            await notification_service.create_notification(
                db,
                CreateNotificationInput(
                    user_id=user.id,
                    type=NotificationType.COLLABORATION_INVITE,
                    message=f"You were invited to collaborate on \"{case.title}\"",
                    metadata=json.dumps({"case_id": case.id, "role": data.role.value}),
                ),
            )

            logger.info(
                "User %s added to case %s as %s by user %s",
                data.user_id, data.case_id, data.role.value, requester_id,
            )
            return True

        except SQLAlchemyError as e:
            logger.error("Database error adding collaborator: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not add the collaborator. Please try again.",
                context={"case_id": data.case_id},
            )

    async def remove_case_collaborator(
        self, db: AsyncSession, case_id: int, user_id: int, requester_id: int
    ) -> bool:
        """Creator removes anyone; collaborators may remove themselves."""
        try:
            case = await db.get(Case, case_id)
            if case is None:
                return False
            if requester_id != case.creator_id and requester_id != user_id:
                raise ForbiddenError(
                    message="Only the creator can remove other collaborators",
                    context={"case_id": case_id, "user_id": requester_id},
                )

            result = await db.execute(
                delete(CaseCollaborator).where(
                    CaseCollaborator.case_id == case_id,
                    CaseCollaborator.user_id == user_id,
                )
            )
            removed = result.rowcount > 0
            if removed:
                logger.info("User %s removed from case %s", user_id, case_id)
            return removed

        except SQLAlchemyError as e:
            logger.error("Database error removing collaborator: %s", str(e))
            raise DatabaseError(context={"case_id": case_id})

    async def get_case_collaborators(
        self, db: AsyncSession, case_id: int, user_id: int
    ) -> List[CaseCollaboratorResponse]:
        try:
            case = await db.get(Case, case_id)
            if case is None:
                return []
            await self._require_view(db, case, user_id)
            return await self._list_collaborators(db, case_id)
        except SQLAlchemyError as e:
            logger.error("Database error listing collaborators: %s", str(e))
            raise DatabaseError(context={"case_id": case_id})

    # ── Files ─────────────────────────────────────────────────────────────

    async def get_case_files(
        self, db: AsyncSession, case_id: int, user_id: int
    ) -> List[CaseFileResponse]:
        """Newest upload first."""
        try:
            case = await db.get(Case, case_id)
            if case is None:
                return []
            await self._require_view(db, case, user_id)
            return await self._list_files(db, case_id)
        except SQLAlchemyError as e:
            logger.error("Database error listing files: %s", str(e))
            raise DatabaseError(context={"case_id": case_id})

    async def upload_case_file(
        self, db: AsyncSession, data: UploadFileInput, user_id: int
    ) -> CaseFileResponse:
        """
        Register a file against a case.

        Steps:
            1. Require the case (NotFoundError) and edit rights (ForbiddenError)
            2. Validate extension and size, generate the URL (ValidationError)
            3. Insert the metadata row and record ``file_uploaded``
        """
        try:
            case = await db.get(Case, data.case_id)
            if case is None:
                raise NotFoundError(resource="case", resource_id=data.case_id)
            if not await self.can_edit(db, case, user_id):
                raise ForbiddenError(
                    message="You do not have permission to upload files to this case",
                    context={"case_id": data.case_id, "user_id": user_id},
                )

            file_url = case_file_service.prepare_upload(case.id, data.file_name, data.file_size)

            case_file = CaseFile(
                case_id=case.id,
                file_name=data.file_name,
                file_url=file_url,
                file_type=data.file_type,
                file_size=data.file_size,
                uploaded_by=user_id,
            )
            db.add(case_file)
            await db.flush()

            await dashboard_service.create_activity_log(
                db,
                CreateActivityLogInput(
                    user_id=user_id,
                    type=ActivityType.FILE_UPLOADED,
                    title="File uploaded",
                    description=f"{data.file_name} added to \"{case.title}\"",
                    metadata=json.dumps({"case_id": case.id, "file_id": case_file.id}),
                ),
            )

            logger.info(
                "File %s (%d bytes) uploaded to case %s by user %s",
                case_file.id, data.file_size, case.id, user_id,
            )
            return CaseFileResponse.model_validate(case_file)

        except SQLAlchemyError as e:
            logger.error("Database error uploading file: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not store the file. Please try again.",
                context={"case_id": data.case_id},
            )

    async def get_file_annotations(
        self, db: AsyncSession, file_id: int, user_id: int
    ) -> Optional[str]:
        try:
            case_file = await db.get(CaseFile, file_id)
            if case_file is None:
                return None
            case = await db.get(Case, case_file.case_id)
            if case is None:
                return None
            await self._require_view(db, case, user_id)
            return case_file.annotations
        except SQLAlchemyError as e:
            logger.error("Database error reading annotations: %s", str(e))
            raise DatabaseError(context={"file_id": file_id})

    async def update_file_annotations(
        self, db: AsyncSession, data: UpdateAnnotationsInput, user_id: int
    ) -> bool:
        """Annotations are opaque text owned by the client viewer."""
        try:
            case_file = await db.get(CaseFile, data.file_id)
            if case_file is None:
                return False
            case = await db.get(Case, case_file.case_id)
            if case is None:
                return False
            if not await self.can_edit(db, case, user_id):
                raise ForbiddenError(
                    message="You do not have permission to annotate files on this case",
                    context={"file_id": data.file_id, "user_id": user_id},
                )

            case_file.annotations = data.annotations
            await db.flush()
            logger.info("Annotations updated on file %s by user %s", data.file_id, user_id)
            return True

        except SQLAlchemyError as e:
            logger.error("Database error updating annotations: %s", str(e))
            raise DatabaseError(context={"file_id": data.file_id})

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _require_view(self, db: AsyncSession, case: Case, user_id: Optional[int]) -> None:
        if not await self.can_view(db, case, user_id):
            raise ForbiddenError(
                message="You do not have access to this case",
                context={"case_id": case.id, "user_id": user_id},
            )

    async def _list_collaborators(
        self, db: AsyncSession, case_id: int
    ) -> List[CaseCollaboratorResponse]:
        result = await db.execute(
            select(CaseCollaborator, User)
            .join(User, User.id == CaseCollaborator.user_id)
            .where(CaseCollaborator.case_id == case_id)
            .order_by(CaseCollaborator.user_id)
        )
        return [
            CaseCollaboratorResponse(
                case_id=collaborator.case_id,
                user_id=user.id,
                role=collaborator.role,
                name=user.name,
                email=user.email,
                avatar_url=user.avatar_url,
                professional_type=user.professional_type,
            )
            for collaborator, user in result.all()
        ]

    async def _list_files(self, db: AsyncSession, case_id: int) -> List[CaseFileResponse]:
        result = await db.execute(
            select(CaseFile)
            .where(CaseFile.case_id == case_id)
            .order_by(desc(CaseFile.upload_date), desc(CaseFile.id))
        )
        return [CaseFileResponse.model_validate(f) for f in result.scalars().all()]

    async def _notify_participants(
        self, db: AsyncSession, case: Case, exclude_user_id: int, message: str
    ) -> None:
        """``case_update`` notification to the creator and every collaborator."""
        result = await db.execute(
            select(CaseCollaborator.user_id).where(CaseCollaborator.case_id == case.id)
        )
        recipients = {case.creator_id, *result.scalars().all()}
        recipients.discard(exclude_user_id)

        for recipient in sorted(recipients):
            await notification_service.create_notification(
                db,
                CreateNotificationInput(
                    user_id=recipient,
                    type=NotificationType.CASE_UPDATE,
                    message=message,
                    metadata=json.dumps({"case_id": case.id}),
                ),
            )


# ── Singleton Instance ────────────────────────────────────────────────────
case_service = CaseService()
