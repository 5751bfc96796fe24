"""
DentalHub Backend: Clinical Case SQLAlchemy Models
===================================================

What:  ORM models for clinical case records and their attachments.
Who:   Used by CaseService; counted by DashboardService.

Tables:
    cases                id, title, description, case_type, priority,
                         patient_age, is_public, creator_id, status, timestamps
    case_tags            (case_id, tag)        composite PK
    case_collaborators   (case_id, user_id)    composite PK, role
    case_files           id, case_id, file metadata, uploaded_by, annotations

Visibility:
    A case is visible to a caller when it is public, the caller created it,
    or the caller has a case_collaborators row for it. Everything else about
    a private case, including its tags and files, stays hidden.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from dentalhub.database import Base
from dentalhub.models.enums import (
    CaseStatus,
    CaseType,
    CollaboratorRole,
    Priority,
    sa_enum,
)
from dentalhub.models.user import utcnow


class Case(Base):
    """
    A clinical case (crown, implant, orthodontic work, ...).

    Lifecycle:
        draft → active → in_progress → completed
                                   ↘ cancelled
        The status column is free to move between any of these values; only
        the default (draft) is fixed.
    """

    __tablename__ = "cases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    case_type: Mapped[CaseType] = mapped_column(sa_enum(CaseType, "case_type"), nullable=False)
    priority: Mapped[Priority] = mapped_column(sa_enum(Priority, "priority"), nullable=False)
    patient_age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_public: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    creator_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    status: Mapped[CaseStatus] = mapped_column(
        sa_enum(CaseStatus, "case_status"),
        nullable=False,
        default=CaseStatus.DRAFT,
        server_default=CaseStatus.DRAFT.value,
    )

    __table_args__ = (
        Index("idx_cases_created_at", created_at.desc()),
        Index("idx_cases_creator_id", "creator_id"),
    )

    def __repr__(self) -> str:
        return f"<Case(id={self.id}, title='{self.title}', status='{self.status}')>"


class CaseTag(Base):
    __tablename__ = "case_tags"

    case_id: Mapped[int] = mapped_column(ForeignKey("cases.id"), primary_key=True)
    tag: Mapped[str] = mapped_column(Text, primary_key=True)

    __table_args__ = (Index("idx_case_tags_tag", "tag"),)


class CaseCollaborator(Base):
    __tablename__ = "case_collaborators"

    case_id: Mapped[int] = mapped_column(ForeignKey("cases.id"), primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)
    role: Mapped[CollaboratorRole] = mapped_column(
        sa_enum(CollaboratorRole, "collaborator_role"), nullable=False
    )

    __table_args__ = (Index("idx_case_collaborators_user_id", "user_id"),)


class CaseFile(Base):
    """
    Metadata for a file attached to a case (scan, model, photo, report).

    The bytes live in object storage behind ``file_url``; this row only
    records what was uploaded, by whom, and the viewer annotations. The
    annotations column is opaque text owned by the imaging viewer.
    """

    __tablename__ = "case_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    case_id: Mapped[int] = mapped_column(ForeignKey("cases.id"), nullable=False)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    file_type: Mapped[str] = mapped_column(Text, nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    upload_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    uploaded_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    annotations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("idx_case_files_case_id", "case_id"),)
