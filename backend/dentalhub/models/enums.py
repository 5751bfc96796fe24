"""
Enumerations shared by the ORM models and the Pydantic schemas.

Values are the wire and storage representation; member order is the
declaration order used for ``status`` sorting.
"""

from enum import Enum
from typing import Type

from sqlalchemy import Enum as SQLEnum


class ProfessionalType(str, Enum):
    CLINICIAN = "clinician"
    LAB_TECHNICIAN = "lab_technician"
    SPECIALIST = "specialist"
    STUDENT = "student"
    EDUCATOR = "educator"


class VoteType(str, Enum):
    UP = "up"
    DOWN = "down"


class CaseType(str, Enum):
    CROWN = "crown"
    BRIDGE = "bridge"
    IMPLANT = "implant"
    ORTHODONTIC = "orthodontic"
    SURGICAL_GUIDE = "surgical_guide"
    DENTURE = "denture"
    OTHER = "other"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class CaseStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CollaboratorRole(str, Enum):
    VIEWER = "viewer"
    EDITOR = "editor"
    OWNER = "owner"


class NotificationType(str, Enum):
    CASE_UPDATE = "case_update"
    COMMENT = "comment"
    MENTION = "mention"
    COLLABORATION_INVITE = "collaboration_invite"
    VOTE = "vote"


class ActivityType(str, Enum):
    CASE_CREATED = "case_created"
    CASE_UPDATED = "case_updated"
    POST_CREATED = "post_created"
    COMMENT_ADDED = "comment_added"
    FILE_UPLOADED = "file_uploaded"
    COLLABORATION_STARTED = "collaboration_started"


def sa_enum(enum_cls: Type[Enum], name: str) -> SQLEnum:
    """
    Column type storing the enum *values* (``"in_progress"``) rather than
    the member names (``"IN_PROGRESS"``). Native ENUM on PostgreSQL, a
    VARCHAR with CHECK constraint elsewhere.
    """
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
