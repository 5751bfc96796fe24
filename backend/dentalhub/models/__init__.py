# Models package init
"""
DentalHub Backend: ORM Models Package
=====================================

Importing this package registers every table on ``Base.metadata``; Alembic's
env.py and the test fixtures rely on that.
"""

from dentalhub.models.case import Case, CaseCollaborator, CaseFile, CaseTag
from dentalhub.models.forum import (
    ForumCategory,
    ForumComment,
    ForumPost,
    ForumPostTag,
    UserBookmark,
    UserPostVote,
)
from dentalhub.models.notification import ActivityLog, Notification
from dentalhub.models.user import User

__all__ = [
    "ActivityLog",
    "Case",
    "CaseCollaborator",
    "CaseFile",
    "CaseTag",
    "ForumCategory",
    "ForumComment",
    "ForumPost",
    "ForumPostTag",
    "Notification",
    "User",
    "UserBookmark",
    "UserPostVote",
]
