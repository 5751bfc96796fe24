"""Create initial DentalHub schema

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Users, forum (categories, posts, tags, comments, votes, bookmarks),
       cases (tags, collaborators, files), notifications and activity logs.
How:   Enum columns become native PostgreSQL ENUM types; the link tables use
       composite primary keys so a user can vote, bookmark or collaborate
       at most once per target.

Rollback: downgrade() drops every table and enum type (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# ── Enum types (frozen at this revision) ──────────────────────────────────
professional_type = sa.Enum(
    "clinician", "lab_technician", "specialist", "student", "educator",
    name="professional_type",
)
vote_type = sa.Enum("up", "down", name="vote_type")
case_type = sa.Enum(
    "crown", "bridge", "implant", "orthodontic", "surgical_guide", "denture", "other",
    name="case_type",
)
priority = sa.Enum("low", "medium", "high", "urgent", name="priority")
case_status = sa.Enum(
    "draft", "active", "in_progress", "completed", "cancelled",
    name="case_status",
)
collaborator_role = sa.Enum("viewer", "editor", "owner", name="collaborator_role")
notification_type = sa.Enum(
    "case_update", "comment", "mention", "collaboration_invite", "vote",
    name="notification_type",
)
activity_type = sa.Enum(
    "case_created", "case_updated", "post_created", "comment_added",
    "file_uploaded", "collaboration_started",
    name="activity_type",
)

ENUM_TYPES = (
    professional_type, vote_type, case_type, priority, case_status,
    collaborator_role, notification_type, activity_type,
)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    # ── Users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("password", sa.Text(), nullable=False, comment="pbkdf2_sha256 hash"),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("professional_type", professional_type, nullable=False),
        sa.Column("is_verified", sa.Boolean(), server_default=sa.false(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    # ── Forum ─────────────────────────────────────────────────────────────
    op.create_table(
        "forum_categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "forum_posts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "category_id", sa.Integer(), sa.ForeignKey("forum_categories.id"), nullable=False
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("upvotes", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("downvotes", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("view_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("comment_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_forum_posts_created_at", "forum_posts", [sa.text("created_at DESC")])
    op.create_index("idx_forum_posts_category_id", "forum_posts", ["category_id"])
    op.create_index("idx_forum_posts_author_id", "forum_posts", ["author_id"])

    op.create_table(
        "forum_post_tags",
        sa.Column("post_id", sa.Integer(), sa.ForeignKey("forum_posts.id"), nullable=False),
        sa.Column("tag", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("post_id", "tag"),
    )
    op.create_index("idx_forum_post_tags_tag", "forum_post_tags", ["tag"])

    op.create_table(
        "forum_comments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_id", sa.Integer(), sa.ForeignKey("forum_posts.id"), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_forum_comments_post_id", "forum_comments", ["post_id"])

    op.create_table(
        "user_post_votes",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("post_id", sa.Integer(), sa.ForeignKey("forum_posts.id"), nullable=False),
        sa.Column("vote_type", vote_type, nullable=False),
        sa.PrimaryKeyConstraint("user_id", "post_id"),
    )

    op.create_table(
        "user_bookmarks",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("post_id", sa.Integer(), sa.ForeignKey("forum_posts.id"), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "post_id"),
    )

    # ── Cases ─────────────────────────────────────────────────────────────
    op.create_table(
        "cases",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("case_type", case_type, nullable=False),
        sa.Column("priority", priority, nullable=False),
        sa.Column("patient_age", sa.Integer(), nullable=True),
        sa.Column("is_public", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("status", case_status, server_default="draft", nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_cases_created_at", "cases", [sa.text("created_at DESC")])
    op.create_index("idx_cases_creator_id", "cases", ["creator_id"])

    op.create_table(
        "case_tags",
        sa.Column("case_id", sa.Integer(), sa.ForeignKey("cases.id"), nullable=False),
        sa.Column("tag", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("case_id", "tag"),
    )
    op.create_index("idx_case_tags_tag", "case_tags", ["tag"])

    op.create_table(
        "case_collaborators",
        sa.Column("case_id", sa.Integer(), sa.ForeignKey("cases.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", collaborator_role, nullable=False),
        sa.PrimaryKeyConstraint("case_id", "user_id"),
    )
    op.create_index("idx_case_collaborators_user_id", "case_collaborators", ["user_id"])

    op.create_table(
        "case_files",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("case_id", sa.Integer(), sa.ForeignKey("cases.id"), nullable=False),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=False),
        sa.Column("file_type", sa.Text(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        _timestamp("upload_date"),
        sa.Column("uploaded_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("annotations", sa.Text(), nullable=True, comment="Opaque viewer payload"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_case_files_case_id", "case_files", ["case_id"])

    # ── Notifications & Activity ──────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default=sa.false(), nullable=False),
        _timestamp("created_at"),
        sa.Column("metadata", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_notifications_user_id_is_read", "notifications", ["user_id", "is_read"]
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", activity_type, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        _timestamp("timestamp"),
        sa.Column("metadata", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_activity_logs_timestamp", "activity_logs", [sa.text("timestamp DESC")])
    op.create_index("idx_activity_logs_user_id", "activity_logs", ["user_id"])


def downgrade() -> None:
    """Drop everything in reverse dependency order, then the enum types."""
    for table in (
        "activity_logs",
        "notifications",
        "case_files",
        "case_collaborators",
        "case_tags",
        "cases",
        "user_bookmarks",
        "user_post_votes",
        "forum_comments",
        "forum_post_tags",
        "forum_posts",
        "forum_categories",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in ENUM_TYPES:
        enum_type.drop(bind, checkfirst=True)
