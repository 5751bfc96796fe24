"""
DentalHub Backend: Forum SQLAlchemy Models
===========================================

What:  ORM models for the discussion forum.
Who:   Used by ForumService; counted by DashboardService.

Tables:
    forum_categories   id, name, description
    forum_posts        id, title, content, excerpt, author_id, category_id,
                       timestamps, upvotes, downvotes, view_count, comment_count
    forum_post_tags    (post_id, tag)            composite PK
    forum_comments     id, post_id, author_id, content, timestamps
    user_post_votes    (user_id, post_id)        composite PK, vote_type
    user_bookmarks     (user_id, post_id)        composite PK

Counter Columns:
    upvotes / downvotes / comment_count / view_count are denormalized on the
    post row. They always equal the matching aggregate over the child tables
    (or view events) and are only ever changed by relative UPDATEs
    (``col = col + 1``) inside the same transaction as the child-row change.

Query Patterns:
    - Newest posts: ORDER BY created_at DESC  → idx_forum_posts_created_at
    - Tag filter: SELECT post_id FROM forum_post_tags WHERE tag = :tag
      → idx_forum_post_tags_tag
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from dentalhub.database import Base
from dentalhub.models.enums import VoteType, sa_enum
from dentalhub.models.user import utcnow


class ForumCategory(Base):
    __tablename__ = "forum_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ForumCategory(id={self.id}, name='{self.name}')>"


class ForumPost(Base):
    """
    A forum thread opener.

    Lifecycle:
        1. Created with zeroed counters and an excerpt derived from content
        2. view_count grows on every detail read
        3. upvotes/downvotes follow vote toggles, comment_count follows comments
        4. Deleted by its author together with tags, comments, votes, bookmarks
    """

    __tablename__ = "forum_posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    excerpt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("forum_categories.id"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # ── Denormalized Counters ─────────────────────────────────────────────
    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    comment_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    __table_args__ = (
        Index("idx_forum_posts_created_at", created_at.desc()),
        Index("idx_forum_posts_category_id", "category_id"),
        Index("idx_forum_posts_author_id", "author_id"),
    )

    def __repr__(self) -> str:
        return f"<ForumPost(id={self.id}, title='{self.title}')>"


class ForumPostTag(Base):
    __tablename__ = "forum_post_tags"

    post_id: Mapped[int] = mapped_column(ForeignKey("forum_posts.id"), primary_key=True)
    tag: Mapped[str] = mapped_column(Text, primary_key=True)

    __table_args__ = (Index("idx_forum_post_tags_tag", "tag"),)


class ForumComment(Base):
    __tablename__ = "forum_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(ForeignKey("forum_posts.id"), nullable=False)
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (Index("idx_forum_comments_post_id", "post_id"),)


class UserPostVote(Base):
    """At most one row per (user, post); the composite PK enforces it."""

    __tablename__ = "user_post_votes"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)
    post_id: Mapped[int] = mapped_column(ForeignKey("forum_posts.id"), primary_key=True)
    vote_type: Mapped[VoteType] = mapped_column(sa_enum(VoteType, "vote_type"), nullable=False)


class UserBookmark(Base):
    """Presence of the row is the bookmark; there is no other state."""

    __tablename__ = "user_bookmarks"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)
    post_id: Mapped[int] = mapped_column(ForeignKey("forum_posts.id"), primary_key=True)
