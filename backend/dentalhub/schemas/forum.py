"""
DentalHub Backend: Forum Schemas
================================

What:  Inputs and outputs for forum categories, posts, comments, votes and
       bookmarks, plus the identity-carrying request models used by the RPC
       layer (``...Request`` classes add the caller's numeric id).
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from dentalhub.models.enums import VoteType
from dentalhub.schemas.common import PageParams


class PostSortBy(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    MOST_VOTED = "mostVoted"
    MOST_COMMENTED = "mostCommented"


# ══════════════════════════════════════════════════════════════════════════
# Categories
# ══════════════════════════════════════════════════════════════════════════


class CreateForumCategoryInput(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class ForumCategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Posts
# ══════════════════════════════════════════════════════════════════════════


class ForumPostsQuery(PageParams):
    """
    Filters for ``forum.posts.list``.

    tag:     exact tag after trimming; unknown tags produce an empty page
    sort_by: newest (default) | oldest | mostVoted | mostCommented
    user_id: optional caller id; when set, each post carries the caller's
             vote and bookmark state
    """
    category_id: Optional[int] = None
    author_id: Optional[int] = None
    tag: Optional[str] = None
    sort_by: PostSortBy = PostSortBy.NEWEST
    user_id: Optional[int] = None


class CreateForumPostInput(BaseModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    excerpt: Optional[str] = None
    category_id: int
    tags: Optional[List[str]] = None


class UpdateForumPostInput(BaseModel):
    """
    Partial update. Only fields present in the request are applied, so
    ``"excerpt": null`` clears the excerpt while an omitted excerpt lets it be
    re-derived from new content.
    """
    id: int
    title: Optional[str] = Field(default=None, min_length=1)
    content: Optional[str] = Field(default=None, min_length=1)
    excerpt: Optional[str] = None
    category_id: Optional[int] = None
    tags: Optional[List[str]] = None


class CreateForumPostRequest(CreateForumPostInput):
    author_id: int


class UpdateForumPostRequest(UpdateForumPostInput):
    user_id: int


class ForumPostLookup(BaseModel):
    post_id: int
    user_id: Optional[int] = None


class DeleteForumPostRequest(BaseModel):
    post_id: int
    user_id: int


class ForumPostResponse(BaseModel):
    id: int
    title: str
    content: str
    excerpt: Optional[str] = None
    author_id: int
    category_id: int
    created_at: datetime
    updated_at: datetime
    upvotes: int
    downvotes: int
    view_count: int
    comment_count: int
    # Viewer state, only populated when the caller identified themselves
    user_vote: Optional[VoteType] = None
    is_bookmarked: Optional[bool] = None

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Comments
# ══════════════════════════════════════════════════════════════════════════


class CreateForumCommentInput(BaseModel):
    post_id: int
    content: str = Field(min_length=1)


class CreateForumCommentRequest(CreateForumCommentInput):
    author_id: int


class PostIdInput(BaseModel):
    post_id: int


class ForumCommentResponse(BaseModel):
    id: int
    post_id: int
    author_id: int
    content: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Votes & Bookmarks
# ══════════════════════════════════════════════════════════════════════════


class VotePostInput(BaseModel):
    post_id: int
    vote_type: VoteType


class VotePostRequest(VotePostInput):
    user_id: int


class BookmarkPostInput(BaseModel):
    post_id: int


class BookmarkPostRequest(BookmarkPostInput):
    user_id: int
