"""
DentalHub Backend: Forum Procedures
===================================

Thin wrappers over ForumService. Identity-scoped procedures take the
caller's id from the body (``author_id`` for creation, ``user_id``
elsewhere).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dentalhub.database import get_db_session
from dentalhub.schemas.common import ErrorResponse
from dentalhub.schemas.forum import (
    BookmarkPostRequest,
    CreateForumCategoryInput,
    CreateForumCommentRequest,
    CreateForumPostRequest,
    DeleteForumPostRequest,
    ForumCategoryResponse,
    ForumCommentResponse,
    ForumPostLookup,
    ForumPostResponse,
    ForumPostsQuery,
    PostIdInput,
    UpdateForumPostRequest,
    VotePostRequest,
)
from dentalhub.schemas.user import UserIdInput
from dentalhub.services.forum_service import forum_service

router = APIRouter(prefix="/rpc", tags=["Forum"])

_FORBIDDEN = {403: {"model": ErrorResponse, "description": "Caller is not the author"}}
_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Referenced entity missing"}}


# ── Categories ────────────────────────────────────────────────────────────

@router.post("/forum.categories.list", response_model=List[ForumCategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db_session)):
    return await forum_service.get_forum_categories(db)


@router.post("/forum.categories.create", response_model=ForumCategoryResponse)
async def create_category(
    body: CreateForumCategoryInput,
    db: AsyncSession = Depends(get_db_session),
):
    return await forum_service.create_forum_category(db, body)


# ── Posts ─────────────────────────────────────────────────────────────────

@router.post(
    "/forum.posts.list",
    response_model=List[ForumPostResponse],
    summary="List posts",
    description=(
        "Filter by category, author or tag; sort by newest, oldest, mostVoted "
        "or mostCommented. Pass user_id to receive the caller's vote and "
        "bookmark state on each post."
    ),
)
async def list_posts(
    body: ForumPostsQuery,
    db: AsyncSession = Depends(get_db_session),
):
    return await forum_service.get_forum_posts(db, body, user_id=body.user_id)


@router.post(
    "/forum.posts.getById",
    response_model=Optional[ForumPostResponse],
    summary="Fetch a post (counts a view)",
)
async def get_post(
    body: ForumPostLookup,
    db: AsyncSession = Depends(get_db_session),
):
    return await forum_service.get_forum_post_by_id(db, body.post_id, user_id=body.user_id)


@router.post("/forum.posts.create", response_model=ForumPostResponse, responses=_NOT_FOUND)
async def create_post(
    body: CreateForumPostRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await forum_service.create_forum_post(db, body, body.author_id)


@router.post(
    "/forum.posts.update",
    response_model=Optional[ForumPostResponse],
    responses={**_FORBIDDEN, **_NOT_FOUND},
)
async def update_post(
    body: UpdateForumPostRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await forum_service.update_forum_post(db, body, body.user_id)


@router.post("/forum.posts.delete", response_model=bool, responses=_FORBIDDEN)
async def delete_post(
    body: DeleteForumPostRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await forum_service.delete_forum_post(db, body.post_id, body.user_id)


@router.post(
    "/forum.posts.vote",
    response_model=bool,
    summary="Toggle a vote",
    description="Same direction twice cancels the vote; the other direction flips it.",
    responses=_NOT_FOUND,
)
async def vote_post(
    body: VotePostRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await forum_service.vote_on_post(db, body, body.user_id)


@router.post("/forum.posts.bookmark", response_model=bool, responses=_NOT_FOUND)
async def bookmark_post(
    body: BookmarkPostRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await forum_service.toggle_bookmark(db, body, body.user_id)


# ── Comments & Bookmarks ──────────────────────────────────────────────────

@router.post("/forum.comments.list", response_model=List[ForumCommentResponse])
async def list_comments(
    body: PostIdInput,
    db: AsyncSession = Depends(get_db_session),
):
    return await forum_service.get_forum_comments(db, body.post_id)


@router.post("/forum.comments.create", response_model=ForumCommentResponse, responses=_NOT_FOUND)
async def create_comment(
    body: CreateForumCommentRequest,
    db: AsyncSession = Depends(get_db_session),
):
    return await forum_service.create_forum_comment(db, body, body.author_id)


@router.post("/forum.bookmarks.getUserBookmarks", response_model=List[ForumPostResponse])
async def user_bookmarks(
    body: UserIdInput,
    db: AsyncSession = Depends(get_db_session),
):
    return await forum_service.get_user_bookmarks(db, body.user_id)
