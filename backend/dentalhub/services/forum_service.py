"""
DentalHub Backend: Forum Service
================================

What:  Categories, posts, tags, comments, votes and bookmarks.
Who:   ``forum.*`` RPC procedures.
How:   Plain SQLAlchemy Core/ORM statements on the request's AsyncSession.
       Every counter change is a relative UPDATE (``col = col + 1``) so two
       concurrent requests can never lose an increment.

Vote Toggle:
    ┌──────────────┬──────────────────┬───────────────────────────────┐
    │ existing row │ requested        │ effect                        │
    ├──────────────┼──────────────────┼───────────────────────────────┤
    │ none         │ up / down        │ insert, +1 on that counter    │
    │ up           │ up               │ delete, -1 upvotes            │
    │ up           │ down             │ flip, -1 upvotes +1 downvotes │
    └──────────────┴──────────────────┴───────────────────────────────┘
    (symmetrical for down). The post row is locked with SELECT ... FOR
    UPDATE first, so double-clicks from the same user serialize.

Side Effects:
    create_forum_post     → activity ``post_created``
    create_forum_comment  → activity ``comment_added`` and a ``comment``
                            notification to the post author (skipped when
                            authors comment on their own post)
"""

import json
import logging
import re
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import asc, delete, desc, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dentalhub.exceptions import DatabaseError, ForbiddenError, NotFoundError
from dentalhub.models import (
    ForumCategory,
    ForumComment,
    ForumPost,
    ForumPostTag,
    UserBookmark,
    UserPostVote,
)
from dentalhub.models.enums import ActivityType, NotificationType, VoteType
from dentalhub.models.user import utcnow
from dentalhub.schemas.forum import (
    BookmarkPostInput,
    CreateForumCategoryInput,
    CreateForumCommentInput,
    CreateForumPostInput,
    ForumCategoryResponse,
    ForumCommentResponse,
    ForumPostResponse,
    ForumPostsQuery,
    PostSortBy,
    UpdateForumPostInput,
    VotePostInput,
)
from dentalhub.schemas.notification import CreateActivityLogInput, CreateNotificationInput
from dentalhub.services.dashboard_service import dashboard_service
from dentalhub.services.notification_service import notification_service

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 150
_MARKUP_RE = re.compile(r"<[^>]*>")


def generate_excerpt(content: str, max_length: int = EXCERPT_LENGTH) -> str:
    """
    Plain-text preview of a post body.

    Markup tags are stripped and whitespace trimmed. Text longer than
    ``max_length`` is cut, re-trimmed and suffixed with "...".

    >>> generate_excerpt("<p>Hello</p>")
    'Hello'
    """
    text = _MARKUP_RE.sub("", content).strip()
    if len(text) > max_length:
        return text[:max_length].strip() + "..."
    return text


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Trim, drop empties, collapse duplicates (first occurrence wins)."""
    seen: Set[str] = set()
    result: List[str] = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


_POST_ORDERING = {
    PostSortBy.NEWEST: (desc(ForumPost.created_at), desc(ForumPost.id)),
    PostSortBy.OLDEST: (asc(ForumPost.created_at), asc(ForumPost.id)),
    PostSortBy.MOST_VOTED: (desc(ForumPost.upvotes - ForumPost.downvotes), desc(ForumPost.id)),
    PostSortBy.MOST_COMMENTED: (desc(ForumPost.comment_count), desc(ForumPost.id)),
}


class ForumService:
    """
    Business logic for the discussion forum.

    Error Handling Strategy:
        SQLAlchemy failures are logged and re-raised as DatabaseError.
        Application exceptions (NotFoundError, ForbiddenError) pass through
        untouched; the session is rolled back by ``get_db_session``.
    """

    # ── Categories ────────────────────────────────────────────────────────

    async def get_forum_categories(self, db: AsyncSession) -> List[ForumCategoryResponse]:
        try:
            result = await db.execute(select(ForumCategory).order_by(ForumCategory.id))
        except SQLAlchemyError as e:
            logger.error("Database error listing categories: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__})
        return [ForumCategoryResponse.model_validate(c) for c in result.scalars().all()]

    async def create_forum_category(
        self, db: AsyncSession, data: CreateForumCategoryInput
    ) -> ForumCategoryResponse:
        category = ForumCategory(name=data.name, description=data.description)
        try:
            db.add(category)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating category: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the category. Please try again.",
                context={"error_type": type(e).__name__},
            )
        logger.info("Forum category %s created: %s", category.id, category.name)
        return ForumCategoryResponse.model_validate(category)

    # ── Posts ─────────────────────────────────────────────────────────────

    async def get_forum_posts(
        self,
        db: AsyncSession,
        filters: ForumPostsQuery,
        user_id: Optional[int] = None,
    ) -> List[ForumPostResponse]:
        """
        Filtered, sorted, paginated post listing.

        Tag filtering is two-step: the matching post ids are selected from
        ``forum_post_tags`` first, and an unknown tag returns an empty page
        without touching ``forum_posts``.
        """
        try:
            query = select(ForumPost)

            if filters.tag is not None:
                tagged = await db.execute(
                    select(ForumPostTag.post_id).where(ForumPostTag.tag == filters.tag.strip())
                )
                post_ids = list(tagged.scalars().all())
                if not post_ids:
                    return []
                query = query.where(ForumPost.id.in_(post_ids))

            if filters.category_id is not None:
                query = query.where(ForumPost.category_id == filters.category_id)
            if filters.author_id is not None:
                query = query.where(ForumPost.author_id == filters.author_id)

            query = (
                query.order_by(*_POST_ORDERING[filters.sort_by])
                .limit(filters.limit)
                .offset(filters.offset)
            )
            result = await db.execute(query)
            posts = list(result.scalars().all())

            return await self._with_viewer_state(db, posts, user_id)

        except SQLAlchemyError as e:
            logger.error("Database error listing posts: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve posts. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_forum_post_by_id(
        self, db: AsyncSession, post_id: int, user_id: Optional[int] = None
    ) -> Optional[ForumPostResponse]:
        """
        Fetch one post and count the view.

        The view counter is bumped before the read, so the returned
        ``view_count`` already includes this request.
        """
        try:
            bumped = await db.execute(
                update(ForumPost)
                .where(ForumPost.id == post_id)
                .values(view_count=ForumPost.view_count + 1)
                .execution_options(synchronize_session=False)
            )
            if bumped.rowcount == 0:
                return None

            result = await db.execute(
                select(ForumPost)
                .where(ForumPost.id == post_id)
                .execution_options(populate_existing=True)
            )
            post = result.scalar_one()
            responses = await self._with_viewer_state(db, [post], user_id)
            return responses[0]

        except SQLAlchemyError as e:
            logger.error("Database error fetching post %s: %s", post_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the post. Please try again.",
                context={"post_id": post_id},
            )

    async def create_forum_post(
        self, db: AsyncSession, data: CreateForumPostInput, author_id: int
    ) -> ForumPostResponse:
        """
        Steps:
            1. Require the category (NotFoundError otherwise)
            2. Derive the excerpt unless a non-empty one was given
            3. Insert the post, then its tags in one batch
            4. Record a ``post_created`` activity
        """
        try:
            await self._require_category(db, data.category_id)

            post = ForumPost(
                title=data.title,
                content=data.content,
                excerpt=data.excerpt or generate_excerpt(data.content),
                author_id=author_id,
                category_id=data.category_id,
            )
            db.add(post)
            await db.flush()

            tags = normalize_tags(data.tags)
            if tags:
                db.add_all([ForumPostTag(post_id=post.id, tag=tag) for tag in tags])
                await db.flush()

            await dashboard_service.create_activity_log(
                db,
                CreateActivityLogInput(
                    user_id=author_id,
                    type=ActivityType.POST_CREATED,
                    title="New forum post",
                    description=post.title,
                    metadata=json.dumps({"post_id": post.id}),
                ),
            )

            logger.info("Post %s created by user %s (%d tags)", post.id, author_id, len(tags))
            return ForumPostResponse.model_validate(post)

        except SQLAlchemyError as e:
            logger.error("Database error creating post: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the post. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def update_forum_post(
        self, db: AsyncSession, data: UpdateForumPostInput, user_id: int
    ) -> Optional[ForumPostResponse]:
        """
        Author-only partial update.

        Field rules:
            title / content / category_id   applied when not null
            excerpt                         applied whenever present in the
                                            request (null clears it); when
                                            absent and content changes, it
                                            is derived from the new content
            tags                            full replacement when not null
        """
        try:
            post = await db.get(ForumPost, data.id)
            if post is None:
                return None
            if post.author_id != user_id:
                raise ForbiddenError(
                    message="Only the author can update this post",
                    context={"post_id": data.id, "user_id": user_id},
                )

            if data.title is not None:
                post.title = data.title
            if data.content is not None:
                post.content = data.content
            if data.category_id is not None and data.category_id != post.category_id:
                await self._require_category(db, data.category_id)
                post.category_id = data.category_id

            if "excerpt" in data.model_fields_set:
                post.excerpt = data.excerpt
            elif data.content is not None:
                post.excerpt = generate_excerpt(data.content)

            if data.tags is not None:
                await db.execute(delete(ForumPostTag).where(ForumPostTag.post_id == post.id))
                tags = normalize_tags(data.tags)
                if tags:
                    db.add_all([ForumPostTag(post_id=post.id, tag=tag) for tag in tags])

            post.updated_at = utcnow()
            await db.flush()

            logger.info("Post %s updated by user %s", post.id, user_id)
            return ForumPostResponse.model_validate(post)

        except SQLAlchemyError as e:
            logger.error("Database error updating post %s: %s", data.id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not update the post. Please try again.",
                context={"post_id": data.id},
            )

    async def delete_forum_post(self, db: AsyncSession, post_id: int, user_id: int) -> bool:
        """
        Author-only delete. Dependents go first (tags, comments, votes,
        bookmarks), then the post itself, all inside the request transaction.
        """
        try:
            post = await db.get(ForumPost, post_id)
            if post is None:
                return False
            if post.author_id != user_id:
                raise ForbiddenError(
                    message="Only the author can delete this post",
                    context={"post_id": post_id, "user_id": user_id},
                )

            for dependent in (ForumPostTag, ForumComment, UserPostVote, UserBookmark):
                await db.execute(delete(dependent).where(dependent.post_id == post_id))
            await db.delete(post)
            await db.flush()

            logger.info("Post %s deleted by user %s", post_id, user_id)
            return True

        except SQLAlchemyError as e:
            logger.error("Database error deleting post %s: %s", post_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the post. Please try again.",
                context={"post_id": post_id},
            )

    # ── Comments ──────────────────────────────────────────────────────────

    async def get_forum_comments(
        self, db: AsyncSession, post_id: int
    ) -> List[ForumCommentResponse]:
        """Oldest first, so threads read top to bottom."""
        try:
            result = await db.execute(
                select(ForumComment)
                .where(ForumComment.post_id == post_id)
                .order_by(asc(ForumComment.created_at), asc(ForumComment.id))
            )
        except SQLAlchemyError as e:
            logger.error("Database error listing comments for post %s: %s", post_id, str(e))
            raise DatabaseError(context={"post_id": post_id})
        return [ForumCommentResponse.model_validate(c) for c in result.scalars().all()]

    async def create_forum_comment(
        self, db: AsyncSession, data: CreateForumCommentInput, author_id: int
    ) -> ForumCommentResponse:
        try:
            post = await db.get(ForumPost, data.post_id)
            if post is None:
                raise NotFoundError(resource="forum post", resource_id=data.post_id)

            comment = ForumComment(post_id=post.id, author_id=author_id, content=data.content)
            db.add(comment)
            await db.execute(
                update(ForumPost)
                .where(ForumPost.id == post.id)
                .values(comment_count=ForumPost.comment_count + 1)
            )
            await db.flush()

            await dashboard_service.create_activity_log(
                db,
                CreateActivityLogInput(
                    user_id=author_id,
                    type=ActivityType.COMMENT_ADDED,
                    title="New comment",
                    description=f"Commented on \"{post.title}\"",
                    metadata=json.dumps({"post_id": post.id, "comment_id": comment.id}),
                ),
            )
            if post.author_id != author_id:
                await notification_service.create_notification(
                    db,
                    CreateNotificationInput(
                        user_id=post.author_id,
                        type=NotificationType.COMMENT,
                        message=f"New comment on your post \"{post.title}\"",
                        metadata=json.dumps({"post_id": post.id, "comment_id": comment.id}),
                    ),
                )

            logger.info("Comment %s added to post %s by user %s", comment.id, post.id, author_id)
            return ForumCommentResponse.model_validate(comment)

        except SQLAlchemyError as e:
            logger.error("Database error creating comment: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not add the comment. Please try again.",
                context={"post_id": data.post_id},
            )

    # ── Votes & Bookmarks ─────────────────────────────────────────────────

    async def vote_on_post(self, db: AsyncSession, data: VotePostInput, user_id: int) -> bool:
        """Toggle the caller's vote (see module docstring). Always True."""
        try:
            locked = await db.execute(
                select(ForumPost.id).where(ForumPost.id == data.post_id).with_for_update()
            )
            if locked.scalar_one_or_none() is None:
                raise NotFoundError(resource="forum post", resource_id=data.post_id)

            result = await db.execute(
                select(UserPostVote).where(
                    UserPostVote.user_id == user_id,
                    UserPostVote.post_id == data.post_id,
                )
            )
            existing = result.scalar_one_or_none()
            deltas = {VoteType.UP: 0, VoteType.DOWN: 0}

            if existing is None:
                db.add(UserPostVote(user_id=user_id, post_id=data.post_id, vote_type=data.vote_type))
                deltas[data.vote_type] += 1
            elif existing.vote_type == data.vote_type:
                await db.delete(existing)
                deltas[data.vote_type] -= 1
            else:
                deltas[existing.vote_type] -= 1
                deltas[data.vote_type] += 1
                existing.vote_type = data.vote_type

            await db.execute(
                update(ForumPost)
                .where(ForumPost.id == data.post_id)
                .values(
                    upvotes=ForumPost.upvotes + deltas[VoteType.UP],
                    downvotes=ForumPost.downvotes + deltas[VoteType.DOWN],
                )
            )
            await db.flush()

            logger.debug("User %s voted %s on post %s", user_id, data.vote_type.value, data.post_id)
            return True

        except SQLAlchemyError as e:
            logger.error("Database error voting on post %s: %s", data.post_id, str(e))
            raise DatabaseError(
                message="Could not record the vote. Please try again.",
                context={"post_id": data.post_id},
            )

    async def toggle_bookmark(
        self, db: AsyncSession, data: BookmarkPostInput, user_id: int
    ) -> bool:
        """
        Add the bookmark if absent, remove it if present. Always True.

        The insert runs in a SAVEPOINT: if a concurrent request created the
        same bookmark first, the post simply stays bookmarked and the
        request transaction is left intact.
        """
        try:
            locked = await db.execute(
                select(ForumPost.id).where(ForumPost.id == data.post_id).with_for_update()
            )
            if locked.scalar_one_or_none() is None:
                raise NotFoundError(resource="forum post", resource_id=data.post_id)

            existing = await self._find_bookmark(db, user_id, data.post_id)
            if existing is not None:
                await db.delete(existing)
                await db.flush()
                return True

            try:
                async with db.begin_nested():
                    db.add(UserBookmark(user_id=user_id, post_id=data.post_id))
            except IntegrityError:
                logger.info("Bookmark of post %s by user %s already present", data.post_id, user_id)
            return True

        except SQLAlchemyError as e:
            logger.error("Database error toggling bookmark: %s", str(e))
            raise DatabaseError(
                message="Could not update the bookmark. Please try again.",
                context={"post_id": data.post_id},
            )

    async def get_user_bookmarks(
        self, db: AsyncSession, user_id: int
    ) -> List[ForumPostResponse]:
        """Bookmarked posts, newest post first."""
        try:
            result = await db.execute(
                select(ForumPost)
                .join(UserBookmark, UserBookmark.post_id == ForumPost.id)
                .where(UserBookmark.user_id == user_id)
                .order_by(desc(ForumPost.created_at), desc(ForumPost.id))
            )
            posts = list(result.scalars().all())
            return await self._with_viewer_state(db, posts, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error listing bookmarks: %s", str(e))
            raise DatabaseError(context={"user_id": user_id})

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _require_category(self, db: AsyncSession, category_id: int) -> None:
        if await db.get(ForumCategory, category_id) is None:
            raise NotFoundError(resource="forum category", resource_id=category_id)

    async def _find_bookmark(
        self, db: AsyncSession, user_id: int, post_id: int
    ) -> Optional[UserBookmark]:
        result = await db.execute(
            select(UserBookmark).where(
                UserBookmark.user_id == user_id,
                UserBookmark.post_id == post_id,
            )
        )
        return result.scalar_one_or_none()

    async def _with_viewer_state(
        self,
        db: AsyncSession,
        posts: List[ForumPost],
        user_id: Optional[int],
    ) -> List[ForumPostResponse]:
        """
        Convert posts to responses. With a ``user_id``, two extra queries
        fetch the caller's votes and bookmarks for exactly these posts.
        """
        responses = [ForumPostResponse.model_validate(p) for p in posts]
        if user_id is None or not posts:
            return responses

        post_ids = [p.id for p in posts]
        votes = await db.execute(
            select(UserPostVote.post_id, UserPostVote.vote_type).where(
                UserPostVote.user_id == user_id,
                UserPostVote.post_id.in_(post_ids),
            )
        )
        vote_by_post: Dict[int, VoteType] = {row.post_id: row.vote_type for row in votes}

        marks = await db.execute(
            select(UserBookmark.post_id).where(
                UserBookmark.user_id == user_id,
                UserBookmark.post_id.in_(post_ids),
            )
        )
        bookmarked = set(marks.scalars().all())

        return [
            r.model_copy(update={
                "user_vote": vote_by_post.get(r.id),
                "is_bookmarked": r.id in bookmarked,
            })
            for r in responses
        ]


# ── Singleton Instance ────────────────────────────────────────────────────
forum_service = ForumService()
