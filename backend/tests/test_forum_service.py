"""
DentalHub Backend: Forum Service Tests
======================================

What we test:
    ✅ Excerpt derivation and tag normalization
    ✅ Post creation (category check, excerpt, tags, activity entry)
    ✅ Listing: tag filter, unknown tag, sorting, viewer state
    ✅ Detail read counts a view
    ✅ Author-only update and delete, cascading delete of dependents
    ✅ Comment counter moves by exactly one, author gets notified
    ✅ Vote toggle semantics and bookmarks, including a lost insert race
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, insert, select

from dentalhub.exceptions import ForbiddenError, NotFoundError
from dentalhub.models import (
    ActivityLog,
    ForumComment,
    ForumPost,
    ForumPostTag,
    Notification,
    UserBookmark,
    UserPostVote,
)
from dentalhub.models.enums import ActivityType, NotificationType, VoteType
from dentalhub.schemas.forum import (
    BookmarkPostInput,
    CreateForumCategoryInput,
    CreateForumCommentInput,
    CreateForumPostInput,
    ForumPostsQuery,
    PostSortBy,
    UpdateForumPostInput,
    VotePostInput,
)
from dentalhub.services.forum_service import ForumService, generate_excerpt, normalize_tags


async def _count(db, model, *where):
    query = select(func.count()).select_from(model)
    if where:
        query = query.where(*where)
    return await db.scalar(query)


class TestExcerpt:

    def test_strips_markup_and_trims(self):
        assert generate_excerpt("  <p>Hello <b>world</b></p>  ") == "Hello world"

    def test_short_text_is_unchanged(self):
        assert generate_excerpt("Short post") == "Short post"

    def test_long_text_is_cut_at_150_with_ellipsis(self):
        excerpt = generate_excerpt("a" * 200)
        assert excerpt == "a" * 150 + "..."

    def test_cut_is_retrimmed(self):
        content = "word " * 40
        excerpt = generate_excerpt(content)
        assert excerpt == ("word " * 30).strip() + "..."

    def test_exactly_150_chars_has_no_ellipsis(self):
        assert generate_excerpt("b" * 150) == "b" * 150


class TestTagNormalization:

    def test_trims_drops_empty_and_dedupes(self):
        assert normalize_tags([" crown ", "", "zirconia", "crown", "   "]) == ["crown", "zirconia"]

    def test_none_gives_empty_list(self):
        assert normalize_tags(None) == []


class TestCategories:

    def setup_method(self):
        self.service = ForumService()

    @pytest.mark.asyncio
    async def test_create_and_list(self, db_session):
        await self.service.create_forum_category(
            db_session, CreateForumCategoryInput(name="Implants", description="Fixtures")
        )
        await self.service.create_forum_category(db_session, CreateForumCategoryInput(name="Ortho"))

        categories = await self.service.get_forum_categories(db_session)
        assert [c.name for c in categories] == ["Implants", "Ortho"]
        assert categories[0].description == "Fixtures"


class TestPostCreation:

    def setup_method(self):
        self.service = ForumService()

    @pytest.mark.asyncio
    async def test_missing_category_is_not_found(self, db_session, make_user):
        author = await make_user()
        with pytest.raises(NotFoundError):
            await self.service.create_forum_post(
                db_session,
                CreateForumPostInput(title="T", content="C", category_id=42),
                author.id,
            )
        assert await _count(db_session, ForumPost) == 0

    @pytest.mark.asyncio
    async def test_derives_excerpt_and_stores_tags(self, db_session, make_user, make_category):
        author = await make_user()
        category = await make_category()

        post = await self.service.create_forum_post(
            db_session,
            CreateForumPostInput(
                title="Zirconia vs e.max",
                content="<p>Which do you prefer for <em>anterior</em> crowns?</p>",
                category_id=category.id,
                tags=["zirconia", " emax ", "zirconia", ""],
            ),
            author.id,
        )

        assert post.excerpt == "Which do you prefer for anterior crowns?"
        assert post.upvotes == 0 and post.comment_count == 0 and post.view_count == 0
        tags = await db_session.scalars(
            select(ForumPostTag.tag).where(ForumPostTag.post_id == post.id).order_by(ForumPostTag.tag)
        )
        assert list(tags) == ["emax", "zirconia"]

    @pytest.mark.asyncio
    async def test_explicit_excerpt_is_kept(self, db_session, make_user, make_category):
        author = await make_user()
        category = await make_category()

        post = await self.service.create_forum_post(
            db_session,
            CreateForumPostInput(
                title="T", content="<p>Long body</p>", excerpt="Custom", category_id=category.id
            ),
            author.id,
        )
        assert post.excerpt == "Custom"

    @pytest.mark.asyncio
    async def test_empty_excerpt_falls_back_to_derived(self, db_session, make_user, make_category):
        author = await make_user()
        category = await make_category()

        post = await self.service.create_forum_post(
            db_session,
            CreateForumPostInput(
                title="T", content="<p>Body text</p>", excerpt="", category_id=category.id
            ),
            author.id,
        )
        assert post.excerpt == "Body text"

    @pytest.mark.asyncio
    async def test_records_post_created_activity(self, db_session, make_user, make_category):
        author = await make_user()
        category = await make_category()

        post = await self.service.create_forum_post(
            db_session,
            CreateForumPostInput(title="Margins", content="Body", category_id=category.id),
            author.id,
        )

        activity = (await db_session.scalars(select(ActivityLog))).all()
        assert len(activity) == 1
        assert activity[0].type == ActivityType.POST_CREATED
        assert activity[0].user_id == author.id
        assert str(post.id) in activity[0].extra_metadata


class TestPostListing:

    def setup_method(self):
        self.service = ForumService()

    async def _tagged_posts(self, db, make_user, make_category):
        author = await make_user()
        category = await make_category()
        first = await self.service.create_forum_post(
            db, CreateForumPostInput(title="A", content="a", category_id=category.id,
                                     tags=["crown"]), author.id,
        )
        second = await self.service.create_forum_post(
            db, CreateForumPostInput(title="B", content="b", category_id=category.id,
                                     tags=["crown", "implant"]), author.id,
        )
        third = await self.service.create_forum_post(
            db, CreateForumPostInput(title="C", content="c", category_id=category.id,
                                     tags=["implant"]), author.id,
        )
        return author, category, [first, second, third]

    @pytest.mark.asyncio
    async def test_tag_filter_matches_literal_tag(self, db_session, make_user, make_category):
        _, _, (first, second, _) = await self._tagged_posts(db_session, make_user, make_category)

        posts = await self.service.get_forum_posts(db_session, ForumPostsQuery(tag="crown"))
        assert {p.id for p in posts} == {first.id, second.id}

        assert await self.service.get_forum_posts(db_session, ForumPostsQuery(tag="Crown")) == []

    @pytest.mark.asyncio
    async def test_tag_filter_ignores_surrounding_whitespace(
        self, db_session, make_user, make_category
    ):
        _, _, (_, second, third) = await self._tagged_posts(db_session, make_user, make_category)

        posts = await self.service.get_forum_posts(db_session, ForumPostsQuery(tag=" implant "))
        assert {p.id for p in posts} == {second.id, third.id}

    @pytest.mark.asyncio
    async def test_unknown_tag_returns_empty(self, db_session, make_user, make_category):
        await self._tagged_posts(db_session, make_user, make_category)
        assert await self.service.get_forum_posts(db_session, ForumPostsQuery(tag="veneer")) == []

    @pytest.mark.asyncio
    async def test_newest_first_by_default(self, db_session, make_user, make_category):
        _, _, (first, second, third) = await self._tagged_posts(
            db_session, make_user, make_category
        )
        posts = await self.service.get_forum_posts(db_session, ForumPostsQuery())
        assert [p.id for p in posts] == [third.id, second.id, first.id]

        oldest = await self.service.get_forum_posts(
            db_session, ForumPostsQuery(sort_by=PostSortBy.OLDEST)
        )
        assert [p.id for p in oldest] == [first.id, second.id, third.id]

    @pytest.mark.asyncio
    async def test_most_voted_uses_net_score(self, db_session, make_user, make_category):
        author = await make_user()
        category = await make_category()
        scores = {"net one": (1, 0), "net four": (5, 1), "net minus two": (0, 2)}
        ids = {}
        for title, (up, down) in scores.items():
            post = ForumPost(title=title, content=title, author_id=author.id,
                             category_id=category.id, upvotes=up, downvotes=down)
            db_session.add(post)
            await db_session.flush()
            ids[title] = post.id

        posts = await self.service.get_forum_posts(
            db_session, ForumPostsQuery(sort_by=PostSortBy.MOST_VOTED)
        )
        assert [p.id for p in posts] == [ids["net four"], ids["net one"], ids["net minus two"]]

    @pytest.mark.asyncio
    async def test_most_commented(self, db_session, make_user, make_category, make_post):
        author = await make_user()
        category = await make_category()
        quiet = await make_post(author, category, title="quiet")
        busy = await make_post(author, category, title="busy")
        busy.comment_count = 7
        quiet.comment_count = 2
        await db_session.flush()

        posts = await self.service.get_forum_posts(
            db_session, ForumPostsQuery(sort_by=PostSortBy.MOST_COMMENTED)
        )
        assert [p.id for p in posts] == [busy.id, quiet.id]

    @pytest.mark.asyncio
    async def test_category_and_author_filters(self, db_session, make_user, make_category, make_post):
        alice = await make_user()
        bob = await make_user()
        implants = await make_category("Implants")
        ortho = await make_category("Ortho")
        target = await make_post(alice, implants)
        await make_post(alice, ortho)
        await make_post(bob, implants)

        posts = await self.service.get_forum_posts(
            db_session, ForumPostsQuery(category_id=implants.id, author_id=alice.id)
        )
        assert [p.id for p in posts] == [target.id]

    @pytest.mark.asyncio
    async def test_pagination(self, db_session, make_user, make_category, make_post):
        author = await make_user()
        category = await make_category()
        created = [await make_post(author, category, title=f"P{i}") for i in range(5)]

        page = await self.service.get_forum_posts(db_session, ForumPostsQuery(page=2, limit=2))
        assert [p.id for p in page] == [created[2].id, created[1].id]

    @pytest.mark.asyncio
    async def test_viewer_state(self, db_session, make_user, make_category, make_post):
        author = await make_user()
        viewer = await make_user()
        category = await make_category()
        voted = await make_post(author, category, title="voted")
        marked = await make_post(author, category, title="marked")

        await self.service.vote_on_post(
            db_session, VotePostInput(post_id=voted.id, vote_type=VoteType.UP), viewer.id
        )
        await self.service.toggle_bookmark(db_session, BookmarkPostInput(post_id=marked.id), viewer.id)

        posts = {p.id: p for p in await self.service.get_forum_posts(
            db_session, ForumPostsQuery(), user_id=viewer.id
        )}
        assert posts[voted.id].user_vote == VoteType.UP
        assert posts[voted.id].is_bookmarked is False
        assert posts[marked.id].user_vote is None
        assert posts[marked.id].is_bookmarked is True

        anonymous = await self.service.get_forum_posts(db_session, ForumPostsQuery())
        assert all(p.user_vote is None and p.is_bookmarked is None for p in anonymous)


class TestPostDetail:

    def setup_method(self):
        self.service = ForumService()

    @pytest.mark.asyncio
    async def test_each_read_counts_a_view(self, db_session, make_user, make_category, make_post):
        author = await make_user()
        post = await make_post(author, await make_category())

        first = await self.service.get_forum_post_by_id(db_session, post.id)
        second = await self.service.get_forum_post_by_id(db_session, post.id)

        assert first.view_count == 1
        assert second.view_count == 2

    @pytest.mark.asyncio
    async def test_missing_post_is_none(self, db_session):
        assert await self.service.get_forum_post_by_id(db_session, 404) is None


class TestPostUpdate:

    def setup_method(self):
        self.service = ForumService()

    async def _post(self, db, make_user, make_category):
        author = await make_user()
        category = await make_category()
        post = await self.service.create_forum_post(
            db,
            CreateForumPostInput(title="Original", content="<p>Original body</p>",
                                 category_id=category.id, tags=["crown", "zirconia"]),
            author.id,
        )
        return author, category, post

    @pytest.mark.asyncio
    async def test_missing_post_is_none(self, db_session, make_user):
        user = await make_user()
        result = await self.service.update_forum_post(
            db_session, UpdateForumPostInput(id=999, title="x"), user.id
        )
        assert result is None

    @pytest.mark.asyncio
    async def test_non_author_is_forbidden(self, db_session, make_user, make_category):
        _, _, post = await self._post(db_session, make_user, make_category)
        stranger = await make_user()

        with pytest.raises(ForbiddenError, match="Only the author can update this post"):
            await self.service.update_forum_post(
                db_session, UpdateForumPostInput(id=post.id, title="Hijack"), stranger.id
            )

    @pytest.mark.asyncio
    async def test_new_content_rederives_excerpt(self, db_session, make_user, make_category):
        author, _, post = await self._post(db_session, make_user, make_category)

        updated = await self.service.update_forum_post(
            db_session,
            UpdateForumPostInput(id=post.id, content="<h1>Revised</h1> body"),
            author.id,
        )
        assert updated.content == "<h1>Revised</h1> body"
        assert updated.excerpt == "Revised body"
        assert updated.title == "Original"

    @pytest.mark.asyncio
    async def test_explicit_null_excerpt_clears_it(self, db_session, make_user, make_category):
        author, _, post = await self._post(db_session, make_user, make_category)

        updated = await self.service.update_forum_post(
            db_session, UpdateForumPostInput(id=post.id, excerpt=None), author.id
        )
        assert updated.excerpt is None

    @pytest.mark.asyncio
    async def test_tags_are_replaced(self, db_session, make_user, make_category):
        author, _, post = await self._post(db_session, make_user, make_category)

        await self.service.update_forum_post(
            db_session, UpdateForumPostInput(id=post.id, tags=["emax", " emax ", ""]), author.id
        )
        tags = await db_session.scalars(
            select(ForumPostTag.tag).where(ForumPostTag.post_id == post.id)
        )
        assert list(tags) == ["emax"]

    @pytest.mark.asyncio
    async def test_unknown_new_category_is_not_found(self, db_session, make_user, make_category):
        author, _, post = await self._post(db_session, make_user, make_category)

        with pytest.raises(NotFoundError):
            await self.service.update_forum_post(
                db_session, UpdateForumPostInput(id=post.id, category_id=777), author.id
            )


class TestPostDeletion:

    def setup_method(self):
        self.service = ForumService()

    @pytest.mark.asyncio
    async def test_delete_removes_all_dependents(self, db_session, make_user, make_category):
        author = await make_user()
        reader = await make_user()
        category = await make_category()
        post = await self.service.create_forum_post(
            db_session,
            CreateForumPostInput(title="Doomed", content="x", category_id=category.id,
                                 tags=["a", "b"]),
            author.id,
        )
        await self.service.create_forum_comment(
            db_session, CreateForumCommentInput(post_id=post.id, content="Nice"), reader.id
        )
        await self.service.vote_on_post(
            db_session, VotePostInput(post_id=post.id, vote_type=VoteType.UP), reader.id
        )
        await self.service.toggle_bookmark(db_session, BookmarkPostInput(post_id=post.id), reader.id)

        assert await self.service.delete_forum_post(db_session, post.id, author.id) is True

        for model in (ForumPostTag, ForumComment, UserPostVote, UserBookmark):
            assert await _count(db_session, model, model.post_id == post.id) == 0
        assert await _count(db_session, ForumPost, ForumPost.id == post.id) == 0

    @pytest.mark.asyncio
    async def test_non_author_cannot_delete(self, db_session, make_user, make_category, make_post):
        author = await make_user()
        post = await make_post(author, await make_category())
        stranger = await make_user()

        with pytest.raises(ForbiddenError):
            await self.service.delete_forum_post(db_session, post.id, stranger.id)
        assert await _count(db_session, ForumPost) == 1

    @pytest.mark.asyncio
    async def test_missing_post_is_false(self, db_session, make_user):
        user = await make_user()
        assert await self.service.delete_forum_post(db_session, 12345, user.id) is False


class TestComments:

    def setup_method(self):
        self.service = ForumService()

    @pytest.mark.asyncio
    async def test_each_comment_increments_count_by_one(
        self, db_session, make_user, make_category, make_post, reload
    ):
        author = await make_user()
        post = await make_post(author, await make_category())

        for expected in (1, 2, 3):
            await self.service.create_forum_comment(
                db_session, CreateForumCommentInput(post_id=post.id, content=f"#{expected}"),
                author.id,
            )
            refreshed = await reload(ForumPost, post.id)
            assert refreshed.comment_count == expected

    @pytest.mark.asyncio
    async def test_comments_listed_oldest_first(self, db_session, make_user, make_category, make_post):
        author = await make_user()
        post = await make_post(author, await make_category())
        for text in ("first", "second", "third"):
            await self.service.create_forum_comment(
                db_session, CreateForumCommentInput(post_id=post.id, content=text), author.id
            )

        comments = await self.service.get_forum_comments(db_session, post.id)
        assert [c.content for c in comments] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_missing_post_is_not_found(self, db_session, make_user):
        user = await make_user()
        with pytest.raises(NotFoundError):
            await self.service.create_forum_comment(
                db_session, CreateForumCommentInput(post_id=31337, content="hi"), user.id
            )
        assert await _count(db_session, ForumComment) == 0

    @pytest.mark.asyncio
    async def test_post_author_is_notified_of_others_comments(
        self, db_session, make_user, make_category, make_post
    ):
        author = await make_user()
        reader = await make_user()
        post = await make_post(author, await make_category())

        await self.service.create_forum_comment(
            db_session, CreateForumCommentInput(post_id=post.id, content="Own note"), author.id
        )
        assert await _count(db_session, Notification) == 0

        await self.service.create_forum_comment(
            db_session, CreateForumCommentInput(post_id=post.id, content="Great case"), reader.id
        )
        notifications = (await db_session.scalars(select(Notification))).all()
        assert len(notifications) == 1
        assert notifications[0].user_id == author.id
        assert notifications[0].type == NotificationType.COMMENT

        activity_types = (await db_session.scalars(select(ActivityLog.type))).all()
        assert activity_types.count(ActivityType.COMMENT_ADDED) == 2


class TestVoting:

    def setup_method(self):
        self.service = ForumService()

    async def _vote(self, db, post_id, user_id, vote_type):
        return await self.service.vote_on_post(
            db, VotePostInput(post_id=post_id, vote_type=vote_type), user_id
        )

    @pytest.mark.asyncio
    async def test_upvote_twice_cancels(
        self, db_session, make_user, make_category, make_post, reload
    ):
        author = await make_user()
        voter = await make_user()
        post = await make_post(author, await make_category())

        assert await self._vote(db_session, post.id, voter.id, VoteType.UP) is True
        assert (await reload(ForumPost, post.id)).upvotes == 1

        assert await self._vote(db_session, post.id, voter.id, VoteType.UP) is True
        refreshed = await reload(ForumPost, post.id)
        assert refreshed.upvotes == 0
        assert refreshed.downvotes == 0
        assert await _count(db_session, UserPostVote) == 0

    @pytest.mark.asyncio
    async def test_up_then_down_flips(
        self, db_session, make_user, make_category, make_post, reload
    ):
        author = await make_user()
        voter = await make_user()
        post = await make_post(author, await make_category())

        await self._vote(db_session, post.id, voter.id, VoteType.UP)
        before = await reload(ForumPost, post.id)
        up_before, down_before = before.upvotes, before.downvotes

        await self._vote(db_session, post.id, voter.id, VoteType.DOWN)
        after = await reload(ForumPost, post.id)
        assert after.upvotes == up_before - 1
        assert after.downvotes == down_before + 1

        votes = (await db_session.scalars(select(UserPostVote))).all()
        assert len(votes) == 1
        assert votes[0].vote_type == VoteType.DOWN

    @pytest.mark.asyncio
    async def test_votes_from_different_users_accumulate(
        self, db_session, make_user, make_category, make_post, reload
    ):
        author = await make_user()
        post = await make_post(author, await make_category())
        for _ in range(3):
            voter = await make_user()
            await self._vote(db_session, post.id, voter.id, VoteType.UP)
        downvoter = await make_user()
        await self._vote(db_session, post.id, downvoter.id, VoteType.DOWN)

        refreshed = await reload(ForumPost, post.id)
        assert (refreshed.upvotes, refreshed.downvotes) == (3, 1)

    @pytest.mark.asyncio
    async def test_vote_on_missing_post(self, db_session, make_user):
        voter = await make_user()
        with pytest.raises(NotFoundError):
            await self._vote(db_session, 555, voter.id, VoteType.UP)


class TestBookmarks:

    def setup_method(self):
        self.service = ForumService()

    @pytest.mark.asyncio
    async def test_toggle_and_list(self, db_session, make_user, make_category, make_post):
        author = await make_user()
        reader = await make_user()
        category = await make_category()
        older = await make_post(author, category, title="older")
        newer = await make_post(author, category, title="newer")

        for post in (older, newer):
            assert await self.service.toggle_bookmark(
                db_session, BookmarkPostInput(post_id=post.id), reader.id
            ) is True

        bookmarks = await self.service.get_user_bookmarks(db_session, reader.id)
        assert [p.id for p in bookmarks] == [newer.id, older.id]
        assert all(p.is_bookmarked for p in bookmarks)

        await self.service.toggle_bookmark(db_session, BookmarkPostInput(post_id=older.id), reader.id)
        bookmarks = await self.service.get_user_bookmarks(db_session, reader.id)
        assert [p.id for p in bookmarks] == [newer.id]

    @pytest.mark.asyncio
    async def test_concurrent_bookmark_leaves_post_bookmarked(
        self, db_session, make_user, make_category, make_post, monkeypatch
    ):
        """Another request inserts the row after our lookup came back empty."""
        reader = await make_user()
        post = await make_post(await make_user(), await make_category())
        await db_session.execute(insert(UserBookmark).values(user_id=reader.id, post_id=post.id))
        monkeypatch.setattr(self.service, "_find_bookmark", AsyncMock(return_value=None))

        assert await self.service.toggle_bookmark(
            db_session, BookmarkPostInput(post_id=post.id), reader.id
        ) is True

        assert await _count(db_session, UserBookmark, UserBookmark.post_id == post.id) == 1
        # The request transaction is still usable afterwards
        bookmarks = await self.service.get_user_bookmarks(db_session, reader.id)
        assert [p.id for p in bookmarks] == [post.id]

    @pytest.mark.asyncio
    async def test_bookmark_missing_post(self, db_session, make_user):
        reader = await make_user()
        with pytest.raises(NotFoundError):
            await self.service.toggle_bookmark(db_session, BookmarkPostInput(post_id=9), reader.id)
