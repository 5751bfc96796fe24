"""
DentalHub Backend: Dashboard Service Tests
==========================================

What we test:
    ✅ Stats on an empty database are all zero
    ✅ active_cases / active_users honour the activity window
    ✅ total_engagement = votes + comments
    ✅ Activity feed is newest first and paginates in pages of 20 by default
    ✅ Per-user activity
"""

from datetime import datetime, timedelta, timezone

import pytest

from dentalhub.models import ActivityLog, ForumComment, UserPostVote
from dentalhub.models.enums import ActivityType, CaseStatus, VoteType
from dentalhub.schemas.common import FeedPageParams
from dentalhub.schemas.notification import ActivityFeedQuery, CreateActivityLogInput
from dentalhub.services.dashboard_service import DashboardService

NOW = datetime.now(timezone.utc)


class TestDashboardStats:

    def setup_method(self):
        self.service = DashboardService(activity_window_days=30)

    @pytest.mark.asyncio
    async def test_empty_database(self, db_session):
        stats = await self.service.get_dashboard_stats(db_session)
        assert stats.model_dump() == {
            "total_cases": 0,
            "active_cases": 0,
            "total_posts": 0,
            "active_users": 0,
            "total_engagement": 0,
        }

    @pytest.mark.asyncio
    async def test_counts_and_activity_window(
        self, db_session, make_user, make_case, make_category, make_post
    ):
        recent = await make_user()
        dormant = await make_user()
        dormant.updated_at = NOW - timedelta(days=45)

        fresh_active = await make_case(recent, "fresh")
        fresh_active.status = CaseStatus.ACTIVE
        stale_active = await make_case(recent, "stale")
        stale_active.status = CaseStatus.ACTIVE
        stale_active.updated_at = NOW - timedelta(days=31)
        await make_case(recent, "draft")

        category = await make_category()
        post = await make_post(recent, category)
        await make_post(dormant, category)
        db_session.add_all([
            UserPostVote(user_id=recent.id, post_id=post.id, vote_type=VoteType.UP),
            UserPostVote(user_id=dormant.id, post_id=post.id, vote_type=VoteType.DOWN),
            ForumComment(post_id=post.id, author_id=dormant.id, content="Agreed"),
        ])
        await db_session.flush()

        stats = await self.service.get_dashboard_stats(db_session)

        assert stats.total_cases == 3
        assert stats.active_cases == 1
        assert stats.total_posts == 2
        assert stats.active_users == 1
        assert stats.total_engagement == 3

    @pytest.mark.asyncio
    async def test_window_is_configurable(self, db_session, make_user):
        user = await make_user()
        user.updated_at = NOW - timedelta(days=45)
        await db_session.flush()

        assert (await DashboardService(activity_window_days=30).get_dashboard_stats(
            db_session)).active_users == 0
        assert (await DashboardService(activity_window_days=60).get_dashboard_stats(
            db_session)).active_users == 1


class TestActivityFeed:

    def setup_method(self):
        self.service = DashboardService()

    async def _seed(self, db, users, count):
        """``count`` entries, one minute apart, oldest first; users alternate."""
        entries = []
        for i in range(count):
            entry = ActivityLog(
                user_id=users[i % len(users)].id,
                type=ActivityType.CASE_UPDATED,
                title=f"entry {i}",
                description="",
                timestamp=NOW - timedelta(minutes=count - i),
            )
            db.add(entry)
            entries.append(entry)
        await db.flush()
        return entries

    @pytest.mark.asyncio
    async def test_pages_newest_first(self, db_session, make_user):
        user = await make_user()
        entries = await self._seed(db_session, [user], 5)

        page_two = await self.service.get_activity_feed(
            db_session, ActivityFeedQuery(page=2, limit=2)
        )
        assert [a.id for a in page_two] == [entries[2].id, entries[1].id]

        page_three = await self.service.get_activity_feed(
            db_session, ActivityFeedQuery(page=3, limit=2)
        )
        assert [a.id for a in page_three] == [entries[0].id]

    @pytest.mark.asyncio
    async def test_default_page_size_is_twenty(self, db_session, make_user):
        user = await make_user()
        await self._seed(db_session, [user], 25)

        feed = await self.service.get_activity_feed(db_session, ActivityFeedQuery())
        assert len(feed) == 20
        assert feed[0].title == "entry 24"

    @pytest.mark.asyncio
    async def test_user_activity_and_feed_filter(self, db_session, make_user):
        alice = await make_user()
        bob = await make_user()
        entries = await self._seed(db_session, [alice, bob], 6)
        bobs = [e.id for e in reversed(entries) if e.user_id == bob.id]

        assert [a.id for a in await self.service.get_user_activity(
            db_session, bob.id, FeedPageParams()
        )] == bobs
        assert [a.id for a in await self.service.get_activity_feed(
            db_session, ActivityFeedQuery(user_id=bob.id)
        )] == bobs

    @pytest.mark.asyncio
    async def test_create_activity_log_exposes_metadata(self, db_session, make_user):
        user = await make_user()

        entry = await self.service.create_activity_log(
            db_session,
            CreateActivityLogInput(
                user_id=user.id,
                type=ActivityType.COLLABORATION_STARTED,
                title="Collaboration started",
                description="Joined a case",
                metadata='{"case_id": 1}',
            ),
        )

        assert entry.metadata == '{"case_id": 1}'
        feed = await self.service.get_user_activity(db_session, user.id, FeedPageParams())
        assert [a.id for a in feed] == [entry.id]
