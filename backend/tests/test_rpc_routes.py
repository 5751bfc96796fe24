"""
DentalHub Backend: RPC Route Tests
==================================

What we test (through the HTTP stack, with the test session injected):
    ✅ Health probes (GET/POST healthcheck, /health up and down)
    ✅ Registered users never expose the password hash
    ✅ Error mapping: 400 / 403 / 404 / 409 bodies, 422 for schema errors
    ✅ Request id propagation
    ✅ A representative forum/case/notification/dashboard flow
"""

import logging
from unittest.mock import MagicMock

import pytest

from dentalhub.middleware.logging import procedure_name


def register_payload(**overrides):
    payload = {
        "name": "Dr. Kim",
        "email": "dr.kim@dentalhub.io",
        "password": "open-sesame-42",
        "professional_type": "specialist",
    }
    payload.update(overrides)
    return payload


class TestHealth:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "POST"])
    async def test_healthcheck(self, test_client, method):
        response = await test_client.request(method, "/rpc/healthcheck")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_health_connected(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    @pytest.mark.asyncio
    async def test_health_reports_503_when_database_is_down(self, test_client, monkeypatch):
        broken = MagicMock()
        broken.connect.side_effect = OSError("connection refused")
        monkeypatch.setattr("dentalhub.routes.health.engine", broken)

        response = await test_client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["database"] == "disconnected"


class TestAuthRoutes:

    @pytest.mark.asyncio
    async def test_register_hides_password(self, test_client):
        response = await test_client.post("/rpc/auth.register", json=register_payload())

        assert response.status_code == 200
        body = response.json()
        assert "password" not in body
        assert body["email"] == "dr.kim@dentalhub.io"
        assert body["is_verified"] is False

    @pytest.mark.asyncio
    async def test_duplicate_email_is_409(self, test_client):
        await test_client.post("/rpc/auth.register", json=register_payload())
        response = await test_client.post("/rpc/auth.register", json=register_payload())

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_login_returns_user_or_null(self, test_client):
        await test_client.post("/rpc/auth.register", json=register_payload())

        good = await test_client.post(
            "/rpc/auth.login",
            json={"email": "dr.kim@dentalhub.io", "password": "open-sesame-42"},
        )
        bad = await test_client.post(
            "/rpc/auth.login",
            json={"email": "dr.kim@dentalhub.io", "password": "wrong-password"},
        )

        assert good.status_code == 200
        assert good.json()["email"] == "dr.kim@dentalhub.io"
        assert "password" not in good.json()
        assert bad.status_code == 200
        assert bad.json() is None

    @pytest.mark.asyncio
    async def test_user_listing_hides_passwords(self, test_client, make_user):
        await make_user()
        await make_user()

        response = await test_client.post("/rpc/users.list", json={})
        assert response.status_code == 200
        assert len(response.json()) == 2
        assert all("password" not in user for user in response.json())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides", [
        {"email": "not-an-email"},
        {"password": "short"},
        {"professional_type": "dentist"},
    ])
    async def test_schema_errors_are_422(self, test_client, overrides):
        response = await test_client.post("/rpc/auth.register", json=register_payload(**overrides))
        assert response.status_code == 422


class TestErrorMapping:

    @pytest.mark.asyncio
    async def test_forbidden_is_403(self, test_client, make_user, make_category, make_post):
        author = await make_user()
        stranger = await make_user()
        post = await make_post(author, await make_category())

        response = await test_client.post(
            "/rpc/forum.posts.update",
            json={"id": post.id, "user_id": stranger.id, "title": "Hijacked"},
        )

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "forbidden"
        assert body["message"] == "Only the author can update this post"

    @pytest.mark.asyncio
    async def test_missing_reference_is_404(self, test_client, make_user):
        user = await make_user()

        response = await test_client.post(
            "/rpc/forum.comments.create",
            json={"post_id": 999, "author_id": user.id, "content": "Hello?"},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_business_validation_is_400(self, test_client, make_user, make_case):
        owner = await make_user()
        case = await make_case(owner)

        response = await test_client.post(
            "/rpc/cases.files.upload",
            json={"case_id": case.id, "user_id": owner.id, "file_name": "tool.exe",
                  "file_type": "application/octet-stream", "file_size": 10},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "file_name"

    @pytest.mark.asyncio
    async def test_missing_target_is_null(self, test_client):
        response = await test_client.post("/rpc/forum.posts.getById", json={"post_id": 31337})
        assert response.status_code == 200
        assert response.json() is None


class TestRequestId:

    @pytest.mark.asyncio
    async def test_generated_when_absent(self, test_client):
        response = await test_client.post("/rpc/healthcheck")
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_echoed_and_included_in_errors(self, test_client, make_user):
        user = await make_user()

        response = await test_client.post(
            "/rpc/forum.comments.create",
            json={"post_id": 1, "author_id": user.id, "content": "x"},
            headers={"X-Request-ID": "trace-123"},
        )

        assert response.headers["X-Request-ID"] == "trace-123"
        assert response.json()["request_id"] == "trace-123"


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_forum_flow(self, test_client, make_user, make_category):
        author = await make_user()
        reader = await make_user()
        category = await make_category()

        created = await test_client.post(
            "/rpc/forum.posts.create",
            json={"title": "Bonding protocol", "content": "<p>Etch, prime, bond</p>",
                  "category_id": category.id, "author_id": author.id, "tags": ["bonding"]},
        )
        assert created.status_code == 200
        post_id = created.json()["id"]
        assert created.json()["excerpt"] == "Etch, prime, bond"

        await test_client.post(
            "/rpc/forum.posts.vote",
            json={"post_id": post_id, "user_id": reader.id, "vote_type": "up"},
        )
        await test_client.post(
            "/rpc/forum.comments.create",
            json={"post_id": post_id, "author_id": reader.id, "content": "Which primer?"},
        )

        listing = await test_client.post(
            "/rpc/forum.posts.list",
            json={"tag": "bonding", "sort_by": "mostVoted", "user_id": reader.id},
        )
        [post] = listing.json()
        assert post["upvotes"] == 1
        assert post["comment_count"] == 1
        assert post["user_vote"] == "up"

        unread = await test_client.post("/rpc/notifications.unreadCount",
                                         json={"user_id": author.id})
        assert unread.json() == 1

        stats = await test_client.post("/rpc/dashboard.stats")
        assert stats.json()["total_posts"] == 1
        assert stats.json()["total_engagement"] == 2

    @pytest.mark.asyncio
    async def test_case_flow(self, test_client, make_user):
        owner = await make_user()
        tech = await make_user()

        created = await test_client.post(
            "/rpc/cases.create",
            json={"title": "Full arch", "description": "All-on-4", "case_type": "implant",
                  "priority": "urgent", "creator_id": owner.id},
        )
        assert created.status_code == 200
        case_id = created.json()["id"]
        assert created.json()["status"] == "draft"

        hidden = await test_client.post("/rpc/cases.getById",
                                        json={"case_id": case_id, "user_id": tech.id})
        assert hidden.status_code == 403

        added = await test_client.post(
            "/rpc/cases.collaborators.add",
            json={"case_id": case_id, "user_id": tech.id, "role": "viewer",
                  "requester_id": owner.id},
        )
        assert added.json() is True

        visible = await test_client.post("/rpc/cases.getById",
                                         json={"case_id": case_id, "user_id": tech.id})
        assert visible.status_code == 200
        assert [c["user_id"] for c in visible.json()["collaborators"]] == [tech.id]

        inbox = await test_client.post("/rpc/notifications.list", json={"user_id": tech.id})
        assert [n["type"] for n in inbox.json()] == ["collaboration_invite"]

        anonymous = await test_client.post("/rpc/cases.list", json={})
        assert anonymous.json() == []


class TestAccessLog:

    def test_procedure_name(self):
        assert procedure_name("/rpc/cases.files.upload") == "cases.files.upload"
        assert procedure_name("/docs") == "/docs"

    @pytest.mark.asyncio
    async def test_rpc_call_is_logged_by_procedure(self, test_client, make_user, caplog):
        user = await make_user()

        with caplog.at_level(logging.INFO, logger="dentalhub.access"):
            await test_client.post(
                "/rpc/forum.comments.create",
                json={"post_id": 404, "author_id": user.id, "content": "lost"},
            )

        [record] = [r for r in caplog.records if r.name == "dentalhub.access"]
        assert record.procedure == "forum.comments.create"
        assert record.status == 404
        assert record.levelno == logging.WARNING

    @pytest.mark.asyncio
    async def test_health_probes_are_not_logged(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="dentalhub.access"):
            await test_client.get("/rpc/healthcheck")
        assert not [r for r in caplog.records if r.name == "dentalhub.access"]
