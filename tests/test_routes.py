"""
3sConnect Backend — API Endpoint Tests
======================================

What:  End-to-end checks of the HTTP surface through create_app() with fake
       collaborators and an in-memory database.

What we test:
    ✅ Auth: 401 without / with an invalid token on every mutating route
    ✅ Sync: 201 then 200, identity provider failure → 502
    ✅ Posts: multipart create (text, image), like toggle, cascade delete
    ✅ Comments, follow, notifications, profiles
    ✅ Error envelope: error kind, message, request id, field-only details
    ✅ Public profile without identity key or email
    ✅ Transaction: committed before the response, failed commit → 500
"""

import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession


def auth(external_id: str) -> dict:
    return {"Authorization": f"Bearer token-{external_id}"}


async def _create_post(client, external_id="user_alice", content="Hello", files=None):
    response = await client.post(
        "/api/posts", data={"content": content}, files=files, headers=auth(external_id)
    )
    assert response.status_code == 201, response.text
    return response.json()["post"]


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"


class TestAuthentication:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/posts"),
            ("POST", f"/api/posts/{uuid.uuid4()}/like"),
            ("DELETE", f"/api/posts/{uuid.uuid4()}"),
            ("POST", f"/api/comments/post/{uuid.uuid4()}"),
            ("DELETE", f"/api/comments/{uuid.uuid4()}"),
            ("POST", f"/api/follow/{uuid.uuid4()}"),
            ("POST", "/api/users/sync"),
            ("GET", "/api/users/me"),
            ("PUT", "/api/users/profile"),
            ("GET", "/api/notifications"),
            ("DELETE", f"/api/notifications/{uuid.uuid4()}"),
        ],
    )
    async def test_mutations_require_identity(self, client, method, path):
        response = await client.request(method, path)

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_invalid_token_rejected(self, client, alice):
        response = await client.get("/api/users/me", headers={"Authorization": "Bearer forged"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_reads_are_public(self, client):
        response = await client.get("/api/posts")
        assert response.status_code == 200
        assert response.json() == {"posts": []}


class TestUsers:

    @pytest.mark.asyncio
    async def test_sync_creates_then_returns_existing(self, client, identity):
        identity.register("user_jane", "jane@example.com", "Jane", "Doe")

        first = await client.post("/api/users/sync", headers=auth("user_jane"))
        second = await client.post("/api/users/sync", headers=auth("user_jane"))

        assert first.status_code == 201
        assert first.json()["user"]["username"] == "jane"
        assert second.status_code == 200
        assert second.json()["user"]["id"] == first.json()["user"]["id"]
        assert second.json()["message"] == "User already exists"

    @pytest.mark.asyncio
    async def test_sync_provider_failure_is_502(self, client, identity):
        identity.register("user_jane", "jane@example.com")
        identity.fail_profiles = True

        response = await client.post("/api/users/sync", headers=auth("user_jane"))

        assert response.status_code == 502
        assert response.json()["error"] == "identity_provider_error"

    @pytest.mark.asyncio
    async def test_me_for_unsynced_identity_is_404(self, client, identity):
        identity.register("user_new", "new@example.com")

        response = await client.get("/api/users/me", headers=auth("user_new"))

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_profile_reads_username_from_path(self, client, alice, bob):
        response = await client.get("/api/users/profile/bob")

        assert response.status_code == 200
        assert response.json()["user"]["id"] == str(bob.id)

    @pytest.mark.asyncio
    async def test_profile_unknown_username(self, client):
        response = await client.get("/api/users/profile/nobody")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_profile(self, client, alice):
        response = await client.put(
            "/api/users/profile", json={"bio": "Hi there"}, headers=auth("user_alice")
        )

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["bio"] == "Hi there"
        assert user["first_name"] == "Alice"

    @pytest.mark.asyncio
    async def test_bio_over_160_is_validation_error(self, client, alice):
        response = await client.put(
            "/api/users/profile", json={"bio": "b" * 161}, headers=auth("user_alice")
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestPosts:

    @pytest.mark.asyncio
    async def test_create_text_post(self, client, alice):
        post = await _create_post(client, content="Hello")

        assert post["content"] == "Hello"
        assert post["image"] == ""
        assert post["likes"] == []
        assert post["comments"] == []
        assert post["user"]["username"] == "alice"

    @pytest.mark.asyncio
    async def test_create_image_post(self, client, alice, media, sample_image_bytes):
        post = await _create_post(
            client, content="", files={"image": ("photo.jpg", sample_image_bytes, "image/jpeg")}
        )

        assert post["image"] == "https://media.test/3sConnect_posts/1.jpg"
        assert len(media.uploads) == 1

    @pytest.mark.asyncio
    async def test_empty_post_is_400(self, client, alice):
        response = await client.post(
            "/api/posts", data={"content": ""}, headers=auth("user_alice")
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["request_id"]

    @pytest.mark.asyncio
    async def test_upload_failure_is_502_and_nothing_saved(
        self, client, alice, media, sample_image_bytes
    ):
        media.fail = True

        response = await client.post(
            "/api/posts",
            data={"content": "pic"},
            files={"image": ("photo.jpg", sample_image_bytes, "image/jpeg")},
            headers=auth("user_alice"),
        )

        assert response.status_code == 502
        assert response.json()["error"] == "upload_error"
        assert (await client.get("/api/posts")).json()["posts"] == []

    @pytest.mark.asyncio
    async def test_unsynced_actor_is_404(self, client, identity):
        identity.register("user_ghost", "ghost@example.com")

        response = await client.post(
            "/api/posts", data={"content": "boo"}, headers=auth("user_ghost")
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_like_toggle_round_trip(self, client, alice, bob):
        post = await _create_post(client)

        liked = await client.post(f"/api/posts/{post['id']}/like", headers=auth("user_bob"))
        assert liked.json() == {"message": "Post liked successfully", "liked": True}
        after_like = (await client.get(f"/api/posts/{post['id']}")).json()["post"]
        assert after_like["likes"] == [str(bob.id)]

        unliked = await client.post(f"/api/posts/{post['id']}/like", headers=auth("user_bob"))
        assert unliked.json() == {"message": "Post unliked successfully", "liked": False}
        after_unlike = (await client.get(f"/api/posts/{post['id']}")).json()["post"]
        assert after_unlike["likes"] == []

    @pytest.mark.asyncio
    async def test_like_missing_post_is_404(self, client, bob):
        response = await client.post(f"/api/posts/{uuid.uuid4()}/like", headers=auth("user_bob"))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_malformed_post_id_is_400(self, client):
        response = await client.get("/api/posts/not-a-uuid")
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_user_posts(self, client, alice, bob):
        await _create_post(client, "user_alice", "from alice")
        await _create_post(client, "user_bob", "from bob")

        response = await client.get("/api/posts/user/bob")

        assert [p["content"] for p in response.json()["posts"]] == ["from bob"]

    @pytest.mark.asyncio
    async def test_delete_cascade(self, client, alice, bob):
        post = await _create_post(client)
        comment = (
            await client.post(
                f"/api/comments/post/{post['id']}", json={"content": "Nice"}, headers=auth("user_bob")
            )
        ).json()["comment"]

        forbidden = await client.delete(f"/api/posts/{post['id']}", headers=auth("user_bob"))
        assert forbidden.status_code == 403
        assert forbidden.json()["error"] == "forbidden"

        deleted = await client.delete(f"/api/posts/{post['id']}", headers=auth("user_alice"))
        assert deleted.status_code == 200

        assert (await client.get(f"/api/posts/{post['id']}")).status_code == 404
        assert (await client.get(f"/api/comments/{comment['id']}")).status_code == 404
        assert (await client.get(f"/api/comments/post/{post['id']}")).json() == {"comments": []}
        notifications = await client.get("/api/notifications", headers=auth("user_alice"))
        assert notifications.json() == {"notifications": []}


class TestComments:

    @pytest.mark.asyncio
    async def test_comment_flow(self, client, alice, bob):
        post = await _create_post(client)

        created = await client.post(
            f"/api/comments/post/{post['id']}", json={"content": "Nice!"}, headers=auth("user_bob")
        )
        assert created.status_code == 201
        comment = created.json()["comment"]

        feed_post = (await client.get(f"/api/posts/{post['id']}")).json()["post"]
        assert [c["id"] for c in feed_post["comments"]] == [comment["id"]]
        assert feed_post["comments"][0]["user"]["username"] == "bob"

        notifications = (
            await client.get("/api/notifications", headers=auth("user_alice"))
        ).json()["notifications"]
        assert len(notifications) == 1
        assert notifications[0]["type"] == "comment"
        assert notifications[0]["comment"]["id"] == comment["id"]

        deleted = await client.delete(f"/api/comments/{comment['id']}", headers=auth("user_bob"))
        assert deleted.status_code == 200
        assert (await client.get(f"/api/comments/{comment['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_whitespace_comment_is_400(self, client, alice):
        post = await _create_post(client)

        response = await client.post(
            f"/api/comments/post/{post['id']}", json={"content": "   "}, headers=auth("user_alice")
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_comment_on_missing_post_is_404(self, client, alice):
        response = await client.post(
            f"/api/comments/post/{uuid.uuid4()}", json={"content": "hi"}, headers=auth("user_alice")
        )
        assert response.status_code == 404


class TestFollowAndNotifications:

    @pytest.mark.asyncio
    async def test_follow_toggle(self, client, alice, bob):
        followed = await client.post(f"/api/follow/{bob.id}", headers=auth("user_alice"))
        assert followed.json() == {"message": "User followed successfully", "following": True}

        me = (await client.get("/api/users/me", headers=auth("user_alice"))).json()["user"]
        them = (await client.get("/api/users/profile/bob")).json()["user"]
        assert me["following"] == [str(bob.id)]
        assert them["followers"] == [str(alice.id)]

        unfollowed = await client.post(f"/api/follow/{bob.id}", headers=auth("user_alice"))
        assert unfollowed.json()["following"] is False
        them = (await client.get("/api/users/profile/bob")).json()["user"]
        assert them["followers"] == []

    @pytest.mark.asyncio
    async def test_self_follow_is_400(self, client, alice):
        response = await client.post(f"/api/follow/{alice.id}", headers=auth("user_alice"))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_follow_unknown_target_is_404(self, client, alice):
        response = await client.post(f"/api/follow/{uuid.uuid4()}", headers=auth("user_alice"))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_notification_delete_only_by_recipient(self, client, alice, bob):
        await client.post(f"/api/follow/{bob.id}", headers=auth("user_alice"))
        notifications = (
            await client.get("/api/notifications", headers=auth("user_bob"))
        ).json()["notifications"]
        assert len(notifications) == 1
        assert notifications[0]["type"] == "follow"
        assert notifications[0]["from_user"]["username"] == "alice"
        notification_id = notifications[0]["id"]

        forbidden = await client.delete(
            f"/api/notifications/{notification_id}", headers=auth("user_alice")
        )
        assert forbidden.status_code == 403

        deleted = await client.delete(
            f"/api/notifications/{notification_id}", headers=auth("user_bob")
        )
        assert deleted.status_code == 200
        remaining = await client.get("/api/notifications", headers=auth("user_bob"))
        assert remaining.json() == {"notifications": []}


class TestErrorEnvelope:

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get(
            f"/api/posts/{uuid.uuid4()}", headers={"X-Request-ID": "trace-123"}
        )

        assert response.status_code == 404
        assert response.headers["X-Request-ID"] == "trace-123"
        assert response.json()["request_id"] == "trace-123"
        assert "context" not in response.json()

    @pytest.mark.asyncio
    async def test_validation_details_name_only_the_field(self, client, identity):
        identity.register("user_nomail", "")

        response = await client.post("/api/users/sync", headers=auth("user_nomail"))

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "email"}
        assert "user_nomail" not in response.text


class TestPublicProfile:

    @pytest.mark.asyncio
    async def test_profile_hides_identity_key_and_email(self, client, bob):
        user = (await client.get("/api/users/profile/bob")).json()["user"]

        assert user["username"] == "bob"
        assert "clerk_id" not in user
        assert "email" not in user

    @pytest.mark.asyncio
    async def test_owner_still_sees_own_email(self, client, alice):
        user = (await client.get("/api/users/me", headers=auth("user_alice"))).json()["user"]

        assert user["email"] == "alice@example.com"
        assert user["clerk_id"] == "user_alice"


class TestTransaction:

    @pytest.mark.asyncio
    async def test_commit_finishes_before_response_starts(self, app, alice, bob, monkeypatch):
        events = []
        commit = AsyncSession.commit

        async def recording_commit(session):
            events.append("commit")
            await commit(session)

        async def recording_app(scope, receive, send):
            async def recording_send(message):
                if message["type"] == "http.response.start":
                    events.append("response_start")
                await send(message)

            await app(scope, receive, recording_send)

        monkeypatch.setattr(AsyncSession, "commit", recording_commit)
        transport = ASGITransport(app=recording_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(f"/api/follow/{bob.id}", headers=auth("user_alice"))

        assert response.status_code == 200
        assert events == ["commit", "response_start"]

    @pytest.mark.asyncio
    async def test_failed_commit_is_500_and_nothing_saved(self, client, alice, bob, monkeypatch):
        async def failing_commit(session):
            raise OperationalError("COMMIT", {}, Exception("could not serialize access"))

        with monkeypatch.context() as patch:
            patch.setattr(AsyncSession, "commit", failing_commit)
            response = await client.post(f"/api/follow/{bob.id}", headers=auth("user_alice"))

        assert response.status_code == 500
        assert response.json()["error"] == "internal_error"
        me = (await client.get("/api/users/me", headers=auth("user_alice"))).json()["user"]
        assert me["following"] == []
        notifications = await client.get("/api/notifications", headers=auth("user_bob"))
        assert notifications.json() == {"notifications": []}
