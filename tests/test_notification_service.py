"""
3sConnect Backend — Notification Service Tests
==============================================

What we test:
    ✅ notify() never writes a self-notification
    ✅ Recipient sees their notifications newest first, with excerpts
    ✅ Only the recipient can delete a notification
"""

import uuid

import pytest

from threesconnect.exceptions import ForbiddenError, NotFoundError
from threesconnect.models import NotificationType
from threesconnect.services.comment_service import CommentService
from threesconnect.services.notification_service import NotificationService
from threesconnect.services.post_service import PostService
from threesconnect.services.user_service import UserService


class TestNotify:

    def setup_method(self):
        self.service = NotificationService()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", list(NotificationType))
    async def test_self_notification_skipped(self, db, alice, kind):
        result = await self.service.notify(db, kind, from_user_id=alice.id, to_user_id=alice.id)

        assert result is None
        assert await self.service.list_notifications(db, "user_alice") == []

    @pytest.mark.asyncio
    async def test_notification_written(self, db, alice, bob):
        result = await self.service.notify(
            db, NotificationType.FOLLOW, from_user_id=bob.id, to_user_id=alice.id
        )

        assert result is not None
        assert result.id is not None


class TestRecipientOperations:

    def setup_method(self):
        self.service = NotificationService()
        self.posts = PostService()
        self.comments = CommentService()
        self.users = UserService()

    @pytest.mark.asyncio
    async def test_list_newest_first_with_excerpts(self, db, alice, bob, media):
        post = await self.posts.create_post(db, "user_alice", "Hello world", None, None, media)
        await self.posts.toggle_like(db, "user_bob", post.id)
        comment = await self.comments.create_comment(db, "user_bob", post.id, "Nice!")
        await self.users.toggle_follow(db, "user_bob", alice.id)

        notifications = await self.service.list_notifications(db, "user_alice")

        assert [n.type for n in notifications] == [
            NotificationType.FOLLOW,
            NotificationType.COMMENT,
            NotificationType.LIKE,
        ]
        assert all(n.from_user.username == "bob" for n in notifications)
        follow, commented, liked = notifications
        assert follow.post is None
        assert commented.post.content == "Hello world"
        assert commented.comment.id == comment.id
        assert liked.comment is None
        assert await self.service.list_notifications(db, "user_bob") == []

    @pytest.mark.asyncio
    async def test_recipient_deletes(self, db, alice, bob):
        notification = await self.service.notify(
            db, NotificationType.FOLLOW, from_user_id=bob.id, to_user_id=alice.id
        )

        await self.service.delete_notification(db, "user_alice", notification.id)

        assert await self.service.list_notifications(db, "user_alice") == []

    @pytest.mark.asyncio
    async def test_non_recipient_forbidden(self, db, alice, bob):
        notification = await self.service.notify(
            db, NotificationType.FOLLOW, from_user_id=bob.id, to_user_id=alice.id
        )

        with pytest.raises(ForbiddenError):
            await self.service.delete_notification(db, "user_bob", notification.id)

    @pytest.mark.asyncio
    async def test_missing_notification(self, db, alice):
        with pytest.raises(NotFoundError):
            await self.service.delete_notification(db, "user_alice", uuid.uuid4())
