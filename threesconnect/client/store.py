"""
3sConnect Client — Social Client
================================

What:  The read/mutate facade a UI layer uses. Reads go through the query
       cache; mutations call the API and, only when they succeed,
       invalidate every cache key whose data they changed.

Invalidation contract:
    ┌─────────────────────────────┬─────────────────────────────────────────┐
    │ Mutation                    │ Invalidated prefixes                    │
    ├─────────────────────────────┼─────────────────────────────────────────┤
    │ sync_user                   │ authUser                                │
    │ update_profile              │ authUser, userProfile, posts, userPosts │
    │ create_post                 │ posts, userPosts                        │
    │ toggle_like                 │ posts, userPosts, post(id)              │
    │ delete_post                 │ posts, userPosts, post(id), comments(id)│
    │ create / delete comment     │ posts, userPosts, post, comments        │
    │ toggle_follow               │ authUser, userProfile                   │
    │ delete_notification         │ notifications                           │
    └─────────────────────────────┴─────────────────────────────────────────┘

A failed mutation raises ApiError and leaves the cache untouched.
"""

from typing import Any, Dict, List, Optional

from threesconnect.client import keys
from threesconnect.client.api import ApiClient, ApiError, ImageFile
from threesconnect.client.cache import QueryCache

MAX_COMMENT_LENGTH = 280


class SocialClient:

    def __init__(self, api: ApiClient, cache: Optional[QueryCache] = None):
        self.api = api
        self.cache = cache or QueryCache()

    # ── Reads ─────────────────────────────────────────────────────────────
    async def get_feed(self) -> List[Dict[str, Any]]:
        return await self.cache.fetch(keys.posts(), self.api.list_posts)

    async def get_user_posts(self, username: str) -> List[Dict[str, Any]]:
        return await self.cache.fetch(
            keys.user_posts(username), lambda: self.api.list_user_posts(username)
        )

    async def get_post(self, post_id: str) -> Dict[str, Any]:
        return await self.cache.fetch(keys.post(post_id), lambda: self.api.get_post(post_id))

    async def get_comments(self, post_id: str) -> List[Dict[str, Any]]:
        return await self.cache.fetch(
            keys.comments(post_id), lambda: self.api.list_comments(post_id)
        )

    async def get_notifications(self) -> List[Dict[str, Any]]:
        return await self.cache.fetch(keys.notifications(), self.api.list_notifications)

    async def get_auth_user(self) -> Dict[str, Any]:
        return await self.cache.fetch(keys.auth_user(), self.api.get_current_user)

    async def get_user_profile(self, username: str) -> Dict[str, Any]:
        return await self.cache.fetch(
            keys.user_profile(username), lambda: self.api.get_profile(username)
        )

    # ── Mutations ─────────────────────────────────────────────────────────
    async def sync_user(self) -> Dict[str, Any]:
        user = await self.api.sync_user()
        self.cache.invalidate(keys.auth_user())
        return user

    async def update_profile(self, **fields: Any) -> Dict[str, Any]:
        user = await self.api.update_profile(**fields)
        # Owner summaries embedded in posts change with the profile
        self.cache.invalidate(
            keys.auth_user(), keys.user_profile(), keys.posts(), keys.user_posts()
        )
        return user

    async def create_post(self, content: str = "", image: Optional[ImageFile] = None) -> Dict[str, Any]:
        post = await self.api.create_post(content=content, image=image)
        self.cache.invalidate(keys.posts(), keys.user_posts())
        return post

    async def toggle_like(self, post_id: str) -> Dict[str, Any]:
        result = await self.api.toggle_like(post_id)
        self.cache.invalidate(keys.posts(), keys.user_posts(), keys.post(post_id))
        return result

    async def delete_post(self, post_id: str) -> Dict[str, Any]:
        result = await self.api.delete_post(post_id)
        self.cache.invalidate(
            keys.posts(), keys.user_posts(), keys.post(post_id), keys.comments(post_id)
        )
        return result

    async def create_comment(self, post_id: str, content: str) -> Dict[str, Any]:
        text = (content or "").strip()
        if not text:
            raise ApiError("validation_error", None, "Please write something before commenting")
        if len(text) > MAX_COMMENT_LENGTH:
            raise ApiError(
                "validation_error", None, f"Comment cannot exceed {MAX_COMMENT_LENGTH} characters"
            )
        comment = await self.api.create_comment(post_id, text)
        self.cache.invalidate(
            keys.posts(), keys.user_posts(), keys.post(post_id), keys.comments(post_id)
        )
        return comment

    async def delete_comment(self, comment_id: str, post_id: str) -> Dict[str, Any]:
        result = await self.api.delete_comment(comment_id)
        self.cache.invalidate(
            keys.posts(), keys.user_posts(), keys.post(post_id), keys.comments(post_id)
        )
        return result

    async def toggle_follow(self, target_user_id: str) -> Dict[str, Any]:
        result = await self.api.toggle_follow(target_user_id)
        self.cache.invalidate(keys.auth_user(), keys.user_profile())
        return result

    async def delete_notification(self, notification_id: str) -> Dict[str, Any]:
        result = await self.api.delete_notification(notification_id)
        self.cache.invalidate(keys.notifications())
        return result

    def sign_out(self) -> None:
        self.cache.clear()
