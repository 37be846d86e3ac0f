"""
Cache keys for the client query cache.

A key is a tuple whose first element names the resource. Invalidation
matches by prefix, so `("userPosts",)` covers every user's post list while
`("userPosts", "alice")` covers only alice's.
"""

from typing import Any, Tuple

Key = Tuple[Any, ...]

POSTS = "posts"
USER_POSTS = "userPosts"
POST = "post"
COMMENTS = "comments"
NOTIFICATIONS = "notifications"
AUTH_USER = "authUser"
USER_PROFILE = "userProfile"


def posts() -> Key:
    return (POSTS,)


def user_posts(username: str = None) -> Key:
    return (USER_POSTS,) if username is None else (USER_POSTS, username)


def post(post_id=None) -> Key:
    return (POST,) if post_id is None else (POST, str(post_id))


def comments(post_id=None) -> Key:
    return (COMMENTS,) if post_id is None else (COMMENTS, str(post_id))


def notifications() -> Key:
    return (NOTIFICATIONS,)


def auth_user() -> Key:
    return (AUTH_USER,)


def user_profile(username: str = None) -> Key:
    return (USER_PROFILE,) if username is None else (USER_PROFILE, username)


def matches(key: Key, prefix: Key) -> bool:
    return key[: len(prefix)] == prefix
