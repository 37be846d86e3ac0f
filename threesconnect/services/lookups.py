"""
Reference resolution shared by the services.

Every mutating operation resolves its actor from the verified external
identity (never from a request parameter) before it writes anything.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from threesconnect.exceptions import NotFoundError
from threesconnect.models.comment import Comment
from threesconnect.models.post import Post
from threesconnect.models.user import User


async def resolve_actor(db: AsyncSession, actor_id: str) -> User:
    """Map a verified external identity to its synced User, or raise NotFoundError."""
    result = await db.execute(select(User).where(User.clerk_id == actor_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(resource="user", context={"clerk_id": actor_id})
    return user


async def load_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    # populate_existing: follow edges may have changed earlier in this session
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(resource="user", resource_id=str(user_id))
    return user


async def load_post(db: AsyncSession, post_id: uuid.UUID) -> Post:
    result = await db.execute(
        select(Post).where(Post.id == post_id).execution_options(populate_existing=True)
    )
    post = result.scalar_one_or_none()
    if post is None:
        raise NotFoundError(resource="post", resource_id=str(post_id))
    return post


async def load_comment(db: AsyncSession, comment_id: uuid.UUID) -> Comment:
    result = await db.execute(
        select(Comment).where(Comment.id == comment_id).execution_options(populate_existing=True)
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise NotFoundError(resource="comment", resource_id=str(comment_id))
    return comment
