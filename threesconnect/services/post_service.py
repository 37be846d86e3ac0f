"""
3sConnect Backend — Post Service (Feed Orchestrator)
====================================================

What:  Post creation (with optional image upload), feed reads, the like
       toggle and owner-only deletion with cascade.
Who:   Called by the post route handlers.

Create flow (POST /api/posts):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │ Validate │───▶│  Resolve    │───▶│ Media upload │───▶│  Insert  │
    │ input    │    │  actor      │    │ (optional)   │    │  post    │
    └──────────┘    └─────────────┘    └──────────────┘    └──────────┘
    An upload failure stops the flow before the insert: no partial post.

Delete cascade (DELETE /api/posts/{id}), children before parent:
    notifications → comment likes → comments → post likes → post
    All statements run in the request transaction; if one fails the whole
    transaction is rolled back and the delete can simply be retried.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from threesconnect.config import settings
from threesconnect.database import insert_ignore
from threesconnect.exceptions import ForbiddenError, InternalError, NotFoundError, ValidationError
from threesconnect.models.comment import Comment, CommentLike
from threesconnect.models.notification import Notification, NotificationType
from threesconnect.models.post import MAX_POST_LENGTH, Post, PostLike
from threesconnect.models.user import User
from threesconnect.schemas.post import LikeToggleResponse, PostResponse
from threesconnect.services.lookups import load_post, resolve_actor
from threesconnect.services.media import MediaStorage, validate_image
from threesconnect.services.notification_service import notification_service

logger = logging.getLogger(__name__)


class PostService:
    """
    Business logic for posts.

    Responsibilities:
        - create_post(): validate → resolve actor → upload → insert
        - list_posts() / get_post() / list_user_posts(): newest-first reads
          with owner and comment authors expanded
        - toggle_like(): single endpoint alternating like / unlike
        - delete_post(): owner-only, children deleted first
    """

    async def create_post(
        self,
        db: AsyncSession,
        actor_id: str,
        content: Optional[str],
        image: Optional[bytes],
        image_content_type: Optional[str],
        media: MediaStorage,
    ) -> PostResponse:
        """
        Create a post with text, an image, or both.

        Raises:
            ValidationError: no content and no image, content too long,
                image not an image or too large
            NotFoundError: actor has no synced user
            UploadError: media collaborator failed (nothing persisted)
        """
        text = content or ""
        if not text.strip() and not image:
            raise ValidationError(message="Post must have text or an image", field="content")
        if len(text) > MAX_POST_LENGTH:
            raise ValidationError(
                message=f"Post content cannot exceed {MAX_POST_LENGTH} characters",
                field="content",
                context={"length": len(text)},
            )
        if image:
            validate_image(image, image_content_type, settings.max_upload_size)

        user = await resolve_actor(db, actor_id)

        image_url = ""
        if image:
            image_url = await media.upload(image, image_content_type or "", settings.media_folder)

        post = Post(user_id=user.id, content=text, image=image_url)
        db.add(post)
        await db.flush()
        logger.info("Post %s created by %s (image=%s)", post.id, user.id, bool(image_url))

        return PostResponse.model_validate(await load_post(db, post.id))

    async def list_posts(self, db: AsyncSession) -> List[PostResponse]:
        """All posts, newest first."""
        result = await db.execute(
            select(Post).order_by(Post.created_at.desc()).execution_options(populate_existing=True)
        )
        return [PostResponse.model_validate(p) for p in result.scalars().all()]

    async def get_post(self, db: AsyncSession, post_id: uuid.UUID) -> PostResponse:
        return PostResponse.model_validate(await load_post(db, post_id))

    async def list_user_posts(self, db: AsyncSession, username: str) -> List[PostResponse]:
        """
        Posts owned by `username`, newest first.

        Raises:
            NotFoundError: the username does not resolve to a user
        """
        result = await db.execute(select(User.id).where(User.username == username))
        user_id = result.scalar_one_or_none()
        if user_id is None:
            raise NotFoundError(resource="user", resource_id=username)

        result = await db.execute(
            select(Post)
            .where(Post.user_id == user_id)
            .order_by(Post.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return [PostResponse.model_validate(p) for p in result.scalars().all()]

    async def toggle_like(
        self, db: AsyncSession, actor_id: str, post_id: uuid.UUID
    ) -> LikeToggleResponse:
        """
        Like the post if the authenticated actor has not liked it, otherwise
        unlike it.

        Concurrency:
            The membership test is the DELETE itself: if it removed a row the
            actor had liked the post. Otherwise the like is inserted with
            ON CONFLICT DO NOTHING, so racing toggles can never store the
            same (post, user) pair twice.

        Raises:
            NotFoundError: actor not synced or post missing
        """
        user = await resolve_actor(db, actor_id)
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))

        removed = await db.execute(
            delete(PostLike).where(PostLike.post_id == post.id, PostLike.user_id == user.id)
        )
        liked = not removed.rowcount
        if liked:
            await db.execute(insert_ignore(db, PostLike, post_id=post.id, user_id=user.id))
            await notification_service.notify(
                db,
                NotificationType.LIKE,
                from_user_id=user.id,
                to_user_id=post.user_id,
                post_id=post.id,
            )

        logger.info("Post %s %s by %s", post.id, "liked" if liked else "unliked", user.id)
        return LikeToggleResponse(
            message="Post liked successfully" if liked else "Post unliked successfully",
            liked=liked,
        )

    async def delete_post(self, db: AsyncSession, actor_id: str, post_id: uuid.UUID) -> None:
        """
        Delete a post and everything that references it.

        Raises:
            NotFoundError: actor not synced or post missing
            ForbiddenError: actor does not own the post
            InternalError: a cascade step failed (transaction rolled back)
        """
        user = await resolve_actor(db, actor_id)
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        if post.user_id != user.id:
            raise ForbiddenError(
                message="You can only delete your own posts",
                context={"post_id": str(post_id), "actor": str(user.id)},
            )

        comment_ids = select(Comment.id).where(Comment.post_id == post.id).scalar_subquery()
        try:
            await db.execute(
                delete(Notification).where(
                    or_(Notification.post_id == post.id, Notification.comment_id.in_(comment_ids))
                )
            )
            await db.execute(delete(CommentLike).where(CommentLike.comment_id.in_(comment_ids)))
            await db.execute(delete(Comment).where(Comment.post_id == post.id))
            await db.execute(delete(PostLike).where(PostLike.post_id == post.id))
            await db.execute(delete(Post).where(Post.id == post.id))
        except SQLAlchemyError as e:
            logger.error("Cascade delete of post %s failed: %s", post_id, str(e), exc_info=True)
            raise InternalError(
                message="Could not delete the post. Please try again.",
                context={"post_id": str(post_id)},
            ) from e

        logger.info("Post %s deleted by owner %s", post_id, user.id)


post_service = PostService()
