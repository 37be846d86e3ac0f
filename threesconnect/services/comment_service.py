"""
3sConnect Backend — Comment Service
===================================

What:  Comment creation on an existing post, reads, and owner-only
       deletion.
How:   The comment row carries `post_id`, which is the post's back-reference:
       once the insert is flushed the comment appears in `Post.comments`.
       Commenting on someone else's post fans out one notification that
       references both the post and the new comment.

Delete order (DELETE /api/comments/{id}):
    notifications → comment likes → comment
"""

import logging
import uuid
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from threesconnect.exceptions import ForbiddenError, InternalError, NotFoundError, ValidationError
from threesconnect.models.comment import MAX_COMMENT_LENGTH, Comment, CommentLike
from threesconnect.models.notification import Notification, NotificationType
from threesconnect.models.post import Post
from threesconnect.schemas.post import CommentResponse
from threesconnect.services.lookups import load_comment, resolve_actor
from threesconnect.services.notification_service import notification_service

logger = logging.getLogger(__name__)


class CommentService:

    async def create_comment(
        self, db: AsyncSession, actor_id: str, post_id: uuid.UUID, content: str
    ) -> CommentResponse:
        """
        Attach a new comment by the actor to the post.

        Raises:
            ValidationError: empty / whitespace-only or too long content
            NotFoundError: actor not synced or post missing
        """
        text = (content or "").strip()
        if not text:
            raise ValidationError(message="Comment content is required", field="content")
        if len(text) > MAX_COMMENT_LENGTH:
            raise ValidationError(
                message=f"Comment cannot exceed {MAX_COMMENT_LENGTH} characters",
                field="content",
                context={"length": len(text)},
            )

        user = await resolve_actor(db, actor_id)
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))

        comment = Comment(user_id=user.id, post_id=post.id, content=text)
        db.add(comment)
        await db.flush()

        await notification_service.notify(
            db,
            NotificationType.COMMENT,
            from_user_id=user.id,
            to_user_id=post.user_id,
            post_id=post.id,
            comment_id=comment.id,
        )

        logger.info("Comment %s added to post %s by %s", comment.id, post.id, user.id)
        return CommentResponse.model_validate(await load_comment(db, comment.id))

    async def list_comments(self, db: AsyncSession, post_id: uuid.UUID) -> List[CommentResponse]:
        """Comments on a post, newest first. A missing post has no comments."""
        result = await db.execute(
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return [CommentResponse.model_validate(c) for c in result.scalars().all()]

    async def get_comment(self, db: AsyncSession, comment_id: uuid.UUID) -> CommentResponse:
        return CommentResponse.model_validate(await load_comment(db, comment_id))

    async def delete_comment(self, db: AsyncSession, actor_id: str, comment_id: uuid.UUID) -> None:
        """
        Delete a comment. Only its author may do so.

        Raises:
            NotFoundError: actor not synced or comment missing
            ForbiddenError: actor is not the author
            InternalError: a delete step failed (transaction rolled back)
        """
        user = await resolve_actor(db, actor_id)
        comment = await db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError(resource="comment", resource_id=str(comment_id))
        if comment.user_id != user.id:
            raise ForbiddenError(
                message="You can only delete your own comments",
                context={"comment_id": str(comment_id), "actor": str(user.id)},
            )

        try:
            await db.execute(delete(Notification).where(Notification.comment_id == comment.id))
            await db.execute(delete(CommentLike).where(CommentLike.comment_id == comment.id))
            await db.execute(delete(Comment).where(Comment.id == comment.id))
        except SQLAlchemyError as e:
            logger.error("Delete of comment %s failed: %s", comment_id, str(e), exc_info=True)
            raise InternalError(
                message="Could not delete the comment. Please try again.",
                context={"comment_id": str(comment_id)},
            ) from e

        logger.info("Comment %s deleted by author %s", comment_id, user.id)


comment_service = CommentService()
