"""
3sConnect Backend — Notification Service (Fan-out)
==================================================

What:  The single write path for notifications, plus the recipient's read
       and delete operations.
Why:   Like, comment and follow all funnel through `notify()`, so the
       "never notify yourself" rule lives in exactly one place.
Who:   Called by PostService, CommentService and UserService inside their
       own transaction; called by the notification routes.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from threesconnect.exceptions import ForbiddenError, NotFoundError
from threesconnect.models.notification import Notification, NotificationType
from threesconnect.schemas.notification import NotificationResponse
from threesconnect.services.lookups import resolve_actor

logger = logging.getLogger(__name__)


class NotificationService:
    """Stateless; every method receives the request session."""

    async def notify(
        self,
        db: AsyncSession,
        type: NotificationType,
        from_user_id: uuid.UUID,
        to_user_id: uuid.UUID,
        post_id: Optional[uuid.UUID] = None,
        comment_id: Optional[uuid.UUID] = None,
    ) -> Optional[Notification]:
        """
        Insert a notification for `to_user_id` about an action by `from_user_id`.

        Returns:
            The pending Notification, or None when actor and recipient are
            the same user (nothing is written).
        """
        if from_user_id == to_user_id:
            logger.debug("Skipped self-notification (%s) for user %s", type.value, from_user_id)
            return None

        notification = Notification(
            type=type,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            post_id=post_id,
            comment_id=comment_id,
        )
        db.add(notification)
        await db.flush()
        logger.info("Notification %s: %s -> %s", type.value, from_user_id, to_user_id)
        return notification

    async def list_notifications(
        self, db: AsyncSession, actor_id: str
    ) -> List[NotificationResponse]:
        """Notifications addressed to the actor, newest first."""
        user = await resolve_actor(db, actor_id)
        result = await db.execute(
            select(Notification)
            .where(Notification.to_user_id == user.id)
            .order_by(Notification.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return [NotificationResponse.model_validate(n) for n in result.scalars().all()]

    async def delete_notification(
        self, db: AsyncSession, actor_id: str, notification_id: uuid.UUID
    ) -> None:
        """
        Delete one notification. Only its recipient may do so.

        Raises:
            NotFoundError: actor not synced or notification missing
            ForbiddenError: actor is not the recipient
        """
        user = await resolve_actor(db, actor_id)
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError(resource="notification", resource_id=str(notification_id))
        if notification.to_user_id != user.id:
            raise ForbiddenError(
                message="You can only delete your own notifications",
                context={"notification_id": str(notification_id), "actor": str(user.id)},
            )

        await db.delete(notification)
        await db.flush()
        logger.info("Notification %s deleted by recipient %s", notification_id, user.id)


notification_service = NotificationService()
