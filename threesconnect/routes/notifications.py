"""
3sConnect Backend — Notification Route Handlers
===============================================

What:  The signed-in user's notification list and single deletes.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from threesconnect.auth import require_actor
from threesconnect.config import settings
from threesconnect.database import get_db_session
from threesconnect.schemas.common import ErrorResponse, MessageResponse
from threesconnect.schemas.notification import NotificationListResponse
from threesconnect.services.notification_service import notification_service

router = APIRouter(prefix=f"{settings.api_prefix}/notifications", tags=["Notifications"])


@router.get(
    "",
    response_model=NotificationListResponse,
    responses={401: {"description": "Not authenticated", "model": ErrorResponse}},
    summary="List your notifications, newest first",
)
async def list_notifications(
    actor_id: str = Depends(require_actor),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> NotificationListResponse:
    notifications = await notification_service.list_notifications(db, actor_id)
    return NotificationListResponse(notifications=notifications)


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    responses={
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Not the recipient", "model": ErrorResponse},
        404: {"description": "Notification not found", "model": ErrorResponse},
    },
    summary="Delete one of your notifications",
)
async def delete_notification(
    notification_id: UUID,
    actor_id: str = Depends(require_actor),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> MessageResponse:
    await notification_service.delete_notification(db, actor_id, notification_id)
    return MessageResponse(message="Notification deleted successfully")
