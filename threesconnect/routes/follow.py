"""
3sConnect Backend — Follow Route Handler
========================================

What:  POST /api/follow/{target_user_id} toggles the signed-in user's follow
       of the target (follow when absent, unfollow when present).
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from threesconnect.auth import require_actor
from threesconnect.config import settings
from threesconnect.database import get_db_session
from threesconnect.schemas.common import ErrorResponse
from threesconnect.schemas.user import FollowToggleResponse
from threesconnect.services.user_service import user_service

router = APIRouter(prefix=f"{settings.api_prefix}/follow", tags=["Users"])


@router.post(
    "/{target_user_id}",
    response_model=FollowToggleResponse,
    responses={
        400: {"description": "Attempt to follow yourself", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Follow or unfollow a user",
)
async def toggle_follow(
    target_user_id: UUID,
    actor_id: str = Depends(require_actor),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> FollowToggleResponse:
    return await user_service.toggle_follow(db, actor_id, target_user_id)
