"""
3sConnect Backend — User Route Handlers
=======================================

What:  Sync-on-login, current user, public profile and profile update.
Who:   POST /users/sync is called by the mobile client right after sign-in;
       the rest back the profile screens.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from threesconnect.auth import get_identity_provider, require_actor
from threesconnect.config import settings
from threesconnect.database import get_db_session
from threesconnect.schemas.common import ErrorResponse
from threesconnect.schemas.user import ProfileEnvelope, ProfileUpdate, UserEnvelope
from threesconnect.services.identity import IdentityProvider
from threesconnect.services.user_service import user_service

router = APIRouter(prefix=f"{settings.api_prefix}/users", tags=["Users"])


@router.post(
    "/sync",
    response_model=UserEnvelope,
    responses={
        200: {"description": "User already existed", "model": UserEnvelope},
        201: {"description": "User created", "model": UserEnvelope},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        502: {"description": "Identity provider failed", "model": ErrorResponse},
    },
    summary="Create the user record for the signed-in identity",
)
async def sync_user(
    response: Response,
    actor_id: str = Depends(require_actor),
    identity: IdentityProvider = Depends(get_identity_provider),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> UserEnvelope:
    """Idempotent: 201 on first sync, 200 with the unchanged user afterwards."""
    user, created = await user_service.sync_user(db, actor_id, identity)
    if created:
        response.status_code = 201
        return UserEnvelope(user=user, message="User created successfully")
    return UserEnvelope(user=user, message="User already exists")


@router.get(
    "/me",
    response_model=UserEnvelope,
    responses={
        401: {"description": "Not authenticated", "model": ErrorResponse},
        404: {"description": "User not synced yet", "model": ErrorResponse},
    },
    summary="Get the signed-in user",
)
async def get_current_user(
    actor_id: str = Depends(require_actor),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> UserEnvelope:
    return UserEnvelope(user=await user_service.get_current_user(db, actor_id))


@router.get(
    "/profile/{username}",
    response_model=ProfileEnvelope,
    responses={404: {"description": "Unknown username", "model": ErrorResponse}},
    summary="Get a public profile by username",
)
async def get_profile(
    username: str,
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> ProfileEnvelope:
    """Public: no identity key or email in the response."""
    return ProfileEnvelope(user=await user_service.get_profile(db, username))


@router.put(
    "/profile",
    response_model=UserEnvelope,
    responses={
        400: {"description": "Field too long", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        404: {"description": "User not synced yet", "model": ErrorResponse},
    },
    summary="Update the signed-in user's profile",
)
async def update_profile(
    body: ProfileUpdate,
    actor_id: str = Depends(require_actor),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> UserEnvelope:
    user = await user_service.update_profile(db, actor_id, body.model_dump(exclude_unset=True))
    return UserEnvelope(user=user, message="Profile updated successfully")
