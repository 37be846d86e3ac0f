"""
3sConnect Backend — Post Route Handlers
=======================================

What:  Feed reads, post creation (multipart), like toggle and delete.
Who:   Called by the mobile client's feed, profile and compose screens.

Request Flow (POST /api/posts):
    1. Client sends multipart/form-data with optional `content` and `image`
    2. require_actor resolves the verified identity (401 otherwise)
    3. The image is read into memory and handed to PostService with the
       injected media collaborator
    4. 201 Created with {"post": {...}}
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from threesconnect.auth import get_media_storage, require_actor
from threesconnect.config import settings
from threesconnect.database import get_db_session
from threesconnect.schemas.common import ErrorResponse, MessageResponse
from threesconnect.schemas.post import LikeToggleResponse, PostEnvelope, PostListResponse
from threesconnect.services.media import MediaStorage
from threesconnect.services.post_service import post_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix=f"{settings.api_prefix}/posts", tags=["Posts"])


@router.get(
    "",
    response_model=PostListResponse,
    summary="List all posts, newest first",
)
async def list_posts(
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> PostListResponse:
    return PostListResponse(posts=await post_service.list_posts(db))


@router.get(
    "/user/{username}",
    response_model=PostListResponse,
    responses={404: {"description": "Unknown username", "model": ErrorResponse}},
    summary="List one user's posts, newest first",
)
async def list_user_posts(
    username: str,
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> PostListResponse:
    return PostListResponse(posts=await post_service.list_user_posts(db, username))


@router.get(
    "/{post_id}",
    response_model=PostEnvelope,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Get a single post",
)
async def get_post(
    post_id: UUID,
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> PostEnvelope:
    return PostEnvelope(post=await post_service.get_post(db, post_id))


@router.post(
    "",
    status_code=201,
    response_model=PostEnvelope,
    responses={
        201: {"description": "Post created", "model": PostEnvelope},
        400: {"description": "Empty post, text too long or invalid image", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        502: {"description": "Image upload failed", "model": ErrorResponse},
    },
    summary="Create a post with text, an image, or both",
)
async def create_post(
    content: Optional[str] = Form(default=None, description="Post text (max 280 characters)"),
    image: Optional[UploadFile] = File(default=None, description="Image file (image/*, max 5MB)"),
    actor_id: str = Depends(require_actor),
    media: MediaStorage = Depends(get_media_storage),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> PostEnvelope:
    image_bytes: Optional[bytes] = None
    image_type: Optional[str] = None
    if image is not None:
        try:
            image_bytes = await image.read()
            image_type = image.content_type
        finally:
            await image.close()
        logger.info(
            "Received post image: filename=%s, size=%d bytes",
            image.filename or "unknown",
            len(image_bytes),
        )
        # An empty file part means "no image"
        image_bytes = image_bytes or None

    post = await post_service.create_post(
        db=db,
        actor_id=actor_id,
        content=content,
        image=image_bytes,
        image_content_type=image_type,
        media=media,
    )
    return PostEnvelope(post=post)


@router.post(
    "/{post_id}/like",
    response_model=LikeToggleResponse,
    responses={
        401: {"description": "Not authenticated", "model": ErrorResponse},
        404: {"description": "Post or user not found", "model": ErrorResponse},
    },
    summary="Like or unlike a post",
)
async def toggle_like(
    post_id: UUID,
    actor_id: str = Depends(require_actor),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> LikeToggleResponse:
    return await post_service.toggle_like(db, actor_id, post_id)


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses={
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Not the owner", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Delete your own post and its comments",
)
async def delete_post(
    post_id: UUID,
    actor_id: str = Depends(require_actor),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> MessageResponse:
    await post_service.delete_post(db, actor_id, post_id)
    return MessageResponse(message="Post deleted successfully")
