"""
3sConnect Backend — Comment Route Handlers
==========================================

What:  Comment reads, creation on a post, and author-only deletion.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from threesconnect.auth import require_actor
from threesconnect.config import settings
from threesconnect.database import get_db_session
from threesconnect.schemas.common import ErrorResponse, MessageResponse
from threesconnect.schemas.post import CommentCreate, CommentEnvelope, CommentListResponse
from threesconnect.services.comment_service import comment_service

router = APIRouter(prefix=f"{settings.api_prefix}/comments", tags=["Comments"])


@router.get(
    "/post/{post_id}",
    response_model=CommentListResponse,
    summary="List a post's comments, newest first",
)
async def list_comments(
    post_id: UUID,
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> CommentListResponse:
    return CommentListResponse(comments=await comment_service.list_comments(db, post_id))


@router.get(
    "/{comment_id}",
    response_model=CommentEnvelope,
    responses={404: {"description": "Comment not found", "model": ErrorResponse}},
    summary="Get a single comment",
)
async def get_comment(
    comment_id: UUID,
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> CommentEnvelope:
    return CommentEnvelope(comment=await comment_service.get_comment(db, comment_id))


@router.post(
    "/post/{post_id}",
    status_code=201,
    response_model=CommentEnvelope,
    responses={
        400: {"description": "Empty or too long comment", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        404: {"description": "Post or user not found", "model": ErrorResponse},
    },
    summary="Comment on a post",
)
async def create_comment(
    post_id: UUID,
    body: CommentCreate,
    actor_id: str = Depends(require_actor),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> CommentEnvelope:
    comment = await comment_service.create_comment(db, actor_id, post_id, body.content)
    return CommentEnvelope(comment=comment)


@router.delete(
    "/{comment_id}",
    response_model=MessageResponse,
    responses={
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Not the author", "model": ErrorResponse},
        404: {"description": "Comment not found", "model": ErrorResponse},
    },
    summary="Delete your own comment",
)
async def delete_comment(
    comment_id: UUID,
    actor_id: str = Depends(require_actor),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> MessageResponse:
    await comment_service.delete_comment(db, actor_id, comment_id)
    return MessageResponse(message="Comment deleted successfully")
