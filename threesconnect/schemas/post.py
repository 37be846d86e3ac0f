"""
3sConnect Backend — Post and Comment Schemas
============================================

What:  Response models for posts and comments, with owners expanded to
       their public summary, and the comment-create request body.
How:   Built with `model_validate(orm_object)`; `likes` reads the model's
       `like_user_ids` property so only user IDs are exposed.
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from threesconnect.schemas.user import UserSummary


class CommentResponse(BaseModel):
    id: uuid.UUID
    user: UserSummary
    post_id: uuid.UUID
    content: str
    likes: List[uuid.UUID] = Field(default_factory=list, validation_alias="like_user_ids")
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PostResponse(BaseModel):
    id: uuid.UUID
    user: UserSummary
    content: str
    image: str = Field(description="Public image URL, empty string when the post has none")
    likes: List[uuid.UUID] = Field(default_factory=list, validation_alias="like_user_ids")
    comments: List[CommentResponse] = Field(
        default_factory=list,
        description="Comments in creation order",
    )
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PostEnvelope(BaseModel):
    post: PostResponse


class PostListResponse(BaseModel):
    posts: List[PostResponse]


class LikeToggleResponse(BaseModel):
    """
    Result of a like toggle. Carries no post body: clients re-read the post
    (or the feed) to obtain the new state.
    """
    message: str
    liked: bool = Field(description="True when the call liked, False when it unliked")


class CommentCreate(BaseModel):
    content: str = Field(default="", description="Comment text (1-280 characters)")


class CommentEnvelope(BaseModel):
    comment: CommentResponse


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]
