"""
3sConnect Backend — Notification Schemas
========================================
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from threesconnect.models.notification import NotificationType
from threesconnect.schemas.user import UserSummary


class PostExcerpt(BaseModel):
    id: uuid.UUID
    content: str
    image: str

    model_config = {"from_attributes": True}


class CommentExcerpt(BaseModel):
    id: uuid.UUID
    content: str

    model_config = {"from_attributes": True}


class NotificationResponse(BaseModel):
    id: uuid.UUID
    type: NotificationType
    from_user: UserSummary
    to_user_id: uuid.UUID
    post: Optional[PostExcerpt] = None
    comment: Optional[CommentExcerpt] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
