"""
3sConnect Backend — User Schemas
================================

What:  Public user summary (embedded in posts, comments, notifications),
       the full user record, and the profile-update request body.
Why:   clerk_id and email appear only in the full record returned to its
       owner; the summary and the public profile never carry them.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class UserSummary(BaseModel):
    """Display fields of a user, embedded wherever a user is referenced."""
    id: uuid.UUID
    username: str
    first_name: str
    last_name: str
    profile_picture: str

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    id: uuid.UUID
    clerk_id: str
    email: str
    username: str
    first_name: str
    last_name: str
    bio: str
    location: str
    profile_picture: str
    banner_image: str
    followers: List[uuid.UUID] = Field(description="IDs of users following this user")
    following: List[uuid.UUID] = Field(description="IDs of users this user follows")
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserEnvelope(BaseModel):
    user: UserResponse
    message: Optional[str] = None


class PublicProfile(BaseModel):
    """A user as seen by anyone, signed in or not."""
    id: uuid.UUID
    username: str
    first_name: str
    last_name: str
    bio: str
    location: str
    profile_picture: str
    banner_image: str
    followers: List[uuid.UUID]
    following: List[uuid.UUID]
    created_at: datetime

    model_config = {"from_attributes": True}


class ProfileEnvelope(BaseModel):
    user: PublicProfile


class ProfileUpdate(BaseModel):
    """
    Partial profile edit. Omitted fields are left untouched; only the
    fields present in the request body are applied.
    """
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=160)
    location: Optional[str] = Field(default=None, max_length=100)


class FollowToggleResponse(BaseModel):
    message: str
    following: bool = Field(description="True when the call followed, False when it unfollowed")
