"""
3sConnect Backend — User and Follow SQLAlchemy Models
=====================================================

What:  The `users` table and the `follows` edge table.
Who:   UserService (sync, profile, follow toggle); every other service
       resolves actors through `User.clerk_id`.

Table Design Rationale:
    - clerk_id: the external identity key; unique, looked up on every
      authenticated request.
    - email / username: unique. The username is derived from the email's
      local part on first sync.
    - follows(follower_id, following_id): one row is one directed edge.
      `User.following` and `User.followers` are two views over the same
      row, so inserting or deleting the row updates both sides in the same
      statement and they cannot drift apart.
"""

import uuid
from datetime import datetime
from typing import List

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threesconnect.database import Base, TimestampMixin, utcnow


class Follow(Base):
    """A directed follow edge: `follower_id` follows `following_id`."""

    __tablename__ = "follows"

    follower_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    following_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        CheckConstraint("follower_id <> following_id", name="ck_follows_no_self_follow"),
    )

    def __repr__(self) -> str:
        return f"<Follow({self.follower_id} -> {self.following_id})>"


class User(TimestampMixin, Base):
    """
    A synced account.

    Lifecycle:
        1. Created by the first successful sync-on-login
        2. Updated by profile edits and follow toggles (edges only)
        3. Never hard-deleted
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    clerk_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    bio: Mapped[str] = mapped_column(String(160), nullable=False, default="")
    location: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    profile_picture: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    banner_image: Mapped[str] = mapped_column(String(1024), nullable=False, default="")

    # Edge rows are written with core INSERT/DELETE statements, so both views
    # are read-only and reloaded with populate_existing after a toggle.
    following_edges: Mapped[List[Follow]] = relationship(
        Follow,
        foreign_keys=[Follow.follower_id],
        lazy="selectin",
        viewonly=True,
    )
    follower_edges: Mapped[List[Follow]] = relationship(
        Follow,
        foreign_keys=[Follow.following_id],
        lazy="selectin",
        viewonly=True,
    )

    @property
    def following(self) -> List[uuid.UUID]:
        return [edge.following_id for edge in self.following_edges]

    @property
    def followers(self) -> List[uuid.UUID]:
        return [edge.follower_id for edge in self.follower_edges]

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
