"""
3sConnect Backend — Post SQLAlchemy Models
==========================================

What:  The `posts` table and the `post_likes` membership table.

Table Design Rationale:
    - post_likes primary key (post_id, user_id): the database itself
      guarantees a user appears in a post's likes at most once, whatever
      the interleaving of concurrent toggles.
    - comments: the Comment.post_id foreign key is the back-reference; the
      ordered `Post.comments` collection is that relation sorted by
      creation time.
    - Index on created_at comes from TimestampMixin (feed is newest first).
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threesconnect.database import Base, TimestampMixin, utcnow
from threesconnect.models.user import User

if TYPE_CHECKING:
    from threesconnect.models.comment import Comment

MAX_POST_LENGTH = 280


class PostLike(Base):
    """One user's like on one post."""

    __tablename__ = "post_likes"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Post(TimestampMixin, Base):
    """
    A feed entry owned by one user.

    Lifecycle:
        1. Created with empty likes/comments (content and/or image)
        2. Likes toggled and comments attached by other operations
        3. Deleted by its owner only; comments are deleted first
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(String(MAX_POST_LENGTH), nullable=False, default="")
    image: Mapped[str] = mapped_column(String(1024), nullable=False, default="")

    user: Mapped[User] = relationship(User, lazy="joined", innerjoin=True)
    likes: Mapped[List[PostLike]] = relationship(
        PostLike,
        lazy="selectin",
        viewonly=True,
    )
    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        back_populates="post",
        lazy="selectin",
        order_by="Comment.created_at",
        passive_deletes=True,
    )

    @property
    def like_user_ids(self) -> List[uuid.UUID]:
        return [like.user_id for like in self.likes]

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, user_id={self.user_id})>"
