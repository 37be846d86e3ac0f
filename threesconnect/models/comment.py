"""
3sConnect Backend — Comment SQLAlchemy Models
=============================================

What:  The `comments` table and the `comment_likes` membership table.
Why:   A comment's `post_id` is required: it can only be created against an
       existing post, and it is deleted before its post on cascade.

`comment_likes` is read-only from the API: comments expose their `likes`,
but no endpoint adds or removes one. Rows are only ever deleted, together
with their comment or post.
"""

import uuid
from datetime import datetime
from typing import List

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threesconnect.database import Base, TimestampMixin, utcnow
from threesconnect.models.post import Post
from threesconnect.models.user import User

MAX_COMMENT_LENGTH = 280


class CommentLike(Base):
    __tablename__ = "comment_likes"

    comment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Comment(TimestampMixin, Base):
    """A reply on a post, owned by its author."""

    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(String(MAX_COMMENT_LENGTH), nullable=False)

    user: Mapped[User] = relationship(User, lazy="joined", innerjoin=True)
    post: Mapped[Post] = relationship(Post, back_populates="comments", lazy="raise_on_sql")
    likes: Mapped[List[CommentLike]] = relationship(
        CommentLike,
        lazy="selectin",
        viewonly=True,
    )

    @property
    def like_user_ids(self) -> List[uuid.UUID]:
        return [like.user_id for like in self.likes]

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, post_id={self.post_id})>"
