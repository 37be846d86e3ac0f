"""
3sConnect Backend — Notification SQLAlchemy Model
=================================================

What:  The `notifications` table written by the fan-out step of like,
       comment and follow operations.
Why:   The CHECK constraint backs up the service rule that nobody is
       notified about their own action.
"""

import enum
import uuid
from typing import Optional

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threesconnect.database import Base, TimestampMixin
from threesconnect.models.comment import Comment
from threesconnect.models.post import Post
from threesconnect.models.user import User


class NotificationType(str, enum.Enum):
    FOLLOW = "follow"
    LIKE = "like"
    COMMENT = "comment"


class Notification(TimestampMixin, Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    from_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    to_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(
            NotificationType,
            name="notification_type",
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )
    post_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True, default=None
    )
    comment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, default=None
    )

    from_user: Mapped[User] = relationship(User, foreign_keys=[from_user_id], lazy="joined")
    post: Mapped[Optional[Post]] = relationship(Post, lazy="selectin")
    comment: Mapped[Optional[Comment]] = relationship(Comment, lazy="selectin")

    __table_args__ = (
        CheckConstraint("from_user_id <> to_user_id", name="ck_notifications_not_self"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, type='{self.type.value}', "
            f"from={self.from_user_id}, to={self.to_user_id})>"
        )
