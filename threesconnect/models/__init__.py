"""
ORM models. Importing this package registers every table on Base.metadata
(Alembic autogenerate and `create_all` rely on it).
"""

from threesconnect.models.user import Follow, User
from threesconnect.models.post import MAX_POST_LENGTH, Post, PostLike
from threesconnect.models.comment import MAX_COMMENT_LENGTH, Comment, CommentLike
from threesconnect.models.notification import Notification, NotificationType

__all__ = [
    "Comment",
    "CommentLike",
    "Follow",
    "MAX_COMMENT_LENGTH",
    "MAX_POST_LENGTH",
    "Notification",
    "NotificationType",
    "Post",
    "PostLike",
    "User",
]
