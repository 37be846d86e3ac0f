"""
3sConnect Backend — User Service
================================

What:  Sync-on-login, current user and public profile reads, partial
       profile updates, and the follow/unfollow toggle.
Who:   Called by the user and follow route handlers.

Sync-on-login:
    The mobile client calls POST /users/sync on every session start, so the
    operation must be idempotent: an existing user is returned untouched and
    the identity provider is only contacted for identities seen for the
    first time.

Follow toggle:
    A single `follows` row is the edge. Deleting it removes the target from
    the actor's `following` and the actor from the target's `followers` in
    one statement; inserting it adds both. Only the follow transition fans
    out a notification.
"""

import logging
import re
import uuid
from typing import Any, Dict, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from threesconnect.database import insert_ignore
from threesconnect.exceptions import InternalError, NotFoundError, ValidationError
from threesconnect.models.notification import NotificationType
from threesconnect.models.user import Follow, User
from threesconnect.schemas.user import FollowToggleResponse, PublicProfile, UserResponse
from threesconnect.services.identity import IdentityProvider
from threesconnect.services.lookups import load_user, resolve_actor
from threesconnect.services.notification_service import notification_service

logger = logging.getLogger(__name__)

USERNAME_MAX_LENGTH = 100
PROFILE_FIELDS = ("first_name", "last_name", "bio", "location")


def username_base(email: str) -> str:
    """
    Default username: the email's local part, lower-cased, restricted to
    letters, digits, dots and underscores.
    """
    local_part = email.split("@", 1)[0].lower()
    base = re.sub(r"[^a-z0-9._]", "", local_part)
    # Leave room for a numeric suffix
    return (base or "user")[: USERNAME_MAX_LENGTH - 6]


class UserService:
    """
    Business logic for users and the follow graph.

    Error Handling Strategy:
        Preconditions raise ValidationError / NotFoundError before any write.
        Store failures on the follow toggle are wrapped in InternalError;
        the request transaction is rolled back so a retry starts clean.
    """

    async def _find_by_clerk_id(self, db: AsyncSession, clerk_id: str):
        result = await db.execute(select(User).where(User.clerk_id == clerk_id))
        return result.scalar_one_or_none()

    async def _available_username(self, db: AsyncSession, email: str) -> str:
        base = username_base(email)
        result = await db.execute(select(User.username).where(User.username.startswith(base)))
        taken = set(result.scalars().all())
        candidate, suffix = base, 1
        while candidate in taken:
            suffix += 1
            candidate = f"{base}{suffix}"
        return candidate

    async def sync_user(
        self,
        db: AsyncSession,
        actor_id: str,
        identity: IdentityProvider,
    ) -> Tuple[UserResponse, bool]:
        """
        Create the User record for a verified identity on first login.

        Returns:
            (user, created): created is False when the user already existed

        Raises:
            IdentityProviderError: profile lookup failed (nothing written)
            ValidationError: provider has no email, or the email belongs to
                another identity
        """
        existing = await self._find_by_clerk_id(db, actor_id)
        if existing is not None:
            return UserResponse.model_validate(existing), False

        profile = await identity.get_profile(actor_id)
        if not profile.email:
            logger.warning("Identity %s has no email address", actor_id)
            raise ValidationError(message="Your account has no email address", field="email")

        result = await db.execute(select(User.id).where(User.email == profile.email))
        if result.scalar_one_or_none() is not None:
            raise ValidationError(
                message="This email address is already linked to another account",
                field="email",
            )

        user = User(
            clerk_id=actor_id,
            email=profile.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            username=await self._available_username(db, profile.email),
            profile_picture=profile.avatar_url,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # A concurrent sync for the same identity won the insert
            await db.rollback()
            winner = await self._find_by_clerk_id(db, actor_id)
            if winner is None:
                logger.error("User sync for %s hit a conflict with no winner", actor_id)
                raise InternalError(message="Could not create your account. Please try again.")
            return UserResponse.model_validate(winner), False

        logger.info("User created from identity %s as @%s", actor_id, user.username)
        return UserResponse.model_validate(await load_user(db, user.id)), True

    async def get_current_user(self, db: AsyncSession, actor_id: str) -> UserResponse:
        user = await resolve_actor(db, actor_id)
        return UserResponse.model_validate(await load_user(db, user.id))

    async def get_profile(self, db: AsyncSession, username: str) -> PublicProfile:
        """Public profile by username; NotFoundError when unknown."""
        result = await db.execute(
            select(User).where(User.username == username).execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(resource="user", resource_id=username)
        return PublicProfile.model_validate(user)

    async def update_profile(
        self, db: AsyncSession, actor_id: str, fields: Dict[str, Any]
    ) -> UserResponse:
        """
        Apply only the provided profile fields to the actor's record.

        Args:
            fields: subset of first_name, last_name, bio, location; keys
                with a None value are ignored
        """
        user = await resolve_actor(db, actor_id)
        changes = {
            key: value for key, value in fields.items()
            if key in PROFILE_FIELDS and value is not None
        }
        for key, value in changes.items():
            setattr(user, key, value)
        await db.flush()

        if changes:
            logger.info("Profile of %s updated: %s", user.id, ", ".join(sorted(changes)))
        return UserResponse.model_validate(await load_user(db, user.id))

    async def toggle_follow(
        self, db: AsyncSession, actor_id: str, target_user_id: uuid.UUID
    ) -> FollowToggleResponse:
        """
        Follow the target if the actor does not follow them yet, otherwise
        unfollow.

        Raises:
            NotFoundError: actor not synced or target missing
            ValidationError: target is the actor
            InternalError: edge write failed (transaction rolled back)
        """
        actor = await resolve_actor(db, actor_id)
        if target_user_id == actor.id:
            raise ValidationError(message="You can't follow yourself", field="target_user_id")

        target = await db.get(User, target_user_id)
        if target is None:
            raise NotFoundError(resource="user", resource_id=str(target_user_id))

        try:
            removed = await db.execute(
                delete(Follow).where(
                    Follow.follower_id == actor.id,
                    Follow.following_id == target.id,
                )
            )
            if removed.rowcount:
                following = False
            else:
                await db.execute(
                    insert_ignore(db, Follow, follower_id=actor.id, following_id=target.id)
                )
                following = True
                await notification_service.notify(
                    db, NotificationType.FOLLOW, from_user_id=actor.id, to_user_id=target.id
                )
        except SQLAlchemyError as e:
            logger.error("Follow toggle %s -> %s failed: %s", actor.id, target.id, str(e))
            raise InternalError(
                message="Could not update the follow. Please try again.",
                context={"actor": str(actor.id), "target": str(target.id)},
            ) from e

        logger.info(
            "User %s %s %s", actor.id, "followed" if following else "unfollowed", target.id
        )
        return FollowToggleResponse(
            message="User followed successfully" if following else "User unfollowed successfully",
            following=following,
        )


user_service = UserService()
