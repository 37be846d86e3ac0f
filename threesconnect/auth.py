"""
3sConnect Backend — Authentication Dependencies
===============================================

What:  FastAPI dependencies that turn the `Authorization: Bearer <token>`
       header into a verified external identity, and expose the injected
       collaborators to route handlers.
How:   The identity provider stored on `app.state` verifies the token. Read
       routes are public; mutating routes depend on `require_actor`, which
       raises UnauthorizedError when no valid identity is present.

The actor id returned here is the only source of "who is acting" for every
service call. Request bodies and path parameters never name the actor.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from threesconnect.exceptions import UnauthorizedError
from threesconnect.services.identity import IdentityProvider
from threesconnect.services.media import MediaStorage

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_media_storage(request: Request) -> MediaStorage:
    return request.app.state.media_storage


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Optional[str]:
    """Verified external user id, or None for anonymous / invalid tokens."""
    if credentials is None or not credentials.credentials:
        return None
    actor_id = await identity.verify_token(credentials.credentials)
    if actor_id is None:
        logger.debug("Rejected bearer token")
    return actor_id


async def require_actor(actor_id: Optional[str] = Depends(get_current_identity)) -> str:
    """Dependency for mutating routes: a verified identity is mandatory."""
    if actor_id is None:
        raise UnauthorizedError()
    return actor_id
