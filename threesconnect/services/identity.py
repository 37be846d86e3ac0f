"""
3sConnect Backend — Identity Provider Collaborator
==================================================

What:  Abstract contract for the external identity provider plus the Clerk
       implementation.
Why:   The core never issues or checks credentials itself. It needs two
       things from the provider: "which user sent this request" and, on
       first sync, "what are this user's profile attributes".
How:   IdentityProvider is injected into the app factory (create_app) and
       stored on app.state; tests substitute a fake.

Clerk specifics:
    - Session tokens are RS256 JWTs. The signing keys are published at the
      instance JWKS URL; keys are cached and refetched once when a token
      carries an unknown `kid` (key rotation).
    - Profiles come from the Backend API (GET /users/{user_id}) using the
      secret key as a bearer token.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from jose import JWTError, jwt

from threesconnect.exceptions import IdentityProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityProfile:
    """Profile attributes the provider holds for one identity."""
    email: str
    first_name: str = ""
    last_name: str = ""
    avatar_url: str = ""


class IdentityProvider(ABC):
    """
    Contract for identity collaborators.

    Implementations:
        - ClerkIdentityProvider: Clerk session JWTs + Backend API
        - Test fakes: map fixed tokens to fixed identities
    """

    @abstractmethod
    async def verify_token(self, token: str) -> Optional[str]:
        """
        Verify a bearer token.

        Returns:
            The stable external identity (Clerk user ID) when the token is
            valid, None when it is not (the request is unauthenticated).
        Raises:
            IdentityProviderError when verification material is unreachable.
        """
        ...

    @abstractmethod
    async def get_profile(self, external_id: str) -> IdentityProfile:
        """
        Fetch profile attributes for an identity.

        Raises:
            IdentityProviderError when the provider fails or does not know
            the identity.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources (called on shutdown)."""
        return None


class ClerkIdentityProvider(IdentityProvider):
    """Clerk-backed identity provider."""

    ALGORITHMS = ["RS256"]

    def __init__(
        self,
        secret_key: str,
        jwks_url: str,
        api_url: str = "https://api.clerk.com/v1",
        issuer: Optional[str] = None,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.secret_key = secret_key
        self.jwks_url = jwks_url
        self.api_url = api_url.rstrip("/")
        self.issuer = issuer or None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._keys: Optional[List[Dict[str, Any]]] = None

    async def _fetch_jwks(self) -> List[Dict[str, Any]]:
        try:
            response = await self._client.get(self.jwks_url)
            response.raise_for_status()
            keys = response.json().get("keys", [])
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to fetch Clerk JWKS from %s: %s", self.jwks_url, str(e))
            raise IdentityProviderError(
                message="Could not verify the session. Please try again.",
                context={"jwks_url": self.jwks_url, "error": str(e)},
            ) from e
        logger.info("Loaded %d signing key(s) from Clerk JWKS", len(keys))
        return keys

    async def _signing_key(self, kid: Optional[str]) -> Optional[Dict[str, Any]]:
        if self._keys is None:
            self._keys = await self._fetch_jwks()
        for key in self._keys:
            if key.get("kid") == kid:
                return key
        # Unknown kid: the instance may have rotated keys since we cached them
        self._keys = await self._fetch_jwks()
        for key in self._keys:
            if key.get("kid") == kid:
                return key
        return None

    async def verify_token(self, token: str) -> Optional[str]:
        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            logger.debug("Rejected malformed session token")
            return None

        key = await self._signing_key(header.get("kid"))
        if key is None:
            logger.warning("Session token signed with unknown key id %s", header.get("kid"))
            return None

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=self.ALGORITHMS,
                issuer=self.issuer,
                options={"verify_aud": False},
            )
        except JWTError as e:
            logger.debug("Rejected session token: %s", str(e))
            return None

        return claims.get("sub") or None

    async def get_profile(self, external_id: str) -> IdentityProfile:
        url = f"{self.api_url}/users/{external_id}"
        try:
            response = await self._client.get(
                url, headers={"Authorization": f"Bearer {self.secret_key}"}
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Clerk user lookup failed for %s: %s", external_id, str(e))
            raise IdentityProviderError(
                context={"external_id": external_id, "error": str(e)},
            ) from e

        return IdentityProfile(
            email=self._primary_email(data),
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            avatar_url=data.get("image_url") or "",
        )

    @staticmethod
    def _primary_email(data: Dict[str, Any]) -> str:
        addresses = data.get("email_addresses") or []
        primary_id = data.get("primary_email_address_id")
        for address in addresses:
            if address.get("id") == primary_id:
                return address.get("email_address") or ""
        if addresses:
            return addresses[0].get("email_address") or ""
        return ""

    async def aclose(self) -> None:
        await self._client.aclose()
