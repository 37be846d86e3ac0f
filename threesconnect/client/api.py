"""
3sConnect Client — HTTP API Wrapper
===================================

What:  Thin async wrapper over the 3sConnect REST API, one method per
       endpoint, returning the decoded JSON envelopes' payloads.
How:   httpx.AsyncClient with an async token getter (the signed-in session's
       Clerk token). The token is sent as `Authorization: Bearer <token>`.

Errors:
    Non-2xx responses raise ApiError with the server's `error` kind
    (validation_error, not_found, ...). Transport failures raise ApiError
    with kind "network_error" and no status code.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

TokenGetter = Callable[[], Awaitable[Optional[str]]]
ImageFile = Tuple[str, bytes, str]


class ApiError(Exception):
    """A failed API call, classified by the server's error kind."""

    def __init__(self, kind: str, status_code: Optional[int], message: str):
        self.kind = kind
        self.status_code = status_code
        self.message = message
        super().__init__(f"{kind} ({status_code}): {message}")


class ApiClient:

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token_getter: Optional[TokenGetter] = None,
        api_prefix: str = "/api",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.api_prefix = api_prefix.rstrip("/")
        self._token_getter = token_getter
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def _headers(self) -> Dict[str, str]:
        if self._token_getter is None:
            return {}
        token = await self._token_getter()
        if not token:
            return {}
        if not token.startswith("Bearer "):
            token = f"Bearer {token}"
        return {"Authorization": token}

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.api_prefix}{path}"
        try:
            response = await self._client.request(
                method, url, headers=await self._headers(), **kwargs
            )
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, url, str(e))
            raise ApiError("network_error", None, str(e) or type(e).__name__) from e

        if response.is_success:
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = {}
        kind = body.get("error", "http_error") if isinstance(body, dict) else "http_error"
        message = body.get("message", response.reason_phrase) if isinstance(body, dict) else ""
        logger.warning("%s %s -> %d %s", method, url, response.status_code, kind)
        raise ApiError(kind, response.status_code, message)

    # ── Users ─────────────────────────────────────────────────────────────
    async def sync_user(self) -> Dict[str, Any]:
        return (await self._request("POST", "/users/sync"))["user"]

    async def get_current_user(self) -> Dict[str, Any]:
        return (await self._request("GET", "/users/me"))["user"]

    async def get_profile(self, username: str) -> Dict[str, Any]:
        return (await self._request("GET", f"/users/profile/{username}"))["user"]

    async def update_profile(self, **fields: Any) -> Dict[str, Any]:
        return (await self._request("PUT", "/users/profile", json=fields))["user"]

    async def toggle_follow(self, target_user_id: str) -> Dict[str, Any]:
        return await self._request("POST", f"/follow/{target_user_id}")

    # ── Posts ─────────────────────────────────────────────────────────────
    async def list_posts(self) -> List[Dict[str, Any]]:
        return (await self._request("GET", "/posts"))["posts"]

    async def list_user_posts(self, username: str) -> List[Dict[str, Any]]:
        return (await self._request("GET", f"/posts/user/{username}"))["posts"]

    async def get_post(self, post_id: str) -> Dict[str, Any]:
        return (await self._request("GET", f"/posts/{post_id}"))["post"]

    async def create_post(
        self, content: str = "", image: Optional[ImageFile] = None
    ) -> Dict[str, Any]:
        """`image` is a (filename, bytes, content_type) triple."""
        files = {"image": image} if image else None
        response = await self._request("POST", "/posts", data={"content": content}, files=files)
        return response["post"]

    async def toggle_like(self, post_id: str) -> Dict[str, Any]:
        return await self._request("POST", f"/posts/{post_id}/like")

    async def delete_post(self, post_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/posts/{post_id}")

    # ── Comments ──────────────────────────────────────────────────────────
    async def list_comments(self, post_id: str) -> List[Dict[str, Any]]:
        return (await self._request("GET", f"/comments/post/{post_id}"))["comments"]

    async def get_comment(self, comment_id: str) -> Dict[str, Any]:
        return (await self._request("GET", f"/comments/{comment_id}"))["comment"]

    async def create_comment(self, post_id: str, content: str) -> Dict[str, Any]:
        response = await self._request("POST", f"/comments/post/{post_id}", json={"content": content})
        return response["comment"]

    async def delete_comment(self, comment_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/comments/{comment_id}")

    # ── Notifications ─────────────────────────────────────────────────────
    async def list_notifications(self) -> List[Dict[str, Any]]:
        return (await self._request("GET", "/notifications"))["notifications"]

    async def delete_notification(self, notification_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/notifications/{notification_id}")

    async def aclose(self) -> None:
        await self._client.aclose()
