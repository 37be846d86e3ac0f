"""
3sConnect Client Library
========================

Async Python client for the 3sConnect API with a query cache that keeps
screens consistent after mutations.

    api = ApiClient("https://api.example.com", token_getter=session.get_token)
    client = SocialClient(api)
    feed = await client.get_feed()
    await client.toggle_like(feed[0]["id"])   # invalidates posts, userPosts, post(id)
"""

from threesconnect.client.api import ApiClient, ApiError
from threesconnect.client.cache import QueryCache, QueryState
from threesconnect.client.store import SocialClient

__all__ = ["ApiClient", "ApiError", "QueryCache", "QueryState", "SocialClient"]
