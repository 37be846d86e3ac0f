"""
3sConnect Client — Query Cache
==============================

What:  Keyed cache of server reads with explicit invalidation.
How:   Every read goes through `fetch(key, fetcher)`. Fresh entries are
       served from memory; stale or missing ones call the fetcher.
       Screens that display a key `subscribe` to it. When a mutation
       succeeds it calls `invalidate(prefix, ...)`: matching entries become
       stale and those with subscribers are refetched in background tasks.

Entry lifecycle:
    missing ──fetch──▶ fresh ──invalidate / stale_time──▶ stale ──fetch──▶ fresh

A failed fetch keeps the previous data and records the error on the entry.

Every invalidation bumps the entry's generation. A fetch stores its result
as fresh only if no invalidation happened while it was in flight, and a
refetch never joins a request started before the latest invalidation.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from threesconnect.client.keys import Key, matches

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[["QueryState"], None]


@dataclass
class QueryState:
    data: Any = None
    error: Optional[Exception] = None
    stale: bool = True
    updated_at: Optional[float] = None
    fetch_count: int = 0


@dataclass
class _Entry:
    state: QueryState = field(default_factory=QueryState)
    fetcher: Optional[Fetcher] = None
    listeners: List[Listener] = field(default_factory=list)
    subscribers: int = 0
    generation: int = 0
    inflight: Optional["asyncio.Future"] = None
    inflight_generation: int = 0


class QueryCache:
    """
    Args:
        stale_time: seconds an entry stays fresh after a successful fetch
            (invalidation makes it stale immediately)
    """

    def __init__(self, stale_time: float = 60.0):
        self.stale_time = stale_time
        self._entries: Dict[Key, _Entry] = {}
        self._background: Set[asyncio.Task] = set()

    def _entry(self, key: Key) -> _Entry:
        return self._entries.setdefault(tuple(key), _Entry())

    def _is_fresh(self, state: QueryState) -> bool:
        if state.stale or state.updated_at is None:
            return False
        return time.monotonic() - state.updated_at < self.stale_time

    async def fetch(self, key: Key, fetcher: Fetcher) -> Any:
        """Return cached data for `key` if fresh, otherwise run `fetcher`."""
        entry = self._entry(key)
        entry.fetcher = fetcher
        if self._is_fresh(entry.state):
            return entry.state.data
        return await self._run(key, entry)

    async def _run(self, key: Key, entry: _Entry) -> Any:
        generation = entry.generation
        # Concurrent reads of the same generation share one request
        if entry.inflight is not None and entry.inflight_generation == generation:
            return await asyncio.shield(entry.inflight)

        future = asyncio.get_running_loop().create_future()
        entry.inflight, entry.inflight_generation = future, generation
        try:
            data = await entry.fetcher()
        except Exception as e:
            if generation == entry.generation:
                entry.state.error = e
                self._notify(entry)
            future.set_exception(e)
            # Mark retrieved so the loop does not warn about an unread exception
            future.exception()
            raise
        else:
            if generation == entry.generation:
                entry.state.data = data
                entry.state.error = None
                entry.state.stale = False
                entry.state.updated_at = time.monotonic()
                entry.state.fetch_count += 1
                self._notify(entry)
            else:
                logger.debug("Discarding result of %s fetched before an invalidation", key)
            future.set_result(data)
            return data
        finally:
            if entry.inflight is future:
                entry.inflight = None

    def _notify(self, entry: _Entry) -> None:
        for listener in list(entry.listeners):
            listener(entry.state)

    def subscribe(
        self, key: Key, fetcher: Fetcher, listener: Optional[Listener] = None
    ) -> Callable[[], None]:
        """
        Register an active view of `key`.

        Returns:
            An unsubscribe callable. While subscribed, invalidating the key
            refetches it in the background and calls `listener` with the
            new state.
        """
        entry = self._entry(key)
        entry.fetcher = fetcher
        entry.subscribers += 1
        if listener is not None:
            entry.listeners.append(listener)

        def unsubscribe() -> None:
            entry.subscribers = max(0, entry.subscribers - 1)
            if listener is not None and listener in entry.listeners:
                entry.listeners.remove(listener)

        return unsubscribe

    def invalidate(self, *prefixes: Key) -> List[asyncio.Task]:
        """
        Mark every entry matching one of `prefixes` stale.

        Returns:
            The background refetch tasks started for subscribed entries.
        """
        tasks = []
        for key, entry in self._entries.items():
            if not any(matches(key, tuple(prefix)) for prefix in prefixes):
                continue
            entry.state.stale = True
            entry.generation += 1
            if entry.subscribers and entry.fetcher is not None:
                tasks.append(asyncio.create_task(self._refetch(key, entry)))
        if tasks:
            logger.debug("Refetching %d subscribed queries", len(tasks))
        for task in tasks:
            self._background.add(task)
            task.add_done_callback(self._background.discard)
        return tasks

    async def _refetch(self, key: Key, entry: _Entry) -> None:
        try:
            await self._run(key, entry)
        except Exception as e:
            # Recorded on the entry by _run; the view keeps its previous data
            logger.warning("Background refetch of %s failed: %s", key, e)

    async def settle(self) -> None:
        """Wait for every background refetch started so far."""
        while True:
            pending = [task for task in self._background if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    def get_state(self, key: Key) -> Optional[QueryState]:
        entry = self._entries.get(tuple(key))
        return entry.state if entry else None

    def clear(self) -> None:
        """Drop every entry (sign-out)."""
        self._entries.clear()
