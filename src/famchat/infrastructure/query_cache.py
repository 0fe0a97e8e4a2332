"""Keyed cache of query results with prefix invalidation."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")

QueryKey = tuple[Any, ...]


class QueryCache:
    """Caches query results until they are invalidated.

    Keys are tuples such as ``("chat-messages", thread_id)``; invalidating the
    prefix ``("chat-threads",)`` drops every thread list at once. Concurrent
    fetches of the same key share one load, and a load that was invalidated
    while in flight returns its result without caching it.
    """

    def __init__(self) -> None:
        self._entries: dict[QueryKey, Any] = {}
        self._inflight: dict[QueryKey, asyncio.Task[Any]] = {}
        self._versions: dict[QueryKey, int] = {}

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._entries

    def get(self, key: QueryKey) -> Any | None:
        """Return the cached value without loading."""
        return self._entries.get(key)

    async def fetch(self, key: QueryKey, loader: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value or load it.

        Loader exceptions propagate and nothing is cached.
        """
        if key in self._entries:
            return self._entries[key]  # type: ignore[no-any-return]

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, loader))
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._forget(key, task))
        return await asyncio.shield(task)  # type: ignore[no-any-return]

    async def refresh(self, key: QueryKey, loader: Callable[[], Awaitable[T]]) -> T:
        """Invalidate ``key`` and load it again."""
        self.invalidate(key)
        return await self.fetch(key, loader)

    def invalidate(self, prefix: QueryKey) -> int:
        """Drop every entry whose key starts with ``prefix``.

        Returns:
            Number of cached entries dropped.
        """
        size = len(prefix)
        dropped = [key for key in self._entries if key[:size] == prefix]
        for key in dropped:
            del self._entries[key]
        detached = [key for key in self._inflight if key[:size] == prefix]
        for key in detached:
            # Later fetches start a fresh load instead of joining a stale one
            del self._inflight[key]
        for key in set(dropped) | set(detached):
            self._versions[key] = self._versions.get(key, 0) + 1
        return len(dropped)

    async def _load(self, key: QueryKey, loader: Callable[[], Awaitable[T]]) -> T:
        version = self._versions.get(key, 0)
        value = await loader()
        if self._versions.get(key, 0) == version:
            self._entries[key] = value
        return value

    def _forget(self, key: QueryKey, task: "asyncio.Future[Any]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
