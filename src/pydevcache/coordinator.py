"""Stale-while-revalidate coordination on top of :class:`FileCache`.

Owns:
- answering loads immediately from the cache (hit, possibly stale, or miss)
- blocking fetch-and-cache for misses
- background refresh tasks for stale hits
- fire-and-forget invalidation after write-through actions

There is no de-duplication: concurrent consumers of the same key each run
their own fetch-and-cache cycle and the last write wins. Background
refreshes are not capped or queued. Timeouts belong to the fetch function
(see :func:`pydevcache.fetch.with_timeout`).
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, TypeVar

from pydevcache.exceptions import DeviceCacheError
from pydevcache.messages import CacheHit, CacheMessage, CacheMiss, RefreshComplete
from pydevcache.store import FileCache

_logger = logging.getLogger(__name__)

T = TypeVar("T")

Fetch = Callable[[], Awaitable[Any]]
"""Zero-argument fetch function; raises to report failure."""

Listener = Callable[[CacheMessage], None]


class RefreshCoordinator:
    """Coordinate cache reads and refreshes for many concurrent consumers.

    Usage::

        coordinator = RefreshCoordinator(cache, listener=on_message)
        result = await coordinator.load("kitchen", DataType.SCHEDULES)
        if isinstance(result, CacheMiss):
            done = await coordinator.fetch_and_cache("kitchen", DataType.SCHEDULES, ttl, fetch)
        elif result.needs_refresh:
            coordinator.background_refresh("kitchen", DataType.SCHEDULES, ttl, fetch)

    Parameters
    ----------
    cache : FileCache or None
        Backing store. ``None`` disables caching: loads always miss and
        fetched data is not written back.
    listener : callable, optional
        Receives every :class:`RefreshComplete` produced by a background
        refresh. Exceptions raised by the listener are logged and dropped.
    """

    def __init__(self, cache: FileCache | None, *, listener: Listener | None = None) -> None:
        self._cache = cache
        self._listener = listener
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def cache(self) -> FileCache | None:
        return self._cache

    @property
    def pending(self) -> int:
        """Number of background tasks still running."""
        return len(self._tasks)

    async def _run_store(self, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load(self, device: str, data_type: str) -> CacheHit | CacheMiss:
        """Answer from the cache without touching the network.

        Reads expired entries too, so a hard-expired entry is a stale hit
        (``needs_refresh=True``) rather than a miss. Store failures are
        logged and reported as a miss.
        """
        cache = self._cache
        if cache is None:
            return CacheMiss(device=device, data_type=data_type)

        try:
            entry = await self._run_store(cache.get_with_expired, device, data_type)
        except DeviceCacheError:
            _logger.debug("Cache read for %s/%s failed", device, data_type, exc_info=True)
            return CacheMiss(device=device, data_type=data_type)

        if entry is None:
            return CacheMiss(device=device, data_type=data_type)

        return CacheHit(
            device=device,
            data_type=data_type,
            data=entry.data,
            cached_at=entry.cached_at,
            needs_refresh=entry.needs_refresh(cache.now()),
        )

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def fetch_and_cache(
        self,
        device: str,
        data_type: str,
        ttl: timedelta,
        fetch: Fetch,
        *,
        device_id: str = "",
    ) -> RefreshComplete:
        """Call *fetch*, write the result to the cache, and report the outcome.

        Never raises for fetch or cache failures: a fetch exception ends up
        in ``RefreshComplete.error``; a failed write-back is logged and the
        fetched data is still returned.
        """
        try:
            data = await fetch()
        except Exception as exc:
            _logger.debug("Fetch for %s/%s failed", device, data_type, exc_info=True)
            return RefreshComplete(device=device, data_type=data_type, error=exc)

        cached_at = None
        cache = self._cache
        if cache is not None:
            try:
                entry = await self._run_store(cache.set_with_id, device, device_id, data_type, data, ttl)
                cached_at = entry.cached_at
            except DeviceCacheError:
                _logger.debug("Caching %s/%s failed", device, data_type, exc_info=True)

        return RefreshComplete(device=device, data_type=data_type, data=data, cached_at=cached_at)

    def background_refresh(
        self,
        device: str,
        data_type: str,
        ttl: timedelta,
        fetch: Fetch,
        *,
        device_id: str = "",
    ) -> asyncio.Task[RefreshComplete]:
        """Start a refresh without waiting for it.

        The returned task resolves to the :class:`RefreshComplete` that is
        also handed to the listener. A refresh nobody listens to still
        writes its result when it finishes.
        """
        task = asyncio.get_running_loop().create_task(
            self._refresh(device, data_type, ttl, fetch, device_id),
            name=f"pydevcache-refresh:{device}:{data_type}",
        )
        self._track(task)
        return task

    async def _refresh(
        self,
        device: str,
        data_type: str,
        ttl: timedelta,
        fetch: Fetch,
        device_id: str,
    ) -> RefreshComplete:
        result = await self.fetch_and_cache(device, data_type, ttl, fetch, device_id=device_id)
        self._emit(result)
        return result

    async def resolve(
        self,
        device: str,
        data_type: str,
        ttl: timedelta,
        fetch: Fetch,
        *,
        device_id: str = "",
    ) -> CacheHit | RefreshComplete:
        """Run one consumer cycle of the protocol.

        Miss: fetch and cache, return the :class:`RefreshComplete`.
        Fresh hit: return it. Stale hit: return it and start a background
        refresh whose result goes to the listener.
        """
        result = await self.load(device, data_type)
        if isinstance(result, CacheMiss):
            return await self.fetch_and_cache(device, data_type, ttl, fetch, device_id=device_id)
        if result.needs_refresh:
            self.background_refresh(device, data_type, ttl, fetch, device_id=device_id)
        return result

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, device: str, data_type: str | None = None) -> asyncio.Task[None]:
        """Delete one entry, or every entry of *device*, in the background.

        Meant to follow a write-through action so the next load misses or
        refreshes. Failures are logged.
        """
        task = asyncio.get_running_loop().create_task(
            self._invalidate(device, data_type),
            name=f"pydevcache-invalidate:{device}:{data_type or '*'}",
        )
        self._track(task)
        return task

    async def _invalidate(self, device: str, data_type: str | None) -> None:
        cache = self._cache
        if cache is None:
            return
        try:
            if data_type is None:
                await self._run_store(cache.invalidate_device, device)
            else:
                await self._run_store(cache.invalidate, device, data_type)
        except DeviceCacheError:
            _logger.debug("Invalidating %s/%s failed", device, data_type or "*", exc_info=True)

    # ------------------------------------------------------------------
    # Task bookkeeping
    # ------------------------------------------------------------------

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _emit(self, message: CacheMessage) -> None:
        if self._listener is None:
            return
        try:
            self._listener(message)
        except Exception:
            _logger.debug("Cache listener failed", exc_info=True)

    async def wait_idle(self) -> None:
        """Wait until every background refresh and invalidation has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
