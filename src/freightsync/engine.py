"""Query execution engine.

Resolves descriptors to cache keys, dispatches at most one network call per
key (single-flight), writes results through the cache store and registers
their tags. Views attach through ``QuerySubscription``.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

from freightsync.api import EndpointRegistry, QueryEndpoint
from freightsync.invalidation import TagIndex
from freightsync.scheduler import AsyncioScheduler, Scheduler
from freightsync.store import CacheStore
from freightsync.transport import Transport
from freightsync.types import CacheEntry, CacheStatus, QueryDescriptor, QueryResult, Tag

_logger = logging.getLogger(__name__)

T = TypeVar("T")

ResultListener = Callable[[QueryResult[Any]], None]

_FRESH = frozenset({CacheStatus.LOADING, CacheStatus.SUCCESS})


class QueryEngine:
    """Runs query descriptors against the shared cache store."""

    def __init__(
        self,
        store: CacheStore,
        index: TagIndex,
        registry: EndpointRegistry,
        transport: Transport,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._store = store
        self._index = index
        self._registry = registry
        self._transport = transport
        self._scheduler = scheduler or AsyncioScheduler()
        self._in_flight: dict[str, asyncio.Task[CacheEntry[Any]]] = {}

    @property
    def store(self) -> CacheStore:
        return self._store

    def run(self, descriptor: QueryDescriptor, *, skip: bool = False) -> QueryResult[Any]:
        """Return the cached result, dispatching a fetch when needed.

        With ``skip`` nothing is created or touched and the result is idle.
        Fresh entries (loading or success) are returned as-is; stale, failed
        or missing ones trigger exactly one network call shared by every
        concurrent caller.
        """
        if skip:
            return QueryResult.skipped_result()

        key = descriptor.cache_key()
        entry = self._store.get(key)
        if entry is not None and entry.status in _FRESH:
            return QueryResult.from_entry(entry)

        self._dispatch(key, descriptor)
        return QueryResult.from_entry(self._store.get(key), key)

    def subscribe(
        self,
        descriptor: QueryDescriptor,
        listener: ResultListener | None = None,
        *,
        skip: bool = False,
    ) -> QuerySubscription[Any]:
        """Subscribe a view to a descriptor and run it."""
        return QuerySubscription(self, descriptor, listener, skip=skip)

    async def fetch(self, descriptor: QueryDescriptor) -> Any:
        """Run a descriptor to completion and return its data.

        Raises the stored ``NetworkError`` when the fetch failed.
        """
        key = descriptor.cache_key()
        self.run(descriptor)
        entry = await self.wait(key)
        if entry is None:
            return None
        if entry.status is CacheStatus.ERROR and entry.error is not None:
            raise entry.error
        return entry.data

    async def wait(self, key: str) -> CacheEntry[Any] | None:
        """Wait for the in-flight call on ``key``, if any."""
        task = self._in_flight.get(key)
        if task is None:
            return self._store.get(key)
        return await asyncio.shield(task)

    def refetch(self, key: str) -> asyncio.Task[CacheEntry[Any]] | None:
        """Force a network call for a cached key (joins one already in flight)."""
        entry = self._store.get(key)
        if entry is None or entry.descriptor is None:
            return None
        return self._dispatch(key, entry.descriptor)

    def invalidate(self, tags: Iterable[Tag]) -> list[str]:
        """Invalidate tags and refetch every affected key that has subscribers.

        Stale marking and refetch dispatch both happen before this returns.
        """
        keys = self._index.invalidate(tags)
        for key in keys:
            self.refetch(key)
        return keys

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def reset(self) -> None:
        """Drop all cached state. Calls still in flight finish but are discarded."""
        self._in_flight.clear()
        self._store.clear()
        self._index.clear()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _dispatch(self, key: str, descriptor: QueryDescriptor) -> asyncio.Task[CacheEntry[Any]]:
        task = self._in_flight.get(key)
        if task is not None:
            entry = self._store.get(key)
            if entry is None or entry.status is not CacheStatus.LOADING:
                self._put_loading(key, descriptor, entry, self._registry.query_endpoint(descriptor))
            _logger.debug("Joining in-flight fetch for %s", key)
            return task

        endpoint = self._registry.query_endpoint(descriptor)
        self._put_loading(key, descriptor, self._store.get(key), endpoint)
        task = asyncio.get_running_loop().create_task(self._execute(key, descriptor, endpoint))
        self._in_flight[key] = task
        task.add_done_callback(lambda done: self._forget(key, done))
        return task

    def _put_loading(
        self,
        key: str,
        descriptor: QueryDescriptor,
        previous: CacheEntry[Any] | None,
        endpoint: QueryEndpoint,
    ) -> None:
        # Previous data stays visible while the refetch runs.
        self._store.put(
            key,
            CacheEntry(
                key=key,
                status=CacheStatus.LOADING,
                descriptor=descriptor,
                data=previous.data if previous is not None else None,
                tags=previous.tags if previous is not None else frozenset(),
                last_fetch_started_at=self._scheduler.time(),
                keep_unused_for=endpoint.keep_unused_for,
            ),
        )

    def _forget(self, key: str, task: asyncio.Task[CacheEntry[Any]]) -> None:
        if self._in_flight.get(key) is not task:
            return
        del self._in_flight[key]
        if task.cancelled():
            entry = self._store.get(key)
            if entry is not None and entry.status is CacheStatus.LOADING:
                self._store.put(key, dataclasses.replace(entry, status=CacheStatus.IDLE))

    async def _execute(
        self,
        key: str,
        descriptor: QueryDescriptor,
        endpoint: QueryEndpoint,
    ) -> CacheEntry[Any]:
        _logger.debug("Fetching %s", key)
        started = self._store.get(key)
        started_at = started.last_fetch_started_at if started is not None else None
        try:
            data, tags = await endpoint.execute(self._transport, descriptor.params)
        except Exception as exc:
            _logger.warning("Query %s failed: %s", key, exc)
            current = self._store.get(key)
            failed: CacheEntry[Any] = CacheEntry(
                key=key,
                status=CacheStatus.ERROR,
                descriptor=descriptor,
                data=current.data if current is not None else None,
                error=exc,
                last_fetch_started_at=started_at,
                keep_unused_for=endpoint.keep_unused_for,
            )
            if current is not None and self._in_flight.get(key) is asyncio.current_task():
                self._store.put(key, failed)
            return failed

        entry: CacheEntry[Any] = CacheEntry(
            key=key,
            status=CacheStatus.SUCCESS,
            descriptor=descriptor,
            data=data,
            tags=frozenset(tags),
            last_fetch_started_at=started_at,
            keep_unused_for=endpoint.keep_unused_for,
        )
        if self._store.get(key) is None or self._in_flight.get(key) is not asyncio.current_task():
            # Evicted or reset while in flight.
            _logger.debug("Discarding result for %s", key)
            return entry
        self._store.put(key, entry)
        self._index.register_tags(key, tags)
        return entry


class QuerySubscription(Generic[T]):
    """A view's live handle on one query.

    Counts as a subscriber of the cache key until ``close()``; a skipped
    subscription never touches the cache and always reports idle.
    """

    def __init__(
        self,
        engine: QueryEngine,
        descriptor: QueryDescriptor,
        listener: ResultListener | None = None,
        *,
        skip: bool = False,
    ) -> None:
        self._engine = engine
        self.descriptor = descriptor
        self.skip = skip
        self._listener = listener
        self._closed = False
        self.key: str | None = None
        if skip:
            return
        self.key = descriptor.cache_key()
        engine.store.subscribe(self.key, self._on_change)
        try:
            engine.run(descriptor)
        except Exception:
            self.close()
            raise

    @property
    def result(self) -> QueryResult[T]:
        if self.key is None:
            return QueryResult.skipped_result()
        return QueryResult.from_entry(self._engine.store.get(self.key), self.key)

    @property
    def closed(self) -> bool:
        return self._closed

    async def wait(self) -> QueryResult[T]:
        """Wait for the current fetch (if any) and return the result."""
        if self.key is not None:
            await self._engine.wait(self.key)
        return self.result

    def refetch(self) -> None:
        """Run the query again, even when the cached result is fresh."""
        if self.key is None or self._closed:
            return
        if self._engine.refetch(self.key) is None:
            self._engine.run(self.descriptor)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.key is not None:
            self._engine.store.unsubscribe(self.key, self._on_change)

    def _on_change(self, entry: CacheEntry[Any] | None) -> None:
        if self._listener is not None and not self._closed:
            self._listener(QueryResult.from_entry(entry, self.key))

    def __enter__(self) -> QuerySubscription[T]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<QuerySubscription {self.key or 'skipped'} {self.result.status.value}>"
