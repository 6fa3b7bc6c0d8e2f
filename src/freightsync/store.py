"""Cache store: one entry per cache key, with per-key listeners.

This is the only place entries are written. Listeners are notified
synchronously from ``put`` and ``delete``; entries with ``keep_unused_for``
are purged after that many seconds without subscribers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any

from freightsync.scheduler import AsyncioScheduler, Scheduler, TimerHandle
from freightsync.types import CacheEntry, CacheStatus

_logger = logging.getLogger(__name__)

Listener = Callable[[CacheEntry[Any] | None], None]
EvictionListener = Callable[[str], None]


class CacheStore:
    """In-memory cache store with subscriber bookkeeping and unused-entry expiry."""

    def __init__(self, scheduler: Scheduler | None = None) -> None:
        self._scheduler = scheduler or AsyncioScheduler()
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._listeners: dict[str, list[Listener]] = {}
        self._expiry: dict[str, TimerHandle] = {}
        self._eviction_listeners: list[EvictionListener] = []

    def get(self, key: str) -> CacheEntry[Any] | None:
        """Get an entry by key. Never fetches."""
        return self._entries.get(key)

    def put(self, key: str, entry: CacheEntry[Any]) -> None:
        """Store an entry and notify the key's subscribers."""
        if entry.key != key:
            raise ValueError(f"Entry key {entry.key!r} does not match {key!r}")
        self._entries[key] = entry
        # A successful write restarts any pending countdown.
        if entry.status is CacheStatus.SUCCESS and not self.subscriber_count(key):
            self._arm_expiry(key)
        self._notify(key, entry)

    def delete(self, key: str) -> CacheEntry[Any] | None:
        """Evict an entry. Subscribers, if any, are notified with None."""
        self._cancel_expiry(key)
        entry = self._entries.pop(key, None)
        if entry is None:
            return None
        _logger.debug("Evicted %s", key)
        for listener in list(self._eviction_listeners):
            listener(key)
        self._notify(key, None)
        return entry

    def subscribe(self, key: str, listener: Listener) -> None:
        """Register interest in a key; cancels a pending expiry."""
        self._listeners.setdefault(key, []).append(listener)
        self._cancel_expiry(key)

    def unsubscribe(self, key: str, listener: Listener) -> None:
        """Drop interest in a key; the last unsubscribe arms expiry."""
        listeners = self._listeners.get(key)
        if not listeners or listener not in listeners:
            return
        listeners.remove(listener)
        if not listeners:
            del self._listeners[key]
            self._arm_expiry(key)

    def subscriber_count(self, key: str) -> int:
        return len(self._listeners.get(key, ()))

    def add_eviction_listener(self, listener: EvictionListener) -> None:
        """Call ``listener(key)`` whenever an entry is evicted or purged."""
        self._eviction_listeners.append(listener)

    def keys(self) -> list[str]:
        return list(self._entries)

    def clear(self) -> None:
        """Drop every entry. Subscriptions stay registered."""
        for handle in self._expiry.values():
            handle.cancel()
        self._expiry.clear()
        keys = list(self._entries)
        self._entries.clear()
        for key in keys:
            for listener in list(self._eviction_listeners):
                listener(key)
            self._notify(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _notify(self, key: str, entry: CacheEntry[Any] | None) -> None:
        for listener in list(self._listeners.get(key, ())):
            listener(entry)

    def _arm_expiry(self, key: str) -> None:
        self._cancel_expiry(key)
        entry = self._entries.get(key)
        if entry is None or entry.keep_unused_for is None:
            return
        self._expiry[key] = self._scheduler.call_later(
            entry.keep_unused_for, lambda: self._expire(key)
        )

    def _cancel_expiry(self, key: str) -> None:
        handle = self._expiry.pop(key, None)
        if handle is not None:
            handle.cancel()

    def _expire(self, key: str) -> None:
        self._expiry.pop(key, None)
        if self.subscriber_count(key):
            return
        _logger.debug("Purging unused entry %s", key)
        self.delete(key)
