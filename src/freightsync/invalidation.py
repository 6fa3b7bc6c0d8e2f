"""Tag invalidation index: tag -> dependent cache keys."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable

from freightsync.store import CacheStore
from freightsync.tags import tag_covers
from freightsync.types import CacheStatus, Tag

_logger = logging.getLogger(__name__)


class TagIndex:
    """Reverse index from tags to the cache keys whose results carry them."""

    def __init__(self, store: CacheStore) -> None:
        self._store = store
        self._keys_by_tag: dict[Tag, set[str]] = {}
        self._tags_by_key: dict[str, set[Tag]] = {}
        store.add_eviction_listener(self.unregister)

    def register_tags(self, key: str, tags: Iterable[Tag]) -> None:
        """Record the tags of a freshly resolved key, replacing earlier ones."""
        self.unregister(key)
        tag_set = set(tags)
        if not tag_set:
            return
        self._tags_by_key[key] = tag_set
        for tag in tag_set:
            self._keys_by_tag.setdefault(tag, set()).add(key)

    def unregister(self, key: str) -> None:
        for tag in self._tags_by_key.pop(key, set()):
            keys = self._keys_by_tag.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._keys_by_tag[tag]

    def tags_for(self, key: str) -> frozenset[Tag]:
        return frozenset(self._tags_by_key.get(key, ()))

    def keys_for(self, tags: Iterable[Tag]) -> set[str]:
        """Union of keys registered under any tag covered by ``tags``.

        Invalidating a type tag (``"Order"``) also reaches keys registered
        under its instance tags (``"Order:42"``).
        """
        keys: set[str] = set()
        for invalidated in tags:
            for registered, registered_keys in self._keys_by_tag.items():
                if tag_covers(invalidated, registered):
                    keys |= registered_keys
        return keys

    def invalidate(self, tags: Iterable[Tag]) -> list[str]:
        """Mark dependent entries stale and return the keys that need a refetch.

        Subscribed entries keep their data and become ``stale``; unsubscribed
        entries are evicted outright and never refetched.
        """
        tags = list(tags)
        refetch: list[str] = []
        for key in sorted(self.keys_for(tags)):
            entry = self._store.get(key)
            if entry is None:
                self.unregister(key)
                continue
            if self._store.subscriber_count(key) > 0:
                if entry.status is not CacheStatus.STALE:
                    self._store.put(key, dataclasses.replace(entry, status=CacheStatus.STALE))
                refetch.append(key)
            else:
                self._store.delete(key)
        _logger.debug(
            "Invalidated %s: %d to refetch", ", ".join(tags) or "<none>", len(refetch)
        )
        return refetch

    def clear(self) -> None:
        self._keys_by_tag.clear()
        self._tags_by_key.clear()
