"""Core types for the freightsync data-synchronization layer."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Generic,
    NewType,
    TypeVar,
)

from freightsync.keys import make_cache_key

T = TypeVar("T")

# Branded tag type - compile-time enforcement only
if TYPE_CHECKING:
    Tag = NewType("Tag", str)
else:
    Tag = str


class CacheStatus(str, enum.Enum):
    """Lifecycle status of a cache entry."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
    STALE = "stale"


@dataclass(frozen=True, slots=True)
class QueryDescriptor:
    """Identity of a read request: resource, operation, parameters."""

    resource_type: str
    operation_name: str
    params: Mapping[str, Any] = field(default_factory=dict)

    def cache_key(self) -> str:
        return make_cache_key(self.resource_type, self.operation_name, self.params)


@dataclass(frozen=True, slots=True)
class MutationDescriptor:
    """A write request and the tags it invalidates once acknowledged."""

    resource_type: str
    operation_name: str
    params: Mapping[str, Any] = field(default_factory=dict)
    invalidates_tags: tuple[Tag, ...] = ()


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """A cached query result with metadata.

    Entries are immutable snapshots; the cache store replaces them wholesale
    on every transition.
    """

    key: str
    status: CacheStatus
    descriptor: QueryDescriptor | None = None
    data: T | None = None
    error: BaseException | None = None
    tags: frozenset[Tag] = frozenset()
    last_fetch_started_at: float | None = None  # scheduler clock, seconds
    keep_unused_for: float | None = None  # seconds of disuse before purge


@dataclass(frozen=True, slots=True)
class QueryResult(Generic[T]):
    """What a view sees for a query: status plus data or error."""

    status: CacheStatus
    key: str | None = None
    data: T | None = None
    error: BaseException | None = None
    skipped: bool = False

    @classmethod
    def from_entry(cls, entry: CacheEntry[T] | None, key: str | None = None) -> QueryResult[T]:
        if entry is None:
            return cls(status=CacheStatus.IDLE, key=key)
        return cls(
            status=entry.status,
            key=entry.key,
            data=entry.data,
            error=entry.error,
        )

    @classmethod
    def skipped_result(cls) -> QueryResult[T]:
        return cls(status=CacheStatus.IDLE, skipped=True)

    @property
    def is_loading(self) -> bool:
        return self.status is CacheStatus.LOADING

    @property
    def is_success(self) -> bool:
        return self.status is CacheStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status is CacheStatus.ERROR


@dataclass(frozen=True, slots=True)
class SessionResolutionState:
    """Token/profile facts plus the gate's own resolving flag."""

    token: str | None
    profile: Any | None
    is_resolving: bool


# Duration type alias
Duration = str | int | float  # "300s", "5m", "1h" or seconds
