"""freightsync - Tag-invalidated query cache for a freight marketplace API."""

# Endpoint declarations
from freightsync.api import EndpointRegistry, RequestConfig, ResourceApi

# Client
from freightsync.client import FreightClient
from freightsync.config import ClientConfig

# Duration parsing
from freightsync.duration import parse_duration

# Engine
from freightsync.engine import QueryEngine, QuerySubscription
from freightsync.exceptions import (
    ConfigError,
    FreightSyncError,
    NetworkError,
    TimeoutExpired,
    UnknownEndpointError,
)
from freightsync.filters import FilterState, clean_filters, is_inactive
from freightsync.gate import GateState, GuardDecision, SessionGate, route_guard
from freightsync.invalidation import TagIndex
from freightsync.keys import make_cache_key
from freightsync.mutations import MutationExecutor, MutationHandle, MutationState
from freightsync.refs import Populated, Ref, Reference, resolve_ref, resolve_refs
from freightsync.selector import FilteredListQuery
from freightsync.session import SessionStore
from freightsync.store import CacheStore
from freightsync.tags import instance_tag, parse_tag, provided_tags, resource_tag, tag_covers
from freightsync.transport import HttpTransport, Transport

# Core types
from freightsync.types import (
    CacheEntry,
    CacheStatus,
    Duration,
    MutationDescriptor,
    QueryDescriptor,
    QueryResult,
    SessionResolutionState,
    Tag,
)

__version__ = "0.1.0"

__all__ = [
    "CacheEntry",
    "CacheStatus",
    "CacheStore",
    "ClientConfig",
    "ConfigError",
    "Duration",
    "EndpointRegistry",
    "FilterState",
    "FilteredListQuery",
    "FreightClient",
    "FreightSyncError",
    "GateState",
    "GuardDecision",
    "HttpTransport",
    "MutationDescriptor",
    "MutationExecutor",
    "MutationHandle",
    "MutationState",
    "NetworkError",
    "Populated",
    "QueryDescriptor",
    "QueryEngine",
    "QueryResult",
    "QuerySubscription",
    "Ref",
    "Reference",
    "RequestConfig",
    "ResourceApi",
    "SessionGate",
    "SessionResolutionState",
    "SessionStore",
    "Tag",
    "TagIndex",
    "TimeoutExpired",
    "Transport",
    "UnknownEndpointError",
    "clean_filters",
    "instance_tag",
    "is_inactive",
    "make_cache_key",
    "parse_duration",
    "parse_tag",
    "provided_tags",
    "resolve_ref",
    "resolve_refs",
    "resource_tag",
    "route_guard",
    "tag_covers",
]
