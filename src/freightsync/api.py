"""Endpoint declarations: one ``ResourceApi`` per backend resource.

Declare endpoints with decorators; calling a declared endpoint builds a
descriptor instead of touching the network:

    orders = ResourceApi("Order", "/orders", tag_types=("Order", "MyOrders"))

    @orders.query
    def get_order_by_id(id: str) -> RequestConfig:
        return RequestConfig(path=f"/{id}", provides=provided_tags("Order", id))

    descriptor = orders.get_order_by_id("42")
    # QueryDescriptor("Order", "get_order_by_id", {"id": "42"})
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from functools import update_wrapper
from typing import TYPE_CHECKING, Any

from freightsync.duration import parse_duration
from freightsync.exceptions import UnknownEndpointError
from freightsync.tags import dedupe_tags
from freightsync.types import Duration, MutationDescriptor, QueryDescriptor, Tag

if TYPE_CHECKING:
    from freightsync.transport import Transport

TagsProvider = Sequence[Tag] | Callable[[Any], Sequence[Tag]]


@dataclass(frozen=True, slots=True)
class RequestConfig:
    """How to perform one request and which tags it provides or invalidates."""

    path: str
    method: str = "GET"
    params: Mapping[str, Any] | None = None
    body: Any = None
    provides: TagsProvider = ()
    invalidates: Sequence[Tag] = ()
    transform: Callable[[Any], Any] | None = None
    authenticated: bool = True


class _Endpoint:
    """Shared plumbing: signature binding and request building."""

    def __init__(self, api: ResourceApi, fn: Callable[..., RequestConfig]) -> None:
        self._api = api
        self._fn = fn
        self._signature = inspect.signature(fn)
        self.name = fn.__name__
        update_wrapper(self, fn)

    @property
    def resource_type(self) -> str:
        return self._api.resource_type

    def _bind(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> dict[str, Any]:
        bound = self._signature.bind(*args, **kwargs)
        bound.apply_defaults()
        params: dict[str, Any] = {}
        for name, value in bound.arguments.items():
            kind = self._signature.parameters[name].kind
            if kind is inspect.Parameter.VAR_KEYWORD:
                params.update(value)
            elif kind is inspect.Parameter.VAR_POSITIONAL:
                raise TypeError(f"{self.name}: *args parameters are not supported")
            else:
                params[name] = value
        return params

    def build(self, params: Mapping[str, Any]) -> RequestConfig:
        return self._fn(**params)

    async def _send(self, transport: Transport, config: RequestConfig) -> Any:
        raw = await transport.request(
            config.method,
            self._api.url(config.path),
            params=config.params,
            json=config.body,
            authenticated=config.authenticated,
        )
        return config.transform(raw) if config.transform is not None else raw

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.resource_type}.{self.name}>"


class QueryEndpoint(_Endpoint):
    """A declared read; calling it returns a ``QueryDescriptor``."""

    def __init__(
        self,
        api: ResourceApi,
        fn: Callable[..., RequestConfig],
        keep_unused_for: Duration | None = None,
    ) -> None:
        super().__init__(api, fn)
        self.keep_unused_for = (
            parse_duration(keep_unused_for) if keep_unused_for is not None else None
        )

    def __call__(self, *args: Any, **kwargs: Any) -> QueryDescriptor:
        return QueryDescriptor(self.resource_type, self.name, self._bind(args, kwargs))

    async def execute(
        self, transport: Transport, params: Mapping[str, Any]
    ) -> tuple[Any, tuple[Tag, ...]]:
        """Run the request; return data and the tags it provides."""
        config = self.build(params)
        data = await self._send(transport, config)
        provides = config.provides(data) if callable(config.provides) else config.provides
        return data, dedupe_tags(provides)


class MutationEndpoint(_Endpoint):
    """A declared write; calling it returns a ``MutationDescriptor``."""

    def __call__(self, *args: Any, **kwargs: Any) -> MutationDescriptor:
        params = self._bind(args, kwargs)
        config = self.build(params)
        return MutationDescriptor(
            self.resource_type,
            self.name,
            params,
            invalidates_tags=dedupe_tags(config.invalidates),
        )

    async def execute(self, transport: Transport, params: Mapping[str, Any]) -> Any:
        return await self._send(transport, self.build(params))


class ResourceApi:
    """Endpoint declarations for one resource under one base path."""

    def __init__(
        self,
        resource_type: str,
        base_path: str,
        *,
        tag_types: Sequence[str] = (),
    ) -> None:
        self.resource_type = resource_type
        self.base_path = base_path.rstrip("/")
        self.tag_types = tuple(tag_types) or (resource_type,)
        self.queries: dict[str, QueryEndpoint] = {}
        self.mutations: dict[str, MutationEndpoint] = {}

    def query(
        self,
        fn: Callable[..., RequestConfig] | None = None,
        *,
        keep_unused_for: Duration | None = None,
    ) -> Any:
        """Decorator declaring a read endpoint.

        Usable bare (``@api.query``) or with options
        (``@api.query(keep_unused_for="5m")``).
        """

        def decorator(func: Callable[..., RequestConfig]) -> QueryEndpoint:
            endpoint = QueryEndpoint(self, func, keep_unused_for)
            self._register(self.queries, endpoint)
            return endpoint

        if fn is not None:
            return decorator(fn)
        return decorator

    def mutation(self, fn: Callable[..., RequestConfig]) -> MutationEndpoint:
        """Decorator declaring a write endpoint."""
        endpoint = MutationEndpoint(self, fn)
        self._register(self.mutations, endpoint)
        return endpoint

    def url(self, path: str) -> str:
        """Join the base path and an endpoint path (``"/"`` keeps the slash)."""
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_path}{path}"

    def _register(self, table: dict[str, Any], endpoint: _Endpoint) -> None:
        if endpoint.name in self.queries or endpoint.name in self.mutations:
            raise ValueError(f"{self.resource_type}.{endpoint.name} is already declared")
        table[endpoint.name] = endpoint

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        endpoint = self.__dict__.get("queries", {}).get(name) or self.__dict__.get(
            "mutations", {}
        ).get(name)
        if endpoint is None:
            raise AttributeError(f"{self.resource_type} has no endpoint {name!r}")
        return endpoint

    def __repr__(self) -> str:
        return f"<ResourceApi {self.resource_type} {self.base_path or '/'}>"


class EndpointRegistry:
    """Looks up the endpoint behind a descriptor."""

    def __init__(self, apis: Iterable[ResourceApi]) -> None:
        self._apis: dict[str, ResourceApi] = {}
        for api in apis:
            if api.resource_type in self._apis:
                raise ValueError(f"Duplicate resource type {api.resource_type!r}")
            self._apis[api.resource_type] = api

    def api(self, resource_type: str) -> ResourceApi:
        try:
            return self._apis[resource_type]
        except KeyError:
            raise UnknownEndpointError(f"Unknown resource type {resource_type!r}") from None

    def query_endpoint(self, descriptor: QueryDescriptor) -> QueryEndpoint:
        endpoint = self.api(descriptor.resource_type).queries.get(descriptor.operation_name)
        if endpoint is None:
            raise UnknownEndpointError(
                f"Unknown query {descriptor.resource_type}.{descriptor.operation_name}"
            )
        return endpoint

    def mutation_endpoint(self, descriptor: MutationDescriptor) -> MutationEndpoint:
        endpoint = self.api(descriptor.resource_type).mutations.get(descriptor.operation_name)
        if endpoint is None:
            raise UnknownEndpointError(
                f"Unknown mutation {descriptor.resource_type}.{descriptor.operation_name}"
            )
        return endpoint

    def __iter__(self) -> Iterator[ResourceApi]:
        return iter(self._apis.values())
