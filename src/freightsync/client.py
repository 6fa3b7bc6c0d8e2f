"""Client facade wiring store, tag index, engine, executor and transport."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from freightsync.api import EndpointRegistry, ResourceApi
from freightsync.config import ClientConfig
from freightsync.engine import QueryEngine, QuerySubscription, ResultListener
from freightsync.gate import SessionGate, StateListener
from freightsync.invalidation import TagIndex
from freightsync.mutations import MutationExecutor, MutationHandle
from freightsync.exceptions import NetworkError
from freightsync.resources import ALL_APIS, auth, orders, profiles, trucks
from freightsync.scheduler import AsyncioScheduler, Scheduler
from freightsync.selector import FilteredListQuery
from freightsync.session import SessionStore
from freightsync.store import CacheStore
from freightsync.transport import HttpTransport, Transport
from freightsync.types import MutationDescriptor, QueryDescriptor, QueryResult, Tag

_logger = logging.getLogger(__name__)


class FreightClient:
    """Data-synchronization client for the freight marketplace API.

    Owns exactly one cache store and one tag index; every query, mutation
    and gate created through the client shares them.

    Example:
        async with FreightClient(ClientConfig("https://api.example.com/api")) as client:
            client.session.set_token(token)
            orders = await client.fetch(client.orders.get_all_orders())
            await client.mutate(client.orders.create_order({"title": "Steel"}))
    """

    orders = orders
    trucks = trucks
    profiles = profiles
    auth = auth

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: SessionStore | None = None,
        transport: Transport | None = None,
        scheduler: Scheduler | None = None,
        apis: Iterable[ResourceApi] = ALL_APIS,
    ) -> None:
        self.config = config
        self.session = session if session is not None else SessionStore()
        self._owns_transport = transport is None
        self._transport: Transport = (
            transport if transport is not None else HttpTransport(config, self.session)
        )
        self._scheduler = scheduler or AsyncioScheduler()
        self.store = CacheStore(self._scheduler)
        self.index = TagIndex(self.store)
        self.registry = EndpointRegistry(apis)
        self.engine = QueryEngine(
            self.store, self.index, self.registry, self._transport, self._scheduler
        )
        self.mutations = MutationExecutor(self.registry, self._transport, self.engine)

    @classmethod
    def from_env(cls, **kwargs: Any) -> FreightClient:
        """Build a client whose base URL comes from ``FREIGHTSYNC_BASE_URL``."""
        return cls(ClientConfig.from_env(), **kwargs)

    def api(self, resource_type: str) -> ResourceApi:
        return self.registry.api(resource_type)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def run(self, descriptor: QueryDescriptor, *, skip: bool = False) -> QueryResult[Any]:
        return self.engine.run(descriptor, skip=skip)

    def query(
        self,
        descriptor: QueryDescriptor,
        listener: ResultListener | None = None,
        *,
        skip: bool = False,
    ) -> QuerySubscription[Any]:
        """Subscribe to a query; close the subscription when the view goes away."""
        return self.engine.subscribe(descriptor, listener, skip=skip)

    async def fetch(self, descriptor: QueryDescriptor) -> Any:
        return await self.engine.fetch(descriptor)

    def orders_list(
        self,
        filters: Mapping[str, Any] | None = None,
        listener: ResultListener | None = None,
    ) -> FilteredListQuery:
        """All orders, or the filtered list while any filter is set."""
        return FilteredListQuery(
            self.engine,
            all_query=orders.get_all_orders(),
            filtered_query=orders.filter_orders,
            filters=filters,
            listener=listener,
        )

    def trucks_list(
        self,
        filters: Mapping[str, Any] | None = None,
        listener: ResultListener | None = None,
    ) -> FilteredListQuery:
        """All trucks, or the filtered list while any filter is set."""
        return FilteredListQuery(
            self.engine,
            all_query=trucks.get_all_trucks(),
            filtered_query=trucks.filter_trucks,
            filters=filters,
            listener=listener,
        )

    # -------------------------------------------------------------------------
    # Mutations and invalidation
    # -------------------------------------------------------------------------

    async def mutate(self, descriptor: MutationDescriptor) -> Any:
        return await self.mutations.execute(descriptor)

    def mutation(self) -> MutationHandle:
        return self.mutations.handle()

    def invalidate(self, tags: Iterable[Tag]) -> list[str]:
        return self.engine.invalidate(tags)

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    async def request_otp(self, phone: str, language: str | None = None) -> Any:
        """Ask the backend to text a one-time passcode to ``phone``."""
        return await self.mutate(auth.send_otp(phone, language))

    async def login(self, phone: str, otp: str) -> Any:
        """Verify the passcode and store the returned token in the session.

        Returns the verification response (``{token, user}``).
        """
        result = await self.mutate(auth.verify_otp(phone, otp))
        token = result.get("token") if isinstance(result, dict) else None
        if not token:
            raise NetworkError(
                "Passcode verification returned no token", endpoint="/auth/verify-otp"
            )
        self.session.set_token(token)
        _logger.debug("Session token set from passcode login")
        return result

    def session_gate(self, on_change: StateListener | None = None) -> SessionGate:
        """Create and start a session gate over ``profiles.get_my_profile``."""
        gate = SessionGate(
            self.engine,
            self.session,
            profile_query=profiles.get_my_profile(),
            scheduler=self._scheduler,
            timeout=self.config.gate_timeout,
            resolve_on_fetch=self.config.resolve_profile_on_fetch,
            on_change=on_change,
        )
        return gate.start()

    def reset(self) -> None:
        """Drop every cached entry and tag registration."""
        _logger.debug("Resetting cache (%d entries)", len(self.store))
        self.engine.reset()

    def logout(self) -> None:
        """Clear the session and the cache together."""
        self.session.logout()
        self.reset()

    async def aclose(self) -> None:
        """Close the transport if the client created it."""
        closer: Callable[[], Any] | None = getattr(self._transport, "aclose", None)
        if self._owns_transport and closer is not None:
            await closer()

    async def __aenter__(self) -> FreightClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
