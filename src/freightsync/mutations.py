"""Mutation executor: perform writes, then invalidate on success."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from freightsync.api import EndpointRegistry
from freightsync.engine import QueryEngine
from freightsync.exceptions import NetworkError
from freightsync.transport import Transport
from freightsync.types import MutationDescriptor

_logger = logging.getLogger(__name__)


@dataclass
class MutationState:
    """Outcome of the latest call through a ``MutationHandle``."""

    is_loading: bool = False
    data: Any = None
    error: NetworkError | None = None
    calls: int = field(default=0)

    @property
    def is_success(self) -> bool:
        return self.calls > 0 and not self.is_loading and self.error is None

    @property
    def is_error(self) -> bool:
        return self.error is not None


class MutationExecutor:
    """Runs mutation descriptors and applies their invalidations."""

    def __init__(
        self,
        registry: EndpointRegistry,
        transport: Transport,
        engine: QueryEngine,
    ) -> None:
        self._registry = registry
        self._transport = transport
        self._engine = engine

    async def execute(self, descriptor: MutationDescriptor) -> Any:
        """Perform the write and return the acknowledged result.

        Tags are invalidated (and subscribed queries refetched) before this
        returns. A failed write raises ``NetworkError`` and invalidates
        nothing.
        """
        endpoint = self._registry.mutation_endpoint(descriptor)
        name = f"{descriptor.resource_type}.{descriptor.operation_name}"
        try:
            result = await endpoint.execute(self._transport, descriptor.params)
        except NetworkError as exc:
            _logger.warning("Mutation %s failed: %s", name, exc)
            raise

        if descriptor.invalidates_tags:
            _logger.debug("Mutation %s invalidates %s", name, list(descriptor.invalidates_tags))
            self._engine.invalidate(descriptor.invalidates_tags)
        return result

    def handle(self) -> MutationHandle:
        return MutationHandle(self)


class MutationHandle:
    """Form-side wrapper tracking loading/error state across calls."""

    def __init__(self, executor: MutationExecutor) -> None:
        self._executor = executor
        self.state = MutationState()

    async def __call__(self, descriptor: MutationDescriptor) -> Any:
        self.state = MutationState(is_loading=True, calls=self.state.calls + 1)
        try:
            result = await self._executor.execute(descriptor)
        except NetworkError as exc:
            self.state = MutationState(error=exc, calls=self.state.calls)
            raise
        self.state = MutationState(data=result, calls=self.state.calls)
        return result

    def reset(self) -> None:
        self.state = MutationState()
