"""Session resolution gate.

Decides, within a bounded window, whether the signed-in session has a
profile. Protected views consult ``route_guard(gate.state)``:

    NO_TOKEN          -> REDIRECT_LOGIN
    RESOLVING         -> WAIT
    RESOLVED_ABSENT   -> REDIRECT_CREATE_PROFILE
    RESOLVED_PRESENT  -> ALLOW

The window is time-boxed: the gate leaves ``RESOLVING`` when its timer fires,
looking at whatever the profile fetch produced by then. Passing
``resolve_on_fetch=True`` lets a successful fetch end the window early; the
timer still bounds the worst case.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from typing import Any

from freightsync.engine import QueryEngine, QuerySubscription
from freightsync.exceptions import TimeoutExpired
from freightsync.scheduler import AsyncioScheduler, Scheduler
from freightsync.session import SessionStore
from freightsync.types import QueryDescriptor, QueryResult, SessionResolutionState

_logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3.0


class GateState(str, enum.Enum):
    NO_TOKEN = "no_token"
    RESOLVING = "resolving"
    RESOLVED_PRESENT = "resolved_present"
    RESOLVED_ABSENT = "resolved_absent"


class GuardDecision(str, enum.Enum):
    ALLOW = "allow"
    WAIT = "wait"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_CREATE_PROFILE = "redirect_create_profile"


_DECISIONS = {
    GateState.NO_TOKEN: GuardDecision.REDIRECT_LOGIN,
    GateState.RESOLVING: GuardDecision.WAIT,
    GateState.RESOLVED_ABSENT: GuardDecision.REDIRECT_CREATE_PROFILE,
    GateState.RESOLVED_PRESENT: GuardDecision.ALLOW,
}


def route_guard(state: GateState) -> GuardDecision:
    """Map a gate state to what a protected route should do."""
    return _DECISIONS[state]


def _produced(result: QueryResult[Any]) -> bool:
    """Whether the result carries the outcome of a successful fetch.

    Stale, loading and error entries keep the data of their last success.
    """
    return result.is_success or result.data is not None


class CancellationToken:
    """One arming of the gate; cancelling it detaches timer and fetch."""

    __slots__ = ("_callbacks", "_cancelled")

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def add_callback(self, callback: Callable[[], None]) -> None:
        if self._cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()


StateListener = Callable[[GateState], None]


class SessionGate:
    """Bounded-wait state machine over the session store and a profile query."""

    def __init__(
        self,
        engine: QueryEngine,
        session: SessionStore,
        *,
        profile_query: QueryDescriptor,
        scheduler: Scheduler | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        resolve_on_fetch: bool = False,
        on_change: StateListener | None = None,
    ) -> None:
        self._engine = engine
        self._session = session
        self._profile_query = profile_query
        self._scheduler = scheduler or AsyncioScheduler()
        self._timeout = timeout
        self._resolve_on_fetch = resolve_on_fetch
        self._on_change = on_change
        self._state = GateState.NO_TOKEN
        self._arming: CancellationToken | None = None
        self._subscription: QuerySubscription[Any] | None = None
        self._fetched_profile: Any = None
        self._unsubscribe_session: Callable[[], None] | None = None
        self.last_timeout: TimeoutExpired | None = None

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def is_resolving(self) -> bool:
        return self._state is GateState.RESOLVING

    @property
    def decision(self) -> GuardDecision:
        return route_guard(self._state)

    @property
    def snapshot(self) -> SessionResolutionState:
        return SessionResolutionState(
            token=self._session.token,
            profile=self._session.profile,
            is_resolving=self.is_resolving,
        )

    def start(self) -> SessionGate:
        """Begin watching the session and arm for its current facts."""
        if self._unsubscribe_session is None:
            self._unsubscribe_session = self._session.subscribe(self._on_session_change)
        self._rearm()
        return self

    def close(self) -> None:
        """Detach from the session and cancel any pending timer or fetch."""
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None
        if self._arming is not None:
            self._arming.cancel()
            self._arming = None

    def __enter__(self) -> SessionGate:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------------

    def _on_session_change(self, session: SessionStore) -> None:
        self._rearm()

    def _rearm(self) -> None:
        if self._arming is not None:
            self._arming.cancel()
        arming = CancellationToken()
        self._arming = arming
        self._fetched_profile = None

        if self._session.token is None:
            self._transition(GateState.NO_TOKEN)
            return
        if self._session.profile is not None:
            self._transition(GateState.RESOLVED_PRESENT)
            return

        self._transition(GateState.RESOLVING)
        handle = self._scheduler.call_later(self._timeout, lambda: self._on_timeout(arming))
        arming.add_callback(handle.cancel)

        subscription = self._engine.subscribe(
            self._profile_query,
            lambda result: self._on_profile_result(arming, result),
        )
        self._subscription = subscription
        arming.add_callback(subscription.close)

        self._on_profile_result(arming, subscription.result)

    def _on_profile_result(self, arming: CancellationToken, result: QueryResult[Any]) -> None:
        if arming.cancelled or not _produced(result):
            return
        self._fetched_profile = result.data
        if self._resolve_on_fetch and result.data is not None:
            self._resolve_present(arming, result.data)

    def _on_timeout(self, arming: CancellationToken) -> None:
        if arming.cancelled or self._subscription is None:
            return
        if self._fetched_profile is not None:
            self._resolve_present(arming, self._fetched_profile)
            return

        self.last_timeout = TimeoutExpired(self._timeout)
        _logger.debug(
            "%s; status of profile fetch: %s",
            self.last_timeout,
            self._subscription.result.status.value,
        )
        arming.cancel()
        self._transition(GateState.RESOLVED_ABSENT)
        self._session.clear_profile()

    def _resolve_present(self, arming: CancellationToken, profile: Any) -> None:
        arming.cancel()
        self._transition(GateState.RESOLVED_PRESENT)
        self._session.set_profile(profile)

    def _transition(self, state: GateState) -> None:
        if state is self._state:
            return
        _logger.debug("Session gate %s -> %s", self._state.value, state.value)
        self._state = state
        if self._on_change is not None:
            self._on_change(state)
