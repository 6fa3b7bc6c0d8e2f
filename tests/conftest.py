"""Shared pytest fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import pytest

from freightsync import ClientConfig, FreightClient, NetworkError, SessionStore

BASE_URL = "https://api.test.dev/api"

_EPSILON = 1e-9


class FakeTimer:
    """Handle returned by ``FakeScheduler.call_later``."""

    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock: timers fire only when ``advance`` moves past them."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: list[FakeTimer] = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in deadline order."""
        target = self.now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target + _EPSILON]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self._timers.remove(timer)
            self.now = max(self.now, timer.when)
            timer.callback()
        self._timers = [t for t in self._timers if not t.cancelled]
        self.now = target


@dataclass
class Call:
    method: str
    path: str
    params: dict[str, Any] | None
    json: Any
    authenticated: bool = True


class FakeTransport:
    """Scripted transport recording every request.

    Unscripted routes answer 404 like a real backend would.
    """

    def __init__(self) -> None:
        self.calls: list[Call] = []
        self._responses: dict[tuple[str, str], Any] = {}
        self._holds: dict[tuple[str, str], asyncio.Event] = {}

    def respond(self, method: str, path: str, value: Any) -> None:
        """Answer ``value``, or ``value(params, json)`` when it is callable."""
        self._responses[(method, path)] = value

    def fail(self, method: str, path: str, error: BaseException | None = None) -> None:
        self._responses[(method, path)] = error or NetworkError(
            f"HTTP 500 from {method} {path}: boom", status_code=500, endpoint=path
        )

    def hold(self, method: str, path: str) -> asyncio.Event:
        """Block matching requests until the returned event is set."""
        event = asyncio.Event()
        self._holds[(method, path)] = event
        return event

    def count(self, method: str, path: str) -> int:
        return sum(1 for c in self.calls if c.method == method and c.path == path)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        authenticated: bool = True,
    ) -> Any:
        self.calls.append(
            Call(method, path, dict(params) if params is not None else None, json, authenticated)
        )
        hold = self._holds.get((method, path))
        if hold is not None:
            await hold.wait()
        if (method, path) not in self._responses:
            raise NetworkError(f"HTTP 404 from {method} {path}", status_code=404, endpoint=path)
        response = self._responses[(method, path)]
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(params, json)
        return response


async def settle() -> None:
    """Let pending fetch tasks and their done-callbacks run."""
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def session() -> SessionStore:
    return SessionStore()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(BASE_URL)


@pytest.fixture
def client(
    config: ClientConfig,
    session: SessionStore,
    transport: FakeTransport,
    scheduler: FakeScheduler,
) -> FreightClient:
    """Client wired to the fake transport and manual clock."""
    return FreightClient(config, session=session, transport=transport, scheduler=scheduler)
