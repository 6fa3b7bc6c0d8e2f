"""Timer seam used by the cache store and the session gate."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable


@runtime_checkable
class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled."""

    def cancel(self) -> None:
        """Cancel the callback if it has not run yet."""
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Clock plus delayed callbacks.

    Having a protocol here lets tests drive timers deterministically while
    production code runs on the asyncio loop.
    """

    def time(self) -> float:
        """Current time in seconds."""
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` after ``delay`` seconds."""
        ...


class AsyncioScheduler:
    """Scheduler backed by the running event loop."""

    def time(self) -> float:
        try:
            return asyncio.get_running_loop().time()
        except RuntimeError:
            return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)
