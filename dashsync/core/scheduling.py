"""Timer scheduling for cache polling, eviction and search debounce.

Every timer in dashsync goes through a Scheduler so that tests can swap
the event loop clock for a logical one and advance time explicitly.

Pattern: Protocol Duck Typing (production LoopScheduler, test fakes)
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled before it fires."""

    def cancel(self) -> None:
        """Cancel the callback. Cancelling twice is a no-op."""
        ...

    def cancelled(self) -> bool:
        """Return True if cancel() was called."""
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Clock plus delayed-callback primitive.

    Times are in seconds on a monotonic scale; only differences matter.
    """

    def now(self) -> float:
        """Return the current monotonic time in seconds."""
        ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run ``callback(*args)`` after ``delay`` seconds."""
        ...


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop.

    The loop is resolved lazily so the scheduler can be created before the
    loop starts (e.g. at import or settings time).
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback, *args)


def ms_to_seconds(value_ms: int | float) -> float:
    """Convert a millisecond setting into scheduler seconds."""
    return value_ms / 1000.0
