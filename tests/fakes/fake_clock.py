"""Manual scheduler for deterministic timer tests.

Implements the Scheduler protocol with a logical clock that only moves
when the test calls advance(). Due callbacks run synchronously, in time
order, inside advance().

Pattern: FakeClient for testing
"""

from __future__ import annotations

from typing import Any, Callable


class ManualTimer:
    """Timer handle returned by ManualScheduler.call_later()."""

    def __init__(self, when: float, seq: int, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Logical clock for QueryCache and SearchSyncController tests.

    Example:
        >>> scheduler = ManualScheduler()
        >>> fired = []
        >>> scheduler.call_later(0.3, fired.append, "x")
        >>> scheduler.advance(0.3)
        >>> fired
        ['x']
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._seq = 0
        self._timers: list[ManualTimer] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualTimer:
        self._seq += 1
        timer = ManualTimer(self._now + max(0.0, delay), self._seq, callback, args)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        """Number of scheduled, uncancelled timers."""
        return sum(1 for t in self._timers if not t.cancelled())

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every timer that falls due."""
        target = self._now + seconds
        while True:
            self._timers = [t for t in self._timers if not t.cancelled()]
            due = [t for t in self._timers if t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self._now = timer.when
            timer.callback(*timer.args)
        self._now = target

    def advance_ms(self, milliseconds: float) -> None:
        self.advance(milliseconds / 1000.0)
