"""SearchSyncController - debounced search text <-> navigation state.

State machine per controller::

    IDLE --input--> PENDING(timer) --expiry--> COMMITTED
      ^               |  ^   |                     |
      |               |  +---+ input (restart)     |
      +--navigation---+                            |
    PENDING --clear--> COMMITTED (immediate, timer cancelled)

Only user-originated events (input, clear, flush) write navigation state.
External navigation re-hydrates ``raw_input`` and cancels any pending
commit, but never writes back, so the two sides cannot ping-pong.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable

from dashsync.core.config import Settings, get_settings
from dashsync.core.logging import get_logger
from dashsync.core.scheduling import LoopScheduler, Scheduler, TimerHandle, ms_to_seconds
from dashsync.search.navigation import NavigationState


logger = get_logger(__name__)

InputListener = Callable[[str], None]


class SearchPhase(str, Enum):
    """Debounce state of the controller."""

    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"


@dataclass
class SearchState:
    """Text field state.

    Attributes:
        raw_input: What the field shows; follows every keystroke
        committed_value: Last trimmed value written to navigation state
        phase: Debounce phase
        pending_timer: Handle of the scheduled commit, if any
    """

    raw_input: str = ""
    committed_value: str = ""
    phase: SearchPhase = SearchPhase.IDLE
    pending_timer: TimerHandle | None = None


class SearchSyncController:
    """Keeps one search field in sync with the ``search`` navigation key.

    Args:
        navigation: Persisted navigation state (address bar)
        scheduler: Timer source; defaults to the running event loop
        settings: Source of debounce delay and parameter names
        debounce_ms: Overrides settings.search_debounce_ms
        on_input_change: Called with the new raw input whenever it changes

    Example:
        >>> controller = SearchSyncController(QueryStringNavigation())
        >>> controller.input("dark mode")   # field echoes immediately
        >>> # 300 ms later: search=dark mode&page=1
    """

    def __init__(
        self,
        navigation: NavigationState,
        scheduler: Scheduler | None = None,
        settings: Settings | None = None,
        debounce_ms: int | None = None,
        on_input_change: InputListener | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._navigation = navigation
        self._scheduler = scheduler or LoopScheduler()
        self._delay = ms_to_seconds(
            debounce_ms if debounce_ms is not None else settings.search_debounce_ms
        )
        self._search_param = settings.search_param
        self._page_param = settings.page_param
        self._first_page = settings.first_page
        self._on_input_change = on_input_change

        initial = navigation.get(self._search_param) or ""
        self._state = SearchState(raw_input=initial, committed_value=initial.strip())
        self._generation = 0
        self._writing = False
        self._closed = False
        self._unsubscribe = navigation.subscribe(self._on_navigation)

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def raw_input(self) -> str:
        return self._state.raw_input

    @property
    def committed_value(self) -> str:
        return self._state.committed_value

    @property
    def phase(self) -> SearchPhase:
        return self._state.phase

    @property
    def pending(self) -> bool:
        return self._state.pending_timer is not None

    @property
    def state(self) -> SearchState:
        """Copy of the current state."""
        return replace(self._state)

    # -------------------------------------------------------------------------
    # User events
    # -------------------------------------------------------------------------

    def input(self, value: str) -> None:
        """Handle a keystroke: echo now, commit after the debounce delay."""
        if self._closed:
            return
        self._set_raw_input(value)
        self._cancel_pending()
        self._generation += 1
        self._state.pending_timer = self._scheduler.call_later(
            self._delay, self._on_timer, self._generation
        )
        self._state.phase = SearchPhase.PENDING

    def clear(self) -> None:
        """Clear the field and commit immediately, cancelling any pending commit."""
        if self._closed:
            return
        self._cancel_pending()
        self._set_raw_input("")
        self._commit()

    def flush(self) -> bool:
        """Commit a pending value now (e.g. on Enter).

        Returns:
            True if a pending commit was flushed.
        """
        if self._closed or not self.pending:
            return False
        self._cancel_pending()
        self._commit()
        return True

    def close(self) -> None:
        """Cancel any pending commit and stop listening to navigation."""
        if self._closed:
            return
        self._closed = True
        self._cancel_pending()
        self._unsubscribe()

    def __enter__(self) -> "SearchSyncController":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _on_timer(self, generation: int) -> None:
        # A timer superseded by a newer keystroke or a clear never commits.
        if generation != self._generation or self._closed:
            return
        self._state.pending_timer = None
        self._commit()

    def _commit(self) -> None:
        value = self._state.raw_input.strip()
        self._state.committed_value = value
        self._state.phase = SearchPhase.COMMITTED
        self._writing = True
        try:
            if value:
                self._navigation.set(self._search_param, value)
            else:
                self._navigation.delete(self._search_param)
            self._navigation.set(self._page_param, self._first_page)
        finally:
            self._writing = False
        logger.debug("Search committed", search=value or None)

    def _on_navigation(self) -> None:
        if self._writing or self._closed:
            return
        value = self._navigation.get(self._search_param) or ""
        if self.pending:
            logger.debug("Pending search commit dropped by navigation")
        self._cancel_pending()
        self._state.phase = SearchPhase.IDLE
        self._set_raw_input(value)

    def _cancel_pending(self) -> None:
        timer = self._state.pending_timer
        if timer is not None:
            timer.cancel()
            self._state.pending_timer = None
        self._generation += 1
        if self._state.phase is SearchPhase.PENDING:
            self._state.phase = SearchPhase.IDLE

    def _set_raw_input(self, value: str) -> None:
        if value == self._state.raw_input:
            return
        self._state.raw_input = value
        if self._on_input_change is not None:
            self._on_input_change(value)

    def __repr__(self) -> str:
        return (
            f"SearchSyncController(raw_input={self._state.raw_input!r}, "
            f"phase={self._state.phase.value})"
        )
