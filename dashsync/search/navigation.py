"""Persisted navigation state - the address-bar key/value store.

NavigationState is the narrow interface the search controller consumes:
get/set/delete with history-replace semantics plus a subscription fired
on external navigation (back/forward, landing on a link).

QueryStringNavigation is an in-memory implementation backed by a query
string and a history stack. Replacing a key never notifies listeners;
push/back/forward do.
"""

from __future__ import annotations

from typing import Callable, Mapping, Protocol, runtime_checkable
from urllib.parse import parse_qsl, urlencode

from dashsync.core.exceptions import NavigationError
from dashsync.core.logging import get_logger


logger = get_logger(__name__)

NavigationListener = Callable[[], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class NavigationState(Protocol):
    """Protocol for navigation-state duck typing."""

    def get(self, key: str) -> str | None:
        """Return the current value for key, or None when absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Replace the value for key without adding a history entry."""
        ...

    def delete(self, key: str) -> None:
        """Remove key without adding a history entry."""
        ...

    def subscribe(self, listener: NavigationListener) -> Unsubscribe:
        """Register for external navigation changes."""
        ...


class QueryStringNavigation:
    """In-memory query-string navigation state with history.

    Attributes:
        writes: Log of ``(operation, key, value)`` replace operations,
            for inspection (operation is "set" or "delete").

    Example:
        >>> nav = QueryStringNavigation("search=foo&page=2")
        >>> nav.set("page", "1")
        >>> nav.query_string
        'search=foo&page=1'
    """

    def __init__(self, query: str = "") -> None:
        self._history: list[dict[str, str]] = [dict(parse_qsl(query.lstrip("?")))]
        self._index = 0
        self._listeners: list[NavigationListener] = []
        self.writes: list[tuple[str, str, str | None]] = []

    @staticmethod
    def _check_key(key: str) -> None:
        if not key:
            raise NavigationError("navigation key cannot be empty")

    @property
    def _current(self) -> dict[str, str]:
        return self._history[self._index]

    @property
    def params(self) -> dict[str, str]:
        return dict(self._current)

    @property
    def query_string(self) -> str:
        return urlencode(list(self._current.items()))

    @property
    def can_go_back(self) -> bool:
        return self._index > 0

    @property
    def can_go_forward(self) -> bool:
        return self._index < len(self._history) - 1

    def get(self, key: str) -> str | None:
        self._check_key(key)
        return self._current.get(key)

    def set(self, key: str, value: str) -> None:
        self._check_key(key)
        self._current[key] = value
        self.writes.append(("set", key, value))

    def delete(self, key: str) -> None:
        self._check_key(key)
        self._current.pop(key, None)
        self.writes.append(("delete", key, None))

    def subscribe(self, listener: NavigationListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def push(self, params: Mapping[str, str] | str) -> None:
        """Navigate to a new location (link click), dropping forward history."""
        if isinstance(params, str):
            params = dict(parse_qsl(params.lstrip("?")))
        del self._history[self._index + 1:]
        self._history.append(dict(params))
        self._index += 1
        self._emit()

    def back(self) -> bool:
        if not self.can_go_back:
            return False
        self._index -= 1
        self._emit()
        return True

    def forward(self) -> bool:
        if not self.can_go_forward:
            return False
        self._index += 1
        self._emit()
        return True

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Navigation listener failed")

    def __repr__(self) -> str:
        return f"QueryStringNavigation({self.query_string!r})"
