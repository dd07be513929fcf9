"""Search Sync Package.

- navigation: NavigationState protocol and an in-memory query-string implementation
- controller: SearchSyncController (debounced search -> navigation state)
"""

from dashsync.search.controller import (
    SearchPhase,
    SearchState,
    SearchSyncController,
)
from dashsync.search.navigation import (
    NavigationListener,
    NavigationState,
    QueryStringNavigation,
)


__all__ = [
    "NavigationListener",
    "NavigationState",
    "QueryStringNavigation",
    "SearchPhase",
    "SearchState",
    "SearchSyncController",
]
