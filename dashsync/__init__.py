"""dashsync - data synchronization layer for the dashboard views.

- cache: QueryCache, InvalidationBus, fingerprints
- search: SearchSyncController and navigation state
- clients: DashboardApiClient, DashboardClient
- core: settings, logging, HTTP, scheduling, errors

Applications call configure_logging() once at startup. The package itself
only emits through structlog loggers and never configures them.
"""

from dashsync.cache import (
    InvalidationBus,
    MutationKind,
    QueryCache,
    QueryKeys,
    QueryOptions,
    QueryStatus,
)
from dashsync.clients import DashboardApiClient, DashboardClient
from dashsync.core.logging import configure_logging
from dashsync.search import QueryStringNavigation, SearchSyncController


__version__ = "0.1.0"

__all__ = [
    "DashboardApiClient",
    "DashboardClient",
    "InvalidationBus",
    "MutationKind",
    "QueryCache",
    "QueryKeys",
    "QueryOptions",
    "QueryStatus",
    "QueryStringNavigation",
    "SearchSyncController",
    "__version__",
    "configure_logging",
]
