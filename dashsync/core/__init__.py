"""Core module - Configuration, logging, HTTP clients, scheduling and errors.

Exports:
    - Settings, get_settings: Pydantic Settings configuration
    - configure_logging, get_logger: Structured logging (structlog)
    - HTTPClientFactory, get_http_client_factory: HTTP clients
    - Scheduler, LoopScheduler, TimerHandle: timer abstraction
    - EntityNamespace, Timings: constants
    - Exception classes: DashSyncError, FetchError, etc.
"""

from dashsync.core.config import Settings, get_settings
from dashsync.core.constants import (
    API_PREFIX,
    DEFAULT_PAGE_LIMIT,
    NOTIFICATIONS_PAGE_LIMIT,
    EntityNamespace,
    Timings,
)
from dashsync.core.exceptions import (
    DashSyncError,
    FetchError,
    FetchErrorKind,
    HttpError,
    MutationError,
    NavigationError,
    NetworkFailure,
    ParseFailure,
)
from dashsync.core.http import HTTPClientFactory, get_http_client_factory
from dashsync.core.logging import configure_logging, get_logger
from dashsync.core.scheduling import LoopScheduler, Scheduler, TimerHandle


__all__ = [
    "API_PREFIX",
    "DEFAULT_PAGE_LIMIT",
    "NOTIFICATIONS_PAGE_LIMIT",
    # Exceptions
    "DashSyncError",
    # Constants
    "EntityNamespace",
    "FetchError",
    "FetchErrorKind",
    # HTTP Clients
    "HTTPClientFactory",
    "HttpError",
    # Scheduling
    "LoopScheduler",
    "MutationError",
    "NavigationError",
    "NetworkFailure",
    "ParseFailure",
    "Scheduler",
    # Configuration
    "Settings",
    "TimerHandle",
    "Timings",
    # Logging
    "configure_logging",
    "get_http_client_factory",
    "get_logger",
    "get_settings",
]
