"""Cache entry model for the query cache.

A CacheEntry is owned by QueryCache and mutated only by its fetch
completion and invalidation paths. Subscribers and callers only ever see
immutable snapshots (``CacheEntry.snapshot()``).

Anti-Pattern Compliance:
- AP-1.5: No mutable default arguments
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

from dashsync.core.exceptions import FetchError, FetchErrorKind
from dashsync.cache.fingerprint import Fingerprint


T = TypeVar("T")

Fetcher = Callable[[], Awaitable[Any]]


class QueryStatus(str, Enum):
    """Lifecycle state of a cache entry."""

    IDLE = "idle"
    LOADING = "loading"
    FRESH = "fresh"
    STALE = "stale"
    ERROR = "error"


@dataclass(frozen=True)
class ErrorInfo:
    """Fetch failure recorded on an entry.

    Attributes:
        kind: network, http or parse
        message: Human-readable message (server-provided for http)
        status_code: HTTP status when a response was received
    """

    kind: FetchErrorKind
    message: str
    status_code: int | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        if isinstance(exc, FetchError):
            return cls(kind=exc.kind, message=exc.message, status_code=exc.status_code)
        return cls(kind=FetchErrorKind.NETWORK, message=str(exc) or type(exc).__name__)


@dataclass(frozen=True)
class QueryOptions:
    """Per-subscription query behaviour.

    ``None`` means "use the cache default" for every field.

    Attributes:
        stale_time_ms: Age after which cached data is revalidated on get/focus
        refetch_interval_ms: Background polling interval while subscribed
        gc_time_ms: Grace period before an unsubscribed entry is evicted
        refetch_on_focus: Whether focus() revalidates this subscription
    """

    stale_time_ms: int | None = None
    refetch_interval_ms: int | None = None
    gc_time_ms: int | None = None
    refetch_on_focus: bool | None = None


@dataclass
class CacheEntry(Generic[T]):
    """Cached server data for one fingerprint.

    Attributes:
        key: Fingerprint this entry is stored under
        data: Last successfully fetched (or optimistically set) data
        status: Current lifecycle status
        error: Last fetch failure, cleared by the next success
        last_fetched_at: Scheduler time of the last successful fetch
        in_flight_request_id: Sequence number of the current fetch, if any
    """

    key: Fingerprint
    data: T | None = None
    status: QueryStatus = QueryStatus.IDLE
    error: ErrorInfo | None = None
    last_fetched_at: float | None = None
    in_flight_request_id: int | None = None
    # Bookkeeping private to QueryCache; excluded from equality and repr.
    request_seq: int = field(default=0, repr=False, compare=False)
    applied_seq: int = field(default=0, repr=False, compare=False)
    invalidated_seq: int = field(default=0, repr=False, compare=False)
    fetcher: Fetcher | None = field(default=None, repr=False, compare=False)
    task: asyncio.Task[None] | None = field(default=None, repr=False, compare=False)
    poll_handle: Any = field(default=None, repr=False, compare=False)
    poll_interval_ms: int | None = field(default=None, repr=False, compare=False)
    gc_handle: Any = field(default=None, repr=False, compare=False)
    last_error_at: float | None = field(default=None, repr=False, compare=False)

    @property
    def is_fetching(self) -> bool:
        return self.in_flight_request_id is not None

    @property
    def has_data(self) -> bool:
        return self.last_fetched_at is not None

    def snapshot(self) -> "CacheEntry[T]":
        """Return a detached copy safe to hand to subscribers."""
        return replace(self, fetcher=None, task=None, poll_handle=None, gc_handle=None)
