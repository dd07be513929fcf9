"""QueryCache - staleness-aware store of fetched server data.

Owns every CacheEntry, keyed by fingerprint, and provides:
- get-or-fetch with per-fingerprint deduplication of in-flight requests
- synchronous subscriber notification on every state change
- background polling while subscribed, focus-triggered revalidation
- out-of-order response protection via per-fingerprint request sequences
- passive eviction of unsubscribed entries after a grace period

All methods run on one asyncio event loop and never await between reading
and writing the entry map, so no lock is needed. Fetch failures are
recorded on the entry and never raised out of the cache.

Example:
    >>> async with QueryCache() as cache:
    ...     sub = cache.get(QueryKeys.features.list({"page": 1}), fetch_features)
    ...     entry = await sub.wait()
    ...     sub.close()
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Generic, Iterator, TypeVar

from dashsync.cache.entry import (
    CacheEntry,
    ErrorInfo,
    Fetcher,
    QueryOptions,
    QueryStatus,
)
from dashsync.cache.fingerprint import Fingerprint, matches_prefix
from dashsync.core.config import Settings, get_settings
from dashsync.core.exceptions import DashSyncError, FetchError
from dashsync.core.logging import get_logger
from dashsync.core.scheduling import LoopScheduler, Scheduler, ms_to_seconds


logger = get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[CacheEntry[Any]], None]

_MISSING = object()


class Subscription(Generic[T]):
    """A live registration of one view against one fingerprint.

    Closing the last subscription for a fingerprint cancels its poll timer
    and starts the eviction grace period. Usable as a context manager.
    """

    def __init__(
        self,
        cache: "QueryCache",
        key: Fingerprint,
        options: QueryOptions,
        listener: Listener | None,
    ) -> None:
        self._cache = cache
        self.key = key
        self.options = options
        self._listener = listener
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def entry(self) -> CacheEntry[T]:
        """Current snapshot of the entry (an idle placeholder if evicted)."""
        return self._cache.peek(self.key) or CacheEntry(key=self.key)

    @property
    def data(self) -> T | None:
        return self.entry.data

    @property
    def status(self) -> QueryStatus:
        return self.entry.status

    @property
    def error(self) -> ErrorInfo | None:
        return self.entry.error

    async def wait(self) -> CacheEntry[T]:
        """Wait until no fetch is in flight for this key and return the entry."""
        await self._cache.settle(self.key)
        return self.entry

    def refetch(self, force: bool = False) -> bool:
        """Trigger a manual refetch. See QueryCache.refetch()."""
        return self._cache.refetch(self.key, force=force)

    def close(self) -> None:
        """Detach from the cache. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True
        self._cache._detach(self)

    def _deliver(self, snapshot: CacheEntry[Any]) -> None:
        if self._listener is not None and not self._closed:
            self._listener(snapshot)

    def __enter__(self) -> "Subscription[T]":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Subscription(key={self.key!r}, closed={self._closed})"


class QueryCache:
    """Keyed query cache with dedup, polling and invalidation support.

    A single instance is created at application start and passed by
    reference to every component that needs it; close() tears it down.

    Args:
        scheduler: Clock and timer source. Defaults to the running event loop.
        settings: Source of default query options.
        defaults: Explicit default options, overriding settings per field.
    """

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        settings: Settings | None = None,
        defaults: QueryOptions | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._scheduler = scheduler or LoopScheduler()
        base = QueryOptions(
            stale_time_ms=settings.default_stale_time_ms,
            refetch_interval_ms=settings.default_refetch_interval_ms,
            gc_time_ms=settings.default_gc_time_ms,
            refetch_on_focus=settings.refetch_on_focus,
        )
        self._defaults = self._merge(base, defaults)
        self._entries: dict[Fingerprint, CacheEntry[Any]] = {}
        self._subscriptions: dict[Fingerprint, list[Subscription[Any]]] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    @staticmethod
    def _merge(base: QueryOptions, override: QueryOptions | None) -> QueryOptions:
        if override is None:
            return base
        return QueryOptions(
            stale_time_ms=(
                override.stale_time_ms
                if override.stale_time_ms is not None
                else base.stale_time_ms
            ),
            refetch_interval_ms=(
                override.refetch_interval_ms
                if override.refetch_interval_ms is not None
                else base.refetch_interval_ms
            ),
            gc_time_ms=override.gc_time_ms if override.gc_time_ms is not None else base.gc_time_ms,
            refetch_on_focus=(
                override.refetch_on_focus
                if override.refetch_on_focus is not None
                else base.refetch_on_focus
            ),
        )

    @property
    def defaults(self) -> QueryOptions:
        return self._defaults

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def get(
        self,
        fingerprint: Fingerprint,
        fetcher: Fetcher,
        options: QueryOptions | None = None,
        listener: Listener | None = None,
    ) -> Subscription[Any]:
        """Subscribe to a fingerprint, fetching if the cached data is not fresh.

        Returns synchronously; the current state is available on the
        returned subscription immediately. A fetch is started when no entry
        exists, the entry is idle or stale, or its data is older than
        ``stale_time_ms``. If a fetch for the fingerprint is already in
        flight the subscription attaches to it instead.

        Args:
            fingerprint: Cache key
            fetcher: Zero-argument coroutine function returning the data
            options: Per-subscription overrides of the cache defaults
            listener: Called with an entry snapshot on every state change

        Returns:
            Subscription to close when the view goes away

        Raises:
            DashSyncError: If the cache has been closed
        """
        if self._closed:
            raise DashSyncError("QueryCache is closed")

        resolved = self._merge(self._defaults, options)
        entry = self._entries.get(fingerprint)
        if entry is None:
            entry = CacheEntry(key=fingerprint)
            self._entries[fingerprint] = entry
        entry.fetcher = fetcher

        if entry.gc_handle is not None:
            entry.gc_handle.cancel()
            entry.gc_handle = None

        subscription: Subscription[Any] = Subscription(self, fingerprint, resolved, listener)
        self._subscriptions.setdefault(fingerprint, []).append(subscription)
        self._reschedule_poll(entry)

        if self._needs_fetch(entry, resolved.stale_time_ms):
            self._start_fetch(entry, reason="get")
        return subscription

    async def fetch(
        self,
        fingerprint: Fingerprint,
        fetcher: Fetcher,
        options: QueryOptions | None = None,
    ) -> CacheEntry[Any]:
        """One-shot get: subscribe, wait for any fetch, unsubscribe."""
        with self.get(fingerprint, fetcher, options) as subscription:
            return await subscription.wait()

    def peek(self, fingerprint: Fingerprint) -> CacheEntry[Any] | None:
        """Return a snapshot of the entry without subscribing or fetching."""
        entry = self._entries.get(fingerprint)
        return entry.snapshot() if entry is not None else None

    def refetch(self, fingerprint: Fingerprint, force: bool = False) -> bool:
        """Manually refetch an entry using its last fetcher.

        Args:
            fingerprint: Cache key
            force: Start a new fetch even if one is in flight; the older
                response is then discarded by sequence number.

        Returns:
            True if a new fetch was started.
        """
        entry = self._entries.get(fingerprint)
        if entry is None or entry.fetcher is None:
            return False
        if entry.is_fetching and not force:
            logger.debug("Refetch attached to in-flight request", fingerprint=fingerprint)
            return False
        self._start_fetch(entry, reason="force" if force else "manual")
        return True

    def revalidate(self, fingerprint: Fingerprint) -> bool:
        """Refetch an entry if it is stale, superseding a pre-invalidation fetch.

        Unlike refetch(force=True) this does not start a second request
        when a fetch issued after the last invalidation is already running.

        Returns:
            True if a new fetch was started.
        """
        entry = self._entries.get(fingerprint)
        if entry is None or entry.fetcher is None:
            return False
        if not self._needs_fetch(entry, 0):
            return False
        self._start_fetch(entry, reason="invalidate")
        return True

    def focus(self) -> list[Fingerprint]:
        """Revalidate every subscribed entry that has gone stale.

        Equivalent to a zero-delay poll tick gated on staleness; entries
        with a fetch already in flight are left attached to it.

        Returns:
            Fingerprints for which a fetch was started.
        """
        started: list[Fingerprint] = []
        for key, subscriptions in list(self._subscriptions.items()):
            focused = [s for s in subscriptions if s.options.refetch_on_focus]
            entry = self._entries.get(key)
            if not focused or entry is None:
                continue
            stale_time_ms = min(s.options.stale_time_ms or 0 for s in focused)
            if self._needs_fetch(entry, stale_time_ms):
                self._start_fetch(entry, reason="focus")
                started.append(key)
        logger.debug("Focus revalidation", started=len(started))
        return started

    def set_data(self, fingerprint: Fingerprint, data: Any) -> CacheEntry[Any]:
        """Write data directly (optimistic update) and mark it fresh.

        ``data`` may be a callable receiving the current data. Any fetch in
        flight for the key is orphaned so its response cannot overwrite
        the written value.
        """
        entry = self._entries.get(fingerprint)
        if entry is None:
            entry = CacheEntry(key=fingerprint)
            self._entries[fingerprint] = entry
        if callable(data):
            data = data(entry.data)
        entry.applied_seq = entry.request_seq
        entry.in_flight_request_id = None
        entry.task = None
        entry.data = data
        entry.error = None
        entry.status = QueryStatus.FRESH
        entry.last_fetched_at = self._scheduler.now()
        self._notify(entry)
        return entry.snapshot()

    def matching(self, prefix: str) -> list[Fingerprint]:
        """Return every cached fingerprint under ``prefix``."""
        return [key for key in self._entries if matches_prefix(key, prefix)]

    def mark_stale(self, fingerprints: list[Fingerprint]) -> list[Fingerprint]:
        """Mark entries stale in one step, then notify their subscribers.

        All entries are marked before any listener runs, so a get() issued
        from a listener observes the fully-marked state.

        Returns:
            Fingerprints that existed and were marked.
        """
        marked: list[CacheEntry[Any]] = []
        for key in dict.fromkeys(fingerprints):
            entry = self._entries.get(key)
            if entry is None:
                continue
            entry.status = QueryStatus.STALE
            entry.invalidated_seq = entry.request_seq
            marked.append(entry)
        for entry in marked:
            self._notify(entry)
        return [entry.key for entry in marked]

    def subscriber_count(self, fingerprint: Fingerprint) -> int:
        return len(self._subscriptions.get(fingerprint, ()))

    def evict(self, fingerprint: Fingerprint) -> bool:
        """Remove an unsubscribed entry now.

        Returns:
            True if the entry was removed, False if missing or still subscribed.
        """
        entry = self._entries.get(fingerprint)
        if entry is None or self.subscriber_count(fingerprint):
            return False
        self._drop(entry)
        return True

    async def settle(self, fingerprint: Fingerprint) -> None:
        """Wait until the entry has no fetch in flight.

        Follows superseding fetches, so it returns only once the latest
        request has completed.
        """
        while True:
            entry = self._entries.get(fingerprint)
            if entry is None or entry.task is None:
                return
            await asyncio.wait({entry.task})

    async def close(self) -> None:
        """Cancel every timer and in-flight fetch and drop all entries."""
        self._closed = True
        for entry in list(self._entries.values()):
            self._cancel_timers(entry)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._entries.clear()
        self._subscriptions.clear()
        logger.debug("Query cache closed", cancelled_fetches=len(tasks))

    async def __aenter__(self) -> "QueryCache":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._entries

    def __iter__(self) -> Iterator[Fingerprint]:
        return iter(list(self._entries))

    def __repr__(self) -> str:
        return (
            f"QueryCache(entries={len(self._entries)}, "
            f"subscribed={len(self._subscriptions)})"
        )

    # -------------------------------------------------------------------------
    # Fetch lifecycle
    # -------------------------------------------------------------------------

    def _is_stale(self, entry: CacheEntry[Any], stale_time_ms: int | None) -> bool:
        if entry.status in (QueryStatus.IDLE, QueryStatus.STALE):
            return True
        reference = entry.last_fetched_at
        if reference is None and entry.status is QueryStatus.ERROR:
            # No good data yet: a failed first load waits out the stale window.
            reference = entry.last_error_at
        if reference is None:
            return True
        age = self._scheduler.now() - reference
        return age >= ms_to_seconds(stale_time_ms or 0)

    def _needs_fetch(self, entry: CacheEntry[Any], stale_time_ms: int | None) -> bool:
        if entry.is_fetching:
            # A fetch issued before the last invalidation cannot satisfy it.
            return entry.in_flight_request_id <= entry.invalidated_seq
        return self._is_stale(entry, stale_time_ms)

    def _start_fetch(self, entry: CacheEntry[Any], reason: str) -> None:
        fetcher = entry.fetcher
        if fetcher is None:
            logger.warning("No fetcher registered", fingerprint=entry.key)
            return

        entry.request_seq += 1
        seq = entry.request_seq
        entry.in_flight_request_id = seq
        entry.status = QueryStatus.LOADING

        task = asyncio.get_running_loop().create_task(
            self._run_fetch(entry, fetcher, seq),
            name=f"dashsync-fetch:{entry.key}#{seq}",
        )
        entry.task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.debug("Fetch started", fingerprint=entry.key, request_seq=seq, reason=reason)
        self._notify(entry)

    async def _run_fetch(self, entry: CacheEntry[Any], fetcher: Fetcher, seq: int) -> None:
        try:
            data = await fetcher()
        except FetchError as exc:
            logger.warning(
                "Fetch failed",
                fingerprint=entry.key,
                request_seq=seq,
                kind=exc.kind.value,
                status_code=exc.status_code,
                error=exc.message,
            )
            self._complete(entry, seq, error=ErrorInfo.from_exception(exc))
        except Exception as exc:
            logger.exception("Fetcher raised unexpected error", fingerprint=entry.key)
            self._complete(entry, seq, error=ErrorInfo.from_exception(exc))
        else:
            self._complete(entry, seq, data=data)

    def _complete(
        self,
        entry: CacheEntry[Any],
        seq: int,
        data: Any = _MISSING,
        error: ErrorInfo | None = None,
    ) -> None:
        if self._entries.get(entry.key) is not entry:
            logger.debug("Discarding response for evicted entry", fingerprint=entry.key)
            return
        latest = seq == entry.request_seq
        if seq <= entry.applied_seq or (not latest and seq <= entry.invalidated_seq):
            logger.debug(
                "Discarding out-of-order response",
                fingerprint=entry.key,
                request_seq=seq,
                applied_seq=entry.applied_seq,
            )
            return

        entry.applied_seq = seq
        now = self._scheduler.now()
        if error is None:
            entry.data = data
            entry.error = None
            entry.last_fetched_at = now
        else:
            entry.error = error
            entry.last_error_at = now

        if latest:
            entry.in_flight_request_id = None
            entry.task = None
            if error is not None:
                entry.status = QueryStatus.ERROR
            elif seq <= entry.invalidated_seq:
                entry.status = QueryStatus.STALE
            else:
                entry.status = QueryStatus.FRESH

        logger.debug(
            "Fetch completed",
            fingerprint=entry.key,
            request_seq=seq,
            status=entry.status.value,
        )
        self._notify(entry)

    # -------------------------------------------------------------------------
    # Subscribers, polling and eviction
    # -------------------------------------------------------------------------

    def _notify(self, entry: CacheEntry[Any]) -> None:
        subscriptions = self._subscriptions.get(entry.key)
        if not subscriptions:
            return
        snapshot = entry.snapshot()
        for subscription in list(subscriptions):
            try:
                subscription._deliver(snapshot)
            except Exception:
                logger.exception("Subscriber listener failed", fingerprint=entry.key)

    def _detach(self, subscription: Subscription[Any]) -> None:
        key = subscription.key
        subscriptions = self._subscriptions.get(key)
        if not subscriptions or subscription not in subscriptions:
            return
        subscriptions.remove(subscription)

        entry = self._entries.get(key)
        if subscriptions:
            if entry is not None:
                self._reschedule_poll(entry)
            return

        del self._subscriptions[key]
        if entry is None:
            return
        self._cancel_poll(entry)
        gc_time_ms = subscription.options.gc_time_ms
        if gc_time_ms is not None and not self._closed:
            entry.gc_handle = self._scheduler.call_later(
                ms_to_seconds(gc_time_ms), self._collect, key
            )

    def _poll_interval(self, key: Fingerprint) -> int | None:
        intervals = [
            s.options.refetch_interval_ms
            for s in self._subscriptions.get(key, ())
            if s.options.refetch_interval_ms
        ]
        return min(intervals) if intervals else None

    def _reschedule_poll(self, entry: CacheEntry[Any]) -> None:
        interval = self._poll_interval(entry.key)
        if interval == entry.poll_interval_ms and (entry.poll_handle is not None or interval is None):
            return
        self._cancel_poll(entry)
        if interval is not None:
            entry.poll_interval_ms = interval
            entry.poll_handle = self._scheduler.call_later(
                ms_to_seconds(interval), self._poll_tick, entry.key
            )

    def _poll_tick(self, key: Fingerprint) -> None:
        entry = self._entries.get(key)
        if entry is None:
            return
        entry.poll_handle = None
        entry.poll_interval_ms = None
        if not self._subscriptions.get(key):
            return
        self._reschedule_poll(entry)
        if entry.is_fetching:
            logger.debug("Poll tick skipped, fetch in flight", fingerprint=key)
            return
        self._start_fetch(entry, reason="poll")

    def _cancel_poll(self, entry: CacheEntry[Any]) -> None:
        if entry.poll_handle is not None:
            entry.poll_handle.cancel()
        entry.poll_handle = None
        entry.poll_interval_ms = None

    def _cancel_timers(self, entry: CacheEntry[Any]) -> None:
        self._cancel_poll(entry)
        if entry.gc_handle is not None:
            entry.gc_handle.cancel()
            entry.gc_handle = None

    def _collect(self, key: Fingerprint) -> None:
        entry = self._entries.get(key)
        if entry is None:
            return
        entry.gc_handle = None
        if self._subscriptions.get(key):
            return
        self._drop(entry)

    def _drop(self, entry: CacheEntry[Any]) -> None:
        self._cancel_timers(entry)
        del self._entries[entry.key]
        logger.debug("Entry evicted", fingerprint=entry.key)
