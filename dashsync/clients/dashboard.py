"""DashboardClient - entity queries and mutations wired through the cache.

Views call the query methods to subscribe to lists and detail records;
mutations run through the InvalidationBus so every affected cached entry
is refreshed after a successful write.

Example:
    >>> async with QueryCache() as cache:
    ...     dashboard = DashboardClient(DashboardApiClient(), cache)
    ...     sub = dashboard.notifications(listener=render)
    ...     await dashboard.mark_notification_read("42")  # list + count refetch
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from dashsync.cache.entry import QueryOptions
from dashsync.cache.fingerprint import EntityKeys, Fingerprint, QueryKeys
from dashsync.cache.invalidation import InvalidationBus, MutationKind
from dashsync.cache.query_cache import Listener, QueryCache, Subscription
from dashsync.clients.api import DashboardApiClient
from dashsync.core.config import Settings, get_settings
from dashsync.core.constants import (
    API_PREFIX,
    DEFAULT_PAGE_LIMIT,
    NOTIFICATIONS_PAGE_LIMIT,
)
from dashsync.schemas.pages import ListPage, NotificationPage, UnreadCount
from dashsync.search.navigation import NavigationState


# Unread counters are polled while a badge is visible.
UNREAD_COUNT_OPTIONS = QueryOptions(stale_time_ms=0, refetch_interval_ms=30_000)

_ALL = "all"


def _segment(value: str | int) -> str:
    return quote(str(value), safe="")


def _filter(value: str | None) -> str | None:
    """Treat empty strings and the "all" sentinel as an absent filter."""
    if value is None or value == "" or value == _ALL:
        return None
    return value


class DashboardClient:
    """Facade over the dashboard API backed by a shared QueryCache.

    Args:
        api: HTTP client for the dashboard API
        cache: Application query cache (owned by the caller)
        bus: Invalidation bus; created over ``cache`` when omitted
        settings: Source of search/page parameter names
    """

    def __init__(
        self,
        api: DashboardApiClient,
        cache: QueryCache,
        bus: InvalidationBus | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.api = api
        self.cache = cache
        self.bus = bus or InvalidationBus(cache)
        self._settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _subscribe(
        self,
        key: Fingerprint,
        model: Any,
        options: QueryOptions | None,
        listener: Listener | None,
    ) -> Subscription[Any]:
        return self.cache.get(key, self.api.fetcher(key, model), options, listener)

    def _list(
        self,
        keys: EntityKeys,
        filters: dict[str, Any],
        options: QueryOptions | None,
        listener: Listener | None,
        model: Any = ListPage,
    ) -> Subscription[Any]:
        return self._subscribe(keys.list(filters), model, options, listener)

    def features(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        area: str | None = None,
        status: str | None = None,
        search: str | None = None,
        options: QueryOptions | None = None,
        listener: Listener | None = None,
    ) -> Subscription[ListPage]:
        filters = {
            "page": page,
            "limit": limit,
            "area": _filter(area),
            "status": _filter(status),
            "search": _filter(search),
        }
        return self._list(QueryKeys.features, filters, options, listener)

    def feature(
        self,
        feature_id: str,
        options: QueryOptions | None = None,
        listener: Listener | None = None,
    ) -> Subscription[dict[str, Any]]:
        return self._subscribe(QueryKeys.features.detail(feature_id), None, options, listener)

    def notifications(
        self,
        unread_only: bool = False,
        limit: int = NOTIFICATIONS_PAGE_LIMIT,
        options: QueryOptions | None = None,
        listener: Listener | None = None,
    ) -> Subscription[NotificationPage]:
        filters = {"unread": True if unread_only else None, "limit": limit}
        return self._list(
            QueryKeys.notifications, filters, options, listener, model=NotificationPage
        )

    def notification(
        self,
        notification_id: str,
        options: QueryOptions | None = None,
        listener: Listener | None = None,
    ) -> Subscription[dict[str, Any]]:
        key = QueryKeys.notifications.detail(notification_id)
        return self._subscribe(key, None, options, listener)

    def unread_count(
        self,
        options: QueryOptions | None = None,
        listener: Listener | None = None,
    ) -> Subscription[UnreadCount]:
        key = QueryKeys.notifications.unread_count()
        return self._subscribe(key, UnreadCount, options or UNREAD_COUNT_OPTIONS, listener)

    def panels(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        search: str | None = None,
        options: QueryOptions | None = None,
        listener: Listener | None = None,
    ) -> Subscription[ListPage]:
        filters = {"page": page, "limit": limit, "search": _filter(search)}
        return self._list(QueryKeys.panels, filters, options, listener)

    def panel(
        self,
        panel_id: str,
        options: QueryOptions | None = None,
        listener: Listener | None = None,
    ) -> Subscription[dict[str, Any]]:
        return self._subscribe(QueryKeys.panels.detail(panel_id), None, options, listener)

    def sessions(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        status: str | None = None,
        search: str | None = None,
        options: QueryOptions | None = None,
        listener: Listener | None = None,
    ) -> Subscription[ListPage]:
        filters = {
            "page": page,
            "limit": limit,
            "status": _filter(status),
            "search": _filter(search),
        }
        return self._list(QueryKeys.sessions, filters, options, listener)

    def session(
        self,
        session_id: str,
        options: QueryOptions | None = None,
        listener: Listener | None = None,
    ) -> Subscription[dict[str, Any]]:
        return self._subscribe(QueryKeys.sessions.detail(session_id), None, options, listener)

    def navigation_filters(self, navigation: NavigationState) -> dict[str, Any]:
        """Read the search and page filters a list view should query with.

        A missing or non-numeric page falls back to the first page.
        """
        raw_page = navigation.get(self._settings.page_param) or self._settings.first_page
        try:
            page = max(1, int(raw_page))
        except ValueError:
            page = int(self._settings.first_page)
        return {
            "search": _filter(navigation.get(self._settings.search_param)),
            "page": page,
        }

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create_feature(self, payload: dict[str, Any]) -> Any:
        return await self.bus.run(
            MutationKind.FEATURE_CREATE,
            lambda: self.api.send("POST", f"{API_PREFIX}/features", json=payload),
        )

    async def update_feature(self, feature_id: str, payload: dict[str, Any]) -> Any:
        path = f"{API_PREFIX}/features/{_segment(feature_id)}"
        return await self.bus.run(
            MutationKind.FEATURE_UPDATE,
            lambda: self.api.send("PUT", path, json=payload),
            id=feature_id,
        )

    async def mark_notification_read(self, notification_id: str) -> Any:
        path = f"{API_PREFIX}/notifications/{_segment(notification_id)}"
        return await self.bus.run(
            MutationKind.NOTIFICATION_MARK_READ,
            lambda: self.api.send("PATCH", path),
            id=notification_id,
        )

    async def mark_all_notifications_read(self) -> Any:
        return await self.bus.run(
            MutationKind.NOTIFICATION_MARK_ALL_READ,
            lambda: self.api.send("POST", f"{API_PREFIX}/notifications/mark-all-read"),
        )

    async def create_panel(self, payload: dict[str, Any]) -> Any:
        return await self.bus.run(
            MutationKind.PANEL_CREATE,
            lambda: self.api.send("POST", f"{API_PREFIX}/panels", json=payload),
        )

    async def update_panel(self, panel_id: str, payload: dict[str, Any]) -> Any:
        path = f"{API_PREFIX}/panels/{_segment(panel_id)}"
        return await self.bus.run(
            MutationKind.PANEL_UPDATE,
            lambda: self.api.send("PUT", path, json=payload),
            id=panel_id,
        )

    async def add_panel_member(self, panel_id: str, user_id: str) -> Any:
        path = f"{API_PREFIX}/panels/{_segment(panel_id)}/members"
        return await self.bus.run(
            MutationKind.PANEL_MEMBER_ADD,
            lambda: self.api.send("POST", path, json={"userId": user_id}),
            id=panel_id,
        )

    async def remove_panel_member(self, panel_id: str, user_id: str) -> Any:
        path = f"{API_PREFIX}/panels/{_segment(panel_id)}/members/{_segment(user_id)}"
        return await self.bus.run(
            MutationKind.PANEL_MEMBER_REMOVE,
            lambda: self.api.send("DELETE", path),
            id=panel_id,
        )

    async def create_session(self, payload: dict[str, Any]) -> Any:
        return await self.bus.run(
            MutationKind.SESSION_CREATE,
            lambda: self.api.send("POST", f"{API_PREFIX}/sessions", json=payload),
        )

    async def update_session(self, session_id: str, payload: dict[str, Any]) -> Any:
        path = f"{API_PREFIX}/sessions/{_segment(session_id)}"
        return await self.bus.run(
            MutationKind.SESSION_UPDATE,
            lambda: self.api.send("PUT", path, json=payload),
            id=session_id,
        )
