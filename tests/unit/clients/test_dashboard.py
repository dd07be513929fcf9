"""Unit tests for DashboardClient.

Wires a real QueryCache (manual clock) to a DashboardApiClient served by
httpx.MockTransport, then checks the keys each query uses and the
refetches each mutation causes.
"""

from __future__ import annotations

import json
from collections import Counter

import httpx
import pytest

from dashsync.cache.entry import QueryStatus
from dashsync.cache.fingerprint import QueryKeys
from dashsync.cache.query_cache import QueryCache
from dashsync.clients.api import DashboardApiClient
from dashsync.clients.dashboard import UNREAD_COUNT_OPTIONS, DashboardClient
from dashsync.core.config import Settings
from dashsync.core.exceptions import MutationError
from dashsync.core.http import HTTPClientFactory
from dashsync.schemas.pages import ListPage, NotificationPage, UnreadCount
from dashsync.search.navigation import QueryStringNavigation
from tests.fakes.fake_clock import ManualScheduler
from tests.fakes.fake_fetchers import flush


def _page(**extra: object) -> dict:
    return {"items": [], "total": 0, "page": 1, "limit": 20, "hasMore": False, **extra}


class FakeDashboardServer:
    """Routes requests to canned bodies and counts hits per (method, path)."""

    def __init__(self) -> None:
        self.hits: Counter[tuple[str, str]] = Counter()
        self.requests: list[httpx.Request] = []
        self.fail_mutations = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.hits[(request.method, path)] += 1
        self.requests.append(request)

        if request.method != "GET":
            if self.fail_mutations:
                return httpx.Response(404, json={"error": "Not found"})
            return httpx.Response(200, json={"ok": True})
        if path == "/api/notifications/unread-count":
            return httpx.Response(200, json={"unreadCount": 2})
        if path == "/api/notifications":
            return httpx.Response(200, json=_page(limit=50, unreadCount=2))
        if path.count("/") == 3:
            return httpx.Response(200, json={"id": path.rsplit("/", 1)[-1]})
        return httpx.Response(200, json=_page())


@pytest.fixture
def server() -> FakeDashboardServer:
    return FakeDashboardServer()


@pytest.fixture
def dashboard(
    cache: QueryCache,
    server: FakeDashboardServer,
    test_settings: Settings,
) -> DashboardClient:
    """Dashboard client over the test cache and fake server."""
    client = httpx.AsyncClient(
        base_url=test_settings.api_base_url,
        transport=httpx.MockTransport(server),
    )
    api = DashboardApiClient(factory=HTTPClientFactory(test_settings), client=client)
    return DashboardClient(api, cache, settings=test_settings)


@pytest.mark.asyncio
class TestQueries:
    """Tests for query keys and decoded results."""

    async def test_features_key_drops_empty_filters(
        self, dashboard: DashboardClient, server: FakeDashboardServer
    ) -> None:
        """Test "", "all" and None filters are left out of the key."""
        sub = dashboard.features(page=2, area="all", status="", search="dark")

        assert sub.key == "features/list?limit=20&page=2&search=dark"
        entry = await sub.wait()
        assert isinstance(entry.data, ListPage)
        assert dict(server.requests[0].url.params) == {
            "limit": "20",
            "page": "2",
            "search": "dark",
        }

    async def test_same_filters_share_one_request(
        self, dashboard: DashboardClient, server: FakeDashboardServer
    ) -> None:
        """Test two views of the same list issue a single request."""
        first = dashboard.features(search="x")
        second = dashboard.features(search="x", area="all")
        await first.wait()

        assert first.key == second.key
        assert server.hits[("GET", "/api/features")] == 1

    async def test_notifications_page(self, dashboard: DashboardClient) -> None:
        """Test notifications decode with the unread counter."""
        sub = dashboard.notifications(unread_only=True)

        assert sub.key == "notifications/list?limit=50&unread=true"
        page = (await sub.wait()).data
        assert isinstance(page, NotificationPage)
        assert page.unread_count == 2

    async def test_unread_count_polls(self, dashboard: DashboardClient) -> None:
        """Test the unread counter subscribes with polling options."""
        sub = dashboard.unread_count()

        assert sub.key == QueryKeys.notifications.unread_count()
        assert sub.options.refetch_interval_ms == UNREAD_COUNT_OPTIONS.refetch_interval_ms
        assert (await sub.wait()).data == UnreadCount(unread_count=2)

    async def test_detail_queries(
        self, dashboard: DashboardClient, server: FakeDashboardServer
    ) -> None:
        """Test detail queries hit the item endpoints."""
        await dashboard.feature("f-1").wait()
        await dashboard.panel("p-1").wait()
        await dashboard.session("s-1").wait()
        await dashboard.notification("n-1").wait()

        assert server.hits[("GET", "/api/features/f-1")] == 1
        assert server.hits[("GET", "/api/panels/p-1")] == 1
        assert server.hits[("GET", "/api/sessions/s-1")] == 1
        assert server.hits[("GET", "/api/notifications/n-1")] == 1

    async def test_panels_and_sessions_lists(self, dashboard: DashboardClient) -> None:
        """Test panel and session list keys."""
        assert dashboard.panels(search="beta").key == "panels/list?limit=20&page=1&search=beta"
        sessions = dashboard.sessions(status="active")
        assert sessions.key == "sessions/list?limit=20&page=1&status=active"


class TestNavigationFilters:
    """Tests for navigation_filters()."""

    @pytest.mark.parametrize(
        "query,expected",
        [
            ("", {"search": None, "page": 1}),
            ("search=dark&page=3", {"search": "dark", "page": 3}),
            ("page=abc", {"search": None, "page": 1}),
            ("page=0", {"search": None, "page": 1}),
        ],
    )
    def test_filters_from_navigation(
        self,
        scheduler: ManualScheduler,
        test_settings: Settings,
        query: str,
        expected: dict,
    ) -> None:
        """Test search and page are read with a first-page fallback."""
        dashboard = DashboardClient(
            DashboardApiClient(factory=HTTPClientFactory(test_settings)),
            QueryCache(scheduler=scheduler, settings=test_settings),
            settings=test_settings,
        )

        assert dashboard.navigation_filters(QueryStringNavigation(query)) == expected


@pytest.mark.asyncio
class TestMutations:
    """Tests for mutation requests and their cascades."""

    async def test_mark_read_refetches_list_and_counter(
        self,
        dashboard: DashboardClient,
        server: FakeDashboardServer,
        cache: QueryCache,
    ) -> None:
        """Test marking one notification read refreshes list and badge."""
        notifications = dashboard.notifications()
        counter = dashboard.unread_count()
        features = dashboard.features()
        await notifications.wait()
        await counter.wait()
        await features.wait()

        await dashboard.mark_notification_read("n-1")
        await notifications.wait()
        await counter.wait()

        assert server.hits[("PATCH", "/api/notifications/n-1")] == 1
        assert server.hits[("GET", "/api/notifications")] == 2
        assert server.hits[("GET", "/api/notifications/unread-count")] == 2
        assert server.hits[("GET", "/api/features")] == 1
        assert cache.peek(features.key).status is QueryStatus.FRESH

    async def test_mark_all_read(
        self, dashboard: DashboardClient, server: FakeDashboardServer
    ) -> None:
        """Test mark-all-read posts and refreshes the whole namespace."""
        counter = dashboard.unread_count()
        await counter.wait()

        await dashboard.mark_all_notifications_read()
        await counter.wait()

        assert server.hits[("POST", "/api/notifications/mark-all-read")] == 1
        assert server.hits[("GET", "/api/notifications/unread-count")] == 2

    async def test_failed_mutation_raises_and_keeps_cache(
        self,
        dashboard: DashboardClient,
        server: FakeDashboardServer,
        cache: QueryCache,
    ) -> None:
        """Test a failed write raises MutationError without refetching."""
        sub = dashboard.feature("f-1")
        await sub.wait()
        server.fail_mutations = True

        with pytest.raises(MutationError) as exc_info:
            await dashboard.update_feature("f-1", {"title": "Renamed"})

        await flush()
        assert exc_info.value.status_code == 404
        assert exc_info.value.mutation == "feature.update"
        assert server.hits[("GET", "/api/features/f-1")] == 1
        assert cache.peek(sub.key).status is QueryStatus.FRESH

    async def test_update_feature_refetches_detail(
        self, dashboard: DashboardClient, server: FakeDashboardServer
    ) -> None:
        """Test updating a feature sends PUT and refetches its detail."""
        sub = dashboard.feature("f-1")
        await sub.wait()

        await dashboard.update_feature("f-1", {"title": "Renamed"})
        await sub.wait()

        assert server.hits[("PUT", "/api/features/f-1")] == 1
        assert server.hits[("GET", "/api/features/f-1")] == 2

    async def test_add_member_marks_sessions_stale(
        self,
        dashboard: DashboardClient,
        server: FakeDashboardServer,
        cache: QueryCache,
    ) -> None:
        """Test membership changes leave session lists stale, not refetched."""
        sessions = dashboard.sessions()
        await sessions.wait()

        await dashboard.add_panel_member("p-1", "u-7")
        await flush()

        request = next(r for r in server.requests if r.method == "POST")
        assert request.url.path == "/api/panels/p-1/members"
        assert json.loads(request.content) == {"userId": "u-7"}
        assert cache.peek(sessions.key).status is QueryStatus.STALE
        assert server.hits[("GET", "/api/sessions")] == 1

    async def test_remove_member_path(
        self, dashboard: DashboardClient, server: FakeDashboardServer
    ) -> None:
        """Test removing a member issues DELETE on the member path."""
        await dashboard.remove_panel_member("p-1", "u-7")

        assert server.hits[("DELETE", "/api/panels/p-1/members/u-7")] == 1

    async def test_create_requests(
        self, dashboard: DashboardClient, server: FakeDashboardServer
    ) -> None:
        """Test create mutations post to the collection endpoints."""
        await dashboard.create_feature({"title": "Export"})
        await dashboard.create_panel({"name": "Beta"})
        await dashboard.create_session({"panelId": "p-1"})
        await dashboard.update_panel("p-1", {"name": "Gamma"})
        await dashboard.update_session("s-1", {"status": "closed"})

        assert server.hits[("POST", "/api/features")] == 1
        assert server.hits[("POST", "/api/panels")] == 1
        assert server.hits[("POST", "/api/sessions")] == 1
        assert server.hits[("PUT", "/api/panels/p-1")] == 1
        assert server.hits[("PUT", "/api/sessions/s-1")] == 1
