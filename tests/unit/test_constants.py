"""Unit tests for dashsync/core/constants module."""

from dashsync.core.constants import (
    API_PREFIX,
    DEFAULT_PAGE_LIMIT,
    KEY_SEPARATOR,
    NOTIFICATIONS_PAGE_LIMIT,
    EntityNamespace,
    Timings,
)


class TestEntityNamespace:
    """Tests for EntityNamespace enum."""

    def test_dashboard_namespaces(self) -> None:
        """Test every dashboard entity family has a namespace."""
        assert {ns.value for ns in EntityNamespace} == {
            "features",
            "notifications",
            "panels",
            "sessions",
            "feedback",
            "roadmap",
            "questionnaires",
        }

    def test_namespace_string_behavior(self) -> None:
        """Test EntityNamespace behaves as string."""
        assert isinstance(EntityNamespace.FEATURES, str)
        assert EntityNamespace.FEATURES == "features"

    def test_namespaces_contain_no_separator(self) -> None:
        """Test namespaces never contain the key separator."""
        for ns in EntityNamespace:
            assert KEY_SEPARATOR not in ns.value


class TestTimings:
    """Tests for default timing values."""

    def test_defaults(self) -> None:
        """Test cache and debounce defaults."""
        assert Timings.STALE_TIME_MS == 60_000
        assert Timings.GC_TIME_MS == 300_000
        assert Timings.SEARCH_DEBOUNCE_MS == 300

    def test_gc_outlives_staleness(self) -> None:
        """Test entries stay cached longer than they stay fresh."""
        assert Timings.GC_TIME_MS > Timings.STALE_TIME_MS


class TestApiConventions:
    """Tests for API path and paging constants."""

    def test_api_prefix(self) -> None:
        assert API_PREFIX == "/api"

    def test_page_limits(self) -> None:
        assert DEFAULT_PAGE_LIMIT == 20
        assert NOTIFICATIONS_PAGE_LIMIT == 50
