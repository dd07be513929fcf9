"""Test configuration and shared fixtures.

Pattern: Pytest fixtures, conftest.py
Anti-Pattern Avoided: Fixture reuse without explicit scope
"""

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from dashsync.cache.entry import QueryOptions
from dashsync.cache.invalidation import InvalidationBus
from dashsync.cache.query_cache import QueryCache
from dashsync.core.config import Settings
from dashsync.search.navigation import QueryStringNavigation
from tests.fakes.fake_clock import ManualScheduler


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        api_base_url="http://dashboard.test",
        environment="test",
        log_level="DEBUG",
        default_stale_time_ms=60_000,
        default_gc_time_ms=300_000,
        default_refetch_interval_ms=None,
        refetch_on_focus=True,
        search_debounce_ms=300,
        search_param="search",
        page_param="page",
        first_page="1",
    )


# ============================================================================
# Clock and Cache Fixtures
# ============================================================================

@pytest.fixture
def scheduler() -> ManualScheduler:
    """Logical clock starting at t=0."""
    return ManualScheduler()


@pytest_asyncio.fixture
async def cache(
    scheduler: ManualScheduler,
    test_settings: Settings,
) -> AsyncIterator[QueryCache]:
    """Query cache on the manual clock, closed after the test."""
    query_cache = QueryCache(scheduler=scheduler, settings=test_settings)
    yield query_cache
    await query_cache.close()


@pytest.fixture
def bus(cache: QueryCache) -> InvalidationBus:
    """Invalidation bus over the test cache."""
    return InvalidationBus(cache)


@pytest.fixture
def polling_options() -> QueryOptions:
    """Options polling once a second."""
    return QueryOptions(refetch_interval_ms=1_000)


# ============================================================================
# Navigation Fixtures
# ============================================================================

@pytest.fixture
def navigation() -> QueryStringNavigation:
    """Empty address bar."""
    return QueryStringNavigation()
