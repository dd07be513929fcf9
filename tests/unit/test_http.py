"""Unit tests for dashsync/core/http module.

Tests the HTTP client factory for the dashboard API.
"""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from dashsync.core.http import (
    DEFAULT_HEADERS,
    HTTPClientFactory,
    get_http_client_factory,
)


class TestHTTPClientFactory:
    """Tests for HTTPClientFactory class."""

    @pytest.fixture
    def mock_settings(self) -> MagicMock:
        """Create mock settings for testing."""
        settings = MagicMock()
        settings.api_base_url = "http://localhost:3000"
        settings.http_timeout_seconds = 30
        return settings

    def test_init_with_settings(self, mock_settings: MagicMock) -> None:
        """Test factory initialization with provided settings."""
        factory = HTTPClientFactory(settings=mock_settings)

        assert factory._settings == mock_settings

    def test_init_without_settings(self) -> None:
        """Test factory initialization uses get_settings()."""
        with patch("dashsync.core.http.get_settings") as mock_get:
            HTTPClientFactory()

            mock_get.assert_called_once()

    def test_base_url(self, mock_settings: MagicMock) -> None:
        """Test the base URL comes from settings."""
        assert HTTPClientFactory(settings=mock_settings).base_url == "http://localhost:3000"

    def test_base_url_missing_raises(self, mock_settings: MagicMock) -> None:
        """Test an unconfigured base URL raises ValueError."""
        mock_settings.api_base_url = ""

        with pytest.raises(ValueError, match="No URL configured"):
            HTTPClientFactory(settings=mock_settings).base_url

    @pytest.mark.asyncio
    async def test_get_client_context_manager(self, mock_settings: MagicMock) -> None:
        """Test get_client yields a configured client and closes it."""
        factory = HTTPClientFactory(settings=mock_settings)

        async with factory.get_client() as client:
            assert isinstance(client, httpx.AsyncClient)
            assert str(client.base_url).startswith("http://localhost:3000")
            assert client.timeout.read == 30
            assert client.headers["Accept"] == DEFAULT_HEADERS["Accept"]

        assert client.is_closed

    @pytest.mark.asyncio
    async def test_create_client_with_timeout_and_headers(self, mock_settings: MagicMock) -> None:
        """Test create_client honours timeout and merges extra headers."""
        factory = HTTPClientFactory(settings=mock_settings)

        client = factory.create_client(timeout=5.0, headers={"X-Request-Source": "dashboard"})
        try:
            assert client.timeout.read == 5.0
            assert client.headers["X-Request-Source"] == "dashboard"
            assert client.headers["Content-Type"] == "application/json"
        finally:
            await client.aclose()


class TestGetHTTPClientFactory:
    """Tests for the shared factory accessor."""

    def test_returns_singleton(self) -> None:
        """Test the same factory is returned on every call."""
        with patch("dashsync.core.http._factory", None):
            first = get_http_client_factory()
            second = get_http_client_factory()

            assert isinstance(first, HTTPClientFactory)
            assert first is second
