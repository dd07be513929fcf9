"""HTTP client factory for the dashboard API.

Provides a factory for creating httpx clients bound to the dashboard API
base URL with consistent timeouts and JSON headers. The query cache never
talks to httpx directly; fetchers built by dashsync.clients.api do.

Pattern: Factory Pattern
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import httpx

from dashsync.core.config import Settings, get_settings
from dashsync.core.logging import get_logger


logger = get_logger(__name__)


DEFAULT_HEADERS: dict[str, str] = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class HTTPClientFactory:
    """Factory for creating HTTP clients to the dashboard API.

    Provides centralized client creation with:
    - Consistent timeout configuration
    - Base URL from Settings
    - JSON request headers

    Example:
        ```python
        factory = HTTPClientFactory()
        async with factory.get_client() as client:
            response = await client.get("/api/features", params={"page": "1"})
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the HTTP client factory.

        Args:
            settings: Application settings. Uses get_settings() if not provided.
        """
        self._settings = settings or get_settings()

    @property
    def base_url(self) -> str:
        """Base URL for the dashboard API.

        Raises:
            ValueError: If no URL is configured.
        """
        url = self._settings.api_base_url
        if not url:
            raise ValueError("No URL configured for the dashboard API")
        return url

    def _client_kwargs(self, timeout: float | None, kwargs: dict[str, Any]) -> dict[str, Any]:
        headers = {**DEFAULT_HEADERS, **kwargs.pop("headers", {})}
        return {
            "base_url": self.base_url,
            "timeout": httpx.Timeout(timeout or self._settings.http_timeout_seconds),
            "headers": headers,
            **kwargs,
        }

    @asynccontextmanager
    async def get_client(
        self,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> AsyncGenerator[httpx.AsyncClient, None]:
        """Get an HTTP client for the dashboard API.

        Args:
            timeout: Request timeout in seconds. Uses settings default if not specified.
            **kwargs: Additional arguments passed to httpx.AsyncClient.

        Yields:
            Configured httpx.AsyncClient instance.
        """
        client_kwargs = self._client_kwargs(timeout, kwargs)

        logger.debug(
            "Creating HTTP client",
            base_url=client_kwargs["base_url"],
            timeout=client_kwargs["timeout"].read,
        )

        async with httpx.AsyncClient(**client_kwargs) as client:
            yield client

    def create_client(
        self,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> httpx.AsyncClient:
        """Create a standalone HTTP client (caller manages lifecycle).

        Use get_client() context manager when possible.

        Args:
            timeout: Request timeout in seconds.
            **kwargs: Additional arguments passed to httpx.AsyncClient.

        Returns:
            Configured httpx.AsyncClient instance.

        Warning:
            Caller is responsible for calling `await client.aclose()`.
        """
        return httpx.AsyncClient(**self._client_kwargs(timeout, kwargs))


# Module-level factory instance (lazy initialization)
_factory: HTTPClientFactory | None = None


def get_http_client_factory() -> HTTPClientFactory:
    """Get the shared HTTP client factory instance.

    Returns:
        Shared HTTPClientFactory singleton.
    """
    global _factory
    if _factory is None:
        _factory = HTTPClientFactory()
    return _factory
