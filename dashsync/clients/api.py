"""Dashboard API HTTP client.

Thin async JSON client over httpx that maps every failure onto the fetch
error taxonomy:

- transport exceptions (connect, timeout) -> NetworkFailure
- non-2xx responses -> HttpError with the body's ``error``/``message``
- undecodable bodies or schema mismatches -> ParseFailure

It also turns fingerprints into fetchers for QueryCache.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx
from pydantic import BaseModel, ValidationError

from dashsync.cache.entry import Fetcher
from dashsync.cache.fingerprint import Fingerprint, fingerprint_to_path
from dashsync.core.exceptions import HttpError, NetworkFailure, ParseFailure
from dashsync.core.http import HTTPClientFactory, get_http_client_factory
from dashsync.core.logging import get_logger


logger = get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Extract the server-provided error message from a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("error") or body.get("message")
        if message:
            return str(message)
    return response.reason_phrase or f"HTTP {response.status_code}"


class DashboardApiClient:
    """HTTP client for the dashboard API.

    Attributes:
        factory: Factory used to create the underlying httpx client
    """

    def __init__(
        self,
        factory: HTTPClientFactory | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            factory: HTTP client factory. Defaults to the shared factory.
            client: Pre-built httpx client (caller keeps ownership).
            timeout: Request timeout override in seconds.
        """
        self.factory = factory or get_http_client_factory()
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = self.factory.create_client(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "DashboardApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def request_json(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send a request and decode its JSON body.

        Returns:
            Decoded body, or None for an empty response (e.g. 204)

        Raises:
            NetworkFailure: If the request could not be completed
            HttpError: If the response status is not 2xx
            ParseFailure: If the body is not valid JSON
        """
        client = await self._get_client()
        logger.debug("API request", method=method, path=path)

        try:
            response = await client.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            raise NetworkFailure(str(e) or type(e).__name__, url=path) from e

        if not response.is_success:
            raise HttpError(_error_message(response), status_code=response.status_code, url=path)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ParseFailure(
                f"Malformed JSON response: {e}", url=path, status_code=response.status_code
            ) from e

    async def get_json(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self.request_json("GET", path, params=params)

    async def send(self, method: str, path: str, json: Any = None) -> Any:
        """Issue a mutation request (POST/PUT/PATCH/DELETE)."""
        return await self.request_json(method, path, json=json)

    def fetcher(
        self,
        fingerprint: Fingerprint,
        model: type[BaseModel] | None = None,
    ) -> Fetcher:
        """Build a QueryCache fetcher for a fingerprint.

        Args:
            fingerprint: Cache key; the request URL is derived from it
            model: Optional pydantic model to validate the body against

        Returns:
            Zero-argument coroutine function
        """
        path = fingerprint_to_path(fingerprint)

        async def fetch() -> Any:
            body = await self.get_json(path)
            if model is None:
                return body
            try:
                return model.model_validate(body)
            except ValidationError as e:
                raise ParseFailure(
                    f"Unexpected response shape for {fingerprint}: {e.error_count()} error(s)",
                    url=path,
                ) from e

        return fetch
