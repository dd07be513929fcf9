"""Fake fetchers for QueryCache unit testing.

- ControlledFetcher: every call blocks until the test resolves or rejects it,
  so tests decide the order in which responses arrive.
- StaticFetcher: returns configured responses immediately, with error injection.

Both record call counts for verifying deduplication.
"""

from __future__ import annotations

import asyncio
from typing import Any


async def flush(rounds: int = 5) -> None:
    """Let pending tasks and callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ControlledFetcher:
    """Fetcher whose responses are released explicitly by the test.

    Example:
        >>> fetcher = ControlledFetcher()
        >>> sub = cache.get("features/list", fetcher)
        >>> await flush()
        >>> fetcher.resolve(0, {"items": []})
    """

    def __init__(self) -> None:
        self.calls = 0
        self._futures: list[asyncio.Future[Any]] = []

    async def __call__(self) -> Any:
        self.calls += 1
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._futures.append(future)
        return await future

    def resolve(self, index: int, value: Any) -> None:
        self._futures[index].set_result(value)

    def reject(self, index: int, error: BaseException) -> None:
        self._futures[index].set_exception(error)


class StaticFetcher:
    """Fetcher returning queued responses (the last one repeats).

    Args:
        *responses: Values returned by successive calls
        error: Exception raised instead of returning, when set
    """

    def __init__(self, *responses: Any, error: BaseException | None = None) -> None:
        self._responses = list(responses) or [None]
        self.error = error
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        if self.error is not None:
            raise self.error
        index = min(self.calls - 1, len(self._responses) - 1)
        return self._responses[index]
