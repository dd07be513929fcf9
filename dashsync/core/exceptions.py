"""Custom exceptions for the dashboard sync layer.

All exceptions are namespaced under DashSyncError so a caller can catch
any library error with a single except clause.

Fetch errors (NetworkFailure, HttpError, ParseFailure) are raised by
fetchers and captured by the query cache onto the entry; they never
escape QueryCache. Mutation errors propagate to whoever started the
mutation.
"""

from enum import Enum


class FetchErrorKind(str, Enum):
    """Classification of a failed fetch, recorded on the cache entry."""
    NETWORK = "network"
    HTTP = "http"
    PARSE = "parse"


class DashSyncError(Exception):
    """Base exception for all dashsync errors."""

    def __init__(self, message: str) -> None:
        """Initialize the error.

        Args:
            message: Error description
        """
        self.message = message
        super().__init__(message)


class FetchError(DashSyncError):
    """Raised by a fetcher when server data could not be obtained.

    Subclasses fix the ``kind`` so the cache can record what went wrong
    without inspecting the exception type.
    """

    kind: FetchErrorKind = FetchErrorKind.NETWORK

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize fetch error.

        Args:
            message: Error description
            url: Request URL that failed
            status_code: HTTP status code if a response was received
        """
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class NetworkFailure(FetchError):
    """Raised when the request itself failed (connection, timeout)."""

    kind = FetchErrorKind.NETWORK


class HttpError(FetchError):
    """Raised for a non-2xx response, carrying the server-provided message."""

    kind = FetchErrorKind.HTTP

    def __init__(self, message: str, status_code: int, url: str | None = None) -> None:
        super().__init__(message, url=url, status_code=status_code)


class ParseFailure(FetchError):
    """Raised when a response body is not valid JSON or fails validation."""

    kind = FetchErrorKind.PARSE


class MutationError(DashSyncError):
    """Raised when a create/update/mark-read call fails.

    The mutation's invalidation rules are not applied when this is raised.
    """

    def __init__(
        self,
        message: str,
        mutation: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize mutation error.

        Args:
            message: Error description
            mutation: Name of the mutation kind that failed
            cause: Original exception
        """
        self.mutation = mutation
        self.cause = cause
        if cause:
            self.__cause__ = cause
        super().__init__(message)

    @property
    def status_code(self) -> int | None:
        """HTTP status of the underlying failure, if any."""
        return getattr(self.cause, "status_code", None)


class NavigationError(DashSyncError):
    """Raised for invalid navigation-state operations (e.g. empty key)."""
