"""Dashboard API clients.

- api: DashboardApiClient (httpx JSON client, fingerprint fetchers)
- dashboard: DashboardClient facade (cached queries, invalidating mutations)
"""

from dashsync.clients.api import DashboardApiClient
from dashsync.clients.dashboard import UNREAD_COUNT_OPTIONS, DashboardClient


__all__ = [
    "UNREAD_COUNT_OPTIONS",
    "DashboardApiClient",
    "DashboardClient",
]
