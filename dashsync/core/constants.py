"""Dashboard entity namespaces and default timing values.

Provides centralized constants for:
- Entity namespaces used as the first fingerprint segment
- Default cache and debounce timings
- API path conventions
"""

from enum import Enum


# =============================================================================
# Entity Namespaces
# =============================================================================

class EntityNamespace(str, Enum):
    """First segment of every fingerprint.

    Each namespace maps onto one family of API endpoints under /api/.
    """
    FEATURES = "features"
    NOTIFICATIONS = "notifications"
    PANELS = "panels"
    SESSIONS = "sessions"
    FEEDBACK = "feedback"
    ROADMAP = "roadmap"
    QUESTIONNAIRES = "questionnaires"


# Fingerprint structure
KEY_SEPARATOR: str = "/"
FILTER_SEPARATOR: str = "?"
LIST_SEGMENT: str = "list"
DETAIL_SEGMENT: str = "detail"
UNREAD_COUNT_SEGMENT: str = "unread-count"

API_PREFIX: str = "/api"


# =============================================================================
# Default Timings
# =============================================================================

class Timings:
    """Default timing values in milliseconds.

    These can be overridden via Settings or per query.
    """
    STALE_TIME_MS: int = 60_000  # 1 minute
    GC_TIME_MS: int = 300_000  # 5 minutes
    SEARCH_DEBOUNCE_MS: int = 300


# Pagination defaults
DEFAULT_PAGE_LIMIT: int = 20
NOTIFICATIONS_PAGE_LIMIT: int = 50
