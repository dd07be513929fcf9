"""Query Cache Package.

Server data keyed by fingerprint (``namespace/segment?filters``):
- fingerprint: key building, prefix matching, key-to-URL mapping
- entry: CacheEntry, QueryStatus, ErrorInfo, QueryOptions
- query_cache: QueryCache and Subscription
- invalidation: InvalidationBus and the mutation -> prefix table
"""

from dashsync.cache.entry import (
    CacheEntry,
    ErrorInfo,
    Fetcher,
    QueryOptions,
    QueryStatus,
)
from dashsync.cache.fingerprint import (
    EntityKeys,
    Fingerprint,
    NotificationKeys,
    QueryKeys,
    build_fingerprint,
    fingerprint_to_path,
    matches_prefix,
    normalize_filters,
    parse_fingerprint,
)
from dashsync.cache.invalidation import (
    MUTATION_INVALIDATIONS,
    InvalidationBus,
    InvalidationRule,
    InvalidationScope,
    MutationKind,
)
from dashsync.cache.query_cache import QueryCache, Subscription


__all__ = [
    "MUTATION_INVALIDATIONS",
    # Entries
    "CacheEntry",
    "EntityKeys",
    "ErrorInfo",
    "Fetcher",
    # Fingerprints
    "Fingerprint",
    # Invalidation
    "InvalidationBus",
    "InvalidationRule",
    "InvalidationScope",
    "MutationKind",
    "NotificationKeys",
    # Cache
    "QueryCache",
    "QueryKeys",
    "QueryOptions",
    "QueryStatus",
    "Subscription",
    "build_fingerprint",
    "fingerprint_to_path",
    "matches_prefix",
    "normalize_filters",
    "parse_fingerprint",
]
