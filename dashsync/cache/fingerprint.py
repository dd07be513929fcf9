"""Query fingerprints - deterministic cache keys for (entity, filters).

Format: ``{namespace}/{segment}/...?{filters}`` e.g.::

    features/list?area=mobile&page=2
    notifications/detail/42
    notifications/unread-count

Filters are normalized before encoding: ``None`` values are dropped, keys
are sorted and values canonicalised, so logically identical filter sets
always produce the same fingerprint. A fingerprint names the request it
is fetched with, so filters that encode to the same query string share a
key: ``True`` and ``"true"`` are one filter value, while a list is sent as
repeated pairs and never collides with a comma-joined string. Prefix
matching is segment-aware so ``features/detail/1`` never matches
``features/detail/10``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping
from urllib.parse import parse_qsl, quote, unquote, urlencode

from dashsync.core.constants import (
    API_PREFIX,
    DETAIL_SEGMENT,
    FILTER_SEPARATOR,
    KEY_SEPARATOR,
    LIST_SEGMENT,
    UNREAD_COUNT_SEGMENT,
    EntityNamespace,
)


Fingerprint = str


def _canonical_scalar(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping):
        raise ValueError("Nested mappings are not supported as filter values")
    if isinstance(value, (list, tuple, set, frozenset)):
        raise ValueError("Nested sequences are not supported as filter values")
    return str(value)


def _canonical_values(value: Any) -> list[str]:
    if isinstance(value, (set, frozenset)):
        return sorted(_canonical_scalar(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_canonical_scalar(v) for v in value]
    return [_canonical_scalar(value)]


def normalize_filters(filters: Mapping[str, Any] | None) -> list[tuple[str, str]]:
    """Normalize a filter mapping into sorted ``(key, value)`` pairs.

    Sequences expand to one pair per element, so ``{"tags": ["a", "b"]}``
    and ``{"tags": "a,b"}`` stay distinct. Pairs are sorted by key only;
    list order within a key is kept, set members are sorted.

    Args:
        filters: Filter mapping; ``None`` entries count as absent.

    Returns:
        Sorted list of canonical string pairs.

    Example:
        >>> normalize_filters({"status": None, "page": 2, "unread": True})
        [('page', '2'), ('unread', 'true')]
        >>> normalize_filters({"tags": ["b", "a"]})
        [('tags', 'b'), ('tags', 'a')]
    """
    if not filters:
        return []
    pairs = [
        (str(key), item)
        for key, value in filters.items()
        if value is not None
        for item in _canonical_values(value)
    ]
    return sorted(pairs, key=lambda pair: pair[0])


def build_fingerprint(
    namespace: str | EntityNamespace,
    *segments: str | int,
    filters: Mapping[str, Any] | None = None,
) -> Fingerprint:
    """Build a fingerprint from a namespace, path segments and filters.

    Args:
        namespace: Entity namespace (first segment)
        *segments: Further path segments (e.g. "detail", entity id)
        filters: Optional filter mapping

    Returns:
        Deterministic fingerprint string

    Raises:
        ValueError: If the namespace or a segment is empty

    Example:
        >>> build_fingerprint("features", "list", filters={"page": 1, "area": "web"})
        'features/list?area=web&page=1'
    """
    ns = namespace.value if isinstance(namespace, EntityNamespace) else namespace
    if not ns:
        raise ValueError("namespace cannot be empty")

    parts = [quote(ns, safe="")]
    for segment in segments:
        text = str(segment)
        if not text:
            raise ValueError("segment cannot be empty")
        parts.append(quote(text, safe=""))

    key = KEY_SEPARATOR.join(parts)
    pairs = normalize_filters(filters)
    if pairs:
        key = f"{key}{FILTER_SEPARATOR}{urlencode(pairs)}"
    return key


def parse_fingerprint(
    fingerprint: Fingerprint,
) -> tuple[str, tuple[str, ...], dict[str, str | list[str]]]:
    """Split a fingerprint into namespace, segments and filters.

    A filter key that repeats comes back as a list of its values.

    Raises:
        ValueError: If the fingerprint has no namespace

    Example:
        >>> parse_fingerprint("features/list?page=2&tags=a&tags=b")
        ('features', ('list',), {'page': '2', 'tags': ['a', 'b']})
    """
    path, _, query = fingerprint.partition(FILTER_SEPARATOR)
    parts = [unquote(p) for p in path.split(KEY_SEPARATOR) if p]
    if not parts:
        raise ValueError(f"Invalid fingerprint: '{fingerprint}'")
    filters: dict[str, str | list[str]] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        current = filters.get(key)
        if current is None:
            filters[key] = value
        elif isinstance(current, list):
            current.append(value)
        else:
            filters[key] = [current, value]
    return parts[0], tuple(parts[1:]), filters


def matches_prefix(fingerprint: Fingerprint, prefix: str) -> bool:
    """Return True if ``fingerprint`` lies under ``prefix``.

    A prefix ending in ``/`` matches by plain string prefix. Any other
    prefix matches the fingerprint itself or fingerprints continuing with
    a path or filter separator.
    """
    if not prefix:
        return True
    if prefix.endswith(KEY_SEPARATOR):
        return fingerprint.startswith(prefix)
    if not fingerprint.startswith(prefix):
        return False
    rest = fingerprint[len(prefix):]
    return rest == "" or rest[0] in (KEY_SEPARATOR, FILTER_SEPARATOR)


def fingerprint_to_path(fingerprint: Fingerprint) -> str:
    """Derive the API request path (with query string) for a fingerprint.

    ``ns/list?q`` maps to ``/api/ns?q`` and ``ns/detail/<id>`` to
    ``/api/ns/<id>``; other shapes map segment for segment.

    Example:
        >>> fingerprint_to_path("notifications/list?limit=50&unread=true")
        '/api/notifications?limit=50&unread=true'
    """
    path, sep, query = fingerprint.partition(FILTER_SEPARATOR)
    parts = path.split(KEY_SEPARATOR)
    if len(parts) >= 2 and parts[1] == LIST_SEGMENT:
        parts = [parts[0], *parts[2:]]
    elif len(parts) >= 3 and parts[1] == DETAIL_SEGMENT:
        parts = [parts[0], *parts[2:]]
    return f"{API_PREFIX}/{KEY_SEPARATOR.join(parts)}{sep}{query}"


class EntityKeys:
    """Hierarchical key builders for one entity namespace.

    Example:
        >>> keys = EntityKeys(EntityNamespace.FEATURES)
        >>> keys.all()
        'features/'
        >>> keys.detail("abc")
        'features/detail/abc'
    """

    def __init__(self, namespace: EntityNamespace) -> None:
        self.namespace = namespace

    def all(self) -> str:
        """Prefix matching every key in the namespace."""
        return f"{self.namespace.value}{KEY_SEPARATOR}"

    def lists(self) -> str:
        return build_fingerprint(self.namespace, LIST_SEGMENT)

    def list(self, filters: Mapping[str, Any] | None = None) -> Fingerprint:
        return build_fingerprint(self.namespace, LIST_SEGMENT, filters=filters)

    def details(self) -> str:
        return build_fingerprint(self.namespace, DETAIL_SEGMENT)

    def detail(self, entity_id: str | int) -> Fingerprint:
        return build_fingerprint(self.namespace, DETAIL_SEGMENT, entity_id)

    def __repr__(self) -> str:
        return f"EntityKeys({self.namespace.value!r})"


class NotificationKeys(EntityKeys):
    """Notification keys, adding the aggregate unread counter."""

    def unread_count(self) -> Fingerprint:
        return build_fingerprint(self.namespace, UNREAD_COUNT_SEGMENT)


class QueryKeys:
    """Centralized key factory for every dashboard entity."""

    features = EntityKeys(EntityNamespace.FEATURES)
    notifications = NotificationKeys(EntityNamespace.NOTIFICATIONS)
    panels = EntityKeys(EntityNamespace.PANELS)
    sessions = EntityKeys(EntityNamespace.SESSIONS)
    feedback = EntityKeys(EntityNamespace.FEEDBACK)
    roadmap = EntityKeys(EntityNamespace.ROADMAP)
    questionnaires = EntityKeys(EntityNamespace.QUESTIONNAIRES)
