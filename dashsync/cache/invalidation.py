"""InvalidationBus - mutation-driven invalidation cascades over QueryCache.

Each mutation kind declares, in a static table, which fingerprint prefixes
it affects. After a mutation succeeds the bus marks every cached entry
under those prefixes stale in one step, then refetches the ones that are
currently subscribed (visible). Entries nobody is watching stay stale and
refetch lazily on their next get().

Prefixes may contain ``{param}`` placeholders filled from the mutation's
input arguments, never from its response.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterable, Mapping, TypeVar
from urllib.parse import quote

from dashsync.cache.query_cache import QueryCache
from dashsync.core.exceptions import MutationError
from dashsync.core.logging import get_logger


logger = get_logger(__name__)

R = TypeVar("R")


class InvalidationScope(str, Enum):
    """What happens to entries matched by a rule."""

    MARK_STALE = "mark-stale"
    REFETCH_VISIBLE = "mark-stale-and-refetch-visible"


@dataclass(frozen=True)
class InvalidationRule:
    """One prefix affected by a mutation.

    Attributes:
        prefix: Fingerprint prefix, optionally with ``{param}`` placeholders
        scope: Whether subscribed entries are refetched immediately
    """

    prefix: str
    scope: InvalidationScope = InvalidationScope.REFETCH_VISIBLE

    def resolve(self, params: Mapping[str, Any]) -> "InvalidationRule":
        """Fill placeholders with fingerprint-encoded parameter values.

        Raises:
            ValueError: If a placeholder has no matching parameter
        """
        if "{" not in self.prefix:
            return self
        encoded = {name: quote(str(value), safe="") for name, value in params.items()}
        try:
            prefix = self.prefix.format_map(encoded)
        except KeyError as exc:
            raise ValueError(
                f"Missing parameter {exc.args[0]!r} for invalidation prefix '{self.prefix}'"
            ) from exc
        return InvalidationRule(prefix=prefix, scope=self.scope)


class MutationKind(str, Enum):
    """Every server mutation the dashboard issues."""

    FEATURE_CREATE = "feature.create"
    FEATURE_UPDATE = "feature.update"
    NOTIFICATION_MARK_READ = "notification.mark_read"
    NOTIFICATION_MARK_ALL_READ = "notification.mark_all_read"
    PANEL_CREATE = "panel.create"
    PANEL_UPDATE = "panel.update"
    PANEL_MEMBER_ADD = "panel.member_add"
    PANEL_MEMBER_REMOVE = "panel.member_remove"
    SESSION_CREATE = "session.create"
    SESSION_UPDATE = "session.update"


_REFETCH = InvalidationScope.REFETCH_VISIBLE
_STALE = InvalidationScope.MARK_STALE

MUTATION_INVALIDATIONS: Mapping[MutationKind, tuple[InvalidationRule, ...]] = MappingProxyType({
    MutationKind.FEATURE_CREATE: (
        InvalidationRule("features/list", _REFETCH),
    ),
    MutationKind.FEATURE_UPDATE: (
        InvalidationRule("features/detail/{id}", _REFETCH),
        InvalidationRule("features/list", _REFETCH),
    ),
    MutationKind.NOTIFICATION_MARK_READ: (
        InvalidationRule("notifications/detail/{id}", _REFETCH),
        InvalidationRule("notifications/list", _REFETCH),
        InvalidationRule("notifications/unread-count", _REFETCH),
    ),
    MutationKind.NOTIFICATION_MARK_ALL_READ: (
        InvalidationRule("notifications/", _REFETCH),
    ),
    MutationKind.PANEL_CREATE: (
        InvalidationRule("panels/list", _REFETCH),
    ),
    MutationKind.PANEL_UPDATE: (
        InvalidationRule("panels/detail/{id}", _REFETCH),
        InvalidationRule("panels/list", _REFETCH),
    ),
    # Membership changes alter session eligibility; sessions refetch lazily.
    MutationKind.PANEL_MEMBER_ADD: (
        InvalidationRule("panels/detail/{id}", _REFETCH),
        InvalidationRule("panels/list", _REFETCH),
        InvalidationRule("sessions/", _STALE),
    ),
    MutationKind.PANEL_MEMBER_REMOVE: (
        InvalidationRule("panels/detail/{id}", _REFETCH),
        InvalidationRule("panels/list", _REFETCH),
        InvalidationRule("sessions/", _STALE),
    ),
    MutationKind.SESSION_CREATE: (
        InvalidationRule("sessions/list", _REFETCH),
    ),
    MutationKind.SESSION_UPDATE: (
        InvalidationRule("sessions/detail/{id}", _REFETCH),
        InvalidationRule("sessions/list", _REFETCH),
    ),
})


class InvalidationBus:
    """Applies invalidation rules to a QueryCache.

    Example:
        >>> bus = InvalidationBus(cache)
        >>> await bus.run(
        ...     MutationKind.NOTIFICATION_MARK_READ,
        ...     lambda: api.send("PATCH", "/api/notifications/42"),
        ...     id="42",
        ... )
    """

    def __init__(
        self,
        cache: QueryCache,
        table: Mapping[MutationKind, tuple[InvalidationRule, ...]] = MUTATION_INVALIDATIONS,
    ) -> None:
        self._cache = cache
        self._table = table

    @property
    def cache(self) -> QueryCache:
        return self._cache

    def invalidate(
        self,
        prefix: str,
        scope: InvalidationScope = InvalidationScope.REFETCH_VISIBLE,
    ) -> list[str]:
        """Mark every entry under ``prefix`` stale, refetching visible ones.

        Returns:
            Fingerprints that were marked stale.
        """
        return self.apply([InvalidationRule(prefix=prefix, scope=scope)])

    def apply(self, rules: Iterable[InvalidationRule]) -> list[str]:
        """Apply resolved rules as one cascade.

        Every matching entry across all rules is marked before the first
        refetch starts.
        """
        rules = list(rules)
        matched: list[str] = []
        to_refetch: dict[str, None] = {}
        for rule in rules:
            keys = self._cache.matching(rule.prefix)
            matched.extend(keys)
            if rule.scope is InvalidationScope.REFETCH_VISIBLE:
                to_refetch.update(dict.fromkeys(keys))

        marked = self._cache.mark_stale(matched)

        refetched = [
            key
            for key in to_refetch
            if self._cache.subscriber_count(key) and self._cache.revalidate(key)
        ]
        logger.info(
            "Invalidation cascade",
            prefixes=[rule.prefix for rule in rules],
            marked=len(marked),
            refetched=len(refetched),
        )
        return marked

    def rules_for(self, kind: MutationKind, **params: Any) -> tuple[InvalidationRule, ...]:
        """Resolve the declared rules of a mutation kind.

        Raises:
            KeyError: If the kind has no declared rules
            ValueError: If a placeholder parameter is missing
        """
        return tuple(rule.resolve(params) for rule in self._table[kind])

    def invalidate_for(self, kind: MutationKind, **params: Any) -> list[str]:
        """Apply the declared rules of a mutation that already succeeded."""
        return self.apply(self.rules_for(kind, **params))

    async def run(
        self,
        kind: MutationKind,
        mutate: Callable[[], Awaitable[R]],
        **params: Any,
    ) -> R:
        """Run a mutation and invalidate its declared prefixes on success.

        Failures are never retried and never invalidate anything; they
        are raised to the caller as MutationError.

        Args:
            kind: Mutation kind (selects the rule set)
            mutate: Zero-argument coroutine function performing the call
            **params: Values for rule placeholders (e.g. ``id``)

        Returns:
            Whatever ``mutate`` returned.

        Raises:
            MutationError: If the mutation failed
        """
        rules = self.rules_for(kind, **params)
        try:
            result = await mutate()
        except MutationError:
            logger.warning("Mutation failed", mutation=kind.value)
            raise
        except Exception as exc:
            logger.warning("Mutation failed", mutation=kind.value, error=str(exc))
            raise MutationError(
                f"Mutation {kind.value} failed: {exc}",
                mutation=kind.value,
                cause=exc,
            ) from exc

        self.apply(rules)
        return result
