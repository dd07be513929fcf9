"""List-page envelopes returned by the dashboard entity endpoints.

Every list endpoint returns::

    {"items": [...], "total": 120, "page": 1, "limit": 20, "hasMore": true}

Notifications additionally carry ``unreadCount``. Items are kept as raw
dicts; rendering components own entity shapes.

Anti-Patterns Avoided:
- Frozen Pydantic models for immutability
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ListPage(BaseModel):
    """One page of an entity list.

    Attributes:
        items: Entities on this page
        total: Total matching entities across all pages
        page: 1-based page number
        limit: Page size
        has_more: Whether a further page exists
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    items: list[dict[str, Any]] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    has_more: bool = Field(..., alias="hasMore")

    @property
    def total_pages(self) -> int:
        return max(1, -(-self.total // self.limit))


class NotificationPage(ListPage):
    """Notification list page with the unread counter."""

    unread_count: int = Field(..., ge=0, alias="unreadCount")


class UnreadCount(BaseModel):
    """Response of the unread-count endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    unread_count: int = Field(..., ge=0, alias="unreadCount")
