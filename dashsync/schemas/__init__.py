"""Response schemas for the dashboard API."""

from dashsync.schemas.pages import ListPage, NotificationPage, UnreadCount


__all__ = [
    "ListPage",
    "NotificationPage",
    "UnreadCount",
]
