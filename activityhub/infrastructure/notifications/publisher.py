"""Utility helpers to push feed updates to websocket subscribers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from anyio import from_thread

from activityhub.domain.entities import FEED_NOTIFICATION, FeedEntry

from .manager import FeedConnectionManager, feed_connections

logger = logging.getLogger(__name__)


class FeedPublisher:
    """Serialize feed entries and schedule their delivery without waiting for it."""

    def __init__(self, manager: FeedConnectionManager) -> None:
        self._manager = manager
        self._pending: set[asyncio.Task] = set()

    def dispatch(self, entry: FeedEntry, *, unread_count: int) -> None:
        """Schedule ``entry`` to reach the user's subscribers of its feed.

        Notification messages carry the new unread count.
        """

        if not self._manager.is_subscribed(entry.user_id, entry.feed_type):
            return
        message: dict[str, Any] = {"type": entry.feed_type, "data": serialize_feed_entry(entry)}
        if entry.feed_type == FEED_NOTIFICATION:
            message["unread"] = unread_count
        self._schedule(entry.user_id, entry.feed_type, message)

    def dispatch_read(self, user_id: int, *, last_read_time: int | None) -> None:
        """Tell the user's other sessions that notifications were read."""

        if not self._manager.is_subscribed(user_id, FEED_NOTIFICATION):
            return
        self._schedule(
            user_id,
            FEED_NOTIFICATION,
            {"type": "notifications-read", "lastReadTime": last_read_time, "unread": 0},
        )

    def _schedule(self, user_id: int, feed_type: str, message: dict[str, Any]) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Collection runs in a worker thread started by anyio; only the
            # task creation is handed to the event loop.
            try:
                from_thread.run_sync(self._start_send, user_id, feed_type, message)
            except RuntimeError:
                logger.debug("No event loop to push %s update of user %s", feed_type, user_id)
        else:
            self._start_send(user_id, feed_type, message)

    def _start_send(self, user_id: int, feed_type: str, message: dict[str, Any]) -> None:
        task = asyncio.get_running_loop().create_task(
            self._manager.broadcast(user_id, feed_type, message)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


def serialize_feed_entry(entry: FeedEntry) -> dict[str, Any]:
    """Return the JSON representation of a feed entry."""

    return entry.activity.to_activity()


feed_publisher = FeedPublisher(feed_connections)


__all__ = ["FeedPublisher", "feed_publisher", "serialize_feed_entry"]
