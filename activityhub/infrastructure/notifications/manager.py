"""Websocket subscriptions to the activity and notification feeds of users."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, DefaultDict, Iterable

from fastapi import WebSocket

from activityhub.domain.entities import FEED_ACTIVITY, FEED_NOTIFICATION

logger = logging.getLogger(__name__)

SUBSCRIBABLE_FEEDS = (FEED_ACTIVITY, FEED_NOTIFICATION)


def parse_feed_subscription(raw: str | None) -> frozenset[str]:
    """Return the feeds named in a comma separated ``feeds`` parameter.

    An empty value subscribes to notifications only. Unknown feed names raise
    ``ValueError``.
    """

    if not raw or not raw.strip():
        return frozenset({FEED_NOTIFICATION})
    feeds = frozenset(name.strip() for name in raw.split(",") if name.strip())
    unknown = feeds.difference(SUBSCRIBABLE_FEEDS)
    if unknown:
        raise ValueError(f"Unknown feeds: {', '.join(sorted(unknown))}")
    return feeds


class FeedConnectionManager:
    """Track which websockets of a user listen to which of their feeds."""

    def __init__(self) -> None:
        self._subscribers: DefaultDict[tuple[int, str], set[WebSocket]] = defaultdict(set)

    async def connect(
        self, user_id: int, websocket: WebSocket, feeds: Iterable[str]
    ) -> None:
        """Accept ``websocket`` and subscribe it to ``feeds`` of ``user_id``."""

        await websocket.accept()
        for feed_type in feeds:
            self._subscribers[(user_id, feed_type)].add(websocket)

    def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        """Drop every subscription ``websocket`` holds for ``user_id``."""

        for feed_type in SUBSCRIBABLE_FEEDS:
            sockets = self._subscribers.get((user_id, feed_type))
            if sockets is None:
                continue
            sockets.discard(websocket)
            if not sockets:
                self._subscribers.pop((user_id, feed_type), None)

    def is_subscribed(self, user_id: int, feed_type: str) -> bool:
        return bool(self._subscribers.get((user_id, feed_type)))

    async def broadcast(self, user_id: int, feed_type: str, message: dict[str, Any]) -> None:
        """Send ``message`` to the sockets listening to ``feed_type`` of ``user_id``."""

        for websocket in list(self._subscribers.get((user_id, feed_type), ())):
            try:
                await websocket.send_json(message)
            except Exception:
                logger.debug("Dropping broken websocket of user %s", user_id)
                self.disconnect(user_id, websocket)


feed_connections = FeedConnectionManager()


__all__ = [
    "FeedConnectionManager",
    "SUBSCRIBABLE_FEEDS",
    "feed_connections",
    "parse_feed_subscription",
]
