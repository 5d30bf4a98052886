"""Realtime feed push helpers for the infrastructure layer."""

from .manager import (
    SUBSCRIBABLE_FEEDS,
    FeedConnectionManager,
    feed_connections,
    parse_feed_subscription,
)
from .publisher import FeedPublisher, feed_publisher, serialize_feed_entry

__all__ = [
    "FeedConnectionManager",
    "SUBSCRIBABLE_FEEDS",
    "feed_connections",
    "parse_feed_subscription",
    "FeedPublisher",
    "feed_publisher",
    "serialize_feed_entry",
]
