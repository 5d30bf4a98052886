"""Domain entities exposed by the application."""

from .activity_seed import (
    STREAM_ACTIVITY,
    STREAM_NOTIFICATION,
    STREAMS,
    ActivityResource,
    ActivitySeed,
    RoutedSeed,
)
from .aggregate_activity import AggregateActivity, AggregateKey
from .feed_entry import FEED_ACTIVITY, FEED_NOTIFICATION, FeedEntry, FeedPage
from .notification_state import NotificationState
from .side_effect_receipt import EFFECT_EMAIL, DispatchOutcome, SideEffectReceipt
from .user import (
    EMAIL_PREFERENCE_IMMEDIATE,
    EMAIL_PREFERENCE_NEVER,
    EMAIL_PREFERENCES,
    User,
)

__all__ = [
    "ActivityResource",
    "ActivitySeed",
    "RoutedSeed",
    "STREAM_ACTIVITY",
    "STREAM_NOTIFICATION",
    "STREAMS",
    "AggregateActivity",
    "AggregateKey",
    "FEED_ACTIVITY",
    "FEED_NOTIFICATION",
    "FeedEntry",
    "FeedPage",
    "NotificationState",
    "EFFECT_EMAIL",
    "DispatchOutcome",
    "SideEffectReceipt",
    "EMAIL_PREFERENCE_IMMEDIATE",
    "EMAIL_PREFERENCE_NEVER",
    "EMAIL_PREFERENCES",
    "User",
]
