"""Domain entities describing the contents of a user's feeds."""

from __future__ import annotations

from dataclasses import dataclass, field

from .aggregate_activity import AggregateActivity

FEED_ACTIVITY = "activity"
FEED_NOTIFICATION = "notification"


@dataclass
class FeedEntry:
    """Placement of an aggregate activity in a single user's feed."""

    id: int | None
    user_id: int
    feed_type: str
    activity: AggregateActivity
    collected_at: int
    version: int | None = None

    @property
    def last_time(self) -> int:
        return self.activity.last_time


@dataclass
class FeedPage:
    """A bounded slice of a feed, most recent entry first."""

    items: list[FeedEntry] = field(default_factory=list)
    next_token: str | None = None


__all__ = ["FEED_ACTIVITY", "FEED_NOTIFICATION", "FeedEntry", "FeedPage"]
