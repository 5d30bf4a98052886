"""Domain entity holding a user's notification counters."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class NotificationState:
    """Unread counter and last read timestamp of a user's notification feed."""

    user_id: int
    unread_count: int = 0
    last_read_time: int | None = None


__all__ = ["NotificationState"]
