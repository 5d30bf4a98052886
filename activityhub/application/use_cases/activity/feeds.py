"""Per-user activity feeds, notification feeds and unread counters."""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from activityhub.domain.entities import (
    FEED_ACTIVITY,
    FEED_NOTIFICATION,
    AggregateActivity,
    FeedEntry,
    FeedPage,
    NotificationState,
)
from activityhub.domain.errors import PersistenceUnavailableError, ValidationError
from activityhub.infrastructure.repositories import (
    FeedRepository,
    NotificationStateRepository,
)
from activityhub.utils import now_in_epoch_millis

from .seeds import Clock

logger = logging.getLogger(__name__)

FEED_TYPES = (FEED_ACTIVITY, FEED_NOTIFICATION)


@dataclass
class AppendResult:
    """What happened to a feed when an aggregate was appended to it."""

    entry: FeedEntry
    created: bool
    changed: bool


def build_activity_id(user_id: int, feed_type: str, aggregate: AggregateActivity) -> str:
    """Return the id of a new feed aggregate.

    The id is derived from the aggregate itself so that re-collecting the same
    seeds after a failed cycle yields the same id.
    """

    raw = f"{user_id}#{feed_type}#{aggregate.key.as_string()}#{aggregate.first_time}"
    digest = hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]
    return f"{aggregate.first_time}:{digest}"


def encode_page_token(entry: FeedEntry) -> str:
    raw = f"{entry.last_time}:{entry.id}".encode("ascii")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_page_token(token: str) -> tuple[int, int]:
    padded = token + "=" * (-len(token) % 4)
    try:
        last_time, entry_id = base64.urlsafe_b64decode(padded.encode("ascii")).decode("ascii").split(":")
        return int(last_time), int(entry_id)
    except (ValueError, UnicodeError, binascii.Error) as exc:
        raise ValidationError("Invalid feed paging token") from exc


class FeedService:
    """Maintain the feeds and notification state of users."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        aggregate_idle_expiry: int,
        page_limit: int = 10,
        max_page_limit: int = 25,
        clock: Clock = now_in_epoch_millis,
    ) -> None:
        self._session_factory = session_factory
        self._aggregate_idle_expiry = aggregate_idle_expiry
        self._page_limit = page_limit
        self._max_page_limit = max_page_limit
        self._clock = clock

    def append_to_feed(
        self,
        session: Session,
        recipient_id: int,
        feed_type: str,
        aggregate: AggregateActivity,
        *,
        now: int,
    ) -> AppendResult:
        """Extend the open aggregate matching ``aggregate`` or add a new entry.

        Runs inside the caller's transaction. A new notification entry adds one
        to the unread counter; extending an open one does not. Notification
        aggregates written before the user last read their notifications are
        closed. Seeds that already produced an entry are merged back into that
        entry, whether or not it is still open.
        """

        if feed_type not in FEED_TYPES:
            raise ValueError(f"Unknown feed type '{feed_type}'")

        feeds = FeedRepository(session)
        states = NotificationStateRepository(session)
        collected_after = None
        if feed_type == FEED_NOTIFICATION:
            collected_after = states.get(recipient_id).last_read_time

        existing = feeds.find_open_aggregate(
            user_id=recipient_id,
            feed_type=feed_type,
            key=aggregate.key,
            active_since=now - self._aggregate_idle_expiry,
            collected_after=collected_after,
        )
        if existing is not None:
            return self._extend(feeds, existing, aggregate, now=now)

        activity_id = build_activity_id(recipient_id, feed_type, aggregate)
        existing = feeds.find_by_activity_id(
            user_id=recipient_id, feed_type=feed_type, activity_id=activity_id
        )
        if existing is not None:
            acknowledged = collected_after is not None and existing.collected_at <= collected_after
            result = self._extend(feeds, existing, aggregate, now=now)
            if result.changed and acknowledged:
                states.increment_unread(recipient_id)
            return result

        activity = AggregateActivity(
            key=aggregate.key,
            activity_id=activity_id,
            first_time=aggregate.first_time,
            last_time=aggregate.last_time,
            actors=list(aggregate.actors),
            objects=list(aggregate.objects),
            target=aggregate.target,
        )
        entry = feeds.create(
            FeedEntry(
                id=None,
                user_id=recipient_id,
                feed_type=feed_type,
                activity=activity,
                collected_at=now,
            )
        )
        if feed_type == FEED_NOTIFICATION:
            states.increment_unread(recipient_id)
        return AppendResult(entry=entry, created=True, changed=True)

    @staticmethod
    def _extend(
        feeds: FeedRepository, existing: FeedEntry, aggregate: AggregateActivity, *, now: int
    ) -> AppendResult:
        if not existing.activity.merge(aggregate):
            return AppendResult(entry=existing, created=False, changed=False)
        existing.collected_at = now
        return AppendResult(entry=feeds.update(existing), created=False, changed=True)

    def get_feed(
        self,
        user_id: int,
        feed_type: str = FEED_ACTIVITY,
        *,
        start: str | None = None,
        limit: int | None = None,
    ) -> FeedPage:
        """Return one page of a feed, most recent first.

        ``start`` is the ``next_token`` of the previous page.
        """

        if feed_type not in FEED_TYPES:
            raise ValidationError(f"Unknown feed type '{feed_type}'")
        if limit is None:
            limit = self._page_limit
        limit = max(1, min(limit, self._max_page_limit))
        before = decode_page_token(start) if start else None

        session = self._session_factory()
        try:
            entries = list(
                FeedRepository(session).list_page(
                    user_id=user_id, feed_type=feed_type, limit=limit + 1, before=before
                )
            )
        except SQLAlchemyError as exc:
            logger.error("Failed to read %s feed of user %s: %s", feed_type, user_id, exc)
            raise PersistenceUnavailableError("Failed to read the feed") from exc
        finally:
            session.close()

        next_token = None
        if len(entries) > limit:
            entries = entries[:limit]
            next_token = encode_page_token(entries[-1])
        return FeedPage(items=entries, next_token=next_token)

    def get_notification_feed(
        self, user_id: int, *, start: str | None = None, limit: int | None = None
    ) -> FeedPage:
        return self.get_feed(user_id, FEED_NOTIFICATION, start=start, limit=limit)

    def get_notification_state(self, user_id: int) -> NotificationState:
        session = self._session_factory()
        try:
            return NotificationStateRepository(session).get(user_id)
        except SQLAlchemyError as exc:
            raise PersistenceUnavailableError("Failed to read notification state") from exc
        finally:
            session.close()

    def mark_notifications_read(self, user_id: int) -> NotificationState:
        """Reset the unread counter and close every open notification aggregate."""

        session = self._session_factory()
        try:
            state = NotificationStateRepository(session).mark_read(user_id, now=self._clock())
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Failed to mark notifications of user %s read: %s", user_id, exc)
            raise PersistenceUnavailableError("Failed to mark notifications read") from exc
        finally:
            session.close()
        return state


__all__ = [
    "AppendResult",
    "FEED_TYPES",
    "FeedService",
    "build_activity_id",
    "decode_page_token",
    "encode_page_token",
]
