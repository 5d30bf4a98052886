"""Persistence helpers for feed entries and notification counters."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from activityhub.domain.entities import (
    ActivityResource,
    AggregateActivity,
    AggregateKey,
    FeedEntry,
    NotificationState,
)
from activityhub.infrastructure.models import FeedEntryModel, NotificationStateModel


class FeedRepository:
    """Read and write aggregate activities in user feeds.

    Writes are flushed but not committed: the collector commits every change
    made for one recipient in a single transaction.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_open_aggregate(
        self,
        *,
        user_id: int,
        feed_type: str,
        key: AggregateKey,
        active_since: int,
        collected_after: int | None = None,
    ) -> FeedEntry | None:
        """Return the newest entry for ``key`` still accepting new activities.

        ``active_since`` is the oldest ``last_time`` an open aggregate may
        have; ``collected_after`` excludes entries last written at or before
        that time (notifications acknowledged by the user).
        """

        query = (
            self.session.query(FeedEntryModel)
            .filter(FeedEntryModel.user_id == user_id)
            .filter(FeedEntryModel.feed_type == feed_type)
            .filter(FeedEntryModel.aggregate_key == key.as_string())
            .filter(FeedEntryModel.last_time >= active_since)
        )
        if collected_after is not None:
            query = query.filter(FeedEntryModel.collected_at > collected_after)
        model = query.order_by(
            FeedEntryModel.last_time.desc(), FeedEntryModel.id.desc()
        ).first()
        return self._to_entity(model) if model else None

    def get(self, entry_id: int) -> FeedEntry | None:
        model = self.session.get(FeedEntryModel, entry_id)
        return self._to_entity(model) if model else None

    def find_by_activity_id(
        self, *, user_id: int, feed_type: str, activity_id: str
    ) -> FeedEntry | None:
        model = (
            self.session.query(FeedEntryModel)
            .filter(FeedEntryModel.user_id == user_id)
            .filter(FeedEntryModel.feed_type == feed_type)
            .filter(FeedEntryModel.activity_id == activity_id)
            .first()
        )
        return self._to_entity(model) if model else None

    def create(self, entry: FeedEntry) -> FeedEntry:
        model = FeedEntryModel(user_id=entry.user_id, feed_type=entry.feed_type)
        self._apply_entity_to_model(model, entry)
        self.session.add(model)
        self.session.flush()
        return self._to_entity(model)

    def update(self, entry: FeedEntry) -> FeedEntry:
        """Persist an extended aggregate if nobody changed it since it was read."""

        if entry.id is None:
            raise ValueError("Feed entry id is required for updates")
        model = self.session.get(FeedEntryModel, entry.id)
        if model is None:
            msg = f"Feed entry with id {entry.id} not found"
            raise ValueError(msg)
        if entry.version is not None and model.version != entry.version:
            raise StaleDataError(
                f"Feed entry {entry.id} changed concurrently "
                f"(expected version {entry.version}, found {model.version})"
            )
        self._apply_entity_to_model(model, entry)
        self.session.add(model)
        self.session.flush()
        return self._to_entity(model)

    def list_page(
        self,
        *,
        user_id: int,
        feed_type: str,
        limit: int,
        before: tuple[int, int] | None = None,
    ) -> Sequence[FeedEntry]:
        """Return up to ``limit`` entries older than the ``(last_time, id)`` cursor."""

        query = (
            self.session.query(FeedEntryModel)
            .filter(FeedEntryModel.user_id == user_id)
            .filter(FeedEntryModel.feed_type == feed_type)
        )
        if before is not None:
            last_time, entry_id = before
            query = query.filter(
                or_(
                    FeedEntryModel.last_time < last_time,
                    and_(
                        FeedEntryModel.last_time == last_time,
                        FeedEntryModel.id < entry_id,
                    ),
                )
            )
        query = query.order_by(
            FeedEntryModel.last_time.desc(), FeedEntryModel.id.desc()
        ).limit(limit)
        return [self._to_entity(model) for model in query.all()]

    @staticmethod
    def _apply_entity_to_model(model: FeedEntryModel, entry: FeedEntry) -> None:
        activity = entry.activity
        model.activity_id = activity.activity_id
        model.activity_type = activity.key.activity_type
        model.verb = activity.key.verb
        model.aggregate_key = activity.key.as_string()
        model.actor = activity.key.actor.to_dict()
        model.object_type = activity.key.object_type
        model.actors = [actor.to_dict() for actor in activity.actors]
        model.objects = [obj.to_dict() for obj in activity.objects]
        model.target = activity.target.to_dict() if activity.target else None
        model.first_time = activity.first_time
        model.last_time = activity.last_time
        model.collected_at = entry.collected_at

    @staticmethod
    def _to_entity(model: FeedEntryModel) -> FeedEntry:
        target = ActivityResource.from_dict(model.target) if model.target else None
        key = AggregateKey(
            activity_type=model.activity_type,
            verb=model.verb,
            actor=ActivityResource.from_dict(model.actor),
            object_type=model.object_type,
            target=target,
        )
        activity = AggregateActivity(
            key=key,
            activity_id=model.activity_id,
            first_time=model.first_time,
            last_time=model.last_time,
            actors=[ActivityResource.from_dict(actor) for actor in model.actors or []],
            objects=[ActivityResource.from_dict(obj) for obj in model.objects or []],
            target=target,
        )
        return FeedEntry(
            id=model.id,
            user_id=model.user_id,
            feed_type=model.feed_type,
            activity=activity,
            collected_at=model.collected_at,
            version=model.version,
        )


class NotificationStateRepository:
    """Maintain unread counters with atomic SQL updates."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> NotificationState:
        row = (
            self.session.query(
                NotificationStateModel.unread_count,
                NotificationStateModel.last_read_time,
            )
            .filter(NotificationStateModel.user_id == user_id)
            .first()
        )
        if row is None:
            return NotificationState(user_id=user_id)
        unread_count, last_read_time = row
        return NotificationState(
            user_id=user_id,
            unread_count=unread_count or 0,
            last_read_time=last_read_time,
        )

    def increment_unread(self, user_id: int, *, by: int = 1) -> None:
        """Add ``by`` to the unread counter inside the caller's transaction."""

        if by <= 0:
            return
        updated = (
            self.session.query(NotificationStateModel)
            .filter(NotificationStateModel.user_id == user_id)
            .update(
                {
                    NotificationStateModel.unread_count: NotificationStateModel.unread_count
                    + by
                },
                synchronize_session=False,
            )
        )
        if updated == 0:
            self.session.add(
                NotificationStateModel(user_id=user_id, unread_count=by, last_read_time=None)
            )
            self.session.flush()

    def mark_read(self, user_id: int, *, now: int) -> NotificationState:
        """Reset the unread counter and stamp ``now`` as the last read time.

        When nothing is unread and a read time already exists, the state is
        returned untouched.
        """

        state = self.get(user_id)
        if state.unread_count == 0 and state.last_read_time is not None:
            return state

        updated = (
            self.session.query(NotificationStateModel)
            .filter(NotificationStateModel.user_id == user_id)
            .update(
                {
                    NotificationStateModel.unread_count: 0,
                    NotificationStateModel.last_read_time: now,
                },
                synchronize_session=False,
            )
        )
        if updated == 0:
            self.session.add(
                NotificationStateModel(user_id=user_id, unread_count=0, last_read_time=now)
            )
        self.session.commit()
        return NotificationState(user_id=user_id, unread_count=0, last_read_time=now)


__all__ = ["FeedRepository", "NotificationStateRepository"]
