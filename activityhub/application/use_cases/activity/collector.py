"""Collection cycles that turn pending routed seeds into feed entries."""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from activityhub.domain.entities import FEED_NOTIFICATION, DispatchOutcome
from activityhub.domain.errors import ActivityError, PersistenceUnavailableError
from activityhub.infrastructure.notifications import FeedPublisher
from activityhub.infrastructure.repositories import (
    BucketLeaseRepository,
    FeedRepository,
    NotificationStateRepository,
    PendingActivityRepository,
    PendingSideEffect,
    PendingSideEffectRepository,
)
from activityhub.utils import now_in_epoch_millis

from .aggregation import RecipientBatch, group_by_recipient
from .dispatcher import SideEffectDispatcher
from .feeds import AppendResult, FeedService
from .registry import ActivityRegistry
from .seeds import Clock
from .telemetry import ActivityTelemetry

logger = logging.getLogger(__name__)


class LeaseLostError(ActivityError):
    """The bucket lease expired and may now be held by another collector."""


@dataclass
class CollectionResult:
    """Summary of one collection cycle."""

    buckets: list[int] = field(default_factory=list)
    skipped_buckets: list[int] = field(default_factory=list)
    lost_buckets: list[int] = field(default_factory=list)
    routed_seeds: int = 0
    entries_created: int = 0
    entries_extended: int = 0
    effects: Counter = field(default_factory=Counter)
    failed_recipients: list[int] = field(default_factory=list)

    @property
    def effects_delivered(self) -> int:
        return self.effects[DispatchOutcome.DELIVERED]

    def absorb(self, other: "CollectionResult") -> None:
        self.buckets.extend(other.buckets)
        self.skipped_buckets.extend(other.skipped_buckets)
        self.lost_buckets.extend(other.lost_buckets)
        self.routed_seeds += other.routed_seeds
        self.entries_created += other.entries_created
        self.entries_extended += other.entries_extended
        self.effects.update(other.effects)
        for recipient_id in other.failed_recipients:
            if recipient_id not in self.failed_recipients:
                self.failed_recipients.append(recipient_id)


class ActivityCollector:
    """Drain pending buckets, aggregate their seeds and write user feeds.

    Buckets are claimed through a lease in the database so that collectors on
    different nodes never drain the same bucket at once; the lease is renewed
    before every batch and draining stops as soon as it was lost.

    Every recipient is handled on its own. Its feed writes, the side effects
    they owe and the removal of its pending seeds are committed in one
    transaction. Side effects are then delivered from their own queue, where
    failed deliveries wait for the next cycle without touching the feeds again.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        registry: ActivityRegistry,
        feeds: FeedService,
        dispatcher: SideEffectDispatcher,
        number_of_buckets: int,
        batch_size: int,
        lease_duration: int,
        aggregate_idle_expiry: int,
        publisher: FeedPublisher | None = None,
        telemetry: ActivityTelemetry | None = None,
        receipt_retention: int | None = None,
        owner_id: str | None = None,
        clock: Clock = now_in_epoch_millis,
    ) -> None:
        self._session_factory = session_factory
        self._registry = registry
        self._feeds = feeds
        self._dispatcher = dispatcher
        self._number_of_buckets = number_of_buckets
        self._batch_size = batch_size
        self._lease_duration = lease_duration
        self._aggregate_idle_expiry = aggregate_idle_expiry
        self._publisher = publisher
        self._telemetry = telemetry
        self._receipt_retention = receipt_retention
        self._owner_id = owner_id or uuid.uuid4().hex
        self._clock = clock
        self._buckets_ready = False

    @property
    def owner_id(self) -> str:
        return self._owner_id

    def collect(self, buckets: Iterable[int] | None = None) -> CollectionResult:
        """Run one cycle over ``buckets`` (all buckets by default) and prune old receipts."""

        result = CollectionResult()
        targets = range(self._number_of_buckets) if buckets is None else buckets
        for bucket in targets:
            result.absorb(self.collect_bucket(bucket))
        if result.routed_seeds or result.failed_recipients:
            logger.info(
                "Collected %d routed activities: %d new entries, %d extended, %d failed recipients",
                result.routed_seeds,
                result.entries_created,
                result.entries_extended,
                len(result.failed_recipients),
            )
        if self._receipt_retention is not None:
            self._dispatcher.prune_receipts(retention=self._receipt_retention)
        if self._telemetry is not None:
            self._telemetry.record_collection(result)
        return result

    def collect_bucket(self, bucket: int) -> CollectionResult:
        if not 0 <= bucket < self._number_of_buckets:
            raise ValueError(f"Bucket {bucket} is out of range")

        result = CollectionResult()
        if not self._claim(bucket):
            logger.debug("Bucket %s is held by another collector", bucket)
            result.skipped_buckets.append(bucket)
            return result

        result.buckets.append(bucket)
        try:
            self._drain_seeds(bucket, result)
            self._deliver_side_effects(bucket, result)
        except LeaseLostError as exc:
            logger.warning("Stopped collecting bucket %s: %s", bucket, exc)
            result.lost_buckets.append(bucket)
        finally:
            self._release(bucket)
        return result

    def _drain_seeds(self, bucket: int, result: CollectionResult) -> None:
        while True:
            self._renew(bucket)
            entries = self._read_bucket(bucket)
            if not entries:
                return
            failures_before = len(result.failed_recipients)
            now = self._clock()
            for batch in group_by_recipient(entries, window=self._aggregate_idle_expiry):
                self._collect_recipient(bucket, batch, now=now, result=result)
            if len(result.failed_recipients) > failures_before:
                return
            if len(entries) < self._batch_size:
                return

    def _claim(self, bucket: int) -> bool:
        session = self._session_factory()
        try:
            leases = BucketLeaseRepository(session)
            if not self._buckets_ready:
                leases.ensure_buckets(self._number_of_buckets)
                self._buckets_ready = True
            return leases.claim(
                bucket,
                owner=self._owner_id,
                now=self._clock(),
                duration=self._lease_duration,
            )
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Failed to claim bucket %s: %s", bucket, exc)
            raise PersistenceUnavailableError(f"Failed to claim bucket {bucket}") from exc
        finally:
            session.close()

    def _renew(self, bucket: int) -> None:
        session = self._session_factory()
        try:
            renewed = BucketLeaseRepository(session).renew(
                bucket,
                owner=self._owner_id,
                now=self._clock(),
                duration=self._lease_duration,
            )
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceUnavailableError(f"Failed to renew bucket {bucket}") from exc
        finally:
            session.close()
        if not renewed:
            raise LeaseLostError(f"lease on bucket {bucket} expired")

    def _release(self, bucket: int) -> None:
        session = self._session_factory()
        try:
            BucketLeaseRepository(session).release(bucket, owner=self._owner_id)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Failed to release bucket %s; it frees up when the lease expires: %s", bucket, exc)
        finally:
            session.close()

    def _read_bucket(self, bucket: int):
        session = self._session_factory()
        try:
            return PendingActivityRepository(session).list_bucket(bucket, limit=self._batch_size)
        except SQLAlchemyError as exc:
            logger.error("Failed to read bucket %s: %s", bucket, exc)
            raise PersistenceUnavailableError(f"Failed to read bucket {bucket}") from exc
        finally:
            session.close()

    def _collect_recipient(
        self, bucket: int, batch: RecipientBatch, *, now: int, result: CollectionResult
    ) -> None:
        appended: list[AppendResult] = []
        session = self._session_factory()
        try:
            for stream, aggregate in batch.iter_aggregates():
                appended.append(
                    self._feeds.append_to_feed(
                        session, batch.recipient_id, stream, aggregate, now=now
                    )
                )
            self._queue_side_effects(session, bucket, batch.recipient_id, appended, now=now)
            deleted = PendingActivityRepository(session).delete(batch.entry_ids)
            if deleted != len(batch.entry_ids):
                session.rollback()
                logger.warning(
                    "Pending activities of user %s were collected elsewhere", batch.recipient_id
                )
                return
            session.commit()
            unread = NotificationStateRepository(session).get(batch.recipient_id).unread_count
        except (SQLAlchemyError, ActivityError) as exc:
            session.rollback()
            self._record_failure(batch.recipient_id, exc, result)
            return
        finally:
            session.close()

        result.routed_seeds += len(batch.entry_ids)
        for item in appended:
            if item.created:
                result.entries_created += 1
            elif item.changed:
                result.entries_extended += 1
            if self._publisher is not None and item.changed:
                self._publisher.dispatch(item.entry, unread_count=unread)

    def _queue_side_effects(
        self,
        session: Session,
        bucket: int,
        recipient_id: int,
        appended: list[AppendResult],
        *,
        now: int,
    ) -> None:
        queue = PendingSideEffectRepository(session)
        for item in appended:
            entry = item.entry
            if not item.changed or entry.feed_type != FEED_NOTIFICATION:
                continue
            definition = self._registry.get(entry.activity.activity_type)
            if definition is None:
                continue
            for effect_type in definition.effects:
                if not self._dispatcher.has_effect(effect_type):
                    continue
                queue.enqueue(
                    bucket=bucket,
                    recipient_id=recipient_id,
                    activity_id=entry.activity.activity_id,
                    feed_entry_id=entry.id,
                    effect_type=effect_type,
                    now=now,
                )

    def _deliver_side_effects(self, bucket: int, result: CollectionResult) -> None:
        """Deliver every side effect queued in ``bucket`` once.

        Failed deliveries stay queued and are attempted again next cycle.
        """

        after_id = 0
        while True:
            self._renew(bucket)
            session = self._session_factory()
            try:
                pending = PendingSideEffectRepository(session).list_bucket(
                    bucket, limit=self._batch_size, after_id=after_id
                )
            except SQLAlchemyError as exc:
                raise PersistenceUnavailableError(
                    f"Failed to read side effects of bucket {bucket}"
                ) from exc
            finally:
                session.close()
            if not pending:
                return
            for effect in pending:
                after_id = effect.id
                self._deliver(effect, result)
            if len(pending) < self._batch_size:
                return

    def _deliver(self, effect: PendingSideEffect, result: CollectionResult) -> None:
        session = self._session_factory()
        try:
            queue = PendingSideEffectRepository(session)
            entry = FeedRepository(session).get(effect.feed_entry_id)
            if entry is None:
                logger.warning(
                    "Dropping %s for missing feed entry %s", effect.effect_type, effect.feed_entry_id
                )
                queue.complete(effect.id)
                return
            outcome = self._dispatcher.dispatch(
                effect.activity_id,
                effect.recipient_id,
                effect.effect_type,
                {"activity": entry.activity, "entry": entry},
            )
            result.effects[outcome] += 1
            if outcome is DispatchOutcome.FAILED:
                queue.record_attempt(effect.id)
                self._record_failure(
                    effect.recipient_id,
                    f"{effect.effect_type} for activity {effect.activity_id} failed "
                    f"(attempt {effect.attempts + 1})",
                    result,
                )
                return
            queue.complete(effect.id)
        except SQLAlchemyError as exc:
            session.rollback()
            self._record_failure(effect.recipient_id, exc, result)
        except PersistenceUnavailableError as exc:
            self._record_failure(effect.recipient_id, exc, result)
        finally:
            session.close()

    @staticmethod
    def _record_failure(
        recipient_id: int, reason: Exception | str, result: CollectionResult
    ) -> None:
        logger.error("Collection for user %s failed and will be retried: %s", recipient_id, reason)
        if recipient_id not in result.failed_recipients:
            result.failed_recipients.append(recipient_id)


__all__ = ["ActivityCollector", "CollectionResult", "LeaseLostError"]
