"""Persistence helpers for pending routed activities and bucket leases."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Iterable

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from activityhub.domain.entities import ActivitySeed, RoutedSeed
from activityhub.infrastructure.models import BucketLeaseModel, PendingActivityModel


class PendingActivityRepository:
    """Queue routed seeds per bucket until a collector drains them."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def enqueue(self, routed: RoutedSeed) -> bool:
        """Store ``routed`` and return ``False`` when an identical entry is pending."""

        entry_key = routed.entry_key
        exists = (
            self.session.query(PendingActivityModel.id)
            .filter(PendingActivityModel.entry_key == entry_key)
            .first()
        )
        if exists is not None:
            return False

        model = PendingActivityModel(
            entry_key=entry_key,
            bucket=routed.bucket,
            recipient_id=routed.recipient_id,
            stream=routed.stream,
            published=routed.seed.published,
            seed=routed.seed.to_dict(),
        )
        self.session.add(model)
        try:
            self.session.commit()
        except IntegrityError:
            # A concurrent router inserted the same entry first.
            self.session.rollback()
            return False
        return True

    def list_bucket(self, bucket: int, *, limit: int) -> Sequence[tuple[int, RoutedSeed]]:
        query = (
            self.session.query(PendingActivityModel)
            .filter(PendingActivityModel.bucket == bucket)
            .order_by(PendingActivityModel.published.asc(), PendingActivityModel.id.asc())
            .limit(limit)
        )
        return [(model.id, self._to_entity(model)) for model in query.all()]

    def delete(self, entry_ids: Iterable[int]) -> int:
        """Remove drained entries; the caller owns the transaction."""

        ids = [entry_id for entry_id in entry_ids if entry_id is not None]
        if not ids:
            return 0
        return (
            self.session.query(PendingActivityModel)
            .filter(PendingActivityModel.id.in_(ids))
            .delete(synchronize_session=False)
        )

    def count(self, *, bucket: int | None = None) -> int:
        query = self.session.query(PendingActivityModel)
        if bucket is not None:
            query = query.filter(PendingActivityModel.bucket == bucket)
        return query.count()

    @staticmethod
    def _to_entity(model: PendingActivityModel) -> RoutedSeed:
        return RoutedSeed(
            seed=ActivitySeed.from_dict(model.seed),
            recipient_id=model.recipient_id,
            stream=model.stream,
            bucket=model.bucket,
        )


class BucketLeaseRepository:
    """Claim and release exclusive ownership of processing buckets."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def ensure_buckets(self, number_of_buckets: int) -> None:
        existing = {
            bucket for (bucket,) in self.session.query(BucketLeaseModel.bucket).all()
        }
        missing = [bucket for bucket in range(number_of_buckets) if bucket not in existing]
        if not missing:
            return
        for bucket in missing:
            self.session.add(BucketLeaseModel(bucket=bucket))
        try:
            self.session.commit()
        except IntegrityError:
            # Another node created the rows concurrently.
            self.session.rollback()

    def claim(self, bucket: int, *, owner: str, now: int, duration: int) -> bool:
        """Take the lease on ``bucket`` unless another live owner holds it."""

        updated = (
            self.session.query(BucketLeaseModel)
            .filter(BucketLeaseModel.bucket == bucket)
            .filter(
                or_(
                    BucketLeaseModel.owner.is_(None),
                    BucketLeaseModel.owner == owner,
                    BucketLeaseModel.expires_at < now,
                )
            )
            .update(
                {
                    BucketLeaseModel.owner: owner,
                    BucketLeaseModel.expires_at: now + duration,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated == 1

    def renew(self, bucket: int, *, owner: str, now: int, duration: int) -> bool:
        """Extend a lease ``owner`` still holds; ``False`` once it was lost."""

        updated = (
            self.session.query(BucketLeaseModel)
            .filter(BucketLeaseModel.bucket == bucket)
            .filter(BucketLeaseModel.owner == owner)
            .filter(BucketLeaseModel.expires_at >= now)
            .update(
                {BucketLeaseModel.expires_at: now + duration},
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated == 1

    def release(self, bucket: int, *, owner: str) -> bool:
        updated = (
            self.session.query(BucketLeaseModel)
            .filter(BucketLeaseModel.bucket == bucket, BucketLeaseModel.owner == owner)
            .update(
                {BucketLeaseModel.owner: None, BucketLeaseModel.expires_at: None},
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated == 1

    def get_owner(self, bucket: int) -> str | None:
        return (
            self.session.query(BucketLeaseModel.owner)
            .filter(BucketLeaseModel.bucket == bucket)
            .scalar()
        )


__all__ = ["BucketLeaseRepository", "PendingActivityRepository"]
