"""Persistence helpers for side effects queued with feed writes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.orm import Session

from activityhub.infrastructure.models import PendingSideEffectModel


@dataclass(frozen=True)
class PendingSideEffect:
    id: int
    bucket: int
    recipient_id: int
    activity_id: str
    feed_entry_id: int
    effect_type: str
    attempts: int


class PendingSideEffectRepository:
    """Queue side effects per bucket until they are delivered."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def enqueue(
        self,
        *,
        bucket: int,
        recipient_id: int,
        activity_id: str,
        feed_entry_id: int,
        effect_type: str,
        now: int,
    ) -> bool:
        """Queue an effect inside the caller's transaction.

        Returns ``False`` when the same effect is already waiting for
        ``activity_id`` and ``recipient_id``.
        """

        exists = (
            self.session.query(PendingSideEffectModel.id)
            .filter(
                PendingSideEffectModel.activity_id == activity_id,
                PendingSideEffectModel.recipient_id == recipient_id,
                PendingSideEffectModel.effect_type == effect_type,
            )
            .first()
        )
        if exists is not None:
            return False
        self.session.add(
            PendingSideEffectModel(
                bucket=bucket,
                recipient_id=recipient_id,
                activity_id=activity_id,
                feed_entry_id=feed_entry_id,
                effect_type=effect_type,
                attempts=0,
                created_at=now,
            )
        )
        self.session.flush()
        return True

    def list_bucket(
        self, bucket: int, *, limit: int, after_id: int = 0
    ) -> Sequence[PendingSideEffect]:
        query = (
            self.session.query(PendingSideEffectModel)
            .filter(PendingSideEffectModel.bucket == bucket)
            .filter(PendingSideEffectModel.id > after_id)
            .order_by(PendingSideEffectModel.id.asc())
            .limit(limit)
        )
        return [self._to_entity(model) for model in query.all()]

    def complete(self, effect_id: int) -> None:
        self.session.query(PendingSideEffectModel).filter(
            PendingSideEffectModel.id == effect_id
        ).delete(synchronize_session=False)
        self.session.commit()

    def record_attempt(self, effect_id: int) -> None:
        self.session.query(PendingSideEffectModel).filter(
            PendingSideEffectModel.id == effect_id
        ).update(
            {PendingSideEffectModel.attempts: PendingSideEffectModel.attempts + 1},
            synchronize_session=False,
        )
        self.session.commit()

    @staticmethod
    def _to_entity(model: PendingSideEffectModel) -> PendingSideEffect:
        return PendingSideEffect(
            id=model.id,
            bucket=model.bucket,
            recipient_id=model.recipient_id,
            activity_id=model.activity_id,
            feed_entry_id=model.feed_entry_id,
            effect_type=model.effect_type,
            attempts=model.attempts,
        )


__all__ = ["PendingSideEffect", "PendingSideEffectRepository"]
