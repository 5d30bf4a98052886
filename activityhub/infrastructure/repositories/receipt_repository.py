"""Persistence helpers for side effect receipts."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from activityhub.domain.entities import SideEffectReceipt
from activityhub.infrastructure.models import SideEffectReceiptModel


class ReceiptRepository:
    """Create, roll back and prune :class:`SideEffectReceipt` markers."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def try_create(self, receipt: SideEffectReceipt) -> bool:
        """Insert ``receipt`` and return ``False`` if it already exists."""

        self.session.add(
            SideEffectReceiptModel(
                activity_id=receipt.activity_id,
                recipient_id=receipt.recipient_id,
                effect_type=receipt.effect_type,
                created_at=receipt.created_at,
            )
        )
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return False
        return True

    def delete(self, *, activity_id: str, recipient_id: int, effect_type: str) -> bool:
        deleted = (
            self.session.query(SideEffectReceiptModel)
            .filter(
                SideEffectReceiptModel.activity_id == activity_id,
                SideEffectReceiptModel.recipient_id == recipient_id,
                SideEffectReceiptModel.effect_type == effect_type,
            )
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return bool(deleted)

    def prune(self, *, older_than: int) -> int:
        deleted = (
            self.session.query(SideEffectReceiptModel)
            .filter(SideEffectReceiptModel.created_at < older_than)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted


__all__ = ["ReceiptRepository"]
