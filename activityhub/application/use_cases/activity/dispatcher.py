"""At-most-once execution of notification side effects."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from activityhub.domain.entities import DispatchOutcome, SideEffectReceipt
from activityhub.domain.errors import PersistenceUnavailableError
from activityhub.infrastructure.repositories import ReceiptRepository
from activityhub.utils import now_in_epoch_millis

from .seeds import Clock

logger = logging.getLogger(__name__)

SideEffectHandler = Callable[[int, dict[str, Any]], bool | None]
SideEffectFilter = Callable[[int, dict[str, Any]], bool]


@dataclass(frozen=True)
class _RegisteredEffect:
    handler: SideEffectHandler
    applies: SideEffectFilter | None


class SideEffectDispatcher:
    """Fire registered side effects once per (activity, recipient, effect)."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        clock: Clock = now_in_epoch_millis,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._effects: dict[str, _RegisteredEffect] = {}
        self._lock = threading.Lock()

    def register(
        self,
        effect_type: str,
        handler: SideEffectHandler,
        *,
        applies: SideEffectFilter | None = None,
    ) -> None:
        """Register ``handler`` for ``effect_type``.

        ``handler(recipient_id, payload)`` returning ``False`` or raising counts
        as a failed delivery. ``applies`` can veto the effect for a recipient
        before any receipt is written.
        """

        with self._lock:
            self._effects[effect_type] = _RegisteredEffect(handler=handler, applies=applies)

    def has_effect(self, effect_type: str) -> bool:
        return effect_type in self._effects

    def dispatch(
        self,
        activity_id: str,
        recipient_id: int,
        effect_type: str,
        payload: dict[str, Any],
    ) -> DispatchOutcome:
        effect = self._effects.get(effect_type)
        if effect is None:
            raise ValueError(f"No side effect registered for '{effect_type}'")

        if effect.applies is not None and not effect.applies(recipient_id, payload):
            return DispatchOutcome.SKIPPED

        receipt = SideEffectReceipt(
            activity_id=activity_id,
            recipient_id=recipient_id,
            effect_type=effect_type,
            created_at=self._clock(),
        )
        session = self._session_factory()
        try:
            receipts = ReceiptRepository(session)
            if not receipts.try_create(receipt):
                logger.debug(
                    "Suppressed duplicate %s for activity %s and user %s",
                    effect_type,
                    activity_id,
                    recipient_id,
                )
                return DispatchOutcome.DUPLICATE_SUPPRESSED

            try:
                delivered = effect.handler(recipient_id, payload)
            except Exception:
                logger.exception(
                    "Side effect %s for activity %s and user %s failed",
                    effect_type,
                    activity_id,
                    recipient_id,
                )
                delivered = False

            if delivered is False:
                receipts.delete(
                    activity_id=activity_id,
                    recipient_id=recipient_id,
                    effect_type=effect_type,
                )
                return DispatchOutcome.FAILED
            return DispatchOutcome.DELIVERED
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Failed to record %s receipt for %s: %s", effect_type, activity_id, exc)
            raise PersistenceUnavailableError("Failed to record the side effect receipt") from exc
        finally:
            session.close()

    def prune_receipts(self, *, retention: int) -> int:
        """Delete receipts older than ``retention`` milliseconds."""

        session = self._session_factory()
        try:
            pruned = ReceiptRepository(session).prune(older_than=self._clock() - retention)
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceUnavailableError("Failed to prune side effect receipts") from exc
        finally:
            session.close()
        if pruned:
            logger.info("Pruned %d side effect receipts", pruned)
        return pruned


__all__ = ["SideEffectDispatcher", "SideEffectFilter", "SideEffectHandler"]
