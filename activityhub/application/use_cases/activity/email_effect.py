"""The ``email`` side effect fired for new notification entries."""

from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from activityhub.domain.entities import AggregateActivity, User
from activityhub.infrastructure.email import send_activity_email
from activityhub.infrastructure.repositories import UserRepository

logger = logging.getLogger(__name__)

EmailSender = Callable[[User, AggregateActivity], bool]


class ActivityEmailEffect:
    """Email users who asked for immediate notification emails."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        sender: EmailSender = send_activity_email,
    ) -> None:
        self._session_factory = session_factory
        self._sender = sender

    def _load_user(self, recipient_id: int) -> User | None:
        session = self._session_factory()
        try:
            return UserRepository(session).get(recipient_id)
        finally:
            session.close()

    def applies(self, recipient_id: int, payload: dict[str, Any]) -> bool:
        user = self._load_user(recipient_id)
        return bool(user and user.is_active and user.wants_immediate_email())

    def __call__(self, recipient_id: int, payload: dict[str, Any]) -> bool:
        user = self._load_user(recipient_id)
        if user is None:
            logger.warning("Cannot email unknown user %s", recipient_id)
            return False
        activity: AggregateActivity = payload["activity"]
        return bool(self._sender(user, activity))


__all__ = ["ActivityEmailEffect", "EmailSender"]
