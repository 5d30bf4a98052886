"""Routing of activity seeds into per-recipient pending buckets."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from activityhub.domain.entities import (
    STREAM_NOTIFICATION,
    ActivitySeed,
    AggregateKey,
    RoutedSeed,
)
from activityhub.domain.errors import (
    InvalidSeedError,
    PersistenceUnavailableError,
    RecipientResolutionError,
)
from activityhub.infrastructure.repositories import PendingActivityRepository

from .registry import ActivityRegistry
from .seeds import user_id_of, validate_seed
from .telemetry import ActivityTelemetry

logger = logging.getLogger(__name__)


@dataclass
class RoutingResult:
    """Outcome of routing one seed."""

    seed: ActivitySeed
    routed: list[RoutedSeed] = field(default_factory=list)
    duplicates: list[RoutedSeed] = field(default_factory=list)
    failures: list[RecipientResolutionError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def bucket_for(recipient_id: int, seed: ActivitySeed, number_of_buckets: int) -> int:
    """Return the bucket for ``recipient_id`` and ``seed``.

    Seeds sharing an aggregate key for a recipient always share a bucket, so
    one collector sees all of them in the same cycle.
    """

    if number_of_buckets <= 1:
        return 0
    raw = f"{recipient_id}#{AggregateKey.for_seed(seed).as_string()}"
    digest = hashlib.sha1(raw.encode("utf-8")).hexdigest()
    return int(digest[:8], 16) % number_of_buckets


class ActivityRouter:
    """Resolve the recipients of seeds and queue them for collection."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        registry: ActivityRegistry,
        *,
        number_of_buckets: int,
        telemetry: ActivityTelemetry | None = None,
    ) -> None:
        if number_of_buckets < 1:
            raise ValueError("number_of_buckets must be at least 1")
        self._session_factory = session_factory
        self._registry = registry
        self._number_of_buckets = number_of_buckets
        self._telemetry = telemetry

    @property
    def number_of_buckets(self) -> int:
        return self._number_of_buckets

    def route_activity(self, seed: ActivitySeed) -> RoutingResult:
        """Queue ``seed`` for every recipient of every stream of its type.

        Routing the same seed again while its entries are still pending adds
        nothing. Recipient resolution failures are reported in the result and
        do not prevent delivery to the recipients that were resolved.
        """

        validate_seed(seed)
        definition = self._registry.get(seed.activity_type)
        if definition is None:
            raise InvalidSeedError(f"Unknown activity type '{seed.activity_type}'")

        result = RoutingResult(seed=seed)
        actor_user_id = user_id_of(seed.actor)

        session = self._session_factory()
        try:
            repository = PendingActivityRepository(session)
            for stream, resolver in definition.streams.items():
                try:
                    recipients = {int(recipient) for recipient in resolver(session, seed)}
                except Exception as exc:
                    session.rollback()
                    failure = RecipientResolutionError(
                        f"Failed to resolve '{stream}' recipients of {seed.object.key}",
                        resource=seed.object,
                        stream=stream,
                    )
                    failure.__cause__ = exc
                    logger.warning(
                        "Recipient resolution for %s stream of %s failed: %s",
                        stream,
                        seed.activity_type,
                        exc,
                    )
                    result.failures.append(failure)
                    continue

                if stream == STREAM_NOTIFICATION and actor_user_id is not None:
                    recipients.discard(actor_user_id)

                for recipient_id in sorted(recipients):
                    routed = RoutedSeed(
                        seed=seed,
                        recipient_id=recipient_id,
                        stream=stream,
                        bucket=bucket_for(recipient_id, seed, self._number_of_buckets),
                    )
                    if repository.enqueue(routed):
                        result.routed.append(routed)
                    else:
                        result.duplicates.append(routed)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Failed to queue activity %s: %s", seed.activity_type, exc)
            raise PersistenceUnavailableError("Failed to queue the routed activity") from exc
        finally:
            session.close()

        if result.duplicates:
            logger.info(
                "Ignored %d already pending deliveries of %s",
                len(result.duplicates),
                seed.activity_type,
            )
        if self._telemetry is not None:
            self._telemetry.record_routing(result)
        return result


__all__ = ["ActivityRouter", "RoutingResult", "bucket_for"]
