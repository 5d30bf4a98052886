"""Wiring of the activity components for one application instance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.orm import Session

from activityhub.config import Settings
from activityhub.domain.entities import EFFECT_EMAIL, ActivitySeed, FeedPage, NotificationState
from activityhub.infrastructure.notifications import FeedPublisher, feed_publisher
from activityhub.infrastructure.pubsub import PubSubTransport
from activityhub.utils import now_in_epoch_millis

from .activity_types import register_default_activity_types
from .collector import ActivityCollector, CollectionResult
from .dispatcher import SideEffectDispatcher
from .email_effect import ActivityEmailEffect, EmailSender
from .feeds import FeedService
from .registry import ActivityRegistry
from .router import ActivityRouter, RoutingResult
from .scheduler import CollectionScheduler
from .seeds import Clock
from .telemetry import ActivityTelemetry

logger = logging.getLogger(__name__)


@dataclass
class ActivityPipeline:
    """The router, collector, feeds and side effects of the application."""

    registry: ActivityRegistry
    router: ActivityRouter
    feeds: FeedService
    dispatcher: SideEffectDispatcher
    collector: ActivityCollector
    transport: PubSubTransport
    scheduler: CollectionScheduler
    telemetry: ActivityTelemetry
    publisher: FeedPublisher | None = None

    def route_activity(self, seed: ActivitySeed) -> RoutingResult:
        return self.router.route_activity(seed)

    def collect(self) -> CollectionResult:
        """Run one collection cycle on this node."""

        return self.collector.collect()

    def request_collection(self) -> None:
        self.scheduler.request_collection()

    def get_telemetry(self) -> dict:
        return self.telemetry.snapshot()

    def get_feed(self, user_id: int, *, start: str | None = None, limit: int | None = None) -> FeedPage:
        return self.feeds.get_feed(user_id, start=start, limit=limit)

    def get_notification_feed(
        self, user_id: int, *, start: str | None = None, limit: int | None = None
    ) -> FeedPage:
        return self.feeds.get_notification_feed(user_id, start=start, limit=limit)

    def get_notification_state(self, user_id: int) -> NotificationState:
        return self.feeds.get_notification_state(user_id)

    def mark_notifications_read(self, user_id: int) -> NotificationState:
        state = self.feeds.mark_notifications_read(user_id)
        if self.publisher is not None:
            self.publisher.dispatch_read(user_id, last_read_time=state.last_read_time)
        return state


def build_pipeline(
    settings: Settings,
    session_factory: Callable[[], Session],
    transport: PubSubTransport,
    *,
    clock: Clock = now_in_epoch_millis,
    email_sender: EmailSender | None = None,
    publisher: FeedPublisher | None = feed_publisher,
    registry: ActivityRegistry | None = None,
) -> ActivityPipeline:
    """Build an :class:`ActivityPipeline` from ``settings``.

    The ``email`` side effect is registered when SendGrid is configured or an
    ``email_sender`` is supplied.
    """

    if registry is None:
        registry = register_default_activity_types(ActivityRegistry())

    telemetry = ActivityTelemetry(clock=clock)
    router = ActivityRouter(
        session_factory,
        registry,
        number_of_buckets=settings.number_of_processing_buckets,
        telemetry=telemetry,
    )
    feeds = FeedService(
        session_factory,
        aggregate_idle_expiry=settings.aggregate_idle_expiry,
        page_limit=settings.feed_page_limit,
        max_page_limit=settings.feed_page_max_limit,
        clock=clock,
    )
    dispatcher = SideEffectDispatcher(session_factory, clock=clock)

    if email_sender is not None or settings.sendgrid_api_key:
        effect = (
            ActivityEmailEffect(session_factory)
            if email_sender is None
            else ActivityEmailEffect(session_factory, sender=email_sender)
        )
        dispatcher.register(EFFECT_EMAIL, effect, applies=effect.applies)
    else:
        logger.info("SendGrid is not configured; activity emails are disabled")

    collector = ActivityCollector(
        session_factory,
        registry=registry,
        feeds=feeds,
        dispatcher=dispatcher,
        number_of_buckets=settings.number_of_processing_buckets,
        batch_size=settings.collection_batch_size,
        lease_duration=settings.bucket_lease_duration,
        aggregate_idle_expiry=settings.aggregate_idle_expiry,
        publisher=publisher,
        telemetry=telemetry,
        receipt_retention=settings.receipt_retention,
        clock=clock,
    )
    scheduler = CollectionScheduler(
        collector,
        transport,
        polling_frequency=settings.collection_polling_frequency,
    )
    return ActivityPipeline(
        registry=registry,
        router=router,
        feeds=feeds,
        dispatcher=dispatcher,
        collector=collector,
        transport=transport,
        scheduler=scheduler,
        telemetry=telemetry,
        publisher=publisher,
    )


__all__ = ["ActivityPipeline", "build_pipeline"]
