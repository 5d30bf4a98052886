"""Tests for collection cycles, bucket leases and email delivery."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from activityhub.application.use_cases.activity import (
    CONTENT_CREATE,
    RESOURCE_CONTENT,
    VERB_CREATE,
    build_pipeline,
    create_seed,
    user_resource,
)
from activityhub.application.use_cases.features import create_content, update_content
from activityhub.domain.entities import (
    EMAIL_PREFERENCE_NEVER,
    FEED_NOTIFICATION,
    ActivityResource,
    AggregateActivity,
    DispatchOutcome,
)
from activityhub.infrastructure.models import PendingSideEffectModel
from activityhub.infrastructure.pubsub import InMemoryPubSub
from activityhub.infrastructure.repositories import (
    BucketLeaseRepository,
    FeedRepository,
    PendingActivityRepository,
)

from conftest import AGGREGATE_WINDOW


def _pending(session_factory) -> int:
    with session_factory() as session:
        return PendingActivityRepository(session).count()


def _queued_effects(session_factory) -> int:
    with session_factory() as session:
        return session.query(PendingSideEffectModel).count()


def _aggregate(actor, content_id: str, published: int) -> AggregateActivity:
    seed = create_seed(
        CONTENT_CREATE,
        VERB_CREATE,
        user_resource(actor.id),
        ActivityResource(RESOURCE_CONTENT, content_id),
        published=published,
    )
    return AggregateActivity.from_seed(seed)


@pytest.fixture()
def shared_content(pipeline, session_factory, clock, make_user):
    """Alice shares ``c-1`` with Bob and Carol, both wanting immediate emails."""

    alice = make_user("Alice")
    bob = make_user("Bob")
    carol = make_user("Carol")
    with session_factory() as session:
        create_content(
            session,
            pipeline.router,
            actor_id=alice.id,
            content_id="c-1",
            member_ids=[bob.id, carol.id],
            published=clock(),
        )
    return alice, bob, carol


def test_rerouting_an_update_three_times_sends_one_email_per_recipient(
    pipeline, session_factory, clock, shared_content, sent_emails
):
    alice, bob, carol = shared_content
    pipeline.collect()
    pipeline.mark_notifications_read(bob.id)
    pipeline.mark_notifications_read(carol.id)
    sent_emails.clear()

    with session_factory() as session:
        routed = update_content(
            session, pipeline.router, actor_id=alice.id, content_id="c-1", published=clock()
        )
    pipeline.collect()
    pipeline.route_activity(routed.seed)
    pipeline.collect()
    pipeline.route_activity(routed.seed)
    pipeline.route_activity(routed.seed)
    pipeline.collect()

    assert sorted(user_id for user_id, _, _ in sent_emails) == [bob.id, carol.id]
    assert pipeline.get_notification_state(bob.id).unread_count == 1
    assert pipeline.get_notification_state(carol.id).unread_count == 1


def test_email_is_sent_once_per_aggregate(
    pipeline, session_factory, clock, shared_content, sent_emails
):
    alice, bob, _ = shared_content
    pipeline.collect()
    with session_factory() as session:
        create_content(
            session,
            pipeline.router,
            actor_id=alice.id,
            content_id="c-2",
            member_ids=[bob.id],
            published=clock(),
        )
    pipeline.collect()

    bob_emails = [email for email in sent_emails if email[0] == bob.id]
    assert len(bob_emails) == 1
    assert bob_emails[0][2] == 1


def test_email_preference_never_is_respected(
    pipeline, session_factory, clock, make_user, sent_emails
):
    alice = make_user("Alice")
    bob = make_user("Bob", email_preference=EMAIL_PREFERENCE_NEVER)
    with session_factory() as session:
        create_content(
            session,
            pipeline.router,
            actor_id=alice.id,
            content_id="c-1",
            member_ids=[bob.id],
            published=clock(),
        )

    result = pipeline.collect()

    assert sent_emails == []
    assert result.effects_delivered == 0
    assert pipeline.get_notification_state(bob.id).unread_count == 1


def test_failed_email_is_retried_without_rewriting_the_feed(
    settings, session_factory, clock, make_user
):
    attempts = []

    def _flaky_sender(user, activity):
        attempts.append(user.id)
        return len(attempts) > 1

    pipeline = build_pipeline(
        settings,
        session_factory,
        InMemoryPubSub(),
        clock=clock,
        email_sender=_flaky_sender,
        publisher=None,
    )
    alice = make_user("Alice")
    bob = make_user("Bob")
    with session_factory() as session:
        create_content(
            session,
            pipeline.router,
            actor_id=alice.id,
            content_id="c-1",
            member_ids=[bob.id],
            published=clock(),
        )

    first = pipeline.collect()

    assert first.failed_recipients == [bob.id]
    assert first.effects[DispatchOutcome.FAILED] == 1
    assert _pending(session_factory) == 0
    assert _queued_effects(session_factory) == 1
    assert pipeline.get_notification_state(bob.id).unread_count == 1

    second = pipeline.collect()

    assert second.failed_recipients == []
    assert second.effects_delivered == 1
    assert _queued_effects(session_factory) == 0
    assert attempts == [bob.id, bob.id]
    assert len(pipeline.get_notification_feed(bob.id).items) == 1
    assert pipeline.get_notification_state(bob.id).unread_count == 1


@pytest.fixture()
def undeliverable(settings, session_factory, clock):
    """A pipeline whose emails always fail, with the activity ids it tried."""

    attempts = []

    def _sender(user, activity):
        attempts.append(activity.activity_id)
        return False

    pipeline = build_pipeline(
        settings,
        session_factory,
        InMemoryPubSub(),
        clock=clock,
        email_sender=_sender,
        publisher=None,
    )
    return pipeline, attempts


def _share_with(pipeline, session_factory, clock, actor, member, content_id="c-1"):
    with session_factory() as session:
        create_content(
            session,
            pipeline.router,
            actor_id=actor.id,
            content_id=content_id,
            member_ids=[member.id],
            published=clock(),
        )


def test_email_retries_after_the_window_closed_keep_one_notification(
    undeliverable, session_factory, clock, make_user
):
    pipeline, attempts = undeliverable
    alice, bob = make_user("Alice"), make_user("Bob")
    _share_with(pipeline, session_factory, clock, alice, bob)

    pipeline.collect()
    clock.advance(AGGREGATE_WINDOW + 10)
    result = pipeline.collect()

    [entry] = pipeline.get_notification_feed(bob.id).items
    assert [obj.resource_id for obj in entry.activity.objects] == ["c-1"]
    assert pipeline.get_notification_state(bob.id).unread_count == 1
    assert result.routed_seeds == 0
    assert attempts == [entry.activity.activity_id] * 2
    assert _queued_effects(session_factory) == 1


def test_email_retries_after_mark_read_do_not_count_as_unread(
    undeliverable, session_factory, clock, make_user
):
    pipeline, attempts = undeliverable
    alice, bob = make_user("Alice"), make_user("Bob")
    _share_with(pipeline, session_factory, clock, alice, bob)

    pipeline.collect()
    pipeline.mark_notifications_read(bob.id)
    pipeline.collect()

    assert len(pipeline.get_notification_feed(bob.id).items) == 1
    assert pipeline.get_notification_state(bob.id).unread_count == 0
    assert len(attempts) == 2


def test_persistence_failure_leaves_entries_for_next_cycle(
    pipeline, session_factory, shared_content, monkeypatch
):
    alice, bob, carol = shared_content
    original = pipeline.feeds.append_to_feed
    failing = {bob.id}

    def _append(session, recipient_id, feed_type, aggregate, *, now):
        if recipient_id in failing:
            raise OperationalError("INSERT", {}, Exception("database is locked"))
        return original(session, recipient_id, feed_type, aggregate, now=now)

    monkeypatch.setattr(pipeline.feeds, "append_to_feed", _append)

    result = pipeline.collect()

    assert result.failed_recipients == [bob.id]
    assert pipeline.get_feed(bob.id).items == []
    assert len(pipeline.get_notification_feed(carol.id).items) == 1
    assert _pending(session_factory) == 2

    failing.clear()
    pipeline.collect()

    assert len(pipeline.get_notification_feed(bob.id).items) == 1
    assert pipeline.get_notification_state(bob.id).unread_count == 1
    assert _pending(session_factory) == 0


def test_bucket_held_by_another_collector_is_skipped_until_lease_expires(
    pipeline, session_factory, settings, clock, shared_content
):
    with session_factory() as session:
        leases = BucketLeaseRepository(session)
        leases.ensure_buckets(settings.number_of_processing_buckets)
        assert leases.claim(0, owner="other-node", now=clock(), duration=settings.bucket_lease_duration)

    with session_factory() as session:
        held_back = PendingActivityRepository(session).count(bucket=0)

    result = pipeline.collect()

    assert result.skipped_buckets == [0]
    assert _pending(session_factory) == held_back

    clock.advance(settings.bucket_lease_duration + 1)
    result = pipeline.collect()

    assert result.skipped_buckets == []
    assert _pending(session_factory) == 0
    with session_factory() as session:
        leases = BucketLeaseRepository(session)
        assert [leases.get_owner(bucket) for bucket in range(3)] == [None, None, None]


def test_lease_is_exclusive_between_owners(session_factory, clock):
    with session_factory() as session:
        leases = BucketLeaseRepository(session)
        leases.ensure_buckets(1)
        now = clock()
        assert leases.claim(0, owner="a", now=now, duration=1000)
        assert not leases.claim(0, owner="b", now=now + 1, duration=1000)
        assert leases.claim(0, owner="a", now=now + 2, duration=1000)
        assert not leases.release(0, owner="b")
        assert leases.release(0, owner="a")
        assert leases.claim(0, owner="b", now=now + 3, duration=1000)


def test_out_of_range_bucket_is_rejected(pipeline):
    with pytest.raises(ValueError):
        pipeline.collector.collect_bucket(3)


def test_collector_stops_draining_once_its_lease_was_taken_over(
    settings, session_factory, clock, make_user, monkeypatch
):
    single_bucket = settings.model_copy(
        update={"number_of_processing_buckets": 1, "collection_batch_size": 1}
    )
    pipeline = build_pipeline(
        single_bucket, session_factory, InMemoryPubSub(), clock=clock, publisher=None
    )
    alice, bob = make_user("Alice"), make_user("Bob")
    _share_with(pipeline, session_factory, clock, alice, bob)
    queued = _pending(session_factory)
    original = pipeline.feeds.append_to_feed
    calls = []

    def _slow_append(session, recipient_id, feed_type, aggregate, *, now):
        calls.append(recipient_id)
        if len(calls) == 1:
            clock.advance(single_bucket.bucket_lease_duration + 1)
            with session_factory() as other:
                assert BucketLeaseRepository(other).claim(
                    0,
                    owner="other-node",
                    now=clock(),
                    duration=single_bucket.bucket_lease_duration,
                )
        return original(session, recipient_id, feed_type, aggregate, now=now)

    monkeypatch.setattr(pipeline.feeds, "append_to_feed", _slow_append)

    result = pipeline.collect()

    assert result.lost_buckets == [0]
    assert len(calls) == 1
    assert _pending(session_factory) == queued - 1
    with session_factory() as session:
        assert BucketLeaseRepository(session).get_owner(0) == "other-node"


def test_lease_renewal_requires_a_live_lease_of_the_same_owner(session_factory, clock):
    with session_factory() as session:
        leases = BucketLeaseRepository(session)
        leases.ensure_buckets(1)
        now = clock()
        assert leases.claim(0, owner="a", now=now, duration=1000)
        assert leases.renew(0, owner="a", now=now + 500, duration=1000)
        assert not leases.renew(0, owner="b", now=now + 600, duration=1000)
        assert not leases.renew(0, owner="a", now=now + 1501, duration=1000)


def test_second_concurrent_extension_of_an_aggregate_is_rejected(
    pipeline, session_factory, clock, shared_content
):
    alice, bob, _ = shared_content
    pipeline.collect()
    [entry] = pipeline.get_notification_feed(bob.id).items

    first, second = session_factory(), session_factory()
    try:
        FeedRepository(second).get(entry.id)
        pipeline.feeds.append_to_feed(
            first, bob.id, FEED_NOTIFICATION, _aggregate(alice, "c-2", clock()), now=clock()
        )
        first.commit()
        with pytest.raises(StaleDataError):
            pipeline.feeds.append_to_feed(
                second, bob.id, FEED_NOTIFICATION, _aggregate(alice, "c-3", clock()), now=clock()
            )
        second.rollback()
    finally:
        first.close()
        second.close()

    [entry] = pipeline.get_notification_feed(bob.id).items
    assert [obj.resource_id for obj in entry.activity.objects] == ["c-1", "c-2"]
    assert pipeline.get_notification_state(bob.id).unread_count == 1


def test_collection_losing_a_concurrent_extension_keeps_its_seeds(
    pipeline, session_factory, clock, shared_content, monkeypatch
):
    alice, bob, _ = shared_content
    pipeline.collect()
    [entry] = pipeline.get_notification_feed(bob.id).items
    _share_with(pipeline, session_factory, clock, alice, bob, content_id="c-2")
    original = pipeline.feeds.append_to_feed
    raced = []

    def _racing_append(session, recipient_id, feed_type, aggregate, *, now):
        if recipient_id == bob.id and not raced:
            raced.append(recipient_id)
            FeedRepository(session).get(entry.id)
            with session_factory() as other:
                original(
                    other,
                    bob.id,
                    FEED_NOTIFICATION,
                    _aggregate(alice, "c-3", clock()),
                    now=clock(),
                )
                other.commit()
        return original(session, recipient_id, feed_type, aggregate, now=now)

    monkeypatch.setattr(pipeline.feeds, "append_to_feed", _racing_append)

    result = pipeline.collect()

    assert result.failed_recipients == [bob.id]
    with session_factory() as session:
        assert PendingActivityRepository(session).count() == 2
    assert pipeline.get_notification_state(bob.id).unread_count == 1

    pipeline.collect()

    [entry] = pipeline.get_notification_feed(bob.id).items
    assert [obj.resource_id for obj in entry.activity.objects] == ["c-1", "c-3", "c-2"]
    assert pipeline.get_notification_state(bob.id).unread_count == 1
    assert _pending(session_factory) == 0
