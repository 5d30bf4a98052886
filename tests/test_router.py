"""Tests for routing seeds into pending buckets."""

from __future__ import annotations

import logging

import pytest

from activityhub.application.use_cases.activity import (
    CONTENT_CREATE,
    CONTENT_UPDATE,
    VERB_CREATE,
    ActivityRegistry,
    ActivityRouter,
    ActivityTypeDefinition,
    bucket_for,
    create_seed,
    user_resource,
)
from activityhub.application.use_cases.features import create_content
from activityhub.domain.entities import (
    STREAM_ACTIVITY,
    STREAM_NOTIFICATION,
    ActivityResource,
)
from activityhub.domain.errors import InvalidSeedError, RecipientResolutionError
from activityhub.infrastructure.repositories import PendingActivityRepository


def _pending_count(session_factory) -> int:
    with session_factory() as session:
        return PendingActivityRepository(session).count()


def _pending_for(session_factory, recipient_id: int):
    with session_factory() as session:
        repository = PendingActivityRepository(session)
        entries = []
        for bucket in range(3):
            entries.extend(repository.list_bucket(bucket, limit=100))
    return [routed for _, routed in entries if routed.recipient_id == recipient_id]


def test_routing_the_same_seed_twice_adds_no_pending_entries(
    pipeline, session_factory, make_user, clock
):
    actor = make_user("Alice")
    member = make_user("Bob")
    with session_factory() as session:
        first = create_content(
            session,
            pipeline.router,
            actor_id=actor.id,
            content_id="c-1",
            member_ids=[member.id],
            published=clock(),
        )
    pending = _pending_count(session_factory)

    second = pipeline.route_activity(first.seed)

    assert first.routed
    assert second.routed == []
    assert sorted(r.entry_key for r in second.duplicates) == sorted(
        r.entry_key for r in first.routed
    )
    assert _pending_count(session_factory) == pending


def test_notification_stream_excludes_the_actor(pipeline, session_factory, make_user, clock):
    actor = make_user("Alice")
    member = make_user("Bob")
    with session_factory() as session:
        create_content(
            session,
            pipeline.router,
            actor_id=actor.id,
            content_id="c-1",
            member_ids=[member.id],
            published=clock(),
        )

    actor_streams = {routed.stream for routed in _pending_for(session_factory, actor.id)}
    member_streams = {routed.stream for routed in _pending_for(session_factory, member.id)}

    assert actor_streams == {STREAM_ACTIVITY}
    assert member_streams == {STREAM_ACTIVITY, STREAM_NOTIFICATION}


def test_unknown_activity_type_is_rejected(pipeline, clock):
    seed = create_seed(
        "calendar-create",
        VERB_CREATE,
        user_resource(1),
        ActivityResource("event", "e-1"),
        clock=clock,
    )

    with pytest.raises(InvalidSeedError):
        pipeline.route_activity(seed)


def test_resolution_failure_does_not_block_resolved_recipients(
    session_factory, make_user, clock, caplog
):
    member = make_user("Bob")

    def _broken(session, seed):
        raise RuntimeError("membership service unavailable")

    registry = ActivityRegistry()
    registry.register(
        ActivityTypeDefinition(
            activity_type=CONTENT_CREATE,
            streams={
                STREAM_ACTIVITY: lambda session, seed: {member.id},
                STREAM_NOTIFICATION: _broken,
            },
        )
    )
    router = ActivityRouter(session_factory, registry, number_of_buckets=3)
    seed = create_seed(
        CONTENT_CREATE,
        VERB_CREATE,
        user_resource(99),
        ActivityResource("content", "c-1"),
        clock=clock,
    )

    with caplog.at_level(logging.WARNING):
        result = router.route_activity(seed)

    assert not result.ok
    assert [routed.recipient_id for routed in result.routed] == [member.id]
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert isinstance(failure, RecipientResolutionError)
    assert failure.stream == STREAM_NOTIFICATION
    assert failure.resource == seed.object
    assert "membership service unavailable" in caplog.text


def test_registry_rejects_duplicate_and_unknown_streams():
    registry = ActivityRegistry()
    definition = ActivityTypeDefinition(
        activity_type=CONTENT_UPDATE, streams={STREAM_ACTIVITY: lambda session, seed: ()}
    )
    registry.register(definition)

    with pytest.raises(ValueError):
        registry.register(definition)
    with pytest.raises(ValueError):
        ActivityTypeDefinition(activity_type="x", streams={"email": lambda session, seed: ()})
    assert CONTENT_UPDATE in registry


def test_bucket_is_stable_for_recipient_and_aggregate_key():
    actor = user_resource(1)
    first = create_seed(CONTENT_CREATE, VERB_CREATE, actor, ActivityResource("content", "a"), published=1)
    second = create_seed(CONTENT_CREATE, VERB_CREATE, actor, ActivityResource("content", "b"), published=2)

    for recipient_id in range(1, 20):
        bucket = bucket_for(recipient_id, first, 5)
        assert 0 <= bucket < 5
        assert bucket == bucket_for(recipient_id, second, 5)
    assert bucket_for(7, first, 1) == 0
