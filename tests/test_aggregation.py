"""Tests for in-cycle grouping of routed seeds."""

from __future__ import annotations

from activityhub.application.use_cases.activity import (
    CONTENT_CREATE,
    VERB_CREATE,
    create_seed,
    group_by_recipient,
    user_resource,
)
from activityhub.domain.entities import (
    STREAM_ACTIVITY,
    STREAM_NOTIFICATION,
    ActivityResource,
    AggregateActivity,
    RoutedSeed,
)

WINDOW = 1000


def _routed(recipient_id, *, actor=1, obj="c-1", published=0, stream=STREAM_NOTIFICATION):
    seed = create_seed(
        CONTENT_CREATE,
        VERB_CREATE,
        user_resource(actor),
        ActivityResource("content", obj),
        published=published,
    )
    return RoutedSeed(seed=seed, recipient_id=recipient_id, stream=stream, bucket=0)


def test_seeds_sharing_a_key_merge_into_one_aggregate():
    entries = [(1, _routed(5, obj="c-1", published=100)), (2, _routed(5, obj="c-2", published=300))]

    [batch] = group_by_recipient(entries, window=WINDOW)
    [(stream, aggregate)] = list(batch.iter_aggregates())

    assert batch.recipient_id == 5
    assert batch.entry_ids == [1, 2]
    assert stream == STREAM_NOTIFICATION
    assert [obj.resource_id for obj in aggregate.objects] == ["c-1", "c-2"]
    assert (aggregate.first_time, aggregate.last_time) == (100, 300)
    assert aggregate.to_activity()["object"] == {
        "collection": [
            {"resource_type": "content", "resource_id": "c-1"},
            {"resource_type": "content", "resource_id": "c-2"},
        ]
    }


def test_gap_longer_than_window_starts_a_new_aggregate():
    entries = [
        (1, _routed(5, obj="c-1", published=100)),
        (2, _routed(5, obj="c-2", published=100 + WINDOW + 1)),
    ]

    [batch] = group_by_recipient(entries, window=WINDOW)

    assert len(list(batch.iter_aggregates())) == 2


def test_different_actors_streams_and_recipients_stay_apart():
    entries = [
        (3, _routed(5, actor=1, published=10)),
        (1, _routed(5, actor=2, published=20)),
        (2, _routed(5, actor=1, published=30, stream=STREAM_ACTIVITY)),
        (4, _routed(6, actor=1, published=40)),
    ]

    batches = group_by_recipient(entries, window=WINDOW)

    assert [batch.recipient_id for batch in batches] == [5, 6]
    assert len(list(batches[0].iter_aggregates())) == 3
    assert batches[0].entry_ids == [3, 1, 2]


def test_merging_an_identical_seed_reports_no_change():
    seed = _routed(5, published=10).seed
    aggregate = AggregateActivity.from_seed(seed)

    assert aggregate.add_seed(seed) is False
    assert aggregate.merge(AggregateActivity.from_seed(seed)) is False
    assert aggregate.to_activity()["actor"] == {"resource_type": "user", "resource_id": "1"}
