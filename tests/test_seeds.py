"""Tests for seed construction and validation."""

from __future__ import annotations

import pytest

from activityhub.application.use_cases.activity import (
    CONTENT_CREATE,
    VERB_CREATE,
    create_seed,
    user_id_of,
    user_resource,
)
from activityhub.domain.entities import ActivityResource, ActivitySeed
from activityhub.domain.errors import InvalidSeedError

CONTENT = ActivityResource("content", "c-1")


def test_create_seed_uses_injected_clock():
    seed = create_seed(CONTENT_CREATE, VERB_CREATE, user_resource(1), CONTENT, clock=lambda: 42)

    assert seed.published == 42
    assert seed.actor == ActivityResource("user", "1")
    assert seed.target is None


def test_explicit_published_timestamp_wins_over_clock():
    seed = create_seed(
        CONTENT_CREATE, VERB_CREATE, user_resource(1), CONTENT, published=7, clock=lambda: 42
    )

    assert seed.published == 7


@pytest.mark.parametrize(
    ("verb", "actor", "obj"),
    [
        ("", user_resource(1), CONTENT),
        (VERB_CREATE, None, CONTENT),
        (VERB_CREATE, user_resource(1), None),
        (VERB_CREATE, ActivityResource("user", ""), CONTENT),
    ],
)
def test_create_seed_rejects_missing_parts(verb, actor, obj):
    with pytest.raises(InvalidSeedError) as exc_info:
        create_seed(CONTENT_CREATE, verb, actor, obj, clock=lambda: 1)

    assert exc_info.value.code == 400


def test_seed_serialization_keeps_identity():
    seed = create_seed(
        CONTENT_CREATE,
        VERB_CREATE,
        user_resource(3),
        CONTENT,
        ActivityResource("group", "g-9"),
        published=1000,
    )

    restored = ActivitySeed.from_dict(seed.to_dict())

    assert restored == seed
    assert restored.identity == seed.identity


def test_user_id_of_only_accepts_user_resources():
    assert user_id_of(user_resource(12)) == 12
    assert user_id_of(CONTENT) is None
    assert user_id_of(ActivityResource("user", "not-a-number")) is None
    assert user_id_of(None) is None
