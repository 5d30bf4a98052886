"""Tests for at-most-once side effect dispatch."""

from __future__ import annotations

import pytest

from activityhub.application.use_cases.activity import SideEffectDispatcher
from activityhub.domain.entities import DispatchOutcome
from activityhub.infrastructure.models import SideEffectReceiptModel

EFFECT = "email"


@pytest.fixture()
def dispatcher(session_factory, clock):
    return SideEffectDispatcher(session_factory, clock=clock)


def _has_receipt(session_factory, activity_id="a-1", recipient_id=1) -> bool:
    with session_factory() as session:
        return (
            session.query(SideEffectReceiptModel)
            .filter_by(activity_id=activity_id, recipient_id=recipient_id, effect_type=EFFECT)
            .count()
            == 1
        )


def test_same_triple_dispatched_many_times_fires_once(dispatcher, session_factory):
    calls = []
    dispatcher.register(EFFECT, lambda recipient_id, payload: calls.append(recipient_id))

    outcomes = [dispatcher.dispatch("a-1", 1, EFFECT, {}) for _ in range(5)]

    assert calls == [1]
    assert outcomes[0] is DispatchOutcome.DELIVERED
    assert set(outcomes[1:]) == {DispatchOutcome.DUPLICATE_SUPPRESSED}
    assert _has_receipt(session_factory)


def test_other_recipients_and_activities_are_independent(dispatcher):
    calls = []
    dispatcher.register(EFFECT, lambda recipient_id, payload: calls.append(recipient_id))

    dispatcher.dispatch("a-1", 1, EFFECT, {})
    dispatcher.dispatch("a-1", 2, EFFECT, {})
    dispatcher.dispatch("a-2", 1, EFFECT, {})

    assert calls == [1, 2, 1]


@pytest.mark.parametrize("failure", ["raise", "false"])
def test_failed_effect_rolls_back_receipt(dispatcher, session_factory, failure):
    attempts = []

    def _handler(recipient_id, payload):
        attempts.append(recipient_id)
        if len(attempts) == 1:
            if failure == "raise":
                raise ConnectionError("smtp down")
            return False
        return True

    dispatcher.register(EFFECT, _handler)

    assert dispatcher.dispatch("a-1", 1, EFFECT, {}) is DispatchOutcome.FAILED
    assert not _has_receipt(session_factory)
    assert dispatcher.dispatch("a-1", 1, EFFECT, {}) is DispatchOutcome.DELIVERED
    assert dispatcher.dispatch("a-1", 1, EFFECT, {}) is DispatchOutcome.DUPLICATE_SUPPRESSED
    assert attempts == [1, 1]


def test_vetoed_effect_writes_no_receipt(dispatcher, session_factory):
    calls = []
    dispatcher.register(
        EFFECT,
        lambda recipient_id, payload: calls.append(recipient_id),
        applies=lambda recipient_id, payload: False,
    )

    assert dispatcher.dispatch("a-1", 1, EFFECT, {}) is DispatchOutcome.SKIPPED
    assert calls == []
    assert not _has_receipt(session_factory)


def test_unregistered_effect_is_an_error(dispatcher):
    with pytest.raises(ValueError):
        dispatcher.dispatch("a-1", 1, "sms", {})


def test_prune_removes_receipts_older_than_retention(dispatcher, session_factory, clock):
    dispatcher.register(EFFECT, lambda recipient_id, payload: True)
    dispatcher.dispatch("a-1", 1, EFFECT, {})
    clock.advance(10_000)
    dispatcher.dispatch("a-2", 1, EFFECT, {})

    assert dispatcher.prune_receipts(retention=5_000) == 1
    assert not _has_receipt(session_factory, "a-1")
    assert _has_receipt(session_factory, "a-2")
