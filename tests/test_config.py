"""Tests for settings validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from activityhub.config import Settings


def test_defaults_match_documented_values(monkeypatch):
    for name in (
        "COLLECTION_POLLING_FREQUENCY",
        "NUMBER_OF_PROCESSING_BUCKETS",
        "AGGREGATE_IDLE_EXPIRY",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(secret_key="secret")

    assert settings.collection_polling_frequency == 5000
    assert settings.number_of_processing_buckets == 3
    assert settings.aggregate_idle_expiry == 60 * 60 * 1000
    assert settings.automatic_collection_enabled


def test_values_are_read_from_environment(monkeypatch):
    monkeypatch.setenv("COLLECTION_POLLING_FREQUENCY", "-1")
    monkeypatch.setenv("NUMBER_OF_PROCESSING_BUCKETS", "8")

    settings = Settings(secret_key="secret")

    assert settings.collection_polling_frequency == -1
    assert settings.number_of_processing_buckets == 8
    assert not settings.automatic_collection_enabled


@pytest.mark.parametrize(
    "overrides",
    [
        {"number_of_processing_buckets": 0},
        {"aggregate_idle_expiry": 0},
        {"sendgrid_api_key": "SG.key"},
        {"sendgrid_api_key": "SG.key", "sendgrid_sender": "not-an-address"},
        {"feed_page_limit": 30, "feed_page_max_limit": 25},
    ],
)
def test_invalid_settings_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(secret_key="secret", **overrides)
