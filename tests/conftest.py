"""Shared fixtures: a throwaway SQLite database and a manually driven pipeline."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_DB_PATH = Path(tempfile.gettempdir()) / "activityhub_test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["COLLECTION_POLLING_FREQUENCY"] = "-1"
for _name in ("SENDGRID_API_KEY", "SENDGRID_SENDER", "REDIS_URL"):
    os.environ.pop(_name, None)

from activityhub.config import Settings, get_settings  # noqa: E402

get_settings.cache_clear()

from activityhub.application.use_cases.activity import build_pipeline  # noqa: E402
from activityhub.application.use_cases.features import create_user  # noqa: E402
from activityhub.infrastructure.database import (  # noqa: E402
    Base,
    SessionLocal,
    engine,
    initialize_database,
)
from activityhub.infrastructure.pubsub import InMemoryPubSub  # noqa: E402

AGGREGATE_WINDOW = 60 * 60 * 1000


class TickingClock:
    """Clock advancing one millisecond per reading so timestamps never tie."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now

    def advance(self, milliseconds: int) -> None:
        self.now += milliseconds


@pytest.fixture(autouse=True)
def reset_database():
    """Ensure the test database starts from a clean state for each test."""

    Base.metadata.drop_all(bind=engine)
    initialize_database()
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory():
    return SessionLocal


@pytest.fixture()
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        secret_key="test-secret",
        collection_polling_frequency=-1,
        number_of_processing_buckets=3,
        aggregate_idle_expiry=AGGREGATE_WINDOW,
    )


@pytest.fixture()
def sent_emails() -> list:
    return []


@pytest.fixture()
def email_sender(sent_emails):
    """Record ``(user_id, activity_id, object_count)`` for every email sent."""

    def _send(user, activity) -> bool:
        sent_emails.append((user.id, activity.activity_id, len(activity.objects)))
        return True

    return _send


@pytest.fixture()
def pipeline(settings, clock, email_sender):
    return build_pipeline(
        settings,
        SessionLocal,
        InMemoryPubSub(),
        clock=clock,
        email_sender=email_sender,
        publisher=None,
    )


@pytest.fixture()
def make_user():
    def _make(name: str, *, email: str | None = None, **kwargs):
        with SessionLocal() as session:
            return create_user(
                session,
                name=name,
                email=email or f"{name.lower()}@example.com",
                **kwargs,
            )

    return _make
