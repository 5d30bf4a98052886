"""Domain entities describing a single user action waiting to be routed."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any

STREAM_ACTIVITY = "activity"
STREAM_NOTIFICATION = "notification"
STREAMS = (STREAM_ACTIVITY, STREAM_NOTIFICATION)


@dataclass(frozen=True)
class ActivityResource:
    """Typed reference to an entity taking part in an activity."""

    resource_type: str
    resource_id: str

    @property
    def key(self) -> str:
        return f"{self.resource_type}:{self.resource_id}"

    def to_dict(self) -> dict[str, str]:
        return {"resource_type": self.resource_type, "resource_id": self.resource_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivityResource":
        return cls(
            resource_type=str(data["resource_type"]),
            resource_id=str(data["resource_id"]),
        )


@dataclass(frozen=True)
class ActivitySeed:
    """Immutable description of one occurrence of an activity."""

    activity_type: str
    verb: str
    published: int
    actor: ActivityResource
    object: ActivityResource
    target: ActivityResource | None = None

    @property
    def identity(self) -> str:
        """Return a string that is equal for seeds describing the same occurrence."""

        target_key = self.target.key if self.target else ""
        return "|".join(
            (
                self.activity_type,
                self.verb,
                str(self.published),
                self.actor.key,
                self.object.key,
                target_key,
            )
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "activity_type": self.activity_type,
            "verb": self.verb,
            "published": self.published,
            "actor": self.actor.to_dict(),
            "object": self.object.to_dict(),
            "target": self.target.to_dict() if self.target else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivitySeed":
        target = data.get("target")
        return cls(
            activity_type=str(data["activity_type"]),
            verb=str(data["verb"]),
            published=int(data["published"]),
            actor=ActivityResource.from_dict(data["actor"]),
            object=ActivityResource.from_dict(data["object"]),
            target=ActivityResource.from_dict(target) if target else None,
        )


@dataclass(frozen=True)
class RoutedSeed:
    """A seed assigned to one recipient stream and one processing bucket."""

    seed: ActivitySeed
    recipient_id: int
    stream: str
    bucket: int

    @property
    def entry_key(self) -> str:
        """Deterministic pending-store key for this (seed, recipient, stream)."""

        raw = f"{self.seed.identity}#{self.stream}#{self.recipient_id}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()


__all__ = [
    "ActivityResource",
    "ActivitySeed",
    "RoutedSeed",
    "STREAM_ACTIVITY",
    "STREAM_NOTIFICATION",
    "STREAMS",
]
