"""Domain entities for activities merged from one or more seeds."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .activity_seed import ActivityResource, ActivitySeed


@dataclass(frozen=True)
class AggregateKey:
    """Identity shared by seeds that may be merged into one activity."""

    activity_type: str
    verb: str
    actor: ActivityResource
    object_type: str
    target: ActivityResource | None = None

    @classmethod
    def for_seed(cls, seed: ActivitySeed) -> "AggregateKey":
        return cls(
            activity_type=seed.activity_type,
            verb=seed.verb,
            actor=seed.actor,
            object_type=seed.object.resource_type,
            target=seed.target,
        )

    def as_string(self) -> str:
        target_key = self.target.key if self.target else "__null__"
        return "#".join(
            (self.activity_type, self.verb, self.actor.key, self.object_type, target_key)
        )


@dataclass
class AggregateActivity:
    """An item of a feed made of every seed sharing an :class:`AggregateKey`."""

    key: AggregateKey
    activity_id: str | None
    first_time: int
    last_time: int
    actors: list[ActivityResource] = field(default_factory=list)
    objects: list[ActivityResource] = field(default_factory=list)
    target: ActivityResource | None = None

    @classmethod
    def from_seed(cls, seed: ActivitySeed, *, activity_id: str | None = None) -> "AggregateActivity":
        return cls(
            key=AggregateKey.for_seed(seed),
            activity_id=activity_id,
            first_time=seed.published,
            last_time=seed.published,
            actors=[seed.actor],
            objects=[seed.object],
            target=seed.target,
        )

    @property
    def activity_type(self) -> str:
        return self.key.activity_type

    @property
    def verb(self) -> str:
        return self.key.verb

    def add_seed(self, seed: ActivitySeed) -> bool:
        """Merge ``seed`` into the aggregate and report whether anything changed."""

        changed = False
        if seed.actor not in self.actors:
            self.actors.append(seed.actor)
            changed = True
        if seed.object not in self.objects:
            self.objects.append(seed.object)
            changed = True
        if seed.published > self.last_time:
            self.last_time = seed.published
            changed = True
        if seed.published < self.first_time:
            self.first_time = seed.published
            changed = True
        return changed

    def merge(self, other: "AggregateActivity") -> bool:
        """Fold ``other`` (same key) into this aggregate."""

        changed = False
        for actor in other.actors:
            if actor not in self.actors:
                self.actors.append(actor)
                changed = True
        for obj in other.objects:
            if obj not in self.objects:
                self.objects.append(obj)
                changed = True
        if other.last_time > self.last_time:
            self.last_time = other.last_time
            changed = True
        if other.first_time < self.first_time:
            self.first_time = other.first_time
            changed = True
        return changed

    def to_activity(self) -> dict[str, Any]:
        """Return the activity-streams style representation of the aggregate."""

        activity: dict[str, Any] = {
            "id": self.activity_id,
            "activity_type": self.activity_type,
            "verb": self.verb,
            "published": self.last_time,
            "actor": _entity_or_collection(self.actors),
            "object": _entity_or_collection(self.objects),
        }
        if self.target is not None:
            activity["target"] = self.target.to_dict()
        return activity


def _entity_or_collection(resources: list[ActivityResource]) -> dict[str, Any]:
    if len(resources) == 1:
        return resources[0].to_dict()
    return {"collection": [resource.to_dict() for resource in resources]}


__all__ = ["AggregateActivity", "AggregateKey"]
