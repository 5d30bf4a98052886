"""Registry of activity types and the recipients of their streams."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping

from sqlalchemy.orm import Session

from activityhub.domain.entities import STREAMS, ActivitySeed

RecipientResolver = Callable[[Session, ActivitySeed], Iterable[int]]


@dataclass(frozen=True)
class ActivityTypeDefinition:
    """How seeds of ``activity_type`` are routed.

    ``streams`` maps a stream name (``activity`` or ``notification``) to the
    resolver returning the user ids that receive it. ``effects`` lists the side
    effects fired for new notification entries.
    """

    activity_type: str
    streams: Mapping[str, RecipientResolver]
    effects: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.activity_type:
            raise ValueError("An activity type name is required")
        unknown = set(self.streams) - set(STREAMS)
        if unknown:
            raise ValueError(f"Unknown activity streams: {', '.join(sorted(unknown))}")


class ActivityRegistry:
    """Hold the :class:`ActivityTypeDefinition` registered by feature modules."""

    def __init__(self) -> None:
        self._definitions: dict[str, ActivityTypeDefinition] = {}
        self._lock = threading.Lock()

    def register(self, definition: ActivityTypeDefinition) -> None:
        with self._lock:
            if definition.activity_type in self._definitions:
                msg = f"Activity type '{definition.activity_type}' is already registered"
                raise ValueError(msg)
            self._definitions[definition.activity_type] = definition

    def get(self, activity_type: str) -> ActivityTypeDefinition | None:
        return self._definitions.get(activity_type)

    def __contains__(self, activity_type: object) -> bool:
        return activity_type in self._definitions

    def activity_types(self) -> list[str]:
        return sorted(self._definitions)


__all__ = ["ActivityRegistry", "ActivityTypeDefinition", "RecipientResolver"]
