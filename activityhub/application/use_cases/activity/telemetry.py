"""Per-node counters describing routing and collection activity."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from activityhub.domain.entities import DispatchOutcome
from activityhub.utils import now_in_epoch_millis

from .seeds import Clock

if TYPE_CHECKING:
    from .collector import CollectionResult
    from .router import RoutingResult

ROUTING_COUNTERS = ("routed", "queued", "duplicates_ignored", "resolution_failures")
COLLECTION_COUNTERS = (
    "cycles",
    "collected",
    "entries_created",
    "entries_extended",
    "failed_recipients",
    "skipped_buckets",
    "lost_leases",
)
EFFECT_COUNTERS = tuple(outcome.value for outcome in DispatchOutcome)


@dataclass
class ActivityTelemetry:
    """Thread-safe counters fed by the router and the collector.

    Counters start at zero when the node starts; ``snapshot`` reports them
    together with the time counting started.
    """

    clock: Clock = now_in_epoch_millis
    since: int | None = None
    _counters: Counter = field(default_factory=Counter)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def __post_init__(self) -> None:
        if self.since is None:
            self.since = self.clock()

    def record_routing(self, result: "RoutingResult") -> None:
        with self._lock:
            self._counters["routing.routed"] += 1
            self._counters["routing.queued"] += len(result.routed)
            self._counters["routing.duplicates_ignored"] += len(result.duplicates)
            self._counters["routing.resolution_failures"] += len(result.failures)

    def record_collection(self, result: "CollectionResult") -> None:
        with self._lock:
            self._counters["collection.cycles"] += 1
            self._counters["collection.collected"] += result.routed_seeds
            self._counters["collection.entries_created"] += result.entries_created
            self._counters["collection.entries_extended"] += result.entries_extended
            self._counters["collection.failed_recipients"] += len(result.failed_recipients)
            self._counters["collection.skipped_buckets"] += len(result.skipped_buckets)
            self._counters["collection.lost_leases"] += len(result.lost_buckets)
            for outcome, count in result.effects.items():
                self._counters[f"effects.{outcome.value}"] += count

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            counters = dict(self._counters)
        return {
            "since": self.since,
            "routing": {name: counters.get(f"routing.{name}", 0) for name in ROUTING_COUNTERS},
            "collection": {
                name: counters.get(f"collection.{name}", 0) for name in COLLECTION_COUNTERS
            },
            "effects": {name: counters.get(f"effects.{name}", 0) for name in EFFECT_COUNTERS},
        }


__all__ = ["ActivityTelemetry"]
