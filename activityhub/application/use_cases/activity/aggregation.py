"""In-memory aggregation of routed seeds drained in one collection cycle."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Iterable

from activityhub.domain.entities import AggregateActivity, AggregateKey, RoutedSeed


@dataclass
class RecipientBatch:
    """Everything drained for one recipient in a cycle."""

    recipient_id: int
    entry_ids: list[int] = field(default_factory=list)
    aggregates: "OrderedDict[tuple[str, AggregateKey], list[AggregateActivity]]" = field(
        default_factory=OrderedDict
    )

    def add(self, entry_id: int, routed: RoutedSeed, *, window: int) -> None:
        self.entry_ids.append(entry_id)
        seed = routed.seed
        groups = self.aggregates.setdefault((routed.stream, AggregateKey.for_seed(seed)), [])
        if groups and seed.published - groups[-1].last_time <= window:
            groups[-1].add_seed(seed)
        else:
            groups.append(AggregateActivity.from_seed(seed))

    def iter_aggregates(self) -> Iterable[tuple[str, AggregateActivity]]:
        for (stream, _key), groups in self.aggregates.items():
            for aggregate in groups:
                yield stream, aggregate


def group_by_recipient(
    entries: Iterable[tuple[int, RoutedSeed]], *, window: int
) -> list[RecipientBatch]:
    """Group drained ``(entry_id, routed_seed)`` pairs per recipient and key.

    Seeds are merged in publication order; a gap longer than ``window``
    between two seeds of the same key starts a separate aggregate.
    """

    ordered = sorted(entries, key=lambda item: (item[1].seed.published, item[0]))
    batches: "OrderedDict[int, RecipientBatch]" = OrderedDict()
    for entry_id, routed in ordered:
        batch = batches.get(routed.recipient_id)
        if batch is None:
            batch = batches[routed.recipient_id] = RecipientBatch(routed.recipient_id)
        batch.add(entry_id, routed, window=window)
    return list(batches.values())


__all__ = ["RecipientBatch", "group_by_recipient"]
