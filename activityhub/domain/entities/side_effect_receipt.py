"""Domain entity marking a side effect as delivered."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

EFFECT_EMAIL = "email"


class DispatchOutcome(str, Enum):
    """Result of asking the dispatcher to fire a side effect."""

    DELIVERED = "delivered"
    DUPLICATE_SUPPRESSED = "duplicate_suppressed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class SideEffectReceipt:
    """Durable marker of one (activity, recipient, effect) delivery."""

    activity_id: str
    recipient_id: int
    effect_type: str
    created_at: int


__all__ = ["DispatchOutcome", "EFFECT_EMAIL", "SideEffectReceipt"]
