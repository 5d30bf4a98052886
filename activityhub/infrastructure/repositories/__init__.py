"""Repository implementations for infrastructure layer."""

from .user_repository import UserRepository
from .membership_repository import FollowRepository, MembershipRepository
from .pending_activity_repository import BucketLeaseRepository, PendingActivityRepository
from .feed_repository import FeedRepository, NotificationStateRepository
from .receipt_repository import ReceiptRepository
from .pending_side_effect_repository import PendingSideEffect, PendingSideEffectRepository

__all__ = [
    "UserRepository",
    "FollowRepository",
    "MembershipRepository",
    "BucketLeaseRepository",
    "PendingActivityRepository",
    "FeedRepository",
    "NotificationStateRepository",
    "ReceiptRepository",
    "PendingSideEffect",
    "PendingSideEffectRepository",
]
