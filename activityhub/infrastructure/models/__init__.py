"""ORM models used by the application infrastructure."""

from .user import UserModel
from .resource_membership import ROLE_MANAGER, ROLE_MEMBER, ResourceMembershipModel
from .follow import FollowModel
from .pending_activity import BucketLeaseModel, PendingActivityModel
from .feed_entry import FeedEntryModel
from .notification_state import NotificationStateModel
from .side_effect_receipt import SideEffectReceiptModel
from .pending_side_effect import PendingSideEffectModel

__all__ = [
    "UserModel",
    "ResourceMembershipModel",
    "ROLE_MANAGER",
    "ROLE_MEMBER",
    "FollowModel",
    "BucketLeaseModel",
    "PendingActivityModel",
    "FeedEntryModel",
    "NotificationStateModel",
    "SideEffectReceiptModel",
    "PendingSideEffectModel",
]
