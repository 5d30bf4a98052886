from .activity import (
    ActivityRead,
    CollectionRequestedResponse,
    FeedPageRead,
    MarkNotificationsReadResponse,
)
from .telemetry import TelemetryRead
from .user import MeRead

__all__ = [
    "ActivityRead",
    "CollectionRequestedResponse",
    "FeedPageRead",
    "MarkNotificationsReadResponse",
    "MeRead",
    "TelemetryRead",
]
