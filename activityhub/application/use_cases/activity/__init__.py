"""Activity routing, aggregation and notification use cases."""

from .activity_types import (
    CONTENT_CREATE,
    CONTENT_UPDATE,
    DISCUSSION_CREATE,
    FOLLOWING_FOLLOW,
    VERB_CREATE,
    VERB_FOLLOW,
    VERB_UPDATE,
    register_default_activity_types,
)
from .aggregation import RecipientBatch, group_by_recipient
from .collector import ActivityCollector, CollectionResult, LeaseLostError
from .dispatcher import SideEffectDispatcher
from .email_effect import ActivityEmailEffect
from .feeds import AppendResult, FeedService, build_activity_id
from .pipeline import ActivityPipeline, build_pipeline
from .registry import ActivityRegistry, ActivityTypeDefinition
from .router import ActivityRouter, RoutingResult, bucket_for
from .scheduler import COLLECT_CHANNEL, CollectionScheduler
from .seeds import (
    RESOURCE_CONTENT,
    RESOURCE_DISCUSSION,
    RESOURCE_USER,
    create_seed,
    user_id_of,
    user_resource,
    validate_seed,
)
from .telemetry import ActivityTelemetry

__all__ = [
    "ActivityCollector",
    "ActivityEmailEffect",
    "ActivityPipeline",
    "ActivityRegistry",
    "ActivityRouter",
    "ActivityTelemetry",
    "ActivityTypeDefinition",
    "AppendResult",
    "COLLECT_CHANNEL",
    "CONTENT_CREATE",
    "CONTENT_UPDATE",
    "CollectionResult",
    "CollectionScheduler",
    "DISCUSSION_CREATE",
    "FOLLOWING_FOLLOW",
    "FeedService",
    "LeaseLostError",
    "RESOURCE_CONTENT",
    "RESOURCE_DISCUSSION",
    "RESOURCE_USER",
    "RecipientBatch",
    "RoutingResult",
    "SideEffectDispatcher",
    "VERB_CREATE",
    "VERB_FOLLOW",
    "VERB_UPDATE",
    "bucket_for",
    "build_activity_id",
    "build_pipeline",
    "create_seed",
    "group_by_recipient",
    "register_default_activity_types",
    "user_id_of",
    "user_resource",
    "validate_seed",
]
