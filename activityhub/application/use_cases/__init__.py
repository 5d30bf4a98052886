"""Aggregate application use cases."""

from .activity import ActivityPipeline, build_pipeline
from .features import (
    create_content,
    create_discussion,
    create_user,
    follow_user,
    unfollow_user,
    update_content,
)

__all__ = [
    "ActivityPipeline",
    "build_pipeline",
    "create_content",
    "create_discussion",
    "create_user",
    "follow_user",
    "unfollow_user",
    "update_content",
]
