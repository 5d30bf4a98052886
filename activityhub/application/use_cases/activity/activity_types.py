"""Activity types contributed by the content, discussion and following features."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from activityhub.domain.entities import (
    EFFECT_EMAIL,
    STREAM_ACTIVITY,
    STREAM_NOTIFICATION,
    ActivityResource,
    ActivitySeed,
)
from activityhub.infrastructure.repositories import FollowRepository, MembershipRepository

from .registry import ActivityRegistry, ActivityTypeDefinition
from .seeds import user_id_of

CONTENT_CREATE = "content-create"
CONTENT_UPDATE = "content-update"
DISCUSSION_CREATE = "discussion-create"
FOLLOWING_FOLLOW = "following-follow"

VERB_CREATE = "create"
VERB_UPDATE = "update"
VERB_FOLLOW = "follow"


def _actor(seed: ActivitySeed) -> set[int]:
    user_id = user_id_of(seed.actor)
    return {user_id} if user_id is not None else set()


def _members(session: Session, resource: ActivityResource) -> set[int]:
    return MembershipRepository(session).list_members(resource)


def _actor_followers(session: Session, seed: ActivitySeed) -> set[int]:
    user_id = user_id_of(seed.actor)
    if user_id is None:
        return set()
    return FollowRepository(session).list_followers(user_id)


def resource_activity_recipients(session: Session, seed: ActivitySeed) -> Iterable[int]:
    """Actor, members of the object and the actor's followers."""

    return _actor(seed) | _members(session, seed.object) | _actor_followers(session, seed)


def resource_update_recipients(session: Session, seed: ActivitySeed) -> Iterable[int]:
    """Actor and members of the updated object."""

    return _actor(seed) | _members(session, seed.object)


def resource_member_recipients(session: Session, seed: ActivitySeed) -> Iterable[int]:
    return _members(session, seed.object)


def follow_activity_recipients(session: Session, seed: ActivitySeed) -> Iterable[int]:
    """The follower, the followed user and the follower's own followers."""

    recipients = _actor(seed) | _actor_followers(session, seed)
    followed = user_id_of(seed.object)
    if followed is not None:
        recipients.add(followed)
    return recipients


def follow_notification_recipients(session: Session, seed: ActivitySeed) -> Iterable[int]:
    followed = user_id_of(seed.object)
    return {followed} if followed is not None else set()


def register_default_activity_types(registry: ActivityRegistry) -> ActivityRegistry:
    registry.register(
        ActivityTypeDefinition(
            activity_type=CONTENT_CREATE,
            streams={
                STREAM_ACTIVITY: resource_activity_recipients,
                STREAM_NOTIFICATION: resource_member_recipients,
            },
            effects=(EFFECT_EMAIL,),
        )
    )
    registry.register(
        ActivityTypeDefinition(
            activity_type=CONTENT_UPDATE,
            streams={
                STREAM_ACTIVITY: resource_update_recipients,
                STREAM_NOTIFICATION: resource_member_recipients,
            },
            effects=(EFFECT_EMAIL,),
        )
    )
    registry.register(
        ActivityTypeDefinition(
            activity_type=DISCUSSION_CREATE,
            streams={
                STREAM_ACTIVITY: resource_activity_recipients,
                STREAM_NOTIFICATION: resource_member_recipients,
            },
            effects=(EFFECT_EMAIL,),
        )
    )
    registry.register(
        ActivityTypeDefinition(
            activity_type=FOLLOWING_FOLLOW,
            streams={
                STREAM_ACTIVITY: follow_activity_recipients,
                STREAM_NOTIFICATION: follow_notification_recipients,
            },
            effects=(EFFECT_EMAIL,),
        )
    )
    return registry


__all__ = [
    "CONTENT_CREATE",
    "CONTENT_UPDATE",
    "DISCUSSION_CREATE",
    "FOLLOWING_FOLLOW",
    "VERB_CREATE",
    "VERB_FOLLOW",
    "VERB_UPDATE",
    "register_default_activity_types",
]
