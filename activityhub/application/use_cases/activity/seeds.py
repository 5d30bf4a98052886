"""Construction and validation of activity seeds."""

from __future__ import annotations

from typing import Callable

from activityhub.domain.entities import ActivityResource, ActivitySeed
from activityhub.domain.errors import InvalidSeedError
from activityhub.utils import now_in_epoch_millis

Clock = Callable[[], int]

RESOURCE_USER = "user"
RESOURCE_CONTENT = "content"
RESOURCE_DISCUSSION = "discussion"


def user_resource(user_id: int) -> ActivityResource:
    """Return the resource reference for a platform user."""

    return ActivityResource(RESOURCE_USER, str(user_id))


def user_id_of(resource: ActivityResource | None) -> int | None:
    """Return the numeric user id behind ``resource`` when it is a user."""

    if resource is None or resource.resource_type != RESOURCE_USER:
        return None
    try:
        return int(resource.resource_id)
    except (TypeError, ValueError):
        return None


def _validate_resource(resource: object, role: str, *, required: bool) -> None:
    if resource is None:
        if required:
            raise InvalidSeedError(f"An activity {role} must be provided")
        return
    if not isinstance(resource, ActivityResource):
        raise InvalidSeedError(f"The activity {role} must be a resource reference")
    if not resource.resource_type or not resource.resource_id:
        raise InvalidSeedError(f"The activity {role} must have a resource type and id")


def validate_seed(seed: object) -> ActivitySeed:
    """Return ``seed`` if it is well formed, raise :class:`InvalidSeedError` otherwise."""

    if not isinstance(seed, ActivitySeed):
        raise InvalidSeedError("An activity seed must be provided")
    if not seed.activity_type:
        raise InvalidSeedError("An activity type must be provided")
    if not seed.verb:
        raise InvalidSeedError("An activity verb must be provided")
    if isinstance(seed.published, bool) or not isinstance(seed.published, int) or seed.published < 0:
        raise InvalidSeedError("The published timestamp must be a non-negative integer")
    _validate_resource(seed.actor, "actor", required=True)
    _validate_resource(seed.object, "object", required=True)
    _validate_resource(seed.target, "target", required=False)
    return seed


def create_seed(
    activity_type: str,
    verb: str,
    actor: ActivityResource,
    object: ActivityResource,
    target: ActivityResource | None = None,
    *,
    published: int | None = None,
    clock: Clock = now_in_epoch_millis,
) -> ActivitySeed:
    """Build an immutable seed for one occurrence of an activity."""

    seed = ActivitySeed(
        activity_type=activity_type,
        verb=verb,
        published=clock() if published is None else published,
        actor=actor,
        object=object,
        target=target,
    )
    return validate_seed(seed)


__all__ = [
    "Clock",
    "RESOURCE_CONTENT",
    "RESOURCE_DISCUSSION",
    "RESOURCE_USER",
    "create_seed",
    "user_id_of",
    "user_resource",
    "validate_seed",
]
