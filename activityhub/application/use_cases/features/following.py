"""Use cases for following other users."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from activityhub.infrastructure.repositories import FollowRepository

from ..activity import (
    FOLLOWING_FOLLOW,
    VERB_FOLLOW,
    ActivityRouter,
    RoutingResult,
    create_seed,
    user_resource,
)

logger = logging.getLogger(__name__)


def follow_user(
    session: Session,
    router: ActivityRouter,
    *,
    follower_id: int,
    followed_id: int,
    published: int | None = None,
) -> RoutingResult | None:
    """Follow ``followed_id``; return ``None`` when the follow already existed."""

    if follower_id == followed_id:
        raise ValueError("Users cannot follow themselves")
    if not FollowRepository(session).follow(follower_id, followed_id):
        logger.debug("User %s already follows user %s", follower_id, followed_id)
        return None
    seed = create_seed(
        FOLLOWING_FOLLOW,
        VERB_FOLLOW,
        user_resource(follower_id),
        user_resource(followed_id),
        published=published,
    )
    return router.route_activity(seed)


def unfollow_user(session: Session, *, follower_id: int, followed_id: int) -> bool:
    return FollowRepository(session).unfollow(follower_id, followed_id)


__all__ = ["follow_user", "unfollow_user"]
