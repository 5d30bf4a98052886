"""Use cases for content items and discussions that are shared with users."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from activityhub.domain.entities import ActivityResource
from activityhub.infrastructure.models import ROLE_MANAGER, ROLE_MEMBER
from activityhub.infrastructure.repositories import MembershipRepository

from ..activity import (
    CONTENT_CREATE,
    CONTENT_UPDATE,
    DISCUSSION_CREATE,
    RESOURCE_CONTENT,
    RESOURCE_DISCUSSION,
    VERB_CREATE,
    VERB_UPDATE,
    ActivityRouter,
    RoutingResult,
    create_seed,
    user_resource,
)


def _share(
    session: Session,
    resource: ActivityResource,
    *,
    owner_id: int,
    member_ids: Iterable[int],
) -> None:
    repository = MembershipRepository(session)
    repository.set_members(resource, [owner_id], role=ROLE_MANAGER)
    members = set(member_ids) - {owner_id}
    repository.set_members(resource, members, role=ROLE_MEMBER)


def create_content(
    session: Session,
    router: ActivityRouter,
    *,
    actor_id: int,
    content_id: str,
    member_ids: Iterable[int] = (),
    published: int | None = None,
) -> RoutingResult:
    """Share a new content item with ``member_ids`` and announce it."""

    resource = ActivityResource(RESOURCE_CONTENT, str(content_id))
    _share(session, resource, owner_id=actor_id, member_ids=member_ids)
    seed = create_seed(
        CONTENT_CREATE,
        VERB_CREATE,
        user_resource(actor_id),
        resource,
        published=published,
    )
    return router.route_activity(seed)


def update_content(
    session: Session,
    router: ActivityRouter,
    *,
    actor_id: int,
    content_id: str,
    published: int | None = None,
) -> RoutingResult:
    seed = create_seed(
        CONTENT_UPDATE,
        VERB_UPDATE,
        user_resource(actor_id),
        ActivityResource(RESOURCE_CONTENT, str(content_id)),
        published=published,
    )
    return router.route_activity(seed)


def create_discussion(
    session: Session,
    router: ActivityRouter,
    *,
    actor_id: int,
    discussion_id: str,
    member_ids: Iterable[int] = (),
    published: int | None = None,
) -> RoutingResult:
    """Start a discussion with ``member_ids`` and announce it."""

    resource = ActivityResource(RESOURCE_DISCUSSION, str(discussion_id))
    _share(session, resource, owner_id=actor_id, member_ids=member_ids)
    seed = create_seed(
        DISCUSSION_CREATE,
        VERB_CREATE,
        user_resource(actor_id),
        resource,
        published=published,
    )
    return router.route_activity(seed)


__all__ = ["create_content", "create_discussion", "update_content"]
