"""Persistence helpers for resource memberships and follows."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from activityhub.domain.entities import ActivityResource
from activityhub.infrastructure.models import (
    ROLE_MEMBER,
    FollowModel,
    ResourceMembershipModel,
)


class MembershipRepository:
    """Record which users hold a role on a resource."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def set_members(
        self,
        resource: ActivityResource,
        user_ids: Iterable[int],
        *,
        role: str = ROLE_MEMBER,
    ) -> None:
        """Grant ``role`` on ``resource`` to ``user_ids``, updating existing roles."""

        ids = {user_id for user_id in user_ids if user_id}
        if not ids:
            return
        existing = {
            model.user_id: model
            for model in self.session.query(ResourceMembershipModel).filter(
                ResourceMembershipModel.resource_type == resource.resource_type,
                ResourceMembershipModel.resource_id == resource.resource_id,
                ResourceMembershipModel.user_id.in_(ids),
            )
        }
        for user_id in ids:
            model = existing.get(user_id)
            if model is None:
                model = ResourceMembershipModel(
                    resource_type=resource.resource_type,
                    resource_id=resource.resource_id,
                    user_id=user_id,
                )
            model.role = role
            self.session.add(model)
        self.session.commit()

    def list_members(
        self, resource: ActivityResource, *, role: str | None = None
    ) -> set[int]:
        query = self.session.query(ResourceMembershipModel.user_id).filter(
            ResourceMembershipModel.resource_type == resource.resource_type,
            ResourceMembershipModel.resource_id == resource.resource_id,
        )
        if role is not None:
            query = query.filter(ResourceMembershipModel.role == role)
        return {user_id for (user_id,) in query.all()}


class FollowRepository:
    """Record follower relationships between users."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def follow(self, follower_id: int, followed_id: int) -> bool:
        """Create the relationship and return ``False`` when it already existed."""

        if self.is_following(follower_id, followed_id):
            return False
        self.session.add(FollowModel(follower_id=follower_id, followed_id=followed_id))
        self.session.commit()
        return True

    def unfollow(self, follower_id: int, followed_id: int) -> bool:
        deleted = (
            self.session.query(FollowModel)
            .filter(
                FollowModel.follower_id == follower_id,
                FollowModel.followed_id == followed_id,
            )
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return bool(deleted)

    def is_following(self, follower_id: int, followed_id: int) -> bool:
        return (
            self.session.query(FollowModel.id)
            .filter(
                FollowModel.follower_id == follower_id,
                FollowModel.followed_id == followed_id,
            )
            .first()
            is not None
        )

    def list_followers(self, user_id: int) -> set[int]:
        query = self.session.query(FollowModel.follower_id).filter(
            FollowModel.followed_id == user_id
        )
        return {follower_id for (follower_id,) in query.all()}


__all__ = ["FollowRepository", "MembershipRepository"]
