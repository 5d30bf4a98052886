"""Persistence layer for user data."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy.orm import Session

from activityhub.domain.entities import EMAIL_PREFERENCES, User
from activityhub.infrastructure.models import UserModel


class UserRepository:
    """Provide CRUD operations for user entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def list_by_ids(self, user_ids: Iterable[int]) -> Sequence[User]:
        ids = sorted({user_id for user_id in user_ids if user_id is not None})
        if not ids:
            return []
        query = self.session.query(UserModel).filter(UserModel.id.in_(ids))
        return [self._to_entity(model) for model in query.all()]

    def create(self, user: User) -> User:
        model = UserModel()
        self._apply_entity_to_model(model, user)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def update_email_preference(self, user_id: int, email_preference: str) -> User:
        if email_preference not in EMAIL_PREFERENCES:
            raise ValueError(f"Unknown email preference '{email_preference}'")
        model = self.session.get(UserModel, user_id)
        if model is None:
            msg = f"User with id {user_id} not found"
            raise ValueError(msg)
        model.email_preference = email_preference
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _apply_entity_to_model(model: UserModel, user: User) -> None:
        model.name = user.name
        model.email = user.email
        model.email_preference = user.email_preference
        model.is_active = user.is_active
        model.is_global_admin = user.is_global_admin

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            email_preference=model.email_preference,
            is_active=model.is_active,
            is_global_admin=bool(model.is_global_admin),
            created_at=model.created_at,
        )


__all__ = ["UserRepository"]
