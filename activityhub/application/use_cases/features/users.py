"""Use cases for platform users."""

from __future__ import annotations

from sqlalchemy.orm import Session

from activityhub.domain.entities import EMAIL_PREFERENCE_IMMEDIATE, User
from activityhub.infrastructure.repositories import UserRepository


def create_user(
    session: Session,
    *,
    name: str,
    email: str | None = None,
    email_preference: str = EMAIL_PREFERENCE_IMMEDIATE,
    is_global_admin: bool = False,
) -> User:
    user = User(
        id=None,
        name=name,
        email=email,
        email_preference=email_preference,
        is_active=True,
        is_global_admin=is_global_admin,
        created_at=None,
    )
    return UserRepository(session).create(user)


def get_user(session: Session, user_id: int) -> User:
    user = UserRepository(session).get(user_id)
    if user is None:
        raise ValueError("User not found")
    return user


def update_email_preference(session: Session, user_id: int, email_preference: str) -> User:
    """Change how ``user_id`` wants to receive activity emails."""

    return UserRepository(session).update_email_preference(user_id, email_preference)


__all__ = ["create_user", "get_user", "update_email_preference"]
