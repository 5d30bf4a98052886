"""Platform features that produce activities."""

from .content import create_content, create_discussion, update_content
from .following import follow_user, unfollow_user
from .users import create_user, get_user, update_email_preference

__all__ = [
    "create_content",
    "create_discussion",
    "create_user",
    "follow_user",
    "get_user",
    "unfollow_user",
    "update_content",
    "update_email_preference",
]
