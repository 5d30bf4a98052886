"""Domain entity representing a user."""

from dataclasses import dataclass
from datetime import datetime

EMAIL_PREFERENCE_IMMEDIATE = "immediate"
EMAIL_PREFERENCE_NEVER = "never"
EMAIL_PREFERENCES = (EMAIL_PREFERENCE_IMMEDIATE, EMAIL_PREFERENCE_NEVER)


@dataclass
class User:
    """Core attributes describing a platform user."""

    id: int | None
    name: str
    email: str | None
    email_preference: str
    is_active: bool
    is_global_admin: bool
    created_at: datetime | None

    def wants_immediate_email(self) -> bool:
        """Return ``True`` when activity emails should be sent right away."""

        return bool(self.email) and self.email_preference == EMAIL_PREFERENCE_IMMEDIATE
