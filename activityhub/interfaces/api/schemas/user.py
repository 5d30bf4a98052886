"""User schemas."""

from pydantic import BaseModel, ConfigDict, Field


class MeRead(BaseModel):
    id: int
    name: str
    email: str | None = None
    email_preference: str = Field(..., alias="emailPreference")
    notifications_unread: int = Field(..., alias="notificationsUnread")
    notifications_last_read: int | None = Field(default=None, alias="notificationsLastRead")

    model_config = ConfigDict(populate_by_name=True)


__all__ = ["MeRead"]
