"""Pydantic schemas for activity feed endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ActivityRead(BaseModel):
    id: str = Field(..., description="Identifier of the aggregated activity")
    activity_type: str = Field(..., alias="activityType")
    verb: str
    published: int = Field(..., description="Time of the latest activity in the aggregate (ms)")
    actor: dict[str, Any]
    object: dict[str, Any]
    target: dict[str, Any] | None = None

    model_config = ConfigDict(populate_by_name=True)


class FeedPageRead(BaseModel):
    items: list[ActivityRead]
    next_token: str | None = Field(default=None, alias="nextToken")

    model_config = ConfigDict(populate_by_name=True)


class MarkNotificationsReadResponse(BaseModel):
    last_read_time: int | None = Field(..., alias="lastReadTime")

    model_config = ConfigDict(populate_by_name=True)


class CollectionRequestedResponse(BaseModel):
    requested: bool = True


__all__ = [
    "ActivityRead",
    "CollectionRequestedResponse",
    "FeedPageRead",
    "MarkNotificationsReadResponse",
]
