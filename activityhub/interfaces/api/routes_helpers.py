"""Helper utilities shared across API route handlers."""

from fastapi import HTTPException

from activityhub.domain.entities import FeedPage
from activityhub.domain.errors import ActivityError
from activityhub.interfaces.api.schemas import ActivityRead, FeedPageRead


def activity_error_to_http(exc: ActivityError) -> HTTPException:
    """Return the HTTP error reported to callers for ``exc``."""

    return HTTPException(status_code=exc.code, detail=exc.msg)


def feed_page_to_schema(page: FeedPage) -> FeedPageRead:
    return FeedPageRead(
        items=[ActivityRead.model_validate(entry.activity.to_activity()) for entry in page.items],
        next_token=page.next_token,
    )
