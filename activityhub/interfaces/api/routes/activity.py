"""Endpoints serving the activity and notification feeds of the current user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from activityhub.application.use_cases.activity import ActivityPipeline
from activityhub.domain.entities import User
from activityhub.domain.errors import ActivityError
from activityhub.interfaces.api.dependencies import (
    get_activity_pipeline,
    get_current_active_user,
    require_global_admin,
)
from activityhub.interfaces.api.routes_helpers import activity_error_to_http, feed_page_to_schema
from activityhub.interfaces.api.schemas import (
    CollectionRequestedResponse,
    FeedPageRead,
    MarkNotificationsReadResponse,
)

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("", response_model=FeedPageRead)
def read_activity_stream(
    start: str | None = Query(None, description="Paging token returned as nextToken"),
    limit: int | None = Query(None, ge=1, description="Maximum number of activities"),
    pipeline: ActivityPipeline = Depends(get_activity_pipeline),
    current_user: User = Depends(get_current_active_user),
) -> FeedPageRead:
    """Return the activity stream of the authenticated user, most recent first."""

    try:
        page = pipeline.get_feed(current_user.id, start=start, limit=limit)
    except ActivityError as exc:
        raise activity_error_to_http(exc) from exc
    return feed_page_to_schema(page)


@router.get("/notifications", response_model=FeedPageRead)
def read_notification_stream(
    start: str | None = Query(None, description="Paging token returned as nextToken"),
    limit: int | None = Query(None, ge=1, description="Maximum number of notifications"),
    pipeline: ActivityPipeline = Depends(get_activity_pipeline),
    current_user: User = Depends(get_current_active_user),
) -> FeedPageRead:
    try:
        page = pipeline.get_notification_feed(current_user.id, start=start, limit=limit)
    except ActivityError as exc:
        raise activity_error_to_http(exc) from exc
    return feed_page_to_schema(page)


@router.post(
    "/notifications/markNotificationsRead",
    response_model=MarkNotificationsReadResponse,
)
def mark_notifications_read(
    pipeline: ActivityPipeline = Depends(get_activity_pipeline),
    current_user: User = Depends(get_current_active_user),
) -> MarkNotificationsReadResponse:
    """Reset the unread counter of the authenticated user."""

    try:
        state = pipeline.mark_notifications_read(current_user.id)
    except ActivityError as exc:
        raise activity_error_to_http(exc) from exc
    return MarkNotificationsReadResponse(last_read_time=state.last_read_time)


@router.post(
    "/collect",
    response_model=CollectionRequestedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def request_collection(
    pipeline: ActivityPipeline = Depends(get_activity_pipeline),
    _: User = Depends(require_global_admin),
) -> CollectionRequestedResponse:
    """Ask every node to run a collection cycle."""

    try:
        pipeline.request_collection()
    except ActivityError as exc:
        raise activity_error_to_http(exc) from exc
    return CollectionRequestedResponse()


__all__ = ["router"]
