"""Routes describing the authenticated user."""

from fastapi import APIRouter, Depends

from activityhub.application.use_cases.activity import ActivityPipeline
from activityhub.domain.entities import User
from activityhub.domain.errors import ActivityError
from activityhub.interfaces.api.dependencies import get_activity_pipeline, get_current_active_user
from activityhub.interfaces.api.routes_helpers import activity_error_to_http
from activityhub.interfaces.api.schemas import MeRead

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=MeRead)
def read_me(
    pipeline: ActivityPipeline = Depends(get_activity_pipeline),
    current_user: User = Depends(get_current_active_user),
) -> MeRead:
    """Return the authenticated user and their notification counters."""

    try:
        state = pipeline.get_notification_state(current_user.id)
    except ActivityError as exc:
        raise activity_error_to_http(exc) from exc
    return MeRead(
        id=current_user.id,
        name=current_user.name,
        email=current_user.email,
        email_preference=current_user.email_preference,
        notifications_unread=state.unread_count,
        notifications_last_read=state.last_read_time,
    )


__all__ = ["router"]
