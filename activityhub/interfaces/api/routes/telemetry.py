"""Routing and collection counters of this node."""

from fastapi import APIRouter, Depends, HTTPException, status

from activityhub.application.use_cases.activity import ActivityPipeline
from activityhub.domain.entities import User
from activityhub.interfaces.api.dependencies import get_activity_pipeline, get_current_active_user
from activityhub.interfaces.api.schemas import TelemetryRead

router = APIRouter(prefix="/telemetry", tags=["telemetry"])


@router.get("", response_model=TelemetryRead)
def read_telemetry(
    pipeline: ActivityPipeline = Depends(get_activity_pipeline),
    current_user: User = Depends(get_current_active_user),
) -> TelemetryRead:
    """Return the counters collected since this node started."""

    if not current_user.is_global_admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Only global administrators are allowed to retrieve telemetry data",
        )
    return TelemetryRead(**pipeline.get_telemetry())


__all__ = ["router"]
