from fastapi import FastAPI

from .activity import router as activity_router
from .notifications import router as notifications_router
from .telemetry import router as telemetry_router
from .users import router as users_router


def register_routes(app: FastAPI) -> None:
    """Register every API router on the FastAPI application."""

    app.include_router(activity_router)
    app.include_router(users_router)
    app.include_router(notifications_router)
    app.include_router(telemetry_router)
