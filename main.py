from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from activityhub.application.use_cases.activity import build_pipeline
from activityhub.config import get_settings
from activityhub.infrastructure.database import SessionLocal, engine, initialize_database
from activityhub.infrastructure.pubsub import create_transport
from activityhub.interfaces.api.routes import register_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the database and the activity pipeline, release them on shutdown."""

    settings = get_settings()
    initialize_database()
    transport = create_transport(settings.redis_url)
    pipeline = build_pipeline(settings, SessionLocal, transport)
    app.state.activity_pipeline = pipeline
    pipeline.scheduler.start()
    try:
        yield
    finally:
        await pipeline.scheduler.stop()
        transport.close()
        app.state.activity_pipeline = None
        engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(title="activityhub", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:4200"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
