"""HTTP surface: operational endpoints only (health probes and worker status)."""

from fastapi import FastAPI

from statussync import __version__
from statussync.api.routers import api_router, health
from statussync.config import Settings
from statussync.infrastructure.lifecycle import lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings to use instead of the environment (tests)

    Returns:
        Configured FastAPI app; workers start with its lifespan
    """
    app = FastAPI(title="statussync", version=__version__, lifespan=lifespan)
    if settings is not None:
        app.state.settings = settings

    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(api_router, prefix="/api")
    return app


__all__ = ["create_app"]
