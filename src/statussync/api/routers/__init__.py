"""API routers."""

from fastapi import APIRouter

from statussync.api.routers import health, workers

# Mounted under /api in create_app(); the health router is mounted at the root
api_router = APIRouter()
api_router.include_router(workers.router, prefix="/workers", tags=["Workers"])

__all__ = ["api_router", "health", "workers"]
