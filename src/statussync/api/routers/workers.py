"""Background worker status API endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request, status

router = APIRouter()


@router.get("/status")
async def get_workers_status(request: Request) -> dict[str, Any]:
    """Full orchestrator status: per-worker state, counters and last tick summary."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Workers not initialized",
        )
    return orchestrator.get_status()
