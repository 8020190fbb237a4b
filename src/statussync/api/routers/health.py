# Hey future me - these are the Docker/Kubernetes probes, nothing else.
#
# - /health/live   -> process is up (no dependency checks, must stay cheap)
# - /health/ready  -> database answers AND all required workers are running
#
# Docker HEALTHCHECK: curl -f http://localhost:8000/health/live || exit 1
"""Health check endpoints for Docker/Kubernetes probes."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from statussync import __version__

router = APIRouter()


class LivenessStatus(BaseModel):
    """Simple liveness probe response."""

    status: str = Field(description="alive")
    timestamp: str = Field(description="ISO timestamp")
    version: str = Field(default=__version__, description="Application version")


class ReadinessStatus(BaseModel):
    """Readiness probe response."""

    status: str = Field(description="ready or not_ready")
    timestamp: str = Field(description="ISO timestamp")
    database: bool = Field(description="Database connection OK")
    workers: bool = Field(description="Required workers running")
    uptime_seconds: float | None = Field(default=None, description="Seconds since startup")


@router.get("/live", response_model=LivenessStatus)
async def liveness_probe() -> LivenessStatus:
    """Liveness probe: 200 while the process is running."""
    return LivenessStatus(status="alive", timestamp=datetime.now(UTC).isoformat())


@router.get("/ready", response_model=ReadinessStatus)
async def readiness_probe(request: Request) -> JSONResponse:
    """Readiness probe.

    Returns 200 when the database answers and every required worker runs,
    503 otherwise.
    """
    db = getattr(request.app.state, "db", None)
    db_ok = db is not None and await db.ping()

    orchestrator = getattr(request.app.state, "orchestrator", None)
    workers_ok = orchestrator is not None and orchestrator.is_healthy()

    uptime = None
    startup_time = getattr(request.app.state, "startup_time", None)
    if startup_time is not None:
        uptime = (datetime.now(UTC) - startup_time).total_seconds()

    is_ready = db_ok and workers_ok
    response = ReadinessStatus(
        status="ready" if is_ready else "not_ready",
        timestamp=datetime.now(UTC).isoformat(),
        database=db_ok,
        workers=workers_ok,
        uptime_seconds=uptime,
    )
    status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=status_code)
