"""Background workers."""

from statussync.application.workers.orchestrator import (
    Worker,
    WorkerInfo,
    WorkerOrchestrator,
    WorkerState,
)
from statussync.application.workers.status_sync_worker import (
    StatusSyncWorker,
    SyncTickReport,
)
from statussync.application.workers.token_refresh_worker import TokenRefreshWorker

__all__ = [
    "StatusSyncWorker",
    "SyncTickReport",
    "TokenRefreshWorker",
    "Worker",
    "WorkerInfo",
    "WorkerOrchestrator",
    "WorkerState",
]
