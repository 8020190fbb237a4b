# Hey future me - the orchestrator owns the start/stop ORDER of the background workers.
#
# The token refresh worker registers with a lower priority than the status sync
# worker, so tokens are renewed before the first sync tick reads them. Shutdown
# runs in reverse: the sync loop stops first, then the refresh loop.
#
# USAGE:
#   orchestrator = WorkerOrchestrator()
#   orchestrator.register(name="token_refresh", worker=token_worker, priority=10)
#   orchestrator.register(name="status_sync", worker=sync_worker, priority=20,
#                         depends_on=["token_refresh"])
#   await orchestrator.start_all()
#   ...
#   await orchestrator.stop_all()
"""Centralized orchestrator for the background workers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker lifecycle states."""

    REGISTERED = "registered"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


@runtime_checkable
class Worker(Protocol):
    """Protocol for workers managed by the orchestrator."""

    async def start(self) -> None:
        """Start the worker."""
        ...

    async def stop(self) -> None:
        """Stop the worker gracefully."""
        ...

    def get_status(self) -> dict[str, Any]:
        """Get worker status information."""
        ...


@dataclass
class WorkerInfo:
    """Information about a registered worker."""

    worker: Worker
    name: str
    priority: int
    required: bool = True  # If True, failure stops startup
    depends_on: list[str] = field(default_factory=list)
    state: WorkerState = WorkerState.REGISTERED
    started_at: datetime | None = None
    stopped_at: datetime | None = None
    error: str | None = None


@dataclass
class WorkerOrchestrator:
    """Starts workers in priority order and stops them in reverse."""

    shutdown_timeout: float = 20.0  # Per worker; workers have their own inner timeout
    startup_timeout: float = 30.0

    _workers: dict[str, WorkerInfo] = field(default_factory=dict)
    _started: bool = False
    _shutting_down: bool = False

    def register(
        self,
        *,
        name: str,
        worker: Worker,
        priority: int = 50,
        required: bool = True,
        depends_on: list[str] | None = None,
    ) -> None:
        """Register a worker.

        Args:
            name: Unique name for the worker (used for dependencies)
            worker: The worker instance (must implement Worker protocol)
            priority: Start priority (lower = starts first)
            required: If True, a failed start makes start_all() return False
            depends_on: Worker names that must be running first

        Raises:
            ValueError: A dependency is unknown
        """
        deps = depends_on or []
        unknown = [dep for dep in deps if dep not in self._workers]
        if unknown:
            raise ValueError(f"Worker '{name}' depends on unregistered workers: {unknown}")

        if name in self._workers:
            logger.warning("orchestrator.worker.replaced", extra={"worker": name})

        self._workers[name] = WorkerInfo(
            worker=worker,
            name=name,
            priority=priority,
            required=required,
            depends_on=deps,
        )
        logger.debug(
            "orchestrator.worker.registered",
            extra={"worker": name, "priority": priority, "required": required},
        )

    async def start_all(self) -> bool:
        """Start all registered workers in priority order.

        Returns:
            True if all required workers started successfully
        """
        if self._started:
            logger.warning("orchestrator.already_started")
            return True

        success = True
        started_count = 0

        for info in sorted(self._workers.values(), key=lambda w: w.priority):
            unmet_deps = [
                dep for dep in info.depends_on if self._workers[dep].state != WorkerState.RUNNING
            ]
            if unmet_deps:
                info.state = WorkerState.FAILED
                info.error = f"Unmet dependencies: {unmet_deps}"
                logger.error(
                    "orchestrator.worker.unmet_dependencies",
                    extra={"worker": info.name, "depends_on": unmet_deps},
                )
                if info.required:
                    success = False
                    break
                continue

            info.state = WorkerState.STARTING
            try:
                await asyncio.wait_for(info.worker.start(), timeout=self.startup_timeout)
            except Exception as e:
                info.state = WorkerState.FAILED
                info.error = str(e) or type(e).__name__
                logger.error(
                    "orchestrator.worker.start_failed",
                    extra={"worker": info.name, "error_type": type(e).__name__},
                    exc_info=True,
                )
                if info.required:
                    success = False
                    break
                continue

            info.state = WorkerState.RUNNING
            info.started_at = datetime.now(UTC)
            info.error = None
            started_count += 1

        self._started = True
        logger.info(
            "orchestrator.started",
            extra={"started": started_count, "total": len(self._workers), "success": success},
        )
        return success

    async def stop_all(self) -> None:
        """Stop all running workers in reverse priority order."""
        if self._shutting_down:
            logger.warning("orchestrator.already_stopping")
            return

        self._shutting_down = True
        stopped_count = 0

        for info in sorted(self._workers.values(), key=lambda w: w.priority, reverse=True):
            if info.state not in (WorkerState.RUNNING, WorkerState.STARTING):
                continue

            info.state = WorkerState.STOPPING
            try:
                await asyncio.wait_for(info.worker.stop(), timeout=self.shutdown_timeout)
            except TimeoutError:
                # Forced stop counts as stopped - nothing else we can do here
                logger.warning("orchestrator.worker.stop_timeout", extra={"worker": info.name})
            except Exception as e:
                info.state = WorkerState.FAILED
                info.error = str(e) or type(e).__name__
                logger.error(
                    "orchestrator.worker.stop_failed",
                    extra={"worker": info.name, "error_type": type(e).__name__},
                    exc_info=True,
                )
                continue

            info.state = WorkerState.STOPPED
            info.stopped_at = datetime.now(UTC)
            stopped_count += 1

        self._started = False
        self._shutting_down = False
        logger.info("orchestrator.stopped", extra={"stopped": stopped_count})

    def get_status(self) -> dict[str, Any]:
        """Get status of all workers for the API.

        Returns:
            Dict with overall status and per-worker details
        """
        workers_dict: dict[str, dict[str, Any]] = {}

        for name, info in self._workers.items():
            workers_dict[name] = {
                "name": name,
                "priority": info.priority,
                "state": info.state.value,
                "required": info.required,
                "started_at": info.started_at.isoformat() if info.started_at else None,
                "stopped_at": info.stopped_at.isoformat() if info.stopped_at else None,
                "error": info.error,
                "depends_on": info.depends_on,
                **info.worker.get_status(),
            }

        by_state = {state.value: 0 for state in WorkerState}
        for w in workers_dict.values():
            by_state[w["state"]] += 1

        return {
            "total_workers": len(self._workers),
            "started": self._started,
            "shutting_down": self._shutting_down,
            "healthy": self.is_healthy(),
            "by_state": by_state,
            "workers": workers_dict,
        }

    def get_worker(self, name: str) -> Worker | None:
        """Get a specific worker by name."""
        info = self._workers.get(name)
        return info.worker if info else None

    def is_healthy(self) -> bool:
        """Check if all required workers are running."""
        return all(
            info.state == WorkerState.RUNNING
            for info in self._workers.values()
            if info.required
        )
