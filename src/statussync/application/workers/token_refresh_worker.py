"""Token Refresh Worker - renews Spotify tokens before they expire.

Runs TokenRefreshService.refresh_expiring() right after start and then every
``interval_seconds``. Same loop shape as the StatusSyncWorker: sleep after the
cycle, stop() waits for a running cycle instead of cancelling it.
"""

import asyncio
import contextlib
import logging
import time
from datetime import UTC, datetime
from typing import Any

from statussync.application.services import RefreshReport, TokenRefreshService
from statussync.infrastructure.observability import (
    log_operation,
    log_worker_health,
    set_correlation_id,
)

logger = logging.getLogger(__name__)


class TokenRefreshWorker:
    """Background worker for proactive token refresh."""

    def __init__(
        self,
        service: TokenRefreshService,
        interval_seconds: float = 900.0,
        shutdown_timeout: float = 15.0,
    ) -> None:
        """Initialize the worker.

        Args:
            service: Refresh logic
            interval_seconds: Pause between cycles (default 15 minutes)
            shutdown_timeout: Seconds stop() waits for an in-flight cycle
        """
        self._service = service
        self.interval_seconds = interval_seconds
        self._shutdown_timeout = shutdown_timeout

        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()

        self._cycles_completed = 0
        self._errors_total = 0
        self._start_time = time.time()
        self._last_run_at: datetime | None = None
        self._last_report: RefreshReport | None = None

    async def start(self) -> None:
        """Start the background loop. Safe to call twice."""
        if self._running:
            logger.warning("token_refresh.already_running")
            return

        self._running = True
        self._stop_event.clear()
        self._start_time = time.time()
        self._task = asyncio.create_task(self._run_loop(), name="token_refresh")
        logger.info(
            "worker.started",
            extra={"worker": "token_refresh", "interval_seconds": self.interval_seconds},
        )

    async def stop(self) -> None:
        """Stop the loop, letting a running cycle finish first."""
        self._running = False
        self._stop_event.set()

        if self._task:
            _, pending = await asyncio.wait({self._task}, timeout=self._shutdown_timeout)
            if pending:
                logger.warning(
                    "token_refresh.stop.timeout",
                    extra={"shutdown_timeout": self._shutdown_timeout},
                )
                self._task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._task
            self._task = None

        logger.info(
            "worker.stopped",
            extra={
                "worker": "token_refresh",
                "cycles_completed": self._cycles_completed,
                "errors_total": self._errors_total,
                "uptime_seconds": int(time.time() - self._start_time),
            },
        )

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except Exception:
                # log_operation already logged token_refresh.cycle.failed
                self._errors_total += 1

            log_worker_health(
                logger,
                "token_refresh",
                self._cycles_completed,
                self._errors_total,
                time.time() - self._start_time,
            )

            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)

    async def run_once(self) -> RefreshReport:
        """Run one refresh cycle.

        Returns:
            RefreshReport of the cycle

        Raises:
            Exception: Only if the due users cannot be listed
        """
        set_correlation_id()
        async with log_operation(logger, "token_refresh.cycle"):
            report = await self._service.refresh_expiring()

        self._cycles_completed += 1
        self._errors_total += len(report.failed)
        self._last_run_at = datetime.now(UTC)
        self._last_report = report

        if report.total:
            logger.info(
                "token_refresh.cycle.summary",
                extra={
                    "refreshed": len(report.refreshed),
                    "revoked": len(report.revoked),
                    "failed": len(report.failed),
                },
            )
        return report

    @property
    def is_running(self) -> bool:
        """Check if worker is currently running."""
        return self._running

    def get_status(self) -> dict[str, Any]:
        """Get current worker status."""
        last = self._last_report
        return {
            "running": self._running,
            "interval_seconds": self.interval_seconds,
            "cycles_completed": self._cycles_completed,
            "errors_total": self._errors_total,
            "last_run_at": self._last_run_at.isoformat() if self._last_run_at else None,
            "last_refreshed": len(last.refreshed) if last else 0,
            "last_revoked": len(last.revoked) if last else 0,
            "last_failed": sorted(last.failed) if last else [],
        }
