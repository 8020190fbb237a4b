"""Status Sync Worker - mirrors Spotify playback into Slack statuses.

Hey future me - this is the hot loop of the whole app. Every tick:

1. Fresh correlation id (every log line of the tick carries it)
2. Ask the store who is connected (Slack token AND Spotify linked)
3. Run StatusSyncService.sync_user() for each of them, at most
   ``max_concurrency`` at a time, never two at once for the SAME user
4. Collect a SyncTickReport - one result per user, failures included
5. Sleep ``interval_seconds`` AFTER the tick finished

Step 5 is the important one: a slow tick delays the next one, it never overlaps
it. If Spotify is slow and a tick takes 8s, the next one starts 5s after that.

stop() does NOT cancel a running tick. It sets the stop event (which wakes the
sleep right away) and waits up to ``shutdown_timeout`` for the current tick to
finish, so no user is left with a Slack write done and the store write missing.
Only if the tick hangs longer than that do we cancel it.
"""

import asyncio
import contextlib
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from statussync.application.services import (
    StatusSyncService,
    SyncOutcome,
    UserSyncResult,
)
from statussync.domain.ports import ICredentialStore
from statussync.infrastructure.observability import log_worker_health, set_correlation_id

logger = logging.getLogger(__name__)


@dataclass
class SyncTickReport:
    """Per-user results of one sync tick."""

    tick_id: str
    started_at: datetime
    results: list[UserSyncResult] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def counts(self) -> dict[str, int]:
        """Number of users per outcome."""
        counter = Counter(result.outcome.value for result in self.results)
        return {outcome.value: counter.get(outcome.value, 0) for outcome in SyncOutcome}

    @property
    def failed_users(self) -> list[str]:
        """User ids whose sync failed this tick."""
        return [r.user_id for r in self.results if r.outcome == SyncOutcome.FAILED]

    def summary(self) -> dict[str, Any]:
        """Compact dict for logs and the status endpoint."""
        return {
            "tick_id": self.tick_id,
            "started_at": self.started_at.isoformat(),
            "duration_ms": self.duration_ms,
            "users": len(self.results),
            **self.counts,
        }


class StatusSyncWorker:
    """Background worker that runs the status sync on a fixed interval."""

    def __init__(
        self,
        service: StatusSyncService,
        store: ICredentialStore,
        interval_seconds: float = 5.0,
        max_concurrency: int = 4,
        shutdown_timeout: float = 15.0,
        health_log_every: int = 120,
    ) -> None:
        """Initialize the worker.

        Args:
            service: Per-user sync logic
            store: Credential store (source of the connected users)
            interval_seconds: Pause between the end of one tick and the next
            max_concurrency: Users processed in parallel within a tick
            shutdown_timeout: Seconds stop() waits for an in-flight tick
            health_log_every: Log worker.health every N ticks (120 x 5s = 10 min)
        """
        self._service = service
        self._store = store
        self.interval_seconds = interval_seconds
        self.max_concurrency = max_concurrency
        self._shutdown_timeout = shutdown_timeout
        self._health_log_every = health_log_every

        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._user_locks: dict[str, asyncio.Lock] = {}

        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()

        self._cycles_completed = 0
        self._errors_total = 0
        self._start_time = time.time()
        self._last_report: SyncTickReport | None = None

    async def start(self) -> None:
        """Start the background loop. Safe to call twice."""
        if self._running:
            logger.warning("status_sync.already_running")
            return

        self._running = True
        self._stop_event.clear()
        self._start_time = time.time()
        self._task = asyncio.create_task(self._run_loop(), name="status_sync")
        logger.info(
            "worker.started",
            extra={
                "worker": "status_sync",
                "interval_seconds": self.interval_seconds,
                "max_concurrency": self.max_concurrency,
            },
        )

    async def stop(self) -> None:
        """Stop the loop, letting the in-flight tick finish first."""
        self._running = False
        self._stop_event.set()

        if self._task:
            _, pending = await asyncio.wait({self._task}, timeout=self._shutdown_timeout)
            if pending:
                logger.warning(
                    "status_sync.stop.timeout",
                    extra={"shutdown_timeout": self._shutdown_timeout},
                )
                self._task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._task
            self._task = None

        logger.info(
            "worker.stopped",
            extra={
                "worker": "status_sync",
                "cycles_completed": self._cycles_completed,
                "errors_total": self._errors_total,
                "uptime_seconds": int(time.time() - self._start_time),
            },
        )

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                # Store unreachable etc. - the tick is lost, the loop is not
                self._errors_total += 1
                logger.error(
                    "status_sync.tick.failed",
                    extra={"error_type": type(e).__name__},
                    exc_info=True,
                )

            if self._cycles_completed and self._cycles_completed % self._health_log_every == 0:
                log_worker_health(
                    logger,
                    "status_sync",
                    self._cycles_completed,
                    self._errors_total,
                    time.time() - self._start_time,
                    extra_stats=self._last_report.counts if self._last_report else None,
                )

            # Sleep AFTER the tick; stop() wakes us immediately
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)

    async def run_once(self) -> SyncTickReport:
        """Run a single tick over all connected users.

        Returns:
            SyncTickReport with exactly one result per connected user

        Raises:
            Exception: Only if the list of connected users cannot be loaded
        """
        tick_id = set_correlation_id()
        report = SyncTickReport(tick_id=tick_id, started_at=datetime.now(UTC))
        start = time.monotonic()

        user_ids = await self._store.list_connected_users()
        report.results = list(
            await asyncio.gather(*(self._sync_isolated(user_id) for user_id in user_ids))
        )
        report.duration_ms = int((time.monotonic() - start) * 1000)

        self._prune_locks(set(user_ids))
        self._cycles_completed += 1
        self._last_report = report

        if report.failed_users:
            self._errors_total += len(report.failed_users)
        logger.debug("status_sync.tick.completed", extra=report.summary())
        return report

    async def _sync_isolated(self, user_id: str) -> UserSyncResult:
        """Sync one user; any exception becomes a FAILED result for that user only."""
        lock = self._user_locks.setdefault(user_id, asyncio.Lock())
        async with self._semaphore, lock:
            try:
                return await self._service.sync_user(user_id)
            except Exception as e:
                logger.error(
                    "status_sync.user.error",
                    extra={"user_id": user_id, "error_type": type(e).__name__},
                    exc_info=True,
                )
                return UserSyncResult(
                    user_id,
                    SyncOutcome.FAILED,
                    error=f"{type(e).__name__}: {e}",
                )

    def _prune_locks(self, active: set[str]) -> None:
        # Disconnected users would otherwise keep their lock forever
        for user_id in list(self._user_locks):
            if user_id not in active and not self._user_locks[user_id].locked():
                del self._user_locks[user_id]

    @property
    def is_running(self) -> bool:
        """Check if worker is currently running."""
        return self._running

    def get_status(self) -> dict[str, Any]:
        """Get current worker status and the last tick summary."""
        return {
            "running": self._running,
            "interval_seconds": self.interval_seconds,
            "max_concurrency": self.max_concurrency,
            "cycles_completed": self._cycles_completed,
            "errors_total": self._errors_total,
            "last_tick": self._last_report.summary() if self._last_report else None,
        }
