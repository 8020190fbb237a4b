"""Shared logging helpers for workers and services.

USAGE:
    logger = logging.getLogger(__name__)

    async with log_operation(logger, "token_refresh.cycle", users=3):
        await refresh()

    log_worker_health(logger, "status_sync", cycles_completed=10, errors_total=0,
                      uptime_seconds=3600)
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any


@asynccontextmanager
async def log_operation(
    logger: logging.Logger,
    operation: str,
    **context: Any,
) -> AsyncIterator[None]:
    """Log operation start/end with automatic timing.

    Logs:
    - {operation}.started with context fields
    - {operation}.completed with context + duration_ms
    - {operation}.failed with context + duration_ms + error details (if exception)

    Args:
        logger: Logger instance
        operation: Operation name (e.g., "token_refresh.cycle")
        **context: Additional fields to include in logs
    """
    start = time.monotonic()
    logger.info(f"{operation}.started", extra=context)

    try:
        yield
    except Exception as e:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.error(
            f"{operation}.failed",
            extra={
                **context,
                "duration_ms": duration_ms,
                "error": str(e),
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        raise

    duration_ms = int((time.monotonic() - start) * 1000)
    logger.info(
        f"{operation}.completed",
        extra={**context, "duration_ms": duration_ms},
    )


# Listen future me, workers call this every N cycles so "is the loop still alive?"
# is answerable from logs alone. Keep the field names stable - dashboards grep them.
def log_worker_health(
    logger: logging.Logger,
    worker_name: str,
    cycles_completed: int,
    errors_total: int,
    uptime_seconds: float,
    extra_stats: dict[str, Any] | None = None,
) -> None:
    """Log worker health status in consistent format.

    Args:
        logger: Logger instance
        worker_name: Worker identifier (e.g., "status_sync", "token_refresh")
        cycles_completed: Total cycles completed since start
        errors_total: Total errors encountered since start
        uptime_seconds: Seconds since worker started
        extra_stats: Optional dict of additional stats to include in log
    """
    log_data: dict[str, Any] = {
        "worker": worker_name,
        "cycles_completed": cycles_completed,
        "errors_total": errors_total,
        "uptime_seconds": int(uptime_seconds),
    }
    if extra_stats:
        log_data.update(extra_stats)

    logger.info("worker.health", extra=log_data)
