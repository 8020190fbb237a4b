"""Application lifecycle management for startup and shutdown.

The FastAPI lifespan wires everything together in this order:
settings -> logging -> database -> HTTP clients -> store -> services -> workers,
and the workers are handed to the WorkerOrchestrator, which starts them by
priority (token refresh before status sync). Shutdown runs in reverse.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

import httpx
from fastapi import FastAPI

from statussync.application.services import (
    AccountService,
    StatusSyncService,
    TokenRefreshService,
)
from statussync.application.workers import (
    StatusSyncWorker,
    TokenRefreshWorker,
    WorkerOrchestrator,
)
from statussync.config import Settings, get_settings
from statussync.domain.exceptions import ConfigurationError
from statussync.infrastructure.integrations import SlackClient, SpotifyClient
from statussync.infrastructure.observability import configure_logging
from statussync.infrastructure.persistence import Database, SqlCredentialStore

logger = logging.getLogger(__name__)

TOKEN_REFRESH_PRIORITY = 10
STATUS_SYNC_PRIORITY = 20


def build_orchestrator(
    settings: Settings,
    store: SqlCredentialStore,
    spotify: SpotifyClient,
    slack: SlackClient,
) -> WorkerOrchestrator:
    """Create the services and workers and register them with an orchestrator."""
    scheduler = settings.scheduler

    refresh_service = TokenRefreshService(
        store,
        spotify,
        lookahead=timedelta(minutes=scheduler.token_refresh_lookahead_minutes),
    )
    sync_service = StatusSyncService(store, spotify, slack)

    orchestrator = WorkerOrchestrator(shutdown_timeout=scheduler.shutdown_timeout_seconds + 5)
    orchestrator.register(
        name="token_refresh",
        worker=TokenRefreshWorker(
            refresh_service,
            interval_seconds=scheduler.token_refresh_interval_seconds,
            shutdown_timeout=scheduler.shutdown_timeout_seconds,
        ),
        priority=TOKEN_REFRESH_PRIORITY,
    )
    orchestrator.register(
        name="status_sync",
        worker=StatusSyncWorker(
            sync_service,
            store,
            interval_seconds=scheduler.sync_interval_seconds,
            max_concurrency=scheduler.max_concurrent_users,
            shutdown_timeout=scheduler.shutdown_timeout_seconds,
        ),
        priority=STATUS_SYNC_PRIORITY,
        depends_on=["token_refresh"],
    )
    return orchestrator


# Listen future me, everything before `yield` runs at STARTUP, everything after at
# SHUTDOWN. The finally block runs even when startup blew up halfway, so every
# resource is checked for None before closing it.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("app.starting", extra={"app_name": settings.app_name})

    db: Database | None = None
    http_client: httpx.AsyncClient | None = None
    orchestrator: WorkerOrchestrator | None = None

    try:
        if not settings.spotify.is_configured:
            raise ConfigurationError("SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET must be set")

        db = Database(settings.database)
        app.state.db = db
        if settings.database.create_tables_on_startup:
            await db.create_tables()
        logger.info("database.initialized")

        # One pooled client shared by both providers
        http_client = httpx.AsyncClient(timeout=settings.scheduler.http_timeout_seconds)
        spotify = SpotifyClient(settings.spotify, http_client=http_client)
        slack = SlackClient(settings.slack, http_client=http_client)

        store = SqlCredentialStore(db.session_factory)
        app.state.account_service = AccountService(store, spotify, slack)

        orchestrator = build_orchestrator(settings, store, spotify, slack)
        app.state.orchestrator = orchestrator
        app.state.startup_time = datetime.now(UTC)

        if not await orchestrator.start_all():
            raise RuntimeError("Required workers failed to start")

        logger.info("app.started", extra={"workers": list(orchestrator.get_status()["workers"])})
        yield

    finally:
        logger.info("app.stopping")

        if orchestrator is not None:
            await orchestrator.stop_all()

        if http_client is not None:
            await http_client.aclose()

        if db is not None:
            await db.close()

        logger.info("app.stopped")
