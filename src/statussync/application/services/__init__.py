"""Application services."""

from statussync.application.services.account_service import AccountService
from statussync.application.services.status_sync_service import (
    StatusSyncService,
    SyncOutcome,
    UserSyncResult,
)
from statussync.application.services.token_refresh_service import (
    RefreshReport,
    TokenRefreshService,
)

__all__ = [
    "AccountService",
    "RefreshReport",
    "StatusSyncService",
    "SyncOutcome",
    "TokenRefreshService",
    "UserSyncResult",
]
