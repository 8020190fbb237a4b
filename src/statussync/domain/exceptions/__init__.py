"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is kept as an attribute so log calls can put it in
    # extra={} without parsing str(exc). Don't raise this base class directly -
    # callers catch the specific subclasses below to decide what happens next.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConfigurationError(DomainException):
    """Application misconfiguration.

    Raised when required configuration is missing or invalid.

    Example:
        raise ConfigurationError("SPOTIFY_CLIENT_ID is not configured")
    """

    pass


class ProviderError(DomainException):
    """Transient failure talking to Spotify or Slack.

    Network errors, 5xx responses and unexpected status codes end up here.
    The worker logs it, leaves the stored state untouched and tries again
    on the next tick.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code


class AuthorizationRevokedError(DomainException):
    """The provider says the token is no longer valid.

    Hey future me - this is NOT retryable! Spotify answers 401 / invalid_grant
    and Slack answers token_revoked when the user removed the app. The sync
    engine treats it as a disconnect and deletes everything stored for the user.
    """

    def __init__(
        self,
        provider: str,
        message: str = "Authorization revoked",
        error_code: str | None = None,
    ) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.error_code = error_code


class MalformedResponseError(DomainException):
    """The provider answered with a payload we cannot interpret.

    Fatal for the affected user in the current tick: no status gets written.
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


__all__ = [
    "AuthorizationRevokedError",
    "ConfigurationError",
    "DomainException",
    "EntityNotFoundException",
    "MalformedResponseError",
    "ProviderError",
]
