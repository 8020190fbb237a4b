"""Persistence layer: database engine, ORM models and the credential store."""

from statussync.infrastructure.persistence.database import Database
from statussync.infrastructure.persistence.repositories import SqlCredentialStore

__all__ = ["Database", "SqlCredentialStore"]
