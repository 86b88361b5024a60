"""Persistence layer."""

from coverscout.infrastructure.persistence.database import Database
from coverscout.infrastructure.persistence.stores import SqlCoverStore, SqlReleaseStore

__all__ = ["Database", "SqlCoverStore", "SqlReleaseStore"]
