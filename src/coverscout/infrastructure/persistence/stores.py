"""Persistent store adapters for the lookup pipeline.

Hey future me - these wrap the repositories in their own short transactions and
implement the domain ports. The persistent cache is best effort from the pipeline's
point of view: a failed read is a cache miss, a failed write is logged and forgotten.
The only error that gets out is EntityNotFoundError from update_thumbnail().
"""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from coverscout.domain.entities import CoverRecord, ReleaseLookupResult, Thumbnail
from coverscout.domain.ports import ICoverStore, IReleaseStore
from coverscout.domain.value_objects import TagQuery
from coverscout.infrastructure.persistence.database import Database
from coverscout.infrastructure.persistence.repositories import (
    CoverArtArchiveRepository,
    MusicBrainzReleaseRepository,
)
from coverscout.infrastructure.persistence.retry import with_db_retry

logger = logging.getLogger(__name__)


class SqlReleaseStore(IReleaseStore):
    """IReleaseStore backed by the musicbrainz_releases table."""

    def __init__(self, database: Database) -> None:
        self._database = database

    async def find_release(self, query: TagQuery) -> ReleaseLookupResult | None:
        try:
            async with self._database.session_scope() as session:
                return await MusicBrainzReleaseRepository(session).find(query)
        except SQLAlchemyError as e:
            logger.error("Database error while looking up release for %s: %s", query, e)
            return None

    @with_db_retry(max_attempts=3)
    async def _write_release(
        self, release_id: str | None, query: TagQuery, expires_at: datetime
    ) -> None:
        async with self._database.session_scope() as session:
            await MusicBrainzReleaseRepository(session).upsert(release_id, query, expires_at)

    async def write_release(
        self, release_id: str | None, query: TagQuery, expires_at: datetime
    ) -> None:
        try:
            await self._write_release(release_id, query, expires_at)
        except SQLAlchemyError as e:
            logger.error(
                "Database error while writing release %s for %s: %s", release_id, query, e
            )


class SqlCoverStore(ICoverStore):
    """ICoverStore backed by the cover_art_archive table."""

    def __init__(self, database: Database) -> None:
        self._database = database

    async def find_cover(self, release_id: str) -> CoverRecord:
        try:
            async with self._database.session_scope() as session:
                return await CoverArtArchiveRepository(session).get(release_id)
        except SQLAlchemyError as e:
            logger.error("Database error while looking up cover for release %s: %s", release_id, e)
            return CoverRecord.missing()

    @with_db_retry(max_attempts=3)
    async def _write_cover(
        self,
        release_id: str,
        cover: bytes | None,
        thumbnail: Thumbnail | None,
        expires_at: datetime,
    ) -> None:
        async with self._database.session_scope() as session:
            await CoverArtArchiveRepository(session).upsert(
                release_id, cover, thumbnail, expires_at
            )

    async def write_cover(
        self,
        release_id: str,
        cover: bytes | None,
        thumbnail: Thumbnail | None,
        expires_at: datetime,
    ) -> None:
        try:
            await self._write_cover(release_id, cover, thumbnail, expires_at)
        except SQLAlchemyError as e:
            logger.error("Database error while writing cover for release %s: %s", release_id, e)

    @with_db_retry(max_attempts=3)
    async def _update_thumbnail(self, release_id: str, thumbnail: Thumbnail | None) -> None:
        async with self._database.session_scope() as session:
            await CoverArtArchiveRepository(session).update_thumbnail(release_id, thumbnail)

    async def update_thumbnail(self, release_id: str, thumbnail: Thumbnail | None) -> None:
        try:
            await self._update_thumbnail(release_id, thumbnail)
        except SQLAlchemyError as e:
            logger.error(
                "Database error while updating thumbnail for release %s: %s", release_id, e
            )
