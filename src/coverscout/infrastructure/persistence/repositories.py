"""Repository implementations for the cache tables."""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import ColumnElement, select
from sqlalchemy.ext.asyncio import AsyncSession

from coverscout.domain.entities import CoverRecord, ReleaseLookupResult, Thumbnail
from coverscout.domain.exceptions import EntityNotFoundError
from coverscout.domain.value_objects import TagQuery, ensure_utc_aware
from coverscout.infrastructure.persistence.models import (
    MAX_TAG_LENGTH,
    CoverArtArchiveModel,
    MusicBrainzReleaseModel,
)

logger = logging.getLogger(__name__)


def _clip(value: str | None) -> str | None:
    if value is None:
        return None
    return value[:MAX_TAG_LENGTH]


def _equals_or_null(column: Any, value: str | None) -> ColumnElement[bool]:
    value = _clip(value)
    if value is None:
        return column.is_(None)
    return column == value


def lookup_conditions(query: TagQuery) -> list[ColumnElement[bool]]:
    """WHERE conditions used to FIND a prior result for a query.

    Hey future me - this is deliberately looser than the write key! Album plus
    artist (ID preferred over name) identify a release on their own, so track ID and
    title only join the key when album or artist info is missing. Numbers join when
    they're known.
    """
    m = MusicBrainzReleaseModel
    conditions: list[ColumnElement[bool]] = []
    if query.album:
        conditions.append(m.album == _clip(query.album))
    if query.artist_id:
        conditions.append(m.artist_id == query.artist_id)
    elif query.artist:
        conditions.append(m.artist == _clip(query.artist))
    if query.track_id and query.track_disambiguates:
        conditions.append(m.track_id == query.track_id)
    if not query.track_id and query.title and query.track_disambiguates:
        conditions.append(m.title == _clip(query.title))
    if query.year > 0:
        conditions.append(m.year == query.year)
    if query.track_number > 0:
        conditions.append(m.track_number == query.track_number)
    if query.total_tracks > 0:
        conditions.append(m.total_tracks == query.total_tracks)
    return conditions


def exact_conditions(query: TagQuery) -> list[ColumnElement[bool]]:
    """WHERE conditions matching the row written for exactly this query."""
    m = MusicBrainzReleaseModel
    return [
        _equals_or_null(m.album, query.album),
        _equals_or_null(m.artist_id, query.artist_id),
        _equals_or_null(m.artist, query.artist),
        _equals_or_null(m.track_id, query.track_id),
        _equals_or_null(m.title, query.title),
        m.year == (query.year if query.year > 0 else -1),
        m.track_number == (query.track_number if query.track_number > 0 else -1),
        m.total_tracks == (query.total_tracks if query.total_tracks > 0 else -1),
    ]


class MusicBrainzReleaseRepository:
    """SQLAlchemy repository for TagQuery -> release ID results."""

    # Session is injected and NOT committed here, Database.session_scope() does that.
    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def find(self, query: TagQuery) -> ReleaseLookupResult | None:
        """Find a prior result using the lookup key of the query.

        Rows with a release ID win over cached negatives, then the newest row.
        """
        conditions = lookup_conditions(query)
        if not conditions:
            return None
        stmt = (
            select(MusicBrainzReleaseModel)
            .where(*conditions)
            .order_by(
                MusicBrainzReleaseModel.release_id.is_(None),
                MusicBrainzReleaseModel.updated_at.desc(),
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return ReleaseLookupResult(
            found=True,
            release_id=model.release_id,
            expires_at=ensure_utc_aware(model.expires_at),
        )

    async def upsert(self, release_id: str | None, query: TagQuery, expires_at: datetime) -> bool:
        """Insert or update the row for exactly this query.

        An existing row is only updated when the new result isn't worse: a present
        release ID always wins, a negative result only replaces another negative one.

        Returns:
            True if a row was inserted or updated
        """
        stmt = select(MusicBrainzReleaseModel).where(*exact_conditions(query)).limit(1)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is not None:
            if not release_id and model.release_id:
                logger.debug(
                    "Not replacing release %s for %s with a negative result",
                    model.release_id,
                    query,
                )
                return False
            model.release_id = release_id or None
            model.expires_at = expires_at
            return True

        self.session.add(
            MusicBrainzReleaseModel(
                release_id=release_id or None,
                expires_at=expires_at,
                album=_clip(query.album),
                artist=_clip(query.artist),
                title=_clip(query.title),
                artist_id=query.artist_id,
                track_id=query.track_id,
                year=query.year if query.year > 0 else -1,
                track_number=query.track_number if query.track_number > 0 else -1,
                total_tracks=query.total_tracks if query.total_tracks > 0 else -1,
            )
        )
        return True


class CoverArtArchiveRepository:
    """SQLAlchemy repository for release ID -> cover rows."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def _get_model(self, release_id: str) -> CoverArtArchiveModel | None:
        stmt = select(CoverArtArchiveModel).where(CoverArtArchiveModel.release_id == release_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, release_id: str) -> CoverRecord:
        """Get the cover row for a release (found=False if there's none)."""
        model = await self._get_model(release_id)
        if model is None:
            return CoverRecord.missing()

        thumbnail: Thumbnail | None = None
        if model.thumbnail:
            thumbnail = Thumbnail(
                data=model.thumbnail,
                width=model.thumbnail_width or 0,
                height=model.thumbnail_height or 0,
                mime_type=model.thumbnail_mime_type or "image/jpeg",
            )
        return CoverRecord(
            found=True,
            cover=model.cover,
            thumbnail=thumbnail,
            expires_at=ensure_utc_aware(model.expires_at),
        )

    async def upsert(
        self,
        release_id: str,
        cover: bytes | None,
        thumbnail: Thumbnail | None,
        expires_at: datetime,
    ) -> bool:
        """Insert or update the cover row.

        A stored cover is never replaced by "no cover", same rule as for releases.

        Returns:
            True if a row was inserted or updated
        """
        model = await self._get_model(release_id)
        if model is None:
            model = CoverArtArchiveModel(release_id=release_id, expires_at=expires_at)
            self.session.add(model)
        elif cover is None and model.cover is not None:
            logger.debug("Not replacing the stored cover of release %s with nothing", release_id)
            return False

        model.cover = cover
        model.expires_at = expires_at
        self._set_thumbnail(model, thumbnail)
        return True

    async def update_thumbnail(self, release_id: str, thumbnail: Thumbnail | None) -> None:
        """Replace only the thumbnail of an existing row.

        Raises:
            EntityNotFoundError: If there's no row for release_id
        """
        model = await self._get_model(release_id)
        if model is None:
            raise EntityNotFoundError("Cover", release_id)
        self._set_thumbnail(model, thumbnail)

    @staticmethod
    def _set_thumbnail(model: CoverArtArchiveModel, thumbnail: Thumbnail | None) -> None:
        if thumbnail is None:
            model.thumbnail = None
            model.thumbnail_width = None
            model.thumbnail_height = None
            model.thumbnail_mime_type = None
        else:
            model.thumbnail = thumbnail.data
            model.thumbnail_width = thumbnail.width
            model.thumbnail_height = thumbnail.height
            model.thumbnail_mime_type = thumbnail.mime_type
