"""Cover art facade: track tags in, thumbnail handle out.

Hey future me - this is the only class the media layer should talk to!
It chains the two single-flight stages: ReleaseResolver (query ticket) and then
ThumbnailCache (release ID ticket). The resolver has fully released the query ticket
before the thumbnail lookup starts, so the two ticket registries can't deadlock.
"""

import logging
from pathlib import Path

from coverscout.application.services.release_resolver import ReleaseResolver
from coverscout.application.services.thumbnail_cache import ThumbnailCache
from coverscout.config import Settings
from coverscout.domain.entities import ExpirableThumbnail
from coverscout.domain.value_objects import TagQuery
from coverscout.infrastructure.observability import correlation_scope
from coverscout.infrastructure.tags import read_tag_query

logger = logging.getLogger(__name__)


class ReleaseThumbnail:
    """Self-refreshing thumbnail handle for one release.

    Holds a STRONG reference to the current result, which is what keeps the thumbnail
    alive in the weak in-memory tier while the handle is in use. Once the result
    expires the next access asks the thumbnail cache again.
    """

    def __init__(
        self,
        release_id: str,
        thumbnails: ThumbnailCache,
        result: ExpirableThumbnail,
        allow_network: bool,
    ) -> None:
        self.release_id = release_id
        self._thumbnails = thumbnails
        self._result = result
        self._allow_network = allow_network

    async def get(self) -> ExpirableThumbnail:
        """Get the current result, refreshing it first if it expired."""
        if self._result.is_expired():
            logger.debug("Thumbnail for release %s expired, refreshing", self.release_id)
            self._result = await self._thumbnails.get_thumbnail(
                self.release_id, self._allow_network
            )
        return self._result

    async def get_bytes(self) -> bytes | None:
        return (await self.get()).data

    async def get_width(self) -> int | None:
        thumbnail = (await self.get()).thumbnail
        return thumbnail.width if thumbnail else None

    async def get_height(self) -> int | None:
        thumbnail = (await self.get()).thumbnail
        return thumbnail.height if thumbnail else None

    async def get_mime_type(self) -> str | None:
        thumbnail = (await self.get()).thumbnail
        return thumbnail.mime_type if thumbnail else None

    @property
    def current(self) -> ExpirableThumbnail:
        """Current result without refreshing."""
        return self._result

    def __repr__(self) -> str:
        return f"ReleaseThumbnail({self.release_id!r}, has_thumbnail={self._result.has_thumbnail})"


class CoverArtService:
    """Looks up cover thumbnails for audio tracks."""

    def __init__(
        self,
        resolver: ReleaseResolver,
        thumbnails: ThumbnailCache,
        settings: Settings,
    ) -> None:
        self._resolver = resolver
        self._thumbnails = thumbnails
        self._settings = settings

    @property
    def allow_network(self) -> bool:
        return self._settings.network.enabled

    @property
    def enabled(self) -> bool:
        """Whether audio covers are supplied at all."""
        return self._settings.network.cover_supplier != "none"

    async def get_thumbnail(self, query: TagQuery) -> ReleaseThumbnail | None:
        """Get a thumbnail handle for a track.

        Args:
            query: Track metadata

        Returns:
            Handle for the release's thumbnail, or None if covers are disabled or the
            release couldn't be resolved
        """
        if not self.enabled:
            return None

        with correlation_scope():
            release_id = await self._resolver.resolve(query, self.allow_network)
            if release_id is None:
                return None
            return await self.get_release_thumbnail(release_id)

    async def get_release_thumbnail(self, release_id: str) -> ReleaseThumbnail:
        """Get a thumbnail handle for a known release.

        Raises:
            ValidationError: If release_id is blank
        """
        with correlation_scope():
            result = await self._thumbnails.get_thumbnail(release_id, self.allow_network)
        return ReleaseThumbnail(release_id.strip(), self._thumbnails, result, self.allow_network)

    async def get_thumbnail_for_file(self, path: Path | str) -> ReleaseThumbnail | None:
        """Read an audio file's tags and get a thumbnail handle for it."""
        if not self.enabled:
            return None
        query = await read_tag_query(path)
        if query is None:
            return None
        return await self.get_thumbnail(query)
