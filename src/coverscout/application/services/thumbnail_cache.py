"""Two-tier cache: release ID -> cover thumbnail.

Hey future me - lookup order for get_thumbnail():

    memory tier (weak refs) -> release ID ticket -> memory tier again
        -> persistent store -> Cover Art Archive (only if network is allowed)

The persistent store is the source of truth, the memory tier only saves the database
round trip for thumbnails that are still in use somewhere. Whatever we end up with is
put into the memory tier before returning, including "no cover" results.

We NEVER return None for a valid release ID. "No cover (yet)" is an
ExpirableThumbnail without a thumbnail, and its expiration tells the caller when
asking again makes sense.
"""

import logging
from datetime import datetime

from coverscout.application.cache import ThumbnailMemoryCache
from coverscout.application.services.request_coordinator import RequestCoordinator
from coverscout.domain.entities import (
    CoverDownloadStatus,
    ExpirableThumbnail,
)
from coverscout.domain.exceptions import DomainException, ValidationError
from coverscout.domain.ports import ICoverArtSource, ICoverStore, IThumbnailCodec
from coverscout.domain.value_objects import ExpirationPolicy, is_blank

logger = logging.getLogger(__name__)


class ThumbnailCache:
    """Thumbnails for MusicBrainz releases."""

    def __init__(
        self,
        store: ICoverStore,
        source: ICoverArtSource,
        codec: IThumbnailCodec,
        coordinator: RequestCoordinator[str],
        memory: ThumbnailMemoryCache,
    ) -> None:
        """Initialize cache.

        Args:
            store: Persistent release ID -> cover rows
            source: Cover Art Archive download
            codec: Cover -> thumbnail conversion
            coordinator: Ticket registry keyed by release ID
            memory: In-memory tier
        """
        self._store = store
        self._source = source
        self._codec = codec
        self._coordinator = coordinator
        self._memory = memory

    async def get_thumbnail(self, release_id: str, allow_network: bool) -> ExpirableThumbnail:
        """Get the thumbnail for a release.

        Args:
            release_id: MusicBrainz release ID
            allow_network: Whether the Cover Art Archive may be contacted

        Returns:
            Thumbnail result, possibly without a thumbnail

        Raises:
            ValidationError: If release_id is blank
        """
        if is_blank(release_id):
            raise ValidationError("release_id cannot be blank")
        release_id = release_id.strip()

        await self._memory.maybe_cleanup()
        cached = await self._memory.get(release_id)
        if cached is not None:
            logger.debug("Found cached thumbnail for release %s", release_id)
            return cached

        async with self._coordinator.hold(release_id) as ticket:
            if ticket is None:
                logger.debug(
                    "Gave up waiting for the in-flight thumbnail lookup of release %s",
                    release_id,
                )
                return ExpirableThumbnail.empty(ExpirationPolicy.IMMEDIATE.expires_at())

            # Somebody may have done the work while we queued
            cached = await self._memory.get(release_id)
            if cached is not None:
                return cached

            result = await self._lookup(release_id, allow_network)
            await self._memory.put(release_id, result)

            if result.has_thumbnail:
                logger.debug("Thumbnail for release %s: %d bytes", release_id, len(result.data or b""))
            else:
                logger.debug(
                    "No thumbnail for release %s, cached until %s",
                    release_id,
                    "network is enabled" if result.never_expires() else result.expires_at.isoformat(),
                )
            return result

    async def _lookup(self, release_id: str, allow_network: bool) -> ExpirableThumbnail:
        """Resolve through the store and the network. Must hold the release ID ticket."""
        record = await self._store.find_cover(release_id)

        if not record.found or (
            record.thumbnail is None and record.cover is None and record.is_expired()
        ):
            if not allow_network:
                logger.debug(
                    "Can't download cover for release %s: external network access is disabled",
                    release_id,
                )
                return ExpirableThumbnail.empty(ExpirationPolicy.no_network())
            return await self._download(release_id)

        # Rows holding image data are served even when expired; only empty expired
        # rows trigger a new download. The memory tier still drops the expired result.
        expires_at = record.expires_at or ExpirationPolicy.ERROR.expires_at()
        if record.thumbnail is not None:
            return ExpirableThumbnail(thumbnail=record.thumbnail, expires_at=expires_at)
        if record.cover is not None:
            return await self._derive_from_stored_cover(release_id, record.cover, expires_at)

        # Cached as unavailable and not expired
        return ExpirableThumbnail.empty(expires_at)

    async def _derive_from_stored_cover(
        self, release_id: str, cover: bytes, expires_at: datetime
    ) -> ExpirableThumbnail:
        thumbnail = await self._codec.derive_thumbnail(cover)
        if thumbnail is None:
            logger.warning("Stored cover for release %s can't be decoded", release_id)
            return ExpirableThumbnail.empty(expires_at)

        # Best effort, the caller gets the thumbnail either way
        try:
            await self._store.update_thumbnail(release_id, thumbnail)
        except DomainException as e:
            logger.error("Could not store thumbnail for release %s: %s", release_id, e.message)
        return ExpirableThumbnail(thumbnail=thumbnail, expires_at=expires_at)

    async def _download(self, release_id: str) -> ExpirableThumbnail:
        download = await self._source.fetch_front_cover(release_id)

        if download.status is CoverDownloadStatus.FOUND and download.data:
            thumbnail = await self._codec.derive_thumbnail(download.data)
            expires_at = ExpirationPolicy.FOUND.expires_at()
            await self._store.write_cover(release_id, download.data, thumbnail, expires_at)
            return ExpirableThumbnail(thumbnail=thumbnail, expires_at=expires_at)

        if download.status is CoverDownloadStatus.ERROR:
            logger.debug("Cover download for release %s failed: %s", release_id, download.error)
            window = ExpirationPolicy.ERROR
        else:
            logger.debug("Release %s has no cover at the Cover Art Archive", release_id)
            window = ExpirationPolicy.NOT_FOUND

        expires_at = window.expires_at()
        await self._store.write_cover(release_id, None, None, expires_at)
        return ExpirableThumbnail.empty(expires_at)
