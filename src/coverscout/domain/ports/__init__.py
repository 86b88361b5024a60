"""Domain ports (interfaces) for dependency inversion.

Hey future me - the application services (resolver, thumbnail cache) only ever talk to
these interfaces. SQLAlchemy, httpx and Pillow live behind them in infrastructure/,
which is what lets the unit tests swap in counting stubs.

FLOW:
    ReleaseResolver
        ├─► IReleaseStore      (musicbrainz_releases table)
        └─► IReleaseCatalog    (MusicBrainz XML search)
    ThumbnailCache
        ├─► ICoverStore        (cover_art_archive table)
        ├─► ICoverArtSource    (Cover Art Archive download)
        └─► IThumbnailCodec    (Pillow)
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum

from coverscout.domain.entities import (
    CoverDownload,
    CoverRecord,
    ReleaseCandidate,
    ReleaseLookupResult,
    Thumbnail,
)
from coverscout.domain.value_objects import TagQuery


class SearchEntity(str, Enum):
    """MusicBrainz search resource."""

    RELEASE = "release"
    RECORDING = "recording"


class IReleaseStore(ABC):
    """Persistent TagQuery -> release ID results."""

    @abstractmethod
    async def find_release(self, query: TagQuery) -> ReleaseLookupResult | None:
        """Find a prior result using the query's store key.

        Returns:
            The stored result, or None if no row matches (or the read failed)
        """
        pass

    @abstractmethod
    async def write_release(
        self, release_id: str | None, query: TagQuery, expires_at: datetime
    ) -> None:
        """Insert or update the result for a query.

        Hey future me - an update must never replace a present release ID with None.
        A stored negative result may always be replaced.
        """
        pass


class ICoverStore(ABC):
    """Persistent release ID -> cover/thumbnail results."""

    @abstractmethod
    async def find_cover(self, release_id: str) -> CoverRecord:
        """Find the cover row for a release.

        Returns:
            CoverRecord, with found=False if there's no row (or the read failed)
        """
        pass

    @abstractmethod
    async def write_cover(
        self,
        release_id: str,
        cover: bytes | None,
        thumbnail: Thumbnail | None,
        expires_at: datetime,
    ) -> None:
        """Insert or update the cover row for a release."""
        pass

    @abstractmethod
    async def update_thumbnail(self, release_id: str, thumbnail: Thumbnail | None) -> None:
        """Replace only the thumbnail of an existing cover row.

        Raises:
            EntityNotFoundError: If no row exists for release_id
        """
        pass


class IReleaseCatalog(ABC):
    """External release catalog search (MusicBrainz)."""

    @abstractmethod
    async def search(self, entity: SearchEntity, query: str) -> list[ReleaseCandidate]:
        """Run one Lucene search and parse the candidates in catalog order.

        Args:
            entity: Resource to search
            query: Lucene query string (not URL encoded)

        Returns:
            Candidates, empty if nothing matched

        Raises:
            MusicBrainzError: Transport error, non-200 status or unparsable response
        """
        pass


class ICoverArtSource(ABC):
    """External cover image source (Cover Art Archive)."""

    @abstractmethod
    async def fetch_front_cover(self, release_id: str) -> CoverDownload:
        """Download the front cover for a release.

        Never raises for remote failures, they're reported as CoverDownload.failed().
        """
        pass


class IThumbnailCodec(ABC):
    """Turns raw cover bytes into a size bounded thumbnail."""

    @abstractmethod
    async def derive_thumbnail(self, cover: bytes) -> Thumbnail | None:
        """Derive a thumbnail, None if the bytes can't be decoded."""
        pass


__all__ = [
    "ICoverArtSource",
    "ICoverStore",
    "IReleaseCatalog",
    "IReleaseStore",
    "IThumbnailCodec",
    "SearchEntity",
]
