"""Domain entities."""

import weakref
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from coverscout.domain.value_objects import (
    ReleaseType,
    ensure_utc_aware,
    is_never_expiring,
    utc_now,
)


@dataclass(frozen=True)
class ReleaseLookupResult:
    """Persisted outcome of resolving a TagQuery to a release.

    Attributes:
        found: Whether a row matched the query's store key
        release_id: Resolved MusicBrainz release ID (None for a cached negative)
        expires_at: When the outcome must be re-validated
    """

    found: bool
    release_id: str | None
    expires_at: datetime

    @property
    def has_release_id(self) -> bool:
        return bool(self.release_id and self.release_id.strip())

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= ensure_utc_aware(self.expires_at)


@dataclass
class ReleaseCandidate:
    """One release as parsed from a MusicBrainz search response.

    Hey future me - for recording searches there's one candidate PER RELEASE the
    recording appears on, and `title` is the recording title. For release searches
    `title` stays None since there's no track in the response.

    Attributes:
        id: MusicBrainz release ID
        score_hint: MusicBrainz' own relevance score (ext:score), informational only
        title: Track (recording) title
        album: Release title
        artists: Artist names credited on the release/recording
        type: Primary type of the release group
        year: Release year or -1
    """

    id: str
    score_hint: int = 0
    title: str | None = None
    album: str | None = None
    artists: list[str] = field(default_factory=list)
    type: ReleaseType | None = None
    year: int = -1


# Hey future me - Thumbnail is deliberately a plain (non-slots, non-frozen) dataclass!
# The in-memory cache tier holds it through weakref.ref, and weak references need
# __weakref__ on the instance. Don't add slots=True here.
@dataclass(eq=False)
class Thumbnail:
    """Size bounded thumbnail image.

    Attributes:
        data: Encoded image bytes
        width: Width in pixels
        height: Height in pixels
        mime_type: MIME type of data (e.g. "image/jpeg")
    """

    data: bytes
    width: int
    height: int
    mime_type: str = "image/jpeg"

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ExpirableThumbnail:
    """A thumbnail (or the lack of one) together with its expiration.

    This is what callers get back from the thumbnail cache. It's never None for a
    valid release ID - "no cover" is an ExpirableThumbnail without a thumbnail.
    """

    thumbnail: Thumbnail | None
    expires_at: datetime

    @classmethod
    def empty(cls, expires_at: datetime) -> "ExpirableThumbnail":
        return cls(thumbnail=None, expires_at=expires_at)

    @property
    def data(self) -> bytes | None:
        return self.thumbnail.data if self.thumbnail is not None else None

    @property
    def has_thumbnail(self) -> bool:
        return self.thumbnail is not None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if now >= expires_at."""
        return (now or utc_now()) >= ensure_utc_aware(self.expires_at)

    def never_expires(self) -> bool:
        return is_never_expiring(self.expires_at)


class CachedThumbnail:
    """In-memory cache entry holding its thumbnail WEAKLY.

    Hey future me - the entry must never keep a thumbnail alive on its own. Whoever got
    the ExpirableThumbnail (a ReleaseThumbnail handle, a response being streamed) keeps
    the Thumbnail object alive; once the last of them is gone the garbage collector
    reclaims it and the entry becomes disposable. Empty results hold no reference at
    all and live until they expire.
    """

    def __init__(self, result: ExpirableThumbnail) -> None:
        self.expires_at = result.expires_at
        self._ref: weakref.ref[Thumbnail] | None = (
            weakref.ref(result.thumbnail) if result.thumbnail is not None else None
        )

    @property
    def holds_reference(self) -> bool:
        return self._ref is not None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= ensure_utc_aware(self.expires_at)

    def is_disposable(self, now: datetime | None = None) -> bool:
        """Check if the entry can be dropped.

        Disposable when the referenced thumbnail was garbage collected, or when the
        entry never referenced a thumbnail and has expired.
        """
        if self._ref is not None:
            return self._ref() is None
        return self.is_expired(now)

    def get(self) -> ExpirableThumbnail | None:
        """Rebuild the cached result, None if the thumbnail was reclaimed meanwhile."""
        if self._ref is None:
            return ExpirableThumbnail.empty(self.expires_at)
        thumbnail = self._ref()
        if thumbnail is None:
            return None
        return ExpirableThumbnail(thumbnail=thumbnail, expires_at=self.expires_at)

    def __repr__(self) -> str:
        if self._ref is None:
            state = "empty"
        else:
            state = "alive" if self._ref() is not None else "collected"
        return f"CachedThumbnail({state}, expires_at={self.expires_at.isoformat()})"


@dataclass(frozen=True)
class CoverRecord:
    """Row of the persistent cover table.

    Attributes:
        found: Whether a row exists for the release ID
        cover: Full size cover image bytes as downloaded
        thumbnail: Thumbnail derived from the cover
        expires_at: When the row must be re-validated
    """

    found: bool
    cover: bytes | None = None
    thumbnail: Thumbnail | None = None
    expires_at: datetime | None = None

    @classmethod
    def missing(cls) -> "CoverRecord":
        return cls(found=False)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return True
        return (now or utc_now()) >= ensure_utc_aware(self.expires_at)


class CoverDownloadStatus(str, Enum):
    """Outcome class of a cover download."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class CoverDownload:
    """Result of downloading a front cover from the Cover Art Archive.

    Attributes:
        status: Outcome class, decides which expiration window is used
        data: Image bytes (only for FOUND)
        url: URL the image was downloaded from
        error: Error description (only for ERROR)
    """

    status: CoverDownloadStatus
    data: bytes | None = None
    url: str | None = None
    error: str | None = None

    @classmethod
    def found(cls, data: bytes, url: str | None = None) -> "CoverDownload":
        return cls(status=CoverDownloadStatus.FOUND, data=data, url=url)

    @classmethod
    def not_found(cls) -> "CoverDownload":
        return cls(status=CoverDownloadStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: str) -> "CoverDownload":
        return cls(status=CoverDownloadStatus.ERROR, error=error)


__all__ = [
    "CachedThumbnail",
    "CoverDownload",
    "CoverDownloadStatus",
    "CoverRecord",
    "ExpirableThumbnail",
    "ReleaseCandidate",
    "ReleaseLookupResult",
    "Thumbnail",
]
