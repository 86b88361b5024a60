"""SQLAlchemy ORM models for the CoverScout cache tables."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, LargeBinary, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from coverscout.domain.value_objects import utc_now

# Tag values longer than this are clipped before they're stored or matched
MAX_TAG_LENGTH = 1000


# Yo, Base is THE foundation of all ORM models! DeclarativeBase is SQLAlchemy 2.0 style.
# All models inherit from this so create_tables() sees every table in Base.metadata.
class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Hey future me - one row per DISTINCT TagQuery that went through a MusicBrainz search,
# not per release! Ten tracks of one album are ten rows pointing at the same release_id.
# release_id NULL means "searched, nothing found" and expires_at says when to search again.
# Unknown numbers are stored as -1 (never NULL) so an exact key match can compare them.
class MusicBrainzReleaseModel(Base):
    """Cached TagQuery -> MusicBrainz release ID resolution."""

    __tablename__ = "musicbrainz_releases"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    release_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    artist: Mapped[str | None] = mapped_column(String(MAX_TAG_LENGTH), nullable=True)
    album: Mapped[str | None] = mapped_column(String(MAX_TAG_LENGTH), nullable=True)
    title: Mapped[str | None] = mapped_column(String(MAX_TAG_LENGTH), nullable=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False, default=-1)
    track_number: Mapped[int] = mapped_column(Integer, nullable=False, default=-1)
    total_tracks: Mapped[int] = mapped_column(Integer, nullable=False, default=-1)
    artist_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    track_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        Index("ix_musicbrainz_releases_album", "album"),
        Index("ix_musicbrainz_releases_artist", "artist"),
        Index("ix_musicbrainz_releases_artist_id", "artist_id"),
        Index("ix_musicbrainz_releases_track_id", "track_id"),
    )


# Hey future me - cover is the image as downloaded (500px CAA thumbnail or the original),
# thumbnail is what we derived from it. A row with neither is a cached "no cover".
# The thumbnail dimensions are stored alongside so reading a row doesn't need Pillow.
class CoverArtArchiveModel(Base):
    """Cached release ID -> cover image."""

    __tablename__ = "cover_art_archive"

    release_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    cover: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    thumbnail: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    thumbnail_width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    thumbnail_height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    thumbnail_mime_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )
