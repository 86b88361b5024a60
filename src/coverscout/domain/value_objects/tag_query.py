"""TagQuery value object - the track metadata used to look up a release.

Hey future me - TagQuery is BOTH the search input and a lock/cache key!
Two queries are the same key only if EVERY field matches, which is exactly what a
frozen dataclass gives us for __eq__/__hash__. Blank strings are folded to None in
__post_init__ so "" and None don't become two different keys.

Usage:
    query = TagQuery(album="Nevermind", artist="Nirvana", year=1991)
    if query.is_useful():
        release_id = await resolver.resolve(query, allow_network=True)
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

NOT_AVAILABLE = "n/a"

_YEAR_PATTERN = re.compile(r"\b\d{4}\b")


def is_blank(value: str | None) -> bool:
    """Check if a string is None, empty or whitespace only."""
    return value is None or not value.strip()


def has_value(value: str | None) -> bool:
    """Check if a tag value is present and not the "n/a" placeholder."""
    if value is None or is_blank(value):
        return False
    return value.strip().lower() != NOT_AVAILABLE


def parse_year(text: Any) -> int:
    """Extract a year from a date-ish tag value.

    Takes the first standalone four digit number that looks like a year
    (1601-2099), so "1991-09-24", "24.09.1991" and "(P) 1991" all give 1991.

    Args:
        text: Date string (or anything with a useful str())

    Returns:
        The year or -1 if none was found
    """
    if text is None:
        return -1
    for match in _YEAR_PATTERN.finditer(str(text)):
        year = int(match.group())
        if 1600 < year < 2100:
            return year
    return -1


def _parse_number(text: Any) -> tuple[int, int]:
    """Parse "3", "3/12" or (3, 12) into (number, total), -1 meaning unknown."""
    if text is None:
        return -1, -1
    if isinstance(text, tuple | list):
        parts = [str(part) for part in text[:2]]
    else:
        parts = str(text).split("/", 1)
    values: list[int] = []
    for part in parts:
        try:
            values.append(int(part.strip()))
        except ValueError:
            values.append(-1)
    number = values[0] if values and values[0] > 0 else -1
    total = values[1] if len(values) > 1 and values[1] > 0 else -1
    return number, total


def _first(tags: Mapping[str, Any], *keys: str) -> str | None:
    """Return the first non-blank value for any of the keys (mutagen gives lists)."""
    for key in keys:
        value = tags.get(key)
        if isinstance(value, list | tuple):
            value = value[0] if value else None
        if value is not None and not is_blank(str(value)):
            return str(value)
    return None


@dataclass(frozen=True)
class TagQuery:
    """Immutable track metadata used as release lookup input and lock key.

    Attributes:
        album: Album title
        artist: Track artist (may contain several artists: "A & B", "A, B")
        artist_id: MusicBrainz artist ID
        title: Track title
        year: Release year or -1
        track_number: Track number or -1
        total_tracks: Number of tracks on the release or -1
        track_id: MusicBrainz track ID
        release_id: MusicBrainz release ID embedded in the file
    """

    album: str | None = None
    artist: str | None = None
    artist_id: str | None = None
    title: str | None = None
    year: int = -1
    track_number: int = -1
    total_tracks: int = -1
    track_id: str | None = None
    release_id: str | None = None

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, str) and is_blank(value):
                object.__setattr__(self, f.name, None)

    @classmethod
    def from_tags(cls, tags: Mapping[str, Any]) -> "TagQuery":
        """Build a query from a tag mapping.

        Hey future me - the keys are the mutagen "easy" names (EasyID3, Vorbis comments,
        EasyMP4), values may be lists. The artist ID falls back to the album artist ID
        when the track artist ID is missing.

        Args:
            tags: Mapping like {"album": ["Nevermind"], "tracknumber": ["3/12"], ...}

        Returns:
            New TagQuery
        """
        track_number, total_tracks = _parse_number(_first(tags, "tracknumber"))
        if total_tracks < 0:
            total_tracks, _ = _parse_number(_first(tags, "tracktotal", "totaltracks"))

        return cls(
            album=_first(tags, "album"),
            artist=_first(tags, "artist"),
            artist_id=_first(tags, "musicbrainz_artistid", "musicbrainz_albumartistid"),
            title=_first(tags, "title"),
            year=parse_year(_first(tags, "date", "year", "originaldate")),
            track_number=track_number,
            total_tracks=total_tracks,
            track_id=_first(tags, "musicbrainz_trackid"),
            release_id=_first(tags, "musicbrainz_albumid"),
        )

    def has_info(self) -> bool:
        """Check if the query carries any information at all."""
        return (
            has_value(self.album)
            or has_value(self.artist)
            or has_value(self.title)
            or self.year > 0
            or self.track_number > 0
            or has_value(self.artist_id)
            or has_value(self.track_id)
            or has_value(self.release_id)
        )

    def is_useful(self) -> bool:
        """Check if the query carries enough information to attempt a lookup.

        Artist or year alone can't identify a release, so at least one of album,
        title, track ID or release ID is required.
        """
        return (
            has_value(self.album)
            or has_value(self.title)
            or has_value(self.track_id)
            or has_value(self.release_id)
        )

    @property
    def embedded_release_id(self) -> str | None:
        """Release ID embedded in the tags, if it's usable."""
        if self.release_id and has_value(self.release_id):
            return self.release_id.strip()
        return None

    # Blank strings are already None here (see __post_init__), so plain truthiness
    # is the "is not blank" check for the properties below.
    @property
    def has_artist_info(self) -> bool:
        """Check if artist name or artist ID is present."""
        return bool(self.artist or self.artist_id)

    @property
    def has_release_info(self) -> bool:
        """Check if the release oriented search rounds can be used."""
        return bool(self.album) or self.has_artist_info

    @property
    def track_disambiguates(self) -> bool:
        """Check if track fields are needed to tell releases apart.

        When both album and artist info exist the album/artist pair already
        identifies the release, otherwise the track ID or title is used too.
        """
        return not self.album or not self.has_artist_info

    def __str__(self) -> str:
        result = self.artist or ""
        if self.artist_id:
            result += f" ({self.artist_id})" if result else self.artist_id
        if result and (self.title or self.album or self.track_id):
            result += " - "
        if self.album:
            result += self.album
            if self.title or self.track_id:
                result += ": "
        if self.title:
            result += self.title
            if self.track_id:
                result += f" ({self.track_id})"
        elif self.track_id:
            result += self.track_id
        if self.year > 0:
            result += f" ({self.year})" if result else str(self.year)

        extras: list[str] = []
        if self.track_number > 0 and self.total_tracks > 0:
            extras.append(f"track={self.track_number}/{self.total_tracks}")
        if self.track_id:
            extras.append(f"trackID={self.track_id}")
        if self.release_id:
            extras.append(f"releaseId={self.release_id}")
        if extras:
            result = ", ".join([result, *extras]) if result else ", ".join(extras)
        return result
