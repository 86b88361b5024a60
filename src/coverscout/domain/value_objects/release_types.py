"""Release types as reported by MusicBrainz release groups.

Hey future me - only the PRIMARY type matters for release scoring. Singles get the
biggest bonus (a track found on a single is the most specific match), albums and
unknown types a smaller one, everything else (EP, broadcast, other) none.
"""

from enum import Enum


class ReleaseType(str, Enum):
    """Primary type of a MusicBrainz release group."""

    ALBUM = "album"
    """Standard full-length album."""

    SINGLE = "single"
    """Single release - typically 1-3 tracks."""

    EP = "ep"
    """Extended Play."""

    BROADCAST = "broadcast"
    """Radio broadcast recording."""

    OTHER = "other"
    """Anything that doesn't fit other categories."""

    @classmethod
    def from_string(cls, value: str | None) -> "ReleaseType | None":
        """Parse a MusicBrainz primary-type, returning None if missing or unknown.

        Args:
            value: String like "Album", "Single", "EP"

        Returns:
            Corresponding enum value or None
        """
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    @staticmethod
    def match_bonus(release_type: "ReleaseType | None") -> int:
        """Score bonus for a candidate whose names matched the query.

        Prefer Single > Album (or unknown) > anything else.
        """
        if release_type is ReleaseType.SINGLE:
            return 20
        if release_type is None or release_type is ReleaseType.ALBUM:
            return 10
        return 0

    def __str__(self) -> str:
        return self.value
