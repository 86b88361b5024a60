"""External service integrations."""

from coverscout.infrastructure.integrations.coverartarchive_client import (
    CoverArtArchiveClient,
)
from coverscout.infrastructure.integrations.musicbrainz_client import MusicBrainzClient

__all__ = ["CoverArtArchiveClient", "MusicBrainzClient"]
