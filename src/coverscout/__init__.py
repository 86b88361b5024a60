"""CoverScout - audio cover art lookup via MusicBrainz and the Cover Art Archive."""

__version__ = "0.1.0"
