"""Read lookup tags from audio files with mutagen."""

import asyncio
import logging
from pathlib import Path

from mutagen import File as MutagenFile
from mutagen import MutagenError

from coverscout.domain.value_objects import TagQuery

logger = logging.getLogger(__name__)


def read_tags(path: Path | str) -> dict[str, list[str]] | None:
    """Read the "easy" tags of an audio file.

    Hey future me - easy=True gives the same lowercase keys (album, artist,
    musicbrainz_trackid, ...) for ID3, Vorbis comments and MP4, which is what
    TagQuery.from_tags() expects. This is blocking file I/O, use read_tag_query()
    from async code.

    Returns:
        Tag mapping, or None if the file isn't a supported audio file
    """
    try:
        audio = MutagenFile(str(path), easy=True)
    except MutagenError as e:
        logger.debug("Could not read tags from %s: %s", path, e)
        return None
    if audio is None or audio.tags is None:
        return None
    return {key.lower(): list(value) for key, value in audio.tags.items()}


async def read_tag_query(path: Path | str) -> TagQuery | None:
    """Build a TagQuery from an audio file's tags (in a worker thread)."""
    tags = await asyncio.to_thread(read_tags, path)
    if tags is None:
        return None
    return TagQuery.from_tags(tags)
