"""Startup and shutdown of the cover lookup pipeline.

Hey future me - this is the ONLY place that knows every concrete class. Everything
else gets its collaborators passed in. Use it like this:

    async with cover_art_lifespan() as covers:
        handle = await covers.get_thumbnail_for_file("/music/track.flac")

Everything before `yield` runs at startup, everything after runs at shutdown. The
try/finally makes sure the HTTP clients and the database engine are closed even if
startup failed halfway.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from coverscout.application.cache import ThumbnailMemoryCache
from coverscout.application.services import (
    CoverArtService,
    ReleaseResolver,
    RequestCoordinator,
    ThumbnailCache,
)
from coverscout.config import Settings, get_settings
from coverscout.domain.exceptions import ConfigurationError
from coverscout.domain.value_objects import TagQuery
from coverscout.infrastructure.imaging import PillowThumbnailCodec
from coverscout.infrastructure.integrations import CoverArtArchiveClient, MusicBrainzClient
from coverscout.infrastructure.observability import configure_logging
from coverscout.infrastructure.persistence import Database, SqlCoverStore, SqlReleaseStore

logger = logging.getLogger(__name__)


# Validates the SQLite path BEFORE the engine is created. SQLite creates its -wal and
# -shm files next to the database, so the whole directory must be writable, not only
# the file. We don't pre-create the .db file, SQLite initializes it on first connect.
# Returns early for in-memory databases.
def _validate_sqlite_path(settings: Settings) -> None:
    """Ensure the SQLite database directory exists and is writable.

    Raises:
        ConfigurationError: If the directory can't be created or written
    """
    db_path = settings.database.sqlite_path
    if db_path is None:
        return

    try:
        if db_path.parent and str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Ensured SQLite parent directory exists: %s", db_path.parent)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{db_path.parent}': {exc}. "
            "Update COVERSCOUT_DATABASE__URL or adjust directory permissions."
        ) from exc

    try:
        test_file = db_path.parent / f".{db_path.stem}_write_test"
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "SQLite needs write permissions for the database and its journal files."
        ) from exc


def build_cover_art_service(
    settings: Settings,
    database: Database,
    musicbrainz: MusicBrainzClient,
    coverartarchive: CoverArtArchiveClient,
) -> CoverArtService:
    """Wire the lookup pipeline from its adapters.

    Each stage gets its own coordinator, keys of the two never mix.
    """
    resolver = ReleaseResolver(
        store=SqlReleaseStore(database),
        catalog=musicbrainz,
        coordinator=RequestCoordinator[TagQuery](
            "release-query", timeout=settings.cache.ticket_timeout
        ),
    )
    thumbnails = ThumbnailCache(
        store=SqlCoverStore(database),
        source=coverartarchive,
        codec=PillowThumbnailCodec(settings.thumbnail),
        coordinator=RequestCoordinator[str]("cover", timeout=settings.cache.ticket_timeout),
        memory=ThumbnailMemoryCache(cleanup_interval=settings.cache.cleanup_interval),
    )
    return CoverArtService(resolver, thumbnails, settings)


@asynccontextmanager
async def cover_art_lifespan(
    settings: Settings | None = None,
    configure_logs: bool = True,
) -> AsyncGenerator[CoverArtService, None]:
    """Start the cover lookup pipeline and shut it down on exit.

    Args:
        settings: Settings to use (defaults to get_settings())
        configure_logs: Set up root logging from the observability settings. Pass
            False when the host application configures logging itself.

    Yields:
        Ready to use CoverArtService
    """
    settings = settings or get_settings()

    if configure_logs:
        configure_logging(
            log_level=settings.observability.log_level,
            json_format=settings.observability.log_json_format,
            app_name=settings.musicbrainz.app_name,
        )

    database: Database | None = None
    musicbrainz: MusicBrainzClient | None = None
    coverartarchive: CoverArtArchiveClient | None = None
    try:
        _validate_sqlite_path(settings)

        database = Database(settings.database)
        await database.create_tables()
        logger.info("Cover cache database ready: %s", settings.database.url)

        musicbrainz = MusicBrainzClient(settings.musicbrainz)
        coverartarchive = CoverArtArchiveClient(settings.coverartarchive, settings.user_agent)

        if not settings.network.enabled:
            logger.info("External network access is disabled, serving cached covers only")

        yield build_cover_art_service(settings, database, musicbrainz, coverartarchive)
    finally:
        logger.info("Shutting down cover lookup pipeline")
        if coverartarchive is not None:
            await coverartarchive.close()
        if musicbrainz is not None:
            await musicbrainz.close()
        if database is not None:
            await database.close()
