"""Shared fixtures: in-memory stand-ins for the pipeline's ports.

Hey future me - the stubs COUNT their calls. Most pipeline tests are about how many
times the store or the network was hit (single-flight, idempotency, "no I/O"), so
asserting on counters is clearer than mocking every call.
"""

import asyncio
from collections.abc import AsyncGenerator
from datetime import datetime
from pathlib import Path

import pytest

from coverscout.application.cache import ThumbnailMemoryCache
from coverscout.application.services import (
    ReleaseResolver,
    RequestCoordinator,
    ThumbnailCache,
)
from coverscout.config.settings import DatabaseSettings
from coverscout.domain.entities import (
    CoverDownload,
    CoverRecord,
    ReleaseCandidate,
    ReleaseLookupResult,
    Thumbnail,
)
from coverscout.domain.exceptions import EntityNotFoundError
from coverscout.domain.ports import (
    ICoverArtSource,
    ICoverStore,
    IReleaseCatalog,
    IReleaseStore,
    IThumbnailCodec,
    SearchEntity,
)
from coverscout.domain.value_objects import TagQuery
from coverscout.infrastructure.persistence import Database


class StubReleaseStore(IReleaseStore):
    """Release store keeping results in a dict keyed by the exact query."""

    def __init__(self) -> None:
        self.results: dict[TagQuery, ReleaseLookupResult] = {}
        self.find_calls = 0
        self.writes: list[tuple[str | None, TagQuery, datetime]] = []

    async def find_release(self, query: TagQuery) -> ReleaseLookupResult | None:
        self.find_calls += 1
        return self.results.get(query)

    async def write_release(
        self, release_id: str | None, query: TagQuery, expires_at: datetime
    ) -> None:
        self.writes.append((release_id, query, expires_at))
        self.results[query] = ReleaseLookupResult(
            found=True, release_id=release_id, expires_at=expires_at
        )


class StubCatalog(IReleaseCatalog):
    """Catalog answering each search round from a queue of prepared responses.

    A queued exception is raised instead of returned.
    """

    def __init__(self, *responses: list[ReleaseCandidate] | Exception) -> None:
        self.responses = list(responses)
        self.searches: list[tuple[SearchEntity, str]] = []
        self.delay = 0.0

    async def search(self, entity: SearchEntity, query: str) -> list[ReleaseCandidate]:
        self.searches.append((entity, query))
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.responses:
            return []
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class StubCoverStore(ICoverStore):
    """Cover store keeping records in a dict."""

    def __init__(self) -> None:
        self.records: dict[str, CoverRecord] = {}
        self.find_calls = 0
        self.writes: list[tuple[str, bytes | None, Thumbnail | None, datetime]] = []
        self.thumbnail_updates: list[tuple[str, Thumbnail | None]] = []

    async def find_cover(self, release_id: str) -> CoverRecord:
        self.find_calls += 1
        return self.records.get(release_id, CoverRecord.missing())

    async def write_cover(
        self,
        release_id: str,
        cover: bytes | None,
        thumbnail: Thumbnail | None,
        expires_at: datetime,
    ) -> None:
        self.writes.append((release_id, cover, thumbnail, expires_at))
        self.records[release_id] = CoverRecord(
            found=True, cover=cover, thumbnail=thumbnail, expires_at=expires_at
        )

    async def update_thumbnail(self, release_id: str, thumbnail: Thumbnail | None) -> None:
        record = self.records.get(release_id)
        if record is None:
            raise EntityNotFoundError("Cover", release_id)
        self.thumbnail_updates.append((release_id, thumbnail))
        self.records[release_id] = CoverRecord(
            found=True, cover=record.cover, thumbnail=thumbnail, expires_at=record.expires_at
        )


class StubCoverSource(ICoverArtSource):
    """Cover source returning a fixed download outcome."""

    def __init__(self, download: CoverDownload | None = None) -> None:
        self.download = download or CoverDownload.found(b"cover-bytes", "https://caa/front")
        self.calls: list[str] = []
        self.delay = 0.0

    async def fetch_front_cover(self, release_id: str) -> CoverDownload:
        self.calls.append(release_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.download


class StubCodec(IThumbnailCodec):
    """Codec wrapping the cover bytes in a 10x10 thumbnail ("bad" can't be decoded)."""

    def __init__(self) -> None:
        self.calls = 0

    async def derive_thumbnail(self, cover: bytes) -> Thumbnail | None:
        self.calls += 1
        if cover == b"bad":
            return None
        return Thumbnail(data=b"thumb:" + cover, width=10, height=10)


@pytest.fixture
def release_store() -> StubReleaseStore:
    return StubReleaseStore()


@pytest.fixture
def catalog() -> StubCatalog:
    return StubCatalog()


@pytest.fixture
def resolver(release_store: StubReleaseStore, catalog: StubCatalog) -> ReleaseResolver:
    return ReleaseResolver(
        store=release_store,
        catalog=catalog,
        coordinator=RequestCoordinator[TagQuery]("release-query", timeout=10.0),
    )


@pytest.fixture
def cover_store() -> StubCoverStore:
    return StubCoverStore()


@pytest.fixture
def cover_source() -> StubCoverSource:
    return StubCoverSource()


@pytest.fixture
def codec() -> StubCodec:
    return StubCodec()


@pytest.fixture
def memory_cache() -> ThumbnailMemoryCache:
    return ThumbnailMemoryCache(cleanup_interval=120.0)


@pytest.fixture
def thumbnail_cache(
    cover_store: StubCoverStore,
    cover_source: StubCoverSource,
    codec: StubCodec,
    memory_cache: ThumbnailMemoryCache,
) -> ThumbnailCache:
    return ThumbnailCache(
        store=cover_store,
        source=cover_source,
        codec=codec,
        coordinator=RequestCoordinator[str]("cover", timeout=10.0),
        memory=memory_cache,
    )


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """File backed SQLite database with all tables created."""
    db = Database(DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'covers.db'}"))
    await db.create_tables()
    yield db
    await db.close()
