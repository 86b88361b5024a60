"""Tests for the SQLite backed release and cover stores.

Hey future me - these run against a real aiosqlite file in tmp_path (see the
`database` fixture in conftest.py). The store keys are WHERE clauses, mocking the
session would test nothing.
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from coverscout.domain.entities import Thumbnail
from coverscout.domain.exceptions import EntityNotFoundError
from coverscout.domain.value_objects import TagQuery, utc_now
from coverscout.infrastructure.persistence import Database, SqlCoverStore, SqlReleaseStore
from coverscout.infrastructure.persistence.repositories import lookup_conditions

NEVERMIND = TagQuery(album="Nevermind", artist="Nirvana", year=1991)


@pytest.fixture
def release_store(database: Database) -> SqlReleaseStore:
    return SqlReleaseStore(database)


@pytest.fixture
def cover_store(database: Database) -> SqlCoverStore:
    return SqlCoverStore(database)


class TestLookupConditions:
    """Tests for the lookup key of a query."""

    def test_album_and_artist_ignore_track_fields(self) -> None:
        query = TagQuery(album="Nevermind", artist="Nirvana", title="Lithium", track_id="tid")
        assert len(lookup_conditions(query)) == 2

    def test_artist_id_replaces_artist_name(self) -> None:
        query = TagQuery(album="Nevermind", artist="Nirvana", artist_id="arid")
        assert len(lookup_conditions(query)) == 2

    def test_title_joins_without_artist(self) -> None:
        assert len(lookup_conditions(TagQuery(album="Nevermind", title="Lithium"))) == 2

    def test_track_id_beats_title(self) -> None:
        assert len(lookup_conditions(TagQuery(title="Lithium", track_id="tid"))) == 1

    def test_known_numbers_join(self) -> None:
        query = TagQuery(album="Nevermind", year=1991, track_number=3, total_tracks=12)
        assert len(lookup_conditions(query)) == 4


class TestSqlReleaseStore:
    """Tests for SqlReleaseStore."""

    async def test_write_and_find(self, release_store: SqlReleaseStore) -> None:
        expires_at = utc_now() + timedelta(days=14)
        await release_store.write_release("nevermind-1991", NEVERMIND, expires_at)

        result = await release_store.find_release(NEVERMIND)

        assert result is not None
        assert result.found
        assert result.release_id == "nevermind-1991"
        assert abs(result.expires_at - expires_at) < timedelta(seconds=1)

    async def test_miss(self, release_store: SqlReleaseStore) -> None:
        assert await release_store.find_release(NEVERMIND) is None

    async def test_find_ignores_track_fields_when_album_and_artist_known(
        self, release_store: SqlReleaseStore
    ) -> None:
        written = TagQuery(album="Nevermind", artist="Nirvana", year=1991, title="Breed")
        await release_store.write_release("nevermind-1991", written, utc_now() + timedelta(days=1))

        result = await release_store.find_release(
            TagQuery(album="Nevermind", artist="Nirvana", year=1991, title="Lithium")
        )

        assert result is not None
        assert result.release_id == "nevermind-1991"

    async def test_negative_result(self, release_store: SqlReleaseStore) -> None:
        await release_store.write_release(None, NEVERMIND, utc_now() + timedelta(days=3))

        result = await release_store.find_release(NEVERMIND)

        assert result is not None
        assert result.found
        assert result.release_id is None
        assert not result.has_release_id

    async def test_negative_never_replaces_release_id(self, release_store: SqlReleaseStore) -> None:
        await release_store.write_release("nevermind-1991", NEVERMIND, utc_now() + timedelta(days=1))
        await release_store.write_release(None, NEVERMIND, utc_now() + timedelta(days=3))

        result = await release_store.find_release(NEVERMIND)

        assert result is not None
        assert result.release_id == "nevermind-1991"

    async def test_release_id_replaces_negative(self, release_store: SqlReleaseStore) -> None:
        await release_store.write_release(None, NEVERMIND, utc_now() - timedelta(days=1))
        await release_store.write_release("nevermind-1991", NEVERMIND, utc_now() + timedelta(days=14))

        result = await release_store.find_release(NEVERMIND)

        assert result is not None
        assert result.release_id == "nevermind-1991"
        assert not result.is_expired()

    async def test_rows_with_release_id_win(self, release_store: SqlReleaseStore) -> None:
        # Two rows under the same lookup key, written for different exact queries
        await release_store.write_release(
            "nevermind-1991",
            TagQuery(album="Nevermind", artist="Nirvana", title="Breed"),
            utc_now() + timedelta(days=14),
        )
        await release_store.write_release(
            None,
            TagQuery(album="Nevermind", artist="Nirvana", title="Polly"),
            utc_now() + timedelta(days=3),
        )

        result = await release_store.find_release(TagQuery(album="Nevermind", artist="Nirvana"))

        assert result is not None
        assert result.release_id == "nevermind-1991"

    async def test_database_error_is_a_miss(
        self, release_store: SqlReleaseStore, database: Database, mocker
    ) -> None:
        mocker.patch.object(
            database,
            "session_scope",
            side_effect=OperationalError("SELECT", {}, Exception("disk I/O error")),
        )

        assert await release_store.find_release(NEVERMIND) is None
        # Writes are swallowed too
        await release_store.write_release("id", NEVERMIND, utc_now())


class TestSqlCoverStore:
    """Tests for SqlCoverStore."""

    async def test_missing_cover(self, cover_store: SqlCoverStore) -> None:
        record = await cover_store.find_cover("unknown")
        assert not record.found
        assert record.is_expired()

    async def test_write_and_find(self, cover_store: SqlCoverStore) -> None:
        thumbnail = Thumbnail(data=b"thumb", width=500, height=500, mime_type="image/png")
        await cover_store.write_cover("r1", b"cover", thumbnail, utc_now() + timedelta(days=14))

        record = await cover_store.find_cover("r1")

        assert record.found
        assert record.cover == b"cover"
        assert record.thumbnail is not None
        assert record.thumbnail.data == b"thumb"
        assert (record.thumbnail.width, record.thumbnail.height) == (500, 500)
        assert record.thumbnail.mime_type == "image/png"
        assert not record.is_expired()

    async def test_negative_row(self, cover_store: SqlCoverStore) -> None:
        await cover_store.write_cover("r1", None, None, utc_now() + timedelta(days=3))

        record = await cover_store.find_cover("r1")

        assert record.found
        assert record.cover is None
        assert record.thumbnail is None

    async def test_negative_never_replaces_cover(self, cover_store: SqlCoverStore) -> None:
        await cover_store.write_cover("r1", b"cover", None, utc_now() + timedelta(days=14))
        await cover_store.write_cover("r1", None, None, utc_now() + timedelta(minutes=4))

        record = await cover_store.find_cover("r1")

        assert record.cover == b"cover"

    async def test_update_thumbnail(self, cover_store: SqlCoverStore) -> None:
        await cover_store.write_cover("r1", b"cover", None, utc_now() + timedelta(days=14))

        await cover_store.update_thumbnail("r1", Thumbnail(data=b"thumb", width=1, height=1))

        record = await cover_store.find_cover("r1")
        assert record.cover == b"cover"
        assert record.thumbnail is not None
        assert record.thumbnail.data == b"thumb"

    async def test_update_thumbnail_without_row_raises(self, cover_store: SqlCoverStore) -> None:
        with pytest.raises(EntityNotFoundError):
            await cover_store.update_thumbnail("unknown", Thumbnail(data=b"t", width=1, height=1))
