"""Unit tests for the two-tier ThumbnailCache."""

import asyncio
from datetime import timedelta

import pytest

from coverscout.application.cache import ThumbnailMemoryCache
from coverscout.application.services import RequestCoordinator, ThumbnailCache
from coverscout.domain.entities import CoverDownload, CoverRecord, Thumbnail
from coverscout.domain.exceptions import EntityNotFoundError, ValidationError
from coverscout.domain.value_objects import ExpirationPolicy, utc_now

RELEASE_ID = "1b022e01-4da6-387b-8658-8678046e4cef"


class TestThumbnailCacheValidation:
    """Input validation."""

    @pytest.mark.parametrize("release_id", ["", "   "])
    async def test_blank_release_id_is_rejected(self, thumbnail_cache, release_id: str) -> None:
        with pytest.raises(ValidationError):
            await thumbnail_cache.get_thumbnail(release_id, allow_network=True)


class TestThumbnailCacheDownload:
    """Store misses that go to the Cover Art Archive."""

    async def test_download_found(self, thumbnail_cache, cover_store, cover_source, codec) -> None:
        result = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True)

        assert result.has_thumbnail
        assert result.data == b"thumb:cover-bytes"
        assert cover_source.calls == [RELEASE_ID]
        assert codec.calls == 1

        release_id, cover, thumbnail, expires_at = cover_store.writes[0]
        assert release_id == RELEASE_ID
        assert cover == b"cover-bytes"
        assert thumbnail is result.thumbnail
        assert expires_at == result.expires_at
        assert expires_at - utc_now() > ExpirationPolicy.FOUND.shortest - timedelta(minutes=1)

    async def test_download_not_found(self, thumbnail_cache, cover_store, cover_source) -> None:
        cover_source.download = CoverDownload.not_found()

        result = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True)

        assert not result.has_thumbnail
        remaining = result.expires_at - utc_now()
        assert ExpirationPolicy.NOT_FOUND.shortest - timedelta(minutes=1) < remaining
        assert remaining <= ExpirationPolicy.NOT_FOUND.longest
        assert cover_store.writes[0][1:3] == (None, None)

    async def test_download_error(self, thumbnail_cache, cover_store, cover_source) -> None:
        cover_source.download = CoverDownload.failed("HTTP 503")

        result = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True)

        assert not result.has_thumbnail
        assert result.expires_at - utc_now() <= ExpirationPolicy.ERROR.longest
        assert len(cover_store.writes) == 1

    async def test_network_disabled(self, thumbnail_cache, cover_store, cover_source) -> None:
        result = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=False)

        assert not result.has_thumbnail
        assert result.never_expires()
        assert cover_source.calls == []
        assert cover_store.writes == []

    async def test_expired_negative_is_downloaded_again(
        self, thumbnail_cache, cover_store, cover_source
    ) -> None:
        cover_store.records[RELEASE_ID] = CoverRecord(
            found=True, expires_at=utc_now() - timedelta(seconds=1)
        )

        result = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True)

        assert result.has_thumbnail
        assert cover_source.calls == [RELEASE_ID]


class TestThumbnailCacheStore:
    """Results served from the persistent store."""

    async def test_expired_stored_thumbnail_is_served(
        self, thumbnail_cache, cover_store, cover_source
    ) -> None:
        thumbnail = Thumbnail(data=b"stored", width=5, height=5)
        cover_store.records[RELEASE_ID] = CoverRecord(
            found=True, thumbnail=thumbnail, expires_at=utc_now() - timedelta(days=1)
        )

        result = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True)

        assert result.thumbnail is thumbnail
        assert cover_source.calls == []

    async def test_stored_thumbnail(self, thumbnail_cache, cover_store, cover_source, codec) -> None:
        thumbnail = Thumbnail(data=b"stored", width=5, height=5)
        expires_at = utc_now() + timedelta(days=3)
        cover_store.records[RELEASE_ID] = CoverRecord(
            found=True, cover=b"cover", thumbnail=thumbnail, expires_at=expires_at
        )

        result = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True)

        assert result.thumbnail is thumbnail
        assert result.expires_at == expires_at
        assert cover_source.calls == []
        assert codec.calls == 0

    async def test_thumbnail_derived_from_stored_cover(
        self, thumbnail_cache, cover_store, cover_source
    ) -> None:
        cover_store.records[RELEASE_ID] = CoverRecord(
            found=True, cover=b"cover", expires_at=utc_now() + timedelta(days=3)
        )

        result = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=False)

        assert result.data == b"thumb:cover"
        assert cover_store.thumbnail_updates == [(RELEASE_ID, result.thumbnail)]
        assert cover_source.calls == []

    async def test_undecodable_stored_cover(self, thumbnail_cache, cover_store) -> None:
        cover_store.records[RELEASE_ID] = CoverRecord(
            found=True, cover=b"bad", expires_at=utc_now() + timedelta(days=3)
        )

        result = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True)

        assert not result.has_thumbnail
        assert cover_store.thumbnail_updates == []

    async def test_thumbnail_update_failure_still_returns_thumbnail(
        self, thumbnail_cache, cover_store, mocker
    ) -> None:
        cover_store.records[RELEASE_ID] = CoverRecord(
            found=True, cover=b"cover", expires_at=utc_now() + timedelta(days=3)
        )
        mocker.patch.object(
            cover_store,
            "update_thumbnail",
            side_effect=EntityNotFoundError("Cover", RELEASE_ID),
        )

        result = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True)

        assert result.data == b"thumb:cover"

    async def test_cached_negative_not_expired(
        self, thumbnail_cache, cover_store, cover_source
    ) -> None:
        expires_at = utc_now() + timedelta(days=1)
        cover_store.records[RELEASE_ID] = CoverRecord(found=True, expires_at=expires_at)

        result = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True)

        assert not result.has_thumbnail
        assert result.expires_at == expires_at
        assert cover_source.calls == []


class TestThumbnailCacheMemoryTier:
    """Idempotency and single-flight through the memory tier."""

    async def test_second_call_does_no_io(self, thumbnail_cache, cover_store, cover_source) -> None:
        first = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True)
        second = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True)

        assert second == first
        assert second.thumbnail is first.thumbnail
        assert cover_store.find_calls == 1
        assert cover_source.calls == [RELEASE_ID]

    async def test_release_id_is_trimmed(self, thumbnail_cache, cover_source) -> None:
        first = await thumbnail_cache.get_thumbnail(f"  {RELEASE_ID} ", allow_network=True)
        second = await thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True)

        assert second.thumbnail is first.thumbnail
        assert cover_source.calls == [RELEASE_ID]

    async def test_concurrent_calls_download_once(
        self, thumbnail_cache, cover_store, cover_source
    ) -> None:
        cover_source.delay = 0.02

        results = await asyncio.gather(
            *(thumbnail_cache.get_thumbnail(RELEASE_ID, allow_network=True) for _ in range(10))
        )

        assert cover_source.calls == [RELEASE_ID]
        assert len(cover_store.writes) == 1
        assert all(result.thumbnail is results[0].thumbnail for result in results)

    async def test_ticket_timeout_returns_immediate_expiry(
        self, cover_store, cover_source, codec
    ) -> None:
        coordinator = RequestCoordinator[str]("cover", timeout=0.05)
        cache = ThumbnailCache(
            cover_store, cover_source, codec, coordinator, ThumbnailMemoryCache()
        )
        ticket = await coordinator.acquire(RELEASE_ID)

        result = await cache.get_thumbnail(RELEASE_ID, allow_network=True)

        assert ticket is not None
        coordinator.release(ticket)
        assert not result.has_thumbnail
        assert result.expires_at - utc_now() <= ExpirationPolicy.IMMEDIATE.base
        assert cover_store.find_calls == 0
