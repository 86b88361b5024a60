"""Cover Art Archive download client.

Hey future me - the Cover Art Archive (CAA) hosts the artwork for MusicBrainz
releases, free and without API key. Flow for one release:

    GET /release/{mbid}/        -> JSON listing all images (404 = no artwork at all)
    pick the front image        -> or the first image if none is flagged front
    GET thumbnails["500"]       -> pre-rendered 500px version, plenty for a 640x480 thumb
    GET image (original)        -> only if the thumbnail download fails with an HTTP status

Image URLs redirect to archive.org, so follow_redirects must stay on.

Outcomes are returned as CoverDownload, never raised: a 404 (or no images) means
NOT_FOUND, everything else that goes wrong is an ERROR (retried after a few minutes).
"""

import asyncio
import logging
from typing import Any

import httpx

from coverscout.config.settings import CoverArtArchiveSettings
from coverscout.domain.entities import CoverDownload
from coverscout.domain.exceptions import CoverArtArchiveError
from coverscout.domain.ports import ICoverArtSource

logger = logging.getLogger(__name__)


def select_front_image(images: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Pick the image flagged as front cover, else the first one."""
    for image in images:
        if image.get("front"):
            return image
    return images[0] if images else None


class CoverArtArchiveClient(ICoverArtSource):
    """HTTP client for the Cover Art Archive."""

    # CAA has no strict limit like MusicBrainz, but don't hammer it during library scans
    RATE_LIMIT_DELAY = 0.2

    def __init__(self, settings: CoverArtArchiveSettings, user_agent: str) -> None:
        """Initialize client.

        Args:
            settings: Cover Art Archive settings
            user_agent: User-Agent header (same as for MusicBrainz)
        """
        self.settings = settings
        self._user_agent = user_agent
        self._client: httpx.AsyncClient | None = None
        self._last_request_time: float = 0.0
        self._rate_limit_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers={"User-Agent": self._user_agent},
                timeout=self.settings.timeout,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _rate_limited_request(
        self, method: str, url: str, **kwargs: Any
    ) -> httpx.Response:
        async with self._rate_limit_lock:
            current_time = asyncio.get_running_loop().time()
            time_since_last = current_time - self._last_request_time

            if time_since_last < self.RATE_LIMIT_DELAY:
                await asyncio.sleep(self.RATE_LIMIT_DELAY - time_since_last)

            client = await self._get_client()
            try:
                return await client.request(method, url, **kwargs)
            finally:
                self._last_request_time = asyncio.get_running_loop().time()

    async def get_release_images(self, release_id: str) -> list[dict[str, Any]] | None:
        """Get the image listing of a release.

        Returns:
            Image dicts as returned by CAA, or None if the release has no artwork

        Raises:
            CoverArtArchiveError: On transport errors, unexpected status or bad JSON
        """
        try:
            response = await self._rate_limited_request("GET", f"/release/{release_id}/")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise CoverArtArchiveError(f"Artwork listing request failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise CoverArtArchiveError(
                f"Cover Art Archive replied with status code {response.status_code}",
                http_status=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise CoverArtArchiveError(f"Invalid artwork listing JSON: {e}") from e

        images = data.get("images") if isinstance(data, dict) else None
        if not isinstance(images, list):
            return []
        if not all(isinstance(image, dict) for image in images):
            raise CoverArtArchiveError("Artwork listing has non-object image entries")
        return images

    async def _download(self, url: str) -> bytes:
        """Download image bytes.

        Raises:
            httpx.HTTPStatusError: On a non-2xx status
            httpx.HTTPError: On transport errors
        """
        response = await self._rate_limited_request("GET", url)
        response.raise_for_status()
        return response.content

    async def fetch_front_cover(self, release_id: str) -> CoverDownload:
        """Download the front cover of a release."""
        try:
            images = await self.get_release_images(release_id)
        except CoverArtArchiveError as e:
            if e.http_status is not None:
                logger.warning(
                    "Got HTTP status code %d while looking up cover art for release %s",
                    e.http_status,
                    release_id,
                )
            else:
                logger.debug("Couldn't get cover art for release %s: %s", release_id, e.message)
            return CoverDownload.failed(e.message)

        image = select_front_image(images or [])
        if image is None:
            logger.debug("Release %s has no cover at the Cover Art Archive", release_id)
            return CoverDownload.not_found()

        original_url = image.get("image")
        thumbnails = image.get("thumbnails") or {}
        if not isinstance(thumbnails, dict):
            thumbnails = {}
        thumbnail_url = thumbnails.get(self.settings.thumbnail_size) or thumbnails.get("large")
        if not isinstance(original_url, str | None) or not isinstance(thumbnail_url, str | None):
            logger.warning("Unexpected image URLs in cover art listing of release %s", release_id)
            return CoverDownload.failed("Unexpected image URLs in artwork listing")

        try:
            if thumbnail_url:
                try:
                    return CoverDownload.found(await self._download(thumbnail_url), thumbnail_url)
                except httpx.HTTPStatusError as e:
                    if not original_url:
                        raise
                    logger.debug(
                        "Thumbnail for release %s unavailable (%d), using the original image",
                        release_id,
                        e.response.status_code,
                    )
            if not original_url:
                return CoverDownload.not_found()
            return CoverDownload.found(await self._download(original_url), original_url)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.debug("Cover art for release %s was not found", release_id)
                return CoverDownload.not_found()
            logger.warning(
                "Got HTTP status code %d while downloading cover art for release %s",
                e.response.status_code,
                release_id,
            )
            return CoverDownload.failed(f"HTTP {e.response.status_code}")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(
                "An error occurred while downloading cover art for release %s: %s", release_id, e
            )
            return CoverDownload.failed(str(e))

    async def __aenter__(self) -> "CoverArtArchiveClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
