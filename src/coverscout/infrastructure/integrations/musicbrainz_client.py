"""MusicBrainz XML search client with rate limiting."""

import asyncio
import logging
from typing import Any

import httpx

from coverscout.config.settings import MusicBrainzSettings
from coverscout.domain.entities import ReleaseCandidate
from coverscout.domain.exceptions import MusicBrainzError
from coverscout.domain.ports import IReleaseCatalog, SearchEntity
from coverscout.infrastructure.integrations.musicbrainz_xml import (
    parse_recording_list,
    parse_release_list,
)

logger = logging.getLogger(__name__)


class MusicBrainzClient(IReleaseCatalog):
    """HTTP client for MusicBrainz release/recording searches."""

    # Hey future me, MusicBrainz is STRICT about rate limiting - 1 req/sec, NO EXCEPTIONS!
    # All requests go through one lock and we sleep if the previous request was too recent.
    # Get this wrong and they IP-ban you for hours.
    def __init__(self, settings: MusicBrainzSettings) -> None:
        """Initialize MusicBrainz client.

        Args:
            settings: MusicBrainz configuration settings
        """
        self.settings = settings
        self._client: httpx.AsyncClient | None = None
        self._last_request_time: float = 0.0
        self._rate_limit_lock = asyncio.Lock()

    # MusicBrainz rejects requests without "AppName/Version ( contact )" User-Agent with 403
    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            user_agent = (
                f"{self.settings.app_name}/{self.settings.app_version} "
                f"( {self.settings.contact} )"
            )
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers={
                    "User-Agent": user_agent,
                    "Accept": "application/xml",
                    "Accept-Charset": "utf-8",
                },
                timeout=self.settings.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # _last_request_time is updated AFTER the request completes, so slow responses
    # don't let the next request start early.
    async def _rate_limited_request(
        self, method: str, url: str, **kwargs: Any
    ) -> httpx.Response:
        """Make a rate-limited request to the MusicBrainz API.

        Raises:
            httpx.HTTPError: If the request fails
        """
        async with self._rate_limit_lock:
            current_time = asyncio.get_running_loop().time()
            time_since_last = current_time - self._last_request_time

            if time_since_last < self.settings.rate_limit_delay:
                await asyncio.sleep(self.settings.rate_limit_delay - time_since_last)

            client = await self._get_client()
            try:
                return await client.request(method, url, **kwargs)
            finally:
                self._last_request_time = asyncio.get_running_loop().time()

    async def search(self, entity: SearchEntity, query: str) -> list[ReleaseCandidate]:
        """Search releases or recordings with a Lucene query.

        Args:
            entity: RELEASE or RECORDING
            query: Lucene query (httpx does the URL encoding)

        Returns:
            Candidates in MusicBrainz' order

        Raises:
            MusicBrainzError: On transport errors, non-200 responses or unparsable XML
        """
        try:
            response = await self._rate_limited_request(
                "GET",
                f"/{entity.value}/",
                params={"query": query, "fmt": "xml"},
            )
        except httpx.HTTPError as e:
            raise MusicBrainzError(f"MusicBrainz {entity.value} search failed: {e}") from e

        if response.status_code != 200:
            raise MusicBrainzError(
                f"MusicBrainz replied with status code {response.status_code}",
                http_status=response.status_code,
            )

        if entity is SearchEntity.RELEASE:
            candidates = parse_release_list(response.content)
        else:
            candidates = parse_recording_list(response.content)
        logger.debug(
            "MusicBrainz %s search returned %d candidates", entity.value, len(candidates)
        )
        return candidates

    async def __aenter__(self) -> "MusicBrainzClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
