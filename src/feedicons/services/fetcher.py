"""
Favicon byte fetcher with request deduplication.

At most one GET is in flight per favicon URL. Callers that ask for a URL
that is already being downloaded await the same shared future. Any
non-success response or transport failure marks the URL as bad, after which
``fetch`` answers ``None`` without touching the network.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from feedicons.services.favicon_state import FaviconCacheState

logger = logging.getLogger(__name__)

# Maximum favicon body size accepted by default: 5 MB
_MAX_FAVICON_BYTES = 5 * 1024 * 1024


class FaviconFetcher:
    """Download raw favicon bytes.

    Parameters
    ----------
    client : httpx.AsyncClient
        Shared HTTP client.
    state : FaviconCacheState
        Registries holding the bad URL set and the in-flight downloads.
    max_bytes : int
        Bodies larger than this are rejected and the URL marked bad.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        state: FaviconCacheState,
        max_bytes: int = _MAX_FAVICON_BYTES,
    ) -> None:
        self._client = client
        self._state = state
        self._max_bytes = max_bytes

    async def fetch(self, url: str) -> bytes | None:
        """Return the body of *url*, or ``None`` if the URL is (now) bad.

        Parameters
        ----------
        url : str
            Favicon URL.

        Returns
        -------
        bytes | None
            Response body on success, ``None`` otherwise.
        """
        if self._state.is_bad_url(url):
            logger.debug("Skipping known bad favicon URL: %s", url)
            return None

        loop = asyncio.get_running_loop()
        future: asyncio.Future[bytes | None] = loop.create_future()
        shared = self._state.begin_in_flight(url, future)
        if shared is not future:
            logger.debug("Joining in-flight download of %s", url)
            return await asyncio.shield(shared)

        data: bytes | None = None
        try:
            data = await self._download(url)
        finally:
            self._state.finish_in_flight(url)
            if not future.done():
                future.set_result(data)
        return data

    async def _download(self, url: str) -> bytes | None:
        """Perform the GET and classify the response."""
        logger.debug("Downloading favicon: %s", url)
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException:
            logger.warning("Timeout fetching favicon: %s", url)
            self._state.mark_bad_url(url)
            return None
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("HTTP error fetching favicon %s: %s", url, exc)
            self._state.mark_bad_url(url)
            return None

        if not response.is_success:
            logger.info(
                "Favicon request for %s failed with status %d",
                url,
                response.status_code,
            )
            self._state.mark_bad_url(url)
            return None

        body = response.content
        if len(body) > self._max_bytes:
            logger.warning("Favicon too large (%d bytes) from %s", len(body), url)
            self._state.mark_bad_url(url)
            return None

        logger.debug("Fetched %d bytes for %s", len(body), url)
        return body
