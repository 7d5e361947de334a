"""
Shared registries of the favicon pipeline.

Every piece of mutable state that is shared between the downloader, its
controllers and the fetcher lives in one ``FaviconCacheState`` guarded by a
single lock:

- decoded images by favicon URL
- home page URL to favicon URL associations (``None`` = nothing found)
- favicon URLs that failed over the network (bad URLs)
- favicon URLs whose stored bytes failed to decode (bad images)
- downloads in flight, as shared futures keyed by favicon URL

Bad URL and bad image marks are permanent for the lifetime of the state.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

from feedicons.models import FaviconImage

logger = logging.getLogger(__name__)


class FaviconCacheState:
    """Process-wide favicon registries behind one lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._images: dict[str, FaviconImage] = {}
        self._associations: dict[str, str | None] = {}
        self._bad_urls: set[str] = set()
        self._bad_images: set[str] = set()
        self._in_flight: dict[str, asyncio.Future[bytes | None]] = {}

    # ------------------------------------------------------------------
    # Image cache
    # ------------------------------------------------------------------

    def cached_image(self, favicon_url: str) -> FaviconImage | None:
        with self._lock:
            return self._images.get(favicon_url)

    def cache_image(self, favicon_url: str, image: FaviconImage) -> None:
        with self._lock:
            self._images[favicon_url] = image

    # ------------------------------------------------------------------
    # Home page associations
    # ------------------------------------------------------------------

    def has_association(self, home_page_url: str) -> bool:
        with self._lock:
            return home_page_url in self._associations

    def association(self, home_page_url: str) -> str | None:
        with self._lock:
            return self._associations.get(home_page_url)

    def associate(self, home_page_url: str, favicon_url: str | None) -> None:
        with self._lock:
            self._associations[home_page_url] = favicon_url

    # ------------------------------------------------------------------
    # Bad URLs / bad images
    # ------------------------------------------------------------------

    def is_bad_url(self, favicon_url: str) -> bool:
        with self._lock:
            return favicon_url in self._bad_urls

    def mark_bad_url(self, favicon_url: str) -> None:
        with self._lock:
            self._bad_urls.add(favicon_url)
        logger.info("Marked favicon URL as bad: %s", favicon_url)

    def is_bad_image(self, favicon_url: str) -> bool:
        with self._lock:
            return favicon_url in self._bad_images

    def mark_bad_image(self, favicon_url: str) -> None:
        with self._lock:
            self._bad_images.add(favicon_url)
        logger.info("Marked favicon image as undecodable: %s", favicon_url)

    # ------------------------------------------------------------------
    # In-flight downloads
    # ------------------------------------------------------------------

    def in_flight(self, favicon_url: str) -> asyncio.Future[bytes | None] | None:
        with self._lock:
            return self._in_flight.get(favicon_url)

    def begin_in_flight(
        self, favicon_url: str, future: asyncio.Future[bytes | None]
    ) -> asyncio.Future[bytes | None]:
        """Register *future* as the download for *favicon_url*.

        Returns
        -------
        asyncio.Future
            The future that callers must await: *future* itself, or the one
            already registered by an earlier caller.
        """
        with self._lock:
            return self._in_flight.setdefault(favicon_url, future)

    def finish_in_flight(self, favicon_url: str) -> None:
        with self._lock:
            self._in_flight.pop(favicon_url, None)

    @property
    def in_flight_urls(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._in_flight)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Summarise every registry, for the close log and the ``resolve`` report."""
        with self._lock:
            return {
                "images": len(self._images),
                "associations": len(self._associations),
                "bad_urls": sorted(self._bad_urls),
                "bad_images": sorted(self._bad_images),
                "in_flight": sorted(self._in_flight),
            }
