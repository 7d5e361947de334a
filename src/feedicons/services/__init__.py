"""
Services module for feedicons.

Contains the favicon pipeline: the on-disk binary store, home page
discovery, the deduplicating fetcher, per-URL controllers and the
downloader facade that ties them together.
"""

from __future__ import annotations

from feedicons.services.binary_store import BinaryStore, key_for_url
from feedicons.services.controller import FaviconController
from feedicons.services.downloader import FaviconDownloader
from feedicons.services.favicon_state import FaviconCacheState
from feedicons.services.fetcher import FaviconFetcher
from feedicons.services.notifications import (
    FAVICON_DID_BECOME_AVAILABLE,
    NotificationCenter,
)
from feedicons.services.url_resolver import FaviconURLResolver

__all__: list[str] = [
    "BinaryStore",
    "FAVICON_DID_BECOME_AVAILABLE",
    "FaviconCacheState",
    "FaviconController",
    "FaviconDownloader",
    "FaviconFetcher",
    "FaviconURLResolver",
    "NotificationCenter",
    "key_for_url",
]
