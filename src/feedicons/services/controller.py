"""
Per-URL favicon resolution.

A ``FaviconController`` owns one favicon URL and walks it through

    UNRESOLVED -> CHECKING_DISK -> CHECKING_NETWORK -> RESOLVED | FAILED

exactly once. The first ``resolve()`` call starts the walk as a task; every
other call, concurrent or later, awaits that same task, so the store and the
network are consulted at most once per controller.

Disk reads, disk writes and decoding run on the worker executor. State
transitions and registry updates happen on the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from functools import partial

from feedicons.exceptions import BinaryStoreError
from feedicons.models import FaviconImage, FaviconState
from feedicons.services.binary_store import BinaryStore, key_for_url
from feedicons.services.decoder import decode_favicon
from feedicons.services.favicon_state import FaviconCacheState
from feedicons.services.fetcher import FaviconFetcher

logger = logging.getLogger(__name__)


def _read_from_store(store: BinaryStore, key: str) -> tuple[bool, FaviconImage | None]:
    """Worker: load and decode a stored blob.

    Returns ``(found, image)``; ``found`` is ``True`` when bytes existed,
    whether or not they decoded. Store I/O errors count as a miss.
    """
    try:
        data = store.get(key)
    except BinaryStoreError as exc:
        logger.warning("Favicon store read failed for %s: %s", key, exc.message)
        return False, None
    if data is None:
        return False, None
    return True, decode_favicon(data)


def _write_to_store(store: BinaryStore, key: str, data: bytes) -> None:
    """Worker: persist downloaded bytes. A failed write is logged and ignored."""
    try:
        store.put(key, data)
    except BinaryStoreError as exc:
        logger.warning("Favicon store write failed for %s: %s", key, exc.message)


class FaviconController:
    """Resolution state machine for a single favicon URL.

    Parameters
    ----------
    favicon_url : str
        The URL this controller resolves.
    cache : FaviconCacheState
        Shared registries (image cache, bad URL and bad image sets).
    store : BinaryStore
        On-disk blob store.
    fetcher : FaviconFetcher
        Network fetcher.
    executor : Executor | None
        Worker pool for disk I/O and decoding.
    """

    def __init__(
        self,
        favicon_url: str,
        *,
        cache: FaviconCacheState,
        store: BinaryStore,
        fetcher: FaviconFetcher,
        executor: Executor | None = None,
    ) -> None:
        self.favicon_url = favicon_url
        self.state = FaviconState.UNRESOLVED
        self.image: FaviconImage | None = None
        self._key = key_for_url(favicon_url)
        self._cache = cache
        self._store = store
        self._fetcher = fetcher
        self._executor = executor
        self._task: asyncio.Task[FaviconImage | None] | None = None

    def __repr__(self) -> str:
        return f"FaviconController({self.favicon_url!r}, state={self.state.value})"

    @property
    def is_resolving(self) -> bool:
        """Whether a resolution has started and not yet finished."""
        return self._task is not None and not self._task.done()

    async def resolve(self) -> FaviconImage | None:
        """Resolve this controller's favicon.

        Returns
        -------
        FaviconImage | None
            The image, or ``None`` if every tier failed.
        """
        if self.state.is_terminal:
            return self.image

        if self._task is None:
            self._task = asyncio.ensure_future(self._run())
        return await asyncio.shield(self._task)

    def cancel(self) -> asyncio.Task[FaviconImage | None] | None:
        """Cancel an unfinished resolution; returns the task if one was cancelled."""
        task = self._task
        if task is None or task.done():
            return None
        task.cancel()
        return task

    async def _run(self) -> FaviconImage | None:
        loop = asyncio.get_running_loop()

        image = self._cache.cached_image(self.favicon_url)
        if image is not None:
            return self._resolved(image)

        # Disk
        if not self._cache.is_bad_image(self.favicon_url):
            self.state = FaviconState.CHECKING_DISK
            found, image = await loop.run_in_executor(
                self._executor, partial(_read_from_store, self._store, self._key)
            )
            if image is not None:
                logger.debug("Favicon loaded from disk: %s", self.favicon_url)
                return self._resolved(image)
            if found:
                self._cache.mark_bad_image(self.favicon_url)

        # Network
        self.state = FaviconState.CHECKING_NETWORK
        if self._cache.is_bad_url(self.favicon_url):
            return self._failed("known bad URL")

        data = await self._fetcher.fetch(self.favicon_url)
        if data is None:
            return self._failed("download failed")

        image = await loop.run_in_executor(
            self._executor, partial(decode_favicon, data)
        )
        if image is None:
            self._cache.mark_bad_image(self.favicon_url)
            return self._failed("downloaded bytes did not decode")

        await loop.run_in_executor(
            self._executor, partial(_write_to_store, self._store, self._key, data)
        )
        logger.debug("Favicon downloaded: %s", self.favicon_url)
        return self._resolved(image)

    def _resolved(self, image: FaviconImage) -> FaviconImage:
        self.image = image
        self._cache.cache_image(self.favicon_url, image)
        self.state = FaviconState.RESOLVED
        return image

    def _failed(self, reason: str) -> None:
        logger.info("Favicon unavailable for %s (%s)", self.favicon_url, reason)
        self.state = FaviconState.FAILED
        return None
