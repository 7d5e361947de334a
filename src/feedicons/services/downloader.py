"""
Favicon downloader facade.

``FaviconDownloader`` maps feeds to favicon URLs and hands each URL to its
``FaviconController``. Lookups are synchronous and best effort: a cached
image is returned at once, anything else schedules background work on the
event loop and returns ``None``. When a favicon URL resolves, a single
``FaviconDidBecomeAvailable`` notification is posted on that loop.

Lookup key for a feed:
1. the feed's own favicon URL, if it has one;
2. otherwise the favicon URL previously discovered for its home page;
3. otherwise discovery is scheduled and its result cached.

The downloader binds to the first running loop that calls it. Calls from
any other loop raise ``FaviconAffinityError``.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any, Callable

import httpx

from feedicons.config.settings import Settings
from feedicons.exceptions import FaviconAffinityError
from feedicons.models import Feed, FaviconAvailable, FaviconImage
from feedicons.services.binary_store import BinaryStore
from feedicons.services.controller import FaviconController
from feedicons.services.favicon_state import FaviconCacheState
from feedicons.services.fetcher import FaviconFetcher
from feedicons.services.notifications import (
    FAVICON_DID_BECOME_AVAILABLE,
    NotificationCenter,
)
from feedicons.services.url_resolver import FaviconURLResolver

logger = logging.getLogger(__name__)


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the HTTP client used for favicon and home page requests."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=settings.request_timeout,
        headers={"User-Agent": settings.user_agent},
    )


class FaviconDownloader:
    """Resolve and cache favicons for feeds.

    Parameters
    ----------
    folder : Path | str
        Root directory of the on-disk favicon store.
    settings : Settings | None
        Network, pool and discovery tuning. Defaults to ``Settings()``.
    client : httpx.AsyncClient | None
        HTTP client. When omitted one is created and closed by ``aclose``.
    store : BinaryStore | None
        Blob store. Defaults to a store rooted at *folder*.
    resolver : FaviconURLResolver | None
        Home page discovery. Defaults to one sharing the client.
    notification_center : NotificationCenter | None
        Where availability notifications are posted.
    executor : Executor | None
        Worker pool for disk I/O, decoding and parsing. When omitted a
        ``ThreadPoolExecutor`` with ``settings.max_workers`` threads is
        created and shut down by ``aclose``.
    """

    def __init__(
        self,
        folder: Path | str,
        *,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        store: BinaryStore | None = None,
        resolver: FaviconURLResolver | None = None,
        notification_center: NotificationCenter | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._folder = Path(folder)

        self._owns_client = client is None
        self._client = client or build_http_client(self._settings)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self._settings.max_workers,
            thread_name_prefix="feedicons",
        )

        self._store = store or BinaryStore(self._folder)
        self._cache = FaviconCacheState()
        self._fetcher = FaviconFetcher(
            self._client, self._cache, max_bytes=self._settings.max_favicon_bytes
        )
        self._resolver = resolver or FaviconURLResolver(
            self._client,
            executor=self._executor,
            fallback_path=self._settings.fallback_path,
        )
        self.notification_center = notification_center or NotificationCenter()

        self._controllers: dict[str, FaviconController] = {}
        self._resolutions: dict[str, asyncio.Task[FaviconImage | None]] = {}
        self._discoveries: dict[str, asyncio.Task[FaviconImage | None]] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

    async def __aenter__(self) -> FaviconDownloader:
        self._bind_loop()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    @property
    def store(self) -> BinaryStore:
        return self._store

    @property
    def cache(self) -> FaviconCacheState:
        return self._cache

    # ------------------------------------------------------------------
    # Synchronous lookups
    # ------------------------------------------------------------------

    def favicon_for(self, feed: Feed) -> FaviconImage | None:
        """Return the feed's favicon if it is already in memory.

        Otherwise schedule whatever discovery and resolution is needed and
        return ``None``; the image, if any, is announced later through
        ``FaviconDidBecomeAvailable``.
        """
        self._bind_loop()

        if feed.favicon_url is not None:
            # Some feeds (JSON Feed) carry their favicon URL directly.
            return self.favicon_with_url(feed.favicon_url, feed.home_page_url)

        if feed.home_page_url is None:
            return None
        return self.favicon_with_home_page_url(feed.home_page_url)

    def favicon_with_url(
        self, favicon_url: str, home_page_url: str | None = None
    ) -> FaviconImage | None:
        """Return the image for *favicon_url* if cached; else schedule it."""
        self._bind_loop()

        image = self._cache.cached_image(favicon_url)
        if image is not None:
            return image

        self._schedule_resolution(favicon_url, home_page_url)
        return None

    def favicon_with_home_page_url(self, home_page_url: str) -> FaviconImage | None:
        """Return the image for a home page if its favicon is cached.

        Discovery runs at most once per home page; a home page for which
        nothing was found stays without a favicon.
        """
        self._bind_loop()

        if self._cache.has_association(home_page_url):
            favicon_url = self._cache.association(home_page_url)
            if favicon_url is None:
                return None
            return self.favicon_with_url(favicon_url, home_page_url)

        self._schedule_discovery(home_page_url)
        return None

    def controller_for(self, favicon_url: str) -> FaviconController:
        """Return the controller for *favicon_url*, creating it on first use."""
        controller = self._controllers.get(favicon_url)
        if controller is None:
            controller = FaviconController(
                favicon_url,
                cache=self._cache,
                store=self._store,
                fetcher=self._fetcher,
                executor=self._executor,
            )
            self._controllers[favicon_url] = controller
        return controller

    def subscribe(self, handler: Callable[[FaviconAvailable], Any]) -> Callable[[], None]:
        """Subscribe to ``FaviconDidBecomeAvailable``; returns an unsubscriber."""
        return self.notification_center.subscribe(FAVICON_DID_BECOME_AVAILABLE, handler)

    # ------------------------------------------------------------------
    # Awaitable API
    # ------------------------------------------------------------------

    async def resolve(self, feed: Feed) -> FaviconImage | None:
        """Resolve the feed's favicon and wait for the outcome.

        Follows exactly the same path as ``favicon_for`` (including the
        notification), then awaits the scheduled work.
        """
        image = self.favicon_for(feed)
        if image is not None:
            return image

        favicon_url = feed.favicon_url
        if favicon_url is None and feed.home_page_url is not None:
            discovery = self._discoveries.get(feed.home_page_url)
            if discovery is not None:
                await asyncio.shield(discovery)
            favicon_url = self._cache.association(feed.home_page_url)
        if favicon_url is None:
            return None

        resolution = self._resolutions.get(favicon_url)
        if resolution is not None:
            await asyncio.shield(resolution)
        return self._cache.cached_image(favicon_url)

    async def wait_idle(self) -> None:
        """Wait until every scheduled discovery and resolution has finished."""
        while True:
            pending = [
                task
                for task in (*self._discoveries.values(), *self._resolutions.values())
                if not task.done()
            ]
            if not pending:
                return
            await asyncio.wait(pending)

    async def aclose(self) -> None:
        """Cancel outstanding work and release owned resources."""
        pending = [
            task
            for task in (*self._discoveries.values(), *self._resolutions.values())
            if not task.done()
        ]
        for task in pending:
            task.cancel()
        for controller in self._controllers.values():
            task = controller.cancel()
            if task is not None:
                pending.append(task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if self._owns_client:
            await self._client.aclose()
        if self._owns_executor and isinstance(self._executor, ThreadPoolExecutor):
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None, partial(self._executor.shutdown, wait=True)
            )
        logger.debug(
            "FaviconDownloader closed (%s): %s", self._folder, self._cache.snapshot()
        )

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _bind_loop(self) -> asyncio.AbstractEventLoop:
        loop = asyncio.get_running_loop()
        if self._loop is None:
            self._loop = loop
        elif loop is not self._loop:
            raise FaviconAffinityError()
        return loop

    def _schedule_resolution(
        self, favicon_url: str, home_page_url: str | None
    ) -> asyncio.Task[FaviconImage | None] | None:
        task = self._resolutions.get(favicon_url)
        if task is not None:
            return task

        controller = self.controller_for(favicon_url)
        if controller.state.is_terminal:
            return None

        loop = self._bind_loop()
        task = loop.create_task(self._resolve_and_notify(controller, home_page_url))
        self._resolutions[favicon_url] = task
        return task

    def _schedule_discovery(self, home_page_url: str) -> asyncio.Task[FaviconImage | None]:
        task = self._discoveries.get(home_page_url)
        if task is None:
            loop = self._bind_loop()
            task = loop.create_task(self._discover(home_page_url))
            self._discoveries[home_page_url] = task
        return task

    async def _resolve_and_notify(
        self, controller: FaviconController, home_page_url: str | None
    ) -> FaviconImage | None:
        try:
            image = await controller.resolve()
        except Exception:
            logger.exception("Unexpected failure resolving favicon %s", controller.favicon_url)
            return None

        if image is not None:
            self._post_available(controller.favicon_url, image, home_page_url)
        return image

    async def _discover(self, home_page_url: str) -> FaviconImage | None:
        try:
            favicon_url = await self._resolver.resolve(home_page_url)
        except Exception:
            logger.exception("Unexpected failure discovering favicon for %s", home_page_url)
            favicon_url = None

        self._cache.associate(home_page_url, favicon_url)
        if favicon_url is None:
            logger.info("No favicon URL found for %s", home_page_url)
            return None
        logger.debug("Home page %s uses favicon %s", home_page_url, favicon_url)

        image = self._cache.cached_image(favicon_url)
        if image is not None:
            return image

        task = self._schedule_resolution(favicon_url, home_page_url)
        if task is None:
            return self.controller_for(favicon_url).image
        return await asyncio.shield(task)

    def _post_available(
        self, favicon_url: str, image: FaviconImage, home_page_url: str | None
    ) -> None:
        payload = FaviconAvailable(
            favicon_url=favicon_url, image=image, home_page_url=home_page_url
        )
        logger.debug("Favicon available: %s", favicon_url)
        self.notification_center.post(
            FAVICON_DID_BECOME_AVAILABLE, payload, self._bind_loop()
        )
