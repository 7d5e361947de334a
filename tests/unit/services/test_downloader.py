"""
Unit tests for the FaviconDownloader facade.

Covers the feed to favicon URL mapping, scheduling and deduplication of
background work, notification delivery and loop affinity.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from feedicons.config.settings import Settings
from feedicons.exceptions import FaviconAffinityError
from feedicons.models import Feed, FaviconAvailable, FaviconState
from feedicons.services.binary_store import key_for_url
from feedicons.services.downloader import FaviconDownloader
from tests.fakes import FakeWeb

ICON = "https://x.test/f.ico"
HOME = "https://y.test/"


@pytest_asyncio.fixture
async def downloader(
    test_settings: Settings, mock_client: AsyncMock
) -> AsyncGenerator[FaviconDownloader, None]:
    async with FaviconDownloader(
        test_settings.cache_dir, settings=test_settings, client=mock_client
    ) as d:
        yield d


@pytest.fixture
def notifications(downloader: FaviconDownloader) -> list[FaviconAvailable]:
    received: list[FaviconAvailable] = []
    downloader.subscribe(received.append)
    return received


async def settle(downloader: FaviconDownloader) -> None:
    """Wait for background work, then let posted notifications be delivered."""
    await downloader.wait_idle()
    for _ in range(3):
        await asyncio.sleep(0)


@pytest.mark.asyncio
class TestFaviconFor:
    """Tests for the synchronous best-effort lookup."""

    async def test_feed_without_urls(
        self, downloader: FaviconDownloader, fake_web: FakeWeb
    ) -> None:
        assert downloader.favicon_for(Feed(feed_id="1")) is None
        await settle(downloader)
        assert fake_web.requests == []

    async def test_favicon_url_miss_then_hit(
        self,
        downloader: FaviconDownloader,
        fake_web: FakeWeb,
        notifications: list[FaviconAvailable],
        png_bytes: bytes,
    ) -> None:
        fake_web.add(ICON, 200, png_bytes)
        feed = Feed(feed_id="1", favicon_url=ICON)

        assert downloader.favicon_for(feed) is None
        await settle(downloader)

        image = downloader.favicon_for(feed)
        assert image is not None
        assert image.data == png_bytes
        assert [n.favicon_url for n in notifications] == [ICON]
        assert notifications[0].image == image
        assert downloader.store.get(key_for_url(ICON)) == png_bytes

    async def test_feed_favicon_url_wins_over_home_page(
        self, downloader: FaviconDownloader, fake_web: FakeWeb, png_bytes: bytes
    ) -> None:
        fake_web.add(ICON, 200, png_bytes)

        downloader.favicon_for(Feed(feed_id="1", favicon_url=ICON, home_page_url=HOME))
        await settle(downloader)

        assert fake_web.requests == [ICON]

    async def test_payload_carries_home_page(
        self,
        downloader: FaviconDownloader,
        fake_web: FakeWeb,
        notifications: list[FaviconAvailable],
        png_bytes: bytes,
    ) -> None:
        fake_web.add(ICON, 200, png_bytes)

        downloader.favicon_for(Feed(feed_id="1", favicon_url=ICON, home_page_url=HOME))
        await settle(downloader)

        assert notifications[0].home_page_url == HOME

    async def test_shared_url_fetched_and_announced_once(
        self,
        downloader: FaviconDownloader,
        fake_web: FakeWeb,
        notifications: list[FaviconAvailable],
        png_bytes: bytes,
    ) -> None:
        fake_web.add(ICON, 200, png_bytes)

        downloader.favicon_for(Feed(feed_id="1", favicon_url=ICON))
        downloader.favicon_for(Feed(feed_id="2", favicon_url=ICON))
        await settle(downloader)

        assert fake_web.count(ICON) == 1
        assert len(notifications) == 1

    async def test_failed_url_is_not_retried(
        self,
        downloader: FaviconDownloader,
        fake_web: FakeWeb,
        notifications: list[FaviconAvailable],
    ) -> None:
        fake_web.add(ICON, 404)
        feed = Feed(feed_id="1", favicon_url=ICON)

        downloader.favicon_for(feed)
        await settle(downloader)
        assert downloader.favicon_for(feed) is None
        await settle(downloader)

        assert fake_web.count(ICON) == 1
        assert notifications == []
        assert downloader.controller_for(ICON).state is FaviconState.FAILED
        assert downloader.cache.is_bad_url(ICON)


@pytest.mark.asyncio
class TestHomePageDiscovery:
    """Tests for feeds that only know their home page."""

    async def test_discovered_link(
        self,
        downloader: FaviconDownloader,
        fake_web: FakeWeb,
        notifications: list[FaviconAvailable],
        png_bytes: bytes,
    ) -> None:
        fake_web.add(HOME, 200, '<link rel="icon" href="/i.png">')
        fake_web.add("https://y.test/i.png", 200, png_bytes)
        feed = Feed(feed_id="1", home_page_url=HOME)

        assert downloader.favicon_for(feed) is None
        await settle(downloader)

        assert downloader.favicon_for(feed) is not None
        assert downloader.cache.association(HOME) == "https://y.test/i.png"
        assert notifications[0].home_page_url == HOME
        assert notifications[0].favicon_url == "https://y.test/i.png"

    async def test_discovery_runs_once_per_home_page(
        self, downloader: FaviconDownloader, fake_web: FakeWeb, png_bytes: bytes
    ) -> None:
        fake_web.add(HOME, 200, "<html></html>")
        fake_web.add("https://y.test/favicon.ico", 200, png_bytes)

        downloader.favicon_for(Feed(feed_id="1", home_page_url=HOME))
        downloader.favicon_for(Feed(feed_id="2", home_page_url=HOME))
        await settle(downloader)
        downloader.favicon_for(Feed(feed_id="3", home_page_url=HOME))
        await settle(downloader)

        assert fake_web.count(HOME) == 1
        assert fake_web.count("https://y.test/favicon.ico") == 1

    async def test_no_favicon_anywhere(
        self,
        downloader: FaviconDownloader,
        fake_web: FakeWeb,
        notifications: list[FaviconAvailable],
    ) -> None:
        fake_web.add(HOME, 200, "<html><body>no icons</body></html>")
        feed = Feed(feed_id="1", home_page_url=HOME)

        downloader.favicon_for(feed)
        await settle(downloader)

        assert downloader.favicon_for(feed) is None
        assert notifications == []
        assert downloader.cache.is_bad_url("https://y.test/favicon.ico")

    async def test_unreachable_home_page_is_remembered(
        self, downloader: FaviconDownloader, fake_web: FakeWeb
    ) -> None:
        fake_web.fail(HOME, httpx.ConnectError("refused"))
        feed = Feed(feed_id="1", home_page_url=HOME)

        downloader.favicon_for(feed)
        await settle(downloader)
        downloader.favicon_for(feed)
        await settle(downloader)

        assert downloader.cache.has_association(HOME)
        assert downloader.cache.association(HOME) is None
        assert fake_web.count(HOME) == 1

    async def test_home_pages_sharing_a_favicon(
        self,
        downloader: FaviconDownloader,
        fake_web: FakeWeb,
        notifications: list[FaviconAvailable],
        png_bytes: bytes,
    ) -> None:
        fake_web.add("https://a.test/", 200, f'<link rel="icon" href="{ICON}">')
        fake_web.add("https://b.test/", 200, f'<link rel="icon" href="{ICON}">')
        fake_web.add(ICON, 200, png_bytes)

        downloader.favicon_for(Feed(feed_id="1", home_page_url="https://a.test/"))
        downloader.favicon_for(Feed(feed_id="2", home_page_url="https://b.test/"))
        await settle(downloader)

        assert fake_web.count(ICON) == 1
        assert len(notifications) == 1
        assert (
            downloader.favicon_for(Feed(feed_id="2", home_page_url="https://b.test/"))
            is not None
        )


@pytest.mark.asyncio
class TestResolve:
    """Tests for the awaitable lookup."""

    async def test_resolve_favicon_url(
        self, downloader: FaviconDownloader, fake_web: FakeWeb, png_bytes: bytes
    ) -> None:
        fake_web.add(ICON, 200, png_bytes)

        image = await downloader.resolve(Feed(feed_id="1", favicon_url=ICON))

        assert image is not None
        assert image.format == "PNG"

    async def test_resolve_home_page(
        self, downloader: FaviconDownloader, fake_web: FakeWeb, png_bytes: bytes
    ) -> None:
        fake_web.add(HOME, 200, "<html></html>")
        fake_web.add("https://y.test/favicon.ico", 200, png_bytes)

        image = await downloader.resolve(Feed(feed_id="1", home_page_url=HOME))

        assert image is not None

    async def test_resolve_failure(
        self, downloader: FaviconDownloader, fake_web: FakeWeb
    ) -> None:
        assert await downloader.resolve(Feed(feed_id="1", favicon_url=ICON)) is None
        assert await downloader.resolve(Feed(feed_id="1")) is None

    async def test_resolve_from_disk_after_restart(
        self,
        test_settings: Settings,
        mock_client: AsyncMock,
        fake_web: FakeWeb,
        png_bytes: bytes,
    ) -> None:
        fake_web.add(ICON, 200, png_bytes)
        feed = Feed(feed_id="1", favicon_url=ICON)

        async with FaviconDownloader(
            test_settings.cache_dir, settings=test_settings, client=mock_client
        ) as first:
            await first.resolve(feed)

        async with FaviconDownloader(
            test_settings.cache_dir, settings=test_settings, client=mock_client
        ) as second:
            image = await second.resolve(feed)

        assert image is not None
        assert fake_web.count(ICON) == 1


class TestAffinity:
    """The downloader belongs to the first loop that uses it."""

    def test_other_loop_is_rejected(self, tmp_path: Path, mock_client: AsyncMock) -> None:
        downloader = FaviconDownloader(tmp_path, client=mock_client)
        feed = Feed(feed_id="1")

        async def lookup() -> None:
            downloader.favicon_for(feed)

        async def close() -> None:
            await downloader.aclose()

        asyncio.run(lookup())
        with pytest.raises(FaviconAffinityError):
            asyncio.run(lookup())
        asyncio.run(close())

    def test_lookup_outside_a_loop_fails(self, tmp_path: Path, mock_client: AsyncMock) -> None:
        downloader = FaviconDownloader(tmp_path, client=mock_client)
        try:
            with pytest.raises(RuntimeError):
                downloader.favicon_for(Feed(feed_id="1", favicon_url=ICON))
        finally:
            asyncio.run(downloader.aclose())


@pytest.mark.asyncio
class TestLifecycle:
    """Tests for wait_idle and aclose."""

    async def test_aclose_cancels_pending_work(
        self,
        test_settings: Settings,
        mock_client: AsyncMock,
        fake_web: FakeWeb,
        png_bytes: bytes,
    ) -> None:
        fake_web.add(ICON, 200, png_bytes)
        fake_web.gate = asyncio.Event()
        downloader = FaviconDownloader(
            test_settings.cache_dir, settings=test_settings, client=mock_client
        )
        received: list[FaviconAvailable] = []
        downloader.subscribe(received.append)

        downloader.favicon_for(Feed(feed_id="1", favicon_url=ICON))
        while not fake_web.requests:
            await asyncio.sleep(0.01)
        await downloader.aclose()

        assert downloader.controller_for(ICON).state is not FaviconState.RESOLVED
        assert received == []
        assert downloader.cache.in_flight_urls == frozenset()

    async def test_owned_client_is_closed(self, tmp_path: Path) -> None:
        downloader = FaviconDownloader(tmp_path)

        await downloader.aclose()

        assert downloader._client.is_closed

    async def test_injected_client_is_left_open(
        self, tmp_path: Path, mock_client: AsyncMock
    ) -> None:
        downloader = FaviconDownloader(tmp_path, client=mock_client)

        await downloader.aclose()

        mock_client.aclose.assert_not_called()

    async def test_wait_idle_with_nothing_scheduled(
        self, downloader: FaviconDownloader
    ) -> None:
        await asyncio.wait_for(downloader.wait_idle(), timeout=1)
