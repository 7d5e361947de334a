"""
Favicon URL discovery from a feed's home page.

Fetches the home page and looks for an icon ``<link>`` in its markup. When
the page has none, the conventional ``/favicon.ico`` on the page's origin is
returned instead. An unreachable page yields ``None``.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from functools import partial
from urllib.parse import urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

_DEFAULT_FALLBACK_PATH = "/favicon.ico"

# rel tokens in order of preference
_PREFERRED_RELS = ("icon",)
_SECONDARY_RELS = ("apple-touch-icon", "apple-touch-icon-precomposed")


def origin_of(url: str) -> str | None:
    """Return ``scheme://host[:port]`` for an absolute http(s) URL.

    Returns
    -------
    str | None
        The origin, or ``None`` if *url* is not an absolute http(s) URL.
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        return None
    return f"{parts.scheme.lower()}://{parts.netloc}"


def find_icon_href(html: str, base_url: str) -> str | None:
    """Scan markup for an icon link and return its absolute URL.

    Blocking (parses the whole document); call it from a worker thread.

    Parameters
    ----------
    html : str
        Home page markup.
    base_url : str
        URL the markup was served from, used to resolve relative hrefs.

    Returns
    -------
    str | None
        Absolute favicon URL, or ``None`` if the page declares no icon.
    """
    soup = BeautifulSoup(html, "html.parser")

    base_tag = soup.find("base", href=True)
    if isinstance(base_tag, Tag):
        base_url = urljoin(base_url, str(base_tag["href"]))

    secondary: str | None = None
    for link in soup.find_all("link", href=True):
        if not isinstance(link, Tag):
            continue
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        tokens = {token.lower() for token in rel}
        href = str(link["href"]).strip()
        if not href or href.lower().startswith("data:"):
            continue
        if tokens.intersection(_PREFERRED_RELS):
            return urljoin(base_url, href)
        if secondary is None and tokens.intersection(_SECONDARY_RELS):
            secondary = urljoin(base_url, href)

    return secondary


class FaviconURLResolver:
    """Discover favicon URLs for home pages.

    Parameters
    ----------
    client : httpx.AsyncClient
        Shared HTTP client.
    executor : Executor | None
        Pool used for markup parsing. ``None`` uses the loop's default.
    fallback_path : str
        Path appended to the home page origin when the markup has no icon.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        executor: Executor | None = None,
        fallback_path: str = _DEFAULT_FALLBACK_PATH,
    ) -> None:
        self._client = client
        self._executor = executor
        self._fallback_path = fallback_path

    def fallback_url(self, home_page_url: str) -> str | None:
        """Conventional favicon location for *home_page_url*'s origin."""
        origin = origin_of(home_page_url)
        if origin is None:
            return None
        return origin + self._fallback_path

    async def resolve(self, home_page_url: str) -> str | None:
        """Find the favicon URL for *home_page_url*.

        Parameters
        ----------
        home_page_url : str
            Home page of the site.

        Returns
        -------
        str | None
            Favicon URL from the page markup, the fallback candidate, or
            ``None`` when the page is unreachable or the URL is unusable.
        """
        fallback = self.fallback_url(home_page_url)
        if fallback is None:
            logger.info("Cannot discover favicon for invalid URL: %s", home_page_url)
            return None

        try:
            response = await self._client.get(home_page_url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.info("Home page %s unreachable: %s", home_page_url, exc)
            return None

        if not response.is_success:
            logger.debug(
                "Home page %s returned %d; using fallback %s",
                home_page_url,
                response.status_code,
                fallback,
            )
            return fallback

        loop = asyncio.get_running_loop()
        href = await loop.run_in_executor(
            self._executor,
            partial(find_icon_href, response.text, str(response.url)),
        )
        if href is not None and origin_of(href) is not None:
            logger.debug("Found favicon link %s on %s", href, home_page_url)
            return href

        logger.debug("No favicon link on %s; using fallback %s", home_page_url, fallback)
        return fallback
