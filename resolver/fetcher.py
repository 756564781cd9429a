"""Proxied HTTP fetches and cached directory listing retrieval."""
import asyncio
import logging
from urllib.parse import quote

import aiohttp

from config import CORS_RELAY_URL, FETCH_TIMEOUT, USER_AGENT
from resolver.cache import ResultCache
from resolver.errors import FetchError, ParseError
from resolver.models import DirectoryListing
from resolver.parser import HtmlParser, parse_directory_listing

logger = logging.getLogger(__name__)


class Relay:
    """HTTP client that reaches targets through a CORS relay.

    ``GET <relay>?url=<encoded target>``. Transport errors, timeouts and
    non-2xx statuses all surface as FetchError.
    """

    def __init__(self, base_url: str = CORS_RELAY_URL, timeout: int = FETCH_TIMEOUT,
                 session: aiohttp.ClientSession | None = None):
        self.base_url = base_url
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": USER_AGENT},
            )
            self._owns_session = True
        return self._session

    async def close(self):
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    def build_url(self, target: str) -> str:
        return f"{self.base_url}?url={quote(target, safe='')}"

    async def _get(self, url: str, as_json: bool = False):
        session = self._get_session()
        try:
            async with session.get(url, allow_redirects=True) as resp:
                if not 200 <= resp.status < 300:
                    logger.warning("HTTP %d for %s", resp.status, url)
                    raise FetchError(f"HTTP {resp.status} for {url}",
                                     url=url, status=resp.status)
                if as_json:
                    return await resp.json(content_type=None)
                return await resp.text()
        except asyncio.TimeoutError:
            logger.warning("Timeout fetching %s", url)
            raise FetchError(f"Timed out after {self.timeout}s fetching {url}", url=url)
        except aiohttp.ClientError as e:
            logger.warning("Error fetching %s: %s", url, e)
            raise FetchError(f"Could not reach {url}: {e}", url=url)
        except ValueError as e:
            raise ParseError(f"Invalid JSON from {url}", e)

    async def fetch_text(self, target: str) -> str:
        """Fetch ``target`` through the relay and return the body."""
        return await self._get(self.build_url(target))

    async def fetch_direct_json(self, url: str):
        """Fetch JSON without the relay (public, CORS-enabled documents)."""
        return await self._get(url, as_json=True)


class DirectoryFetcher:
    """Fetch and parse listing pages, consulting the cache first."""

    def __init__(self, relay: Relay, cache: ResultCache | None = None,
                 parser: HtmlParser | None = None):
        self.relay = relay
        self.cache = cache
        self.parser = parser or HtmlParser()

    async def fetch(self, path: str, *, is_manual_mode: bool = False,
                    refresh: bool = False) -> DirectoryListing:
        """Return the listing at ``path``.

        ``refresh`` skips the cached copy; the fresh listing replaces it.
        """
        if not path.endswith("/"):
            path += "/"

        if self.cache is not None and not refresh:
            cached = self.cache.get_listing(path)
            if cached is not None:
                logger.debug("Cache hit: %s", path)
                return DirectoryListing(path=path, entries=cached.data)

        logger.info("Fetching listing %s", path)
        try:
            html = await self.relay.fetch_text(path)
        except FetchError as e:
            raise FetchError(
                "Failed to access directory. The server might be unavailable "
                f"or the content doesn't exist ({e.message})",
                url=path, status=e.status,
            ) from e

        try:
            listing = parse_directory_listing(html, path, self.parser)
        except Exception as e:
            raise ParseError(f"Could not parse listing at {path}", e) from e

        if self.cache is not None:
            self.cache.set_listing(path, listing.entries, is_manual_mode)
        return listing
