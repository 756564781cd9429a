"""Shared fixtures for the test suite. No network required."""
import asyncio
import os
import tempfile

os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="resolver-test-"))

import pytest  # noqa: E402

from resolver.cache import ResultCache  # noqa: E402
from resolver.errors import FetchError  # noqa: E402
from resolver.store import SqliteStore  # noqa: E402


class FakeRelay:
    """Serves canned pages keyed by target URL; anything else is a 404."""

    def __init__(self, pages: dict | None = None, json_docs: dict | None = None,
                 delays: dict | None = None):
        self.pages = dict(pages or {})
        self.json_docs = dict(json_docs or {})
        self.delays = dict(delays or {})
        self.requests: list[str] = []

    async def _serve(self, url: str, docs: dict):
        self.requests.append(url)
        if url in self.delays:
            await asyncio.sleep(self.delays[url])
        if url not in docs:
            raise FetchError(f"HTTP 404 for {url}", url=url, status=404)
        doc = docs[url]
        if isinstance(doc, Exception):
            raise doc
        return doc

    async def fetch_text(self, target: str) -> str:
        return await self._serve(target, self.pages)

    async def fetch_direct_json(self, url: str):
        return await self._serve(url, self.json_docs)

    async def close(self):
        pass


class FakeMetadata:
    def __init__(self, titles: dict | None = None):
        self.titles = dict(titles or {})
        self.calls: list[tuple] = []

    async def get_title(self, kind, tmdb_id, locale=None):
        self.calls.append((kind, tmdb_id, locale))
        return self.titles[tmdb_id]


class Clock:
    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


@pytest.fixture
def clock():
    return Clock(1_700_000_000_000)


@pytest.fixture
def store(tmp_path):
    s = SqliteStore(tmp_path / "cache.db")
    s.initialize()
    return s


@pytest.fixture
def cache(store, clock):
    c = ResultCache(store, clock=clock)
    assert c.init()
    return c


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def metadata():
    return FakeMetadata()
