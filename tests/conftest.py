"""Shared fixtures: in-memory Render and Fetch collaborators."""

from typing import Dict, Iterable, List, Optional

import pytest

from site_mirror.crawler.downloader import AssetFetcher
from site_mirror.crawler.frontier import CrawlScope, Frontier
from site_mirror.utils.errors import FetchError, NavigationError


class FakeRenderer:
    """Serves canned HTML; unknown URLs fail like a navigation error."""

    def __init__(self, pages: Dict[str, str], crash_on: Iterable[str] = ()):
        self.pages = pages
        self.crash_on = set(crash_on)
        self.rendered: List[str] = []
        self.started = False
        self.stopped = False

    async def __aenter__(self):
        self.started = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.stopped = True

    async def render_page(self, url: str) -> str:
        self.rendered.append(url)
        if url in self.crash_on:
            raise RuntimeError(f"renderer crashed on {url}")
        if url not in self.pages:
            raise NavigationError(url, "HTTP 404")
        return self.pages[url]


class FakeFetcher(AssetFetcher):
    """Serves canned bytes without opening an HTTP session."""

    def __init__(self, assets: Optional[Dict[str, bytes]] = None):
        super().__init__()
        self.assets = assets or {}
        self.fetched: List[str] = []

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def fetch(self, url: str) -> bytes:
        self.fetched.append(url)
        if url not in self.assets:
            raise FetchError(url, "HTTP 404")
        return self.assets[url]


@pytest.fixture
def scope(tmp_path):
    return CrawlScope.from_url("https://example.com/", str(tmp_path))


@pytest.fixture
def frontier(scope):
    return Frontier(scope)
