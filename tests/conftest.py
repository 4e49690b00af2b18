"""
Shared fixtures for FishTales tests

Pages are served from in-memory HTML through a fake PageFetcher built on
HtmlDocument, so crawl tests never start a browser.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from fishtales.core.base import (
    NavigationFailed,
    PageFetcherInterface,
    PageResponse,
)
from fishtales.core.crawl_engine import HtmlDocument


class FakeFetcher(PageFetcherInterface):
    """Serves fixture pages; unknown URLs fail like an unreachable page"""

    def __init__(self, pages: Dict[str, str], errors: Optional[Dict[str, Exception]] = None,
                 delay: float = 0, engine: Optional["FakeEngine"] = None):
        self.pages = pages
        self.errors = errors or {}
        self.delay = delay
        self.engine = engine
        self.loads: List[str] = []
        self.closed = False

    async def load(self, url: str, retries: Optional[int] = None) -> PageResponse:
        self.loads.append(url)
        if self.engine is not None:
            self.engine.loads.append(url)

        if self.delay:
            await asyncio.sleep(self.delay)

        if url in self.errors:
            raise self.errors[url]
        if url not in self.pages:
            raise NavigationFailed(url, "HTTP 404")
        return PageResponse(url=url, status_code=200, document=HtmlDocument(self.pages[url], url))

    async def close(self) -> None:
        self.closed = True
        if self.engine is not None:
            self.engine.open_fetchers -= 1


class FakeEngine:
    """Browser owner stand-in that hands out FakeFetchers over one page set"""

    def __init__(self, pages: Dict[str, str], errors: Optional[Dict[str, Exception]] = None,
                 delay: float = 0):
        self.pages = pages
        self.errors = errors or {}
        self.delay = delay
        self.fetchers: List[FakeFetcher] = []
        self.loads: List[str] = []
        self.initialized = 0
        self.cleaned_up = 0
        self.open_fetchers = 0
        self.max_open_fetchers = 0

    async def initialize(self) -> None:
        self.initialized += 1

    async def cleanup(self) -> None:
        self.cleaned_up += 1

    def new_fetcher(self) -> FakeFetcher:
        fetcher = FakeFetcher(self.pages, self.errors, self.delay, engine=self)
        self.fetchers.append(fetcher)
        self.open_fetchers += 1
        self.max_open_fetchers = max(self.max_open_fetchers, self.open_fetchers)
        return fetcher


def page(*links, body: str = "") -> str:
    """Build a fixture page with the given (href, text) links and body text"""
    anchors = "".join(f'<a href="{href}">{text}</a>' for href, text in links)
    return f"<html><body><main>{body}</main><nav>{anchors}</nav></body></html>"


@pytest.fixture
def make_fetcher():
    """Factory for FakeFetcher"""
    return FakeFetcher


@pytest.fixture
def make_engine():
    """Factory for FakeEngine"""
    return FakeEngine


@pytest.fixture
def make_page():
    """Factory for fixture page markup"""
    return page
