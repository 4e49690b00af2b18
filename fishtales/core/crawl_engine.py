"""
Crawl4AI Engine Implementation

Owns the headless browser used by every crawl and hands out one PageFetcher
per worker. A PageFetcher loads pages inside its own browser session,
retries transient failures, detects blocked responses, and exposes the
loaded markup through an HtmlDocument.
"""

import asyncio
import random
import re
import uuid
from typing import Dict, List, Any, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag
from crawl4ai import AsyncWebCrawler, BrowserConfig, CrawlerRunConfig, CacheMode

from fishtales.core.base import (
    BaseComponent,
    Blocked,
    CrawlingError,
    NavigationFailed,
    PageDocument,
    PageFetcherInterface,
    PageResponse,
)
from fishtales.core.config import BrowserSettings
from fishtales.core.logging import get_logger


BLOCKED_STATUSES = (401, 403, 429)

BLOCKED_OR_FORBIDDEN = [
    "Access Denied",
    "Forbidden",
    "Too Many Requests",
    "Error 403",
    "Access Blocked",
    "You have been rate limited",
]

AGENT_PROFILES = [
    {
        'user_agent': "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                      "(KHTML, like Gecko) Chrome/114.0.0.0 Safari/537.36",
        'locale': "en-US",
        'timezone_id': "America/New_York",
    },
    {
        'user_agent': "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:114.0) Gecko/20100101 Firefox/114.0",
        'locale': "de-DE",
        'timezone_id': "Europe/Berlin",
    },
    {
        'user_agent': "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
                      "(KHTML, like Gecko) Chrome/113.0.0.0 Safari/537.36",
        'locale': "en-GB",
        'timezone_id': "Europe/London",
    },
    {
        'user_agent': "Mozilla/5.0 (Linux; Android 10; Pixel 4) AppleWebKit/537.36 "
                      "(KHTML, like Gecko) Chrome/115.0.0.0 Mobile Safari/537.36",
        'locale': "en-CA",
        'timezone_id': "America/Toronto",
    },
]

VIEWPORTS = [
    (1366, 768),
    (1440, 900),
    (1536, 864),
    (1920, 1080),
    (1280, 800),
]

NON_RENDERED_TAGS = {'script', 'style', 'noscript', 'template', 'head', 'title', 'meta', 'link'}

BLOCK_TAGS = {
    'address', 'article', 'aside', 'blockquote', 'dd', 'div', 'dl', 'dt', 'fieldset',
    'figcaption', 'figure', 'footer', 'form', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
    'header', 'hr', 'li', 'main', 'nav', 'ol', 'p', 'pre', 'section', 'table',
    'tbody', 'td', 'tfoot', 'th', 'thead', 'tr', 'ul', 'body', 'html',
}

_HIDDEN_STYLE = re.compile(r'(?:^|;)\s*(?:display\s*:\s*none|visibility\s*:\s*hidden)\b', re.IGNORECASE)


class HtmlDocument(PageDocument):
    """
    Queryable view of a page's markup.

    Visibility is judged from the markup alone: an element is hidden when it
    or an ancestor is a non-rendered tag, carries the `hidden` attribute,
    `aria-hidden="true"`, or an inline `display: none` / `visibility: hidden`
    style, or when it sits outside the document body.
    """

    def __init__(self, html: str, base_url: str = ""):
        self.soup = BeautifulSoup(html or "", 'html.parser')
        self.base_url = base_url

        base_tag = self.soup.find('base', href=True)
        if base_tag:
            self.base_url = urljoin(base_url, base_tag['href'].strip())

    def anchors(self) -> List[Tuple[str, str]]:
        links = []
        for anchor in self.soup.find_all('a', href=True):
            href = anchor['href'].strip()
            if not href:
                continue
            links.append((urljoin(self.base_url, href), anchor.get_text().strip().lower()))
        return links

    def visible_text(self, selector: str) -> Optional[str]:
        element = self.soup.select_one(selector)
        if element is None or not self._is_visible(element):
            return None
        return self._extract_text(element)

    def body_text(self) -> str:
        root = self.soup.body or self.soup
        return self._extract_text(root)

    def has_element_with_text(self, tag: str, keyword: str) -> bool:
        keyword = keyword.lower()
        return any(keyword in element.get_text().lower() for element in self.soup.find_all(tag))

    def first_attribute(self, selector: str, attribute: str) -> Optional[str]:
        element = self.soup.select_one(selector)
        if element is None:
            return None
        value = element.get(attribute)
        return value or None

    @staticmethod
    def _is_hidden(tag: Tag) -> bool:
        if tag.name in NON_RENDERED_TAGS:
            return True
        if tag.has_attr('hidden'):
            return True
        if str(tag.get('aria-hidden', '')).lower() == 'true':
            return True
        return bool(_HIDDEN_STYLE.search(tag.get('style', '') or ''))

    def _is_visible(self, element: Tag) -> bool:
        if element.name in ('html', 'body'):
            return not self._is_hidden(element)

        inside_body = False
        node = element
        while isinstance(node, Tag):
            if self._is_hidden(node):
                return False
            if node.name == 'body':
                inside_body = True
            node = node.parent
        return inside_body or self.soup.body is None

    def _hidden_within(self, node, root: Tag) -> bool:
        parent = node.parent
        while parent is not None:
            if self._is_hidden(parent):
                return True
            if parent is root:
                return False
            parent = parent.parent
        return False

    def _block_of(self, node, root: Tag) -> Tag:
        parent = node.parent
        while parent is not None and parent is not root:
            if parent.name in BLOCK_TAGS:
                return parent
            parent = parent.parent
        return root

    def _extract_text(self, root: Tag) -> str:
        """Approximate innerText: block elements on separate lines, blank lines collapsed"""
        parts: List[str] = []
        last_block = None

        for node in root.descendants:
            if isinstance(node, Tag):
                if node.name == 'br' and not self._hidden_within(node, root):
                    parts.append('\n')
                continue
            if not isinstance(node, NavigableString) or isinstance(node, PreformattedString):
                continue
            if self._hidden_within(node, root):
                continue

            block = self._block_of(node, root)
            if parts and block is not last_block:
                parts.append('\n')
            parts.append(str(node))
            last_block = block

        lines = (re.sub(r'[ \t\r\f\v\xa0]+', ' ', line).strip() for line in ''.join(parts).split('\n'))
        return '\n'.join(line for line in lines if line)


class CrawlEngine(BaseComponent):
    """
    crawl4ai browser owner.

    One browser is shared by the whole run; every worker gets its own
    session (browser page) through new_fetcher().
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.logger = get_logger('crawl_engine')
        self.browser_settings = BrowserSettings(**config.get('browser', {}))

        self.crawler: Optional[AsyncWebCrawler] = None
        self.browser_config: Optional[BrowserConfig] = None
        self.agent_profile: Dict[str, str] = random.choice(AGENT_PROFILES)

        self.stats = {
            'total_loads': 0,
            'successful_loads': 0,
            'failed_loads': 0,
            'blocked': 0,
        }

    async def initialize(self) -> None:
        """Start the headless browser"""
        if self._initialized:
            return

        try:
            self.logger.info("Initializing crawl4ai engine...")
            width, height = random.choice(VIEWPORTS)

            self.browser_config = BrowserConfig(
                headless=self.browser_settings.headless,
                user_agent=self.agent_profile['user_agent'],
                viewport_width=width,
                viewport_height=height,
                text_mode=self.browser_settings.text_mode,
                verbose=False,
                extra_args=[
                    "--no-sandbox",
                    "--disable-dev-shm-usage",
                    "--start-maximized",
                ]
            )

            self.crawler = AsyncWebCrawler(config=self.browser_config)
            await self.crawler.start()

            self._initialized = True
            self.logger.info(f"Crawl engine initialized (headless={self.browser_settings.headless})")

        except Exception as e:
            self.logger.error(f"Failed to initialize crawl engine: {e}")
            if self.crawler:
                try:
                    await self.crawler.close()
                except Exception as close_error:
                    self.logger.warning(f"Error closing crawler after failed start: {close_error}")
                self.crawler = None
            raise CrawlingError(f"Initialization failed: {e}")

    async def cleanup(self) -> None:
        """Close the browser"""
        if self.crawler:
            try:
                await self.crawler.close()
                self.logger.info(f"Crawl engine cleaned up successfully (stats: {self.get_stats()})")
            except Exception as e:
                self.logger.error(f"Error during cleanup: {e}")
            finally:
                self.crawler = None
        self._initialized = False

    async def __aenter__(self) -> "CrawlEngine":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    def new_fetcher(self) -> "PageFetcher":
        """Create a PageFetcher with its own browser session"""
        if not self._initialized:
            raise CrawlingError("Crawl engine not initialized")
        return PageFetcher(self, session_id=f"fishtales-{uuid.uuid4().hex[:12]}")

    def _run_config(self, session_id: str) -> CrawlerRunConfig:
        return CrawlerRunConfig(
            session_id=session_id,
            wait_until="domcontentloaded",
            page_timeout=self.browser_settings.page_timeout * 1000,
            simulate_user=True,
            locale=self.agent_profile['locale'],
            timezone_id=self.agent_profile['timezone_id'],
            cache_mode=CacheMode.BYPASS,
            verbose=False,
        )

    async def fetch(self, url: str, session_id: str):
        """Navigate the session's page to `url` and return the raw crawl4ai result"""
        if not self.crawler:
            raise CrawlingError("Crawl engine not initialized")

        self.stats['total_loads'] += 1
        return await self.crawler.arun(url=url, config=self._run_config(session_id))

    async def kill_session(self, session_id: str) -> None:
        """Close the browser page backing a session"""
        strategy = getattr(self.crawler, 'crawler_strategy', None)
        if strategy is not None and hasattr(strategy, 'kill_session'):
            await strategy.kill_session(session_id)

    def get_stats(self) -> Dict[str, Any]:
        """Get page load statistics"""
        return {
            **self.stats,
            'success_rate': (
                self.stats['successful_loads'] / max(self.stats['total_loads'], 1)
            ) * 100,
        }


class PageFetcher(PageFetcherInterface):
    """
    Page capability bound to one browser session.

    load() makes up to `retries + 1` attempts. A 401/403/429 response whose
    body carries a block marker fails immediately with Blocked; any other
    failure is retried after a fixed delay and finally raised as
    NavigationFailed.
    """

    def __init__(self, engine: CrawlEngine, session_id: str):
        self.engine = engine
        self.session_id = session_id
        self.logger = get_logger('page_fetcher')
        self.retries = engine.browser_settings.retries
        self.retry_delay = engine.browser_settings.retry_delay

    async def load(self, url: str, retries: Optional[int] = None) -> PageResponse:
        attempts = (self.retries if retries is None else retries) + 1
        last_error: Any = None

        for attempt in range(1, attempts + 1):
            try:
                result = await self.engine.fetch(url, self.session_id)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
            else:
                status = getattr(result, 'status_code', None)
                html = getattr(result, 'html', None) or ""

                if status in BLOCKED_STATUSES and any(marker in html for marker in BLOCKED_OR_FORBIDDEN):
                    self.engine.stats['blocked'] += 1
                    raise Blocked(url, status)

                if result.success:
                    self.engine.stats['successful_loads'] += 1
                    final_url = getattr(result, 'redirected_url', None) or url
                    return PageResponse(url=url, status_code=status, document=HtmlDocument(html, final_url))

                last_error = result.error_message or f"HTTP {status}"

            if attempt < attempts:
                self.logger.debug(f"Load attempt {attempt}/{attempts} failed for {url}: {last_error}")
                await asyncio.sleep(self.retry_delay)

        self.engine.stats['failed_loads'] += 1
        raise NavigationFailed(url, last_error)

    async def close(self) -> None:
        try:
            await self.engine.kill_session(self.session_id)
        except Exception as e:
            self.logger.warning(f"Failed to close browser session {self.session_id}: {e}")
