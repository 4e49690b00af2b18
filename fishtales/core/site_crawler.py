"""
Single-site crawler

Walks one site in priority order: the seed page first, then same-domain links
ranked by the LinkPrioritizer, until the frontier is empty or the crawl depth
(maximum number of distinct pages visited) is reached. Every page except the
seed is scraped for report text with the site's selector.
"""

import time
from typing import List, Optional, Set

from fishtales.core.base import (
    Blocked,
    NavigationFailed,
    PageFetcherInterface,
    Report,
    Site,
    SiteCrawlResult,
)
from fishtales.core.cancellation import CancellationToken
from fishtales.core.logging import get_logger
from fishtales.core.url_manager import (
    CrawlFrontier,
    LinkPrioritizer,
    normalize_url,
    same_domain,
)


SEED_PRIORITY = -1


class SiteCrawler:
    """
    Crawls one site with one PageFetcher.

    The frontier and visited set belong to this instance only. Pages are
    fetched strictly one at a time. A page that fails to load is recorded
    and skipped; cancellation aborts the crawl.
    """

    def __init__(self, fetcher: PageFetcherInterface, site: Site, crawl_depth: int,
                 cancel_token: Optional[CancellationToken] = None,
                 prioritizer: Optional[LinkPrioritizer] = None):
        if crawl_depth < 1:
            raise ValueError("crawl_depth must be at least 1")

        self.fetcher = fetcher
        self.site = site
        self.crawl_depth = crawl_depth
        self.cancel_token = cancel_token or CancellationToken()
        self.prioritizer = prioritizer or LinkPrioritizer()
        self.logger = get_logger('site_crawler')

        self.seed_url = normalize_url(site.url)
        self.frontier = CrawlFrontier()
        self.visited: Set[str] = set()
        self._visit_order: List[str] = []

    async def crawl(self) -> SiteCrawlResult:
        """Run the crawl to completion and return the site's reports and page failures"""
        start_time = time.time()
        result = SiteCrawlResult(site_url=self.seed_url)

        self.frontier.push(self.seed_url, SEED_PRIORITY)

        while self.frontier and len(self.visited) < self.crawl_depth:
            self.cancel_token.throw_if_cancelled()

            url = self.frontier.pop().url
            if url in self.visited:
                continue
            self.visited.add(url)
            self._visit_order.append(url)

            try:
                response = await self.fetcher.load(url)
            except (Blocked, NavigationFailed) as e:
                self.logger.warning(f"Skipping page {url}: {e}")
                result.failures.append(f"Error navigating to {url}: {e}")
                continue

            document = response.document

            if url != self.seed_url:
                text = document.visible_text(self.site.selector)
                if text:
                    result.reports.append(Report(text=text, source_url=url))

            self._enqueue_links(url, document.anchors())

        result.visited = list(self._visit_order)
        result.pending = [url for url in self.frontier.pending_urls() if url not in self.visited]
        result.depth_limit_reached = len(self.visited) >= self.crawl_depth

        if result.depth_limit_reached:
            self.logger.info(
                f"Reached crawl depth limit ({self.crawl_depth}) for {self.seed_url} "
                f"with {len(result.pending)} links still queued"
            )

        self.logger.debug(
            f"Crawled {self.seed_url}: {len(self.visited)} pages, {len(result.reports)} reports, "
            f"{len(result.failures)} failed pages in {time.time() - start_time:.2f}s"
        )
        return result

    def _enqueue_links(self, current_url: str, anchors) -> None:
        for href, link_text in anchors:
            # Scope stays on the seed's domain for the whole crawl
            if not same_domain(href, self.seed_url):
                continue

            link = normalize_url(href)
            if link in self.visited:
                continue

            priority = self.prioritizer.get_priority(current_url, link, link_text, self.site)
            self.frontier.push(link, priority)
