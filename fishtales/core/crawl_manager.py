"""
Concurrent crawl manager

Runs a SiteCrawler for every site through a fixed pool of workers, so at most
`concurrency` browser sessions are open at once. A site that blows up is
recorded and contributes nothing; cancellation tears the whole pool down.
"""

import asyncio
from typing import List, Optional, Protocol

from fishtales.core.base import (
    CrawlCancelled,
    CrawlSummary,
    PageFetcherInterface,
    Site,
    SiteCrawlFailed,
    SiteCrawlResult,
)
from fishtales.core.cancellation import CancellationToken
from fishtales.core.logging import get_logger
from fishtales.core.progress import ProgressReporter
from fishtales.core.site_crawler import SiteCrawler
from fishtales.core.url_manager import LinkPrioritizer


class BrowserEngine(Protocol):
    """What the manager needs from a browser owner such as CrawlEngine"""

    async def initialize(self) -> None: ...

    async def cleanup(self) -> None: ...

    def new_fetcher(self) -> PageFetcherInterface: ...


class ConcurrentCrawlManager:
    """
    Crawls many sites with bounded concurrency.

    The browser engine is started when crawl() begins and always closed when
    it ends, whether the run succeeded, lost sites to errors, or was
    cancelled.
    """

    def __init__(self, engine: BrowserEngine, crawl_depth: int, concurrency: int = 5,
                 cancel_token: Optional[CancellationToken] = None,
                 progress: Optional[ProgressReporter] = None,
                 prioritizer: Optional[LinkPrioritizer] = None):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self.engine = engine
        self.crawl_depth = crawl_depth
        self.concurrency = concurrency
        self.cancel_token = cancel_token or CancellationToken()
        self.progress = progress or ProgressReporter()
        self.prioritizer = prioritizer or LinkPrioritizer()
        self.logger = get_logger('crawl_manager')

        self.failures: List[str] = []
        self._completed = 0
        self._total = 0

    async def crawl(self, sites: List[Site]) -> CrawlSummary:
        """Crawl all sites and return their flattened reports and failures"""
        self.failures = []
        self._completed = 0
        self._total = len(sites)
        results: List[Optional[SiteCrawlResult]] = [None] * len(sites)

        try:
            await self.engine.initialize()
            await self.progress.emit(self._progress_message())

            pending = iter(enumerate(sites))
            workers = [
                asyncio.ensure_future(self._worker(pending, results))
                for _ in range(min(self.concurrency, len(sites)))
            ]

            try:
                await asyncio.gather(*workers)
            except BaseException:
                for worker in workers:
                    worker.cancel()
                await asyncio.gather(*workers, return_exceptions=True)
                raise

            self.cancel_token.throw_if_cancelled()
        except (CrawlCancelled, asyncio.CancelledError):
            self.logger.warning("Crawl cancelled; stopping all site crawls")
            raise
        finally:
            await self.engine.cleanup()

        site_results = [result for result in results if result is not None]
        reports = [report for result in site_results for report in result.reports if report]

        await self.progress.emit(f"✅ Found {len(reports)} total reports!", update_last=True)
        return CrawlSummary(reports=reports, failures=list(self.failures), site_results=site_results)

    async def _worker(self, pending, results: List[Optional[SiteCrawlResult]]) -> None:
        # The iterator is shared; each worker takes the next unclaimed site.
        for index, site in pending:
            self.cancel_token.throw_if_cancelled()
            results[index] = await self._crawl_site(site)

    async def _crawl_site(self, site: Site) -> SiteCrawlResult:
        fetcher = None
        try:
            fetcher = self.engine.new_fetcher()
            crawler = SiteCrawler(fetcher, site, self.crawl_depth, self.cancel_token, self.prioritizer)
            result = await crawler.crawl()
        except (CrawlCancelled, asyncio.CancelledError):
            raise
        except Exception as e:
            failure = SiteCrawlFailed(site.url, e)
            self.logger.error(str(failure), exc_info=True)
            self.failures.append(str(failure))
            result = SiteCrawlResult(site_url=site.url)
        finally:
            if fetcher is not None:
                await fetcher.close()

        self.failures.extend(result.failures)
        self._completed += 1
        await self.progress.emit(self._progress_message(), update_last=True)
        return result

    def _progress_message(self) -> str:
        return f"Scraping sites ({self._completed}/{self._total}) for reports..."
