"""
Job orchestration

ReportOrchestrator runs the fishing report job end to end: crawl every site,
filter the pages down to recent reports, compile and summarize them, and
write the artifacts. ShopOrchestrator runs the shop lookup job: search a
maps provider for shops and scrape each shop's website for contact details.
ScoutOrchestrator compares report-publishing shop websites against a site
list and writes the list back with the missing sites appended.

All share a CrawlRun, the per-job context holding the cancellation token,
the progress reporter and the website details cache.
"""

import asyncio
import csv
import io
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fishtales.clients.summarizer import SummaryGenerator
from fishtales.core.base import (
    REPORT_DIVIDER,
    CrawlCancelled,
    PageFetcherInterface,
    Report,
    ShopDetails,
    Site,
    SiteCrawlResult,
)
from fishtales.core.cancellation import CancellationToken
from fishtales.core.config import ScraperConfig, SummaryConfig
from fishtales.core.crawl_manager import BrowserEngine, ConcurrentCrawlManager
from fishtales.core.logging import get_logger
from fishtales.core.progress import ProgressReporter
from fishtales.core.url_manager import normalize_url
from fishtales.processors.chunker import Chunker
from fishtales.processors.content import ContentFilter
from fishtales.processors.shop_details import ShopDetailsExtractor, error_details
from fishtales.storage.site_loader import dedupe_sites, find_missing_sites, sites_to_csv


COMPILED_FILE = "compiled_reports.txt"
SUMMARY_FILE = "report_summary.txt"
SITE_LIST_FILE = "site_list.txt"
SHOPS_FILE = "shops.csv"
UPDATED_SITES_FILE = "updated_sites.csv"

NO_WEBSITE = "No Website"

SHOP_COLUMNS = [
    "Name", "Category", "Phone", "Address", "Email", "Has Website", "Website",
    "Sells Online", "Rating", "Reviews", "Has Report", "Socials",
]


@dataclass
class ReportJobResult:
    """Everything a report job produced"""
    summary: Optional[str] = None
    compiled: str = ""
    reports: List[Report] = field(default_factory=list)
    reports_found: int = 0
    chunks: int = 0
    failures: List[str] = field(default_factory=list)
    files: Dict[str, bytes] = field(default_factory=dict)


@dataclass
class ShopJobResult:
    """Everything a shop lookup job produced"""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    files: Dict[str, bytes] = field(default_factory=dict)


@dataclass
class ScoutJobResult:
    """URLs the site scout found missing from the site list"""
    missing: List[str] = field(default_factory=list)
    files: Dict[str, bytes] = field(default_factory=dict)


class CrawlRun:
    """
    Per-job crawl context

    Website details are cached by normalized URL for the lifetime of the run;
    concurrent requests for the same website share one scrape.
    """

    def __init__(self, cancel_token: Optional[CancellationToken] = None,
                 progress: Optional[ProgressReporter] = None):
        self.cancel_token = cancel_token or CancellationToken()
        self.progress = progress or ProgressReporter()
        self.website_cache: Dict[str, ShopDetails] = {}
        self._in_flight: Dict[str, asyncio.Future] = {}

    async def website_details(self, url: str,
                              loader: Callable[[], Awaitable[ShopDetails]]) -> ShopDetails:
        key = normalize_url(url)
        if key in self.website_cache:
            return self.website_cache[key]

        future = self._in_flight.get(key)
        if future is None:
            future = self._in_flight[key] = asyncio.ensure_future(loader())

        try:
            details = await future
        finally:
            self._in_flight.pop(key, None)

        self.website_cache[key] = details
        return details


def render_site_list(site_results: List[SiteCrawlResult]) -> str:
    """Crawl log: per site, what was visited and what was left in the frontier"""
    blocks = []
    for result in site_results:
        lines = []
        if result.depth_limit_reached:
            lines.append("Reached crawl depth limit for this site.")
        lines.append("VISITED:")
        lines.extend(f"\t{url}" for url in result.visited)
        lines.append("TO VISIT:")
        lines.extend(f"\t{url}" for url in result.pending)
        blocks.append("\n".join(lines) + REPORT_DIVIDER)
    return "".join(blocks)


class ReportOrchestrator:
    """
    Fishing report job

    Args:
        config: Configuration dictionary (see ConfigManager.as_dict)
        engine: Browser owner handed to the crawl manager
        summarizer: Anything with `async summarize(prompt) -> str`
        sink: Output sink with `async write(name, text) -> bytes`
        run: Job context; a fresh one is made when omitted
    """

    def __init__(self, config: Dict[str, Any], engine: BrowserEngine, summarizer, sink,
                 run: Optional[CrawlRun] = None, content_filter: Optional[ContentFilter] = None,
                 chunker: Optional[Chunker] = None):
        self.config = config
        self.scraper_config = ScraperConfig(**config.get('scraper', {}))
        self.summary_config = SummaryConfig(**config.get('summary', {}))
        self.engine = engine
        self.summarizer = summarizer
        self.sink = sink
        self.run_context = run or CrawlRun()
        self.content_filter = content_filter or ContentFilter()
        self.chunker = chunker or Chunker()
        self.logger = get_logger('report_job')

    async def run(self, sites: List[Site], params: Optional[ScraperConfig] = None) -> ReportJobResult:
        """
        Run the report job over `sites`

        `params` overrides the configured scraper settings for this run.

        Raises:
            CrawlCancelled: when the run's token is cancelled
        """
        params = params or self.scraper_config
        progress = self.run_context.progress
        token = self.run_context.cancel_token
        result = ReportJobResult()

        try:
            await progress.emit("Reading sites...")
            sites = dedupe_sites(sites)
            await progress.emit(f"✅ Found {len(sites)} sites to scrape!")

            manager = ConcurrentCrawlManager(
                self.engine,
                crawl_depth=params.crawl_depth,
                concurrency=params.concurrency,
                cancel_token=token,
                progress=progress,
            )
            crawl = await manager.crawl(sites)
            result.failures = list(crawl.failures)
            result.reports_found = len(crawl.reports)

            if not crawl.reports:
                await progress.emit("No reports found.")
            else:
                result.reports = self.content_filter.filter(
                    crawl.reports,
                    params.max_age_days,
                    filter_by_keywords=params.filter_by_keywords,
                    keyword_list=params.keyword_list,
                )
                await progress.emit(f"Kept {len(result.reports)} recent reports")

                result.compiled = REPORT_DIVIDER.join(str(report) for report in result.reports)
                result.files[COMPILED_FILE] = await self.sink.write(COMPILED_FILE, result.compiled)

                token.throw_if_cancelled()
                await self._summarize(result, params, token)
                if result.summary:
                    result.files[SUMMARY_FILE] = await self.sink.write(SUMMARY_FILE, result.summary)
                    await progress.emit("✅ Summary generated!")
                else:
                    await progress.emit("❌ No summaries generated. Skipping final summary.")

            if params.include_site_list:
                site_list = render_site_list(crawl.site_results)
                result.files[SITE_LIST_FILE] = await self.sink.write(SITE_LIST_FILE, site_list)

            if result.failures:
                await progress.emit(f"⚠️ {len(result.failures)} failed pages / sites")
            await progress.emit("✅ Finished!")

        except (CrawlCancelled, asyncio.CancelledError):
            self.logger.warning("Report job cancelled")
            raise
        except Exception as e:
            self.logger.error(f"Report job failed: {e}", exc_info=True)
            await progress.emit(f"❌ Error: {e}")
            raise

        return result

    async def _summarize(self, result: ReportJobResult, params: ScraperConfig,
                         token: CancellationToken) -> None:
        generator = SummaryGenerator(
            self.summarizer,
            summary_prompt=self.summary_config.summary_prompt,
            merge_prompt=self.summary_config.merge_prompt,
            token_limit=params.token_limit,
            concurrency=params.concurrency,
            cancel_token=token,
            chunker=self.chunker,
        )
        await self.run_context.progress.emit("Generating summary...")
        result.summary = await generator.generate(result.compiled)
        result.chunks = generator.chunk_count
        if generator.failures:
            self.logger.warning(f"{len(generator.failures)} of {generator.chunk_count} chunks failed to summarize")


class ShopOrchestrator:
    """
    Shop lookup job

    Args:
        config: Configuration dictionary (see ConfigManager.as_dict)
        engine: Browser owner used to scrape shop websites
        search_client: Anything with `async search_all(query, lat, lng, max_results, cancel_token)`
        sink: Output sink with `async write(name, text) -> bytes`
        run: Job context; a fresh one is made when omitted
    """

    def __init__(self, config: Dict[str, Any], engine: BrowserEngine, search_client, sink,
                 run: Optional[CrawlRun] = None, extractor: Optional[ShopDetailsExtractor] = None):
        self.config = config
        self.scraper_config = ScraperConfig(**config.get('scraper', {}))
        self.engine = engine
        self.search_client = search_client
        self.sink = sink
        self.run_context = run or CrawlRun()
        self.extractor = extractor or ShopDetailsExtractor()
        self.logger = get_logger('shop_job')

        self._completed = 0

    async def run(self, query: str, lat: float, lng: float,
                  max_results: Optional[int] = None) -> ShopJobResult:
        progress = self.run_context.progress
        token = self.run_context.cancel_token
        result = ShopJobResult()

        try:
            await progress.emit(f"Searching for \"{query}\"...")
            shops = await self.search_client.search_all(query, lat, lng, max_results, cancel_token=token)
            await progress.emit(f"✅ Found {len(shops)} shops!")

            details = await self._scrape_websites(shops)

            result.rows = build_shop_rows(shops, details)
            result.files[SHOPS_FILE] = await self.sink.write(SHOPS_FILE, rows_to_csv(result.rows))
            await progress.emit("✅ Finished!")

        except (CrawlCancelled, asyncio.CancelledError):
            self.logger.warning("Shop job cancelled")
            raise
        except Exception as e:
            self.logger.error(f"Shop job failed: {e}", exc_info=True)
            await progress.emit(f"❌ Error: {e}")
            raise

        return result

    async def _scrape_websites(self, shops: List[Dict[str, Any]]) -> List[ShopDetails]:
        details: List[ShopDetails] = [ShopDetails() for _ in shops]
        with_website = [(i, shop['website']) for i, shop in enumerate(shops) if shop.get('website')]
        if not with_website:
            return details

        self._completed = 0
        total = len(with_website)
        progress = self.run_context.progress
        await progress.emit(f"Scraping shop websites (0/{total})...")

        try:
            await self.engine.initialize()
            pending = iter(with_website)
            workers = [
                asyncio.ensure_future(self._worker(pending, details, total))
                for _ in range(min(self.scraper_config.concurrency, total))
            ]
            try:
                await asyncio.gather(*workers)
            except BaseException:
                for worker in workers:
                    worker.cancel()
                await asyncio.gather(*workers, return_exceptions=True)
                raise
        finally:
            await self.engine.cleanup()

        return details

    async def _worker(self, pending, details: List[ShopDetails], total: int) -> None:
        fetcher = self.engine.new_fetcher()
        try:
            for index, website in pending:
                self.run_context.cancel_token.throw_if_cancelled()
                details[index] = await self.run_context.website_details(
                    website, lambda: self._scrape_one(fetcher, website)
                )
                self._completed += 1
                await self.run_context.progress.emit(
                    f"Scraping shop websites ({self._completed}/{total})...", update_last=True
                )
        finally:
            await fetcher.close()

    async def _scrape_one(self, fetcher: PageFetcherInterface, website: str) -> ShopDetails:
        try:
            return await self.extractor.scrape(fetcher, website)
        except (CrawlCancelled, asyncio.CancelledError):
            raise
        except Exception as e:
            self.logger.error(f"Error scraping shop website {website}: {e}", exc_info=True)
            return error_details()


class ScoutOrchestrator:
    """
    Site scout job

    Args:
        config: Configuration dictionary (see ConfigManager.as_dict)
        sink: Output sink with `async write(name, text) -> bytes`
        run: Job context; a fresh one is made when omitted
    """

    def __init__(self, config: Dict[str, Any], sink, run: Optional[CrawlRun] = None):
        self.config = config
        self.sink = sink
        self.run_context = run or CrawlRun()
        self.logger = get_logger('scout_job')

    async def run(self, report_websites: List[str], sites: List[Site]) -> ScoutJobResult:
        """
        Find report websites whose domain matches none of `sites`

        Nothing is written when no site is missing.
        """
        progress = self.run_context.progress
        token = self.run_context.cancel_token
        result = ScoutJobResult()

        try:
            await progress.emit("Comparing report and site URLs...")
            token.throw_if_cancelled()
            result.missing = find_missing_sites(report_websites, [site.url for site in sites])

            if not result.missing:
                await progress.emit("✅ No missing URLs found.")
                return result

            await progress.emit(f"Appending {len(result.missing)} missing URLs to the site list...")
            token.throw_if_cancelled()
            site_sheet = sites_to_csv(sites, result.missing)
            result.files[UPDATED_SITES_FILE] = await self.sink.write(UPDATED_SITES_FILE, site_sheet)
            await progress.emit("✅ Site list updated.")

        except (CrawlCancelled, asyncio.CancelledError):
            self.logger.warning("Scout job cancelled")
            raise
        except Exception as e:
            self.logger.error(f"Scout job failed: {e}", exc_info=True)
            await progress.emit(f"❌ Error: {e}")
            raise

        return result


def build_shop_rows(shops: List[Dict[str, Any]], details: List[ShopDetails]) -> List[Dict[str, Any]]:
    """Merge search results with scraped details into export rows"""
    if len(shops) != len(details):
        raise ValueError(f"Shop count - {len(shops)} != details count - {len(details)}")

    rows = []
    for shop, detail in zip(shops, details):
        rating = shop.get('rating')
        rows.append({
            "Name": shop.get('title') or "",
            "Category": shop.get('type') or "",
            "Phone": shop.get('phone') or "",
            "Address": shop.get('address') or "",
            "Email": detail.email or "",
            "Has Website": bool(shop.get('website')),
            "Website": shop.get('website') or NO_WEBSITE,
            "Sells Online": detail.sells_online or "",
            "Rating": f"{rating}/5" if rating is not None else "N/A",
            "Reviews": shop.get('reviews') or 0,
            "Has Report": detail.fishing_report or "",
            "Socials": detail.social_media or "",
        })
    return rows


def rows_to_csv(rows: List[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=SHOP_COLUMNS)
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()
