"""
Core components for FishTales

This package contains the core components for the crawler including:
- Base classes, data model and errors
- Configuration management
- Logging system
- URL normalization, link prioritization and the crawl frontier
- Browser engine, site crawler and concurrent crawl manager
- Job orchestrators
"""

from fishtales.core.base import (
    REPORT_DIVIDER,
    Site,
    FrontierEntry,
    Report,
    SiteCrawlResult,
    CrawlSummary,
    ShopDetails,
    BaseComponent,
    PageDocument,
    PageResponse,
    PageFetcherInterface,
    ScraperError,
    ConfigurationError,
    CrawlingError,
    Blocked,
    NavigationFailed,
    SiteCrawlFailed,
    SummarizationFailed,
    APIError,
    CrawlCancelled
)

from fishtales.core.config import (
    ConfigManager,
    ScraperConfig,
    BrowserSettings,
    SummaryConfig,
    SearchConfig,
    OutputConfig,
    LoggingConfig
)

from fishtales.core.logging import (
    LoggingManager,
    get_logger,
    setup_logging
)

from fishtales.core.cancellation import CancellationToken

from fishtales.core.progress import ProgressReporter

from fishtales.core.url_manager import (
    normalize_url,
    same_domain,
    includes_any,
    LinkPrioritizer,
    CrawlFrontier
)

from fishtales.core.crawl_engine import (
    CrawlEngine,
    PageFetcher,
    HtmlDocument
)

from fishtales.core.site_crawler import SiteCrawler

from fishtales.core.crawl_manager import ConcurrentCrawlManager

__all__ = [
    # Data model
    'REPORT_DIVIDER',
    'Site',
    'FrontierEntry',
    'Report',
    'SiteCrawlResult',
    'CrawlSummary',
    'ShopDetails',

    # Interfaces
    'BaseComponent',
    'PageDocument',
    'PageResponse',
    'PageFetcherInterface',

    # Errors
    'ScraperError',
    'ConfigurationError',
    'CrawlingError',
    'Blocked',
    'NavigationFailed',
    'SiteCrawlFailed',
    'SummarizationFailed',
    'APIError',
    'CrawlCancelled',

    # Configuration
    'ConfigManager',
    'ScraperConfig',
    'BrowserSettings',
    'SummaryConfig',
    'SearchConfig',
    'OutputConfig',
    'LoggingConfig',

    # Logging
    'LoggingManager',
    'get_logger',
    'setup_logging',

    # Crawling
    'CancellationToken',
    'ProgressReporter',
    'normalize_url',
    'same_domain',
    'includes_any',
    'LinkPrioritizer',
    'CrawlFrontier',
    'CrawlEngine',
    'PageFetcher',
    'HtmlDocument',
    'SiteCrawler',
    'ConcurrentCrawlManager'
]
