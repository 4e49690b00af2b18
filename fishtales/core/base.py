"""
Base Classes and Interfaces for the FishTales crawler

Defines the data model shared by every crawl component, the page capability
contract the crawler depends on, and the error taxonomy used to decide which
failures stay local and which propagate.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass, field


REPORT_DIVIDER = "\n" + "-" * 50 + "\n"


@dataclass(frozen=True)
class Site:
    """Crawl seed and the heuristic vocabulary used to rank its links"""
    url: str
    selector: str = "body"
    keywords: Tuple[str, ...] = ()
    junk_words: Tuple[str, ...] = ()
    click_phrases: Tuple[str, ...] = ()


@dataclass(order=True)
class FrontierEntry:
    """A URL waiting in the frontier; lower priority is visited sooner"""
    priority: float
    sequence: int
    url: str = field(compare=False)


@dataclass(frozen=True)
class Report:
    """Visible text scraped from one non-seed page"""
    text: str
    source_url: str

    def __str__(self) -> str:
        return f"{self.text}\nSource: {self.source_url}"


@dataclass
class SiteCrawlResult:
    """Output of one SiteCrawler run"""
    site_url: str
    reports: List[Report] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)
    visited: List[str] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)
    depth_limit_reached: bool = False


@dataclass
class CrawlSummary:
    """Flattened result of a ConcurrentCrawlManager run"""
    reports: List[Report] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)
    site_results: List[SiteCrawlResult] = field(default_factory=list)


@dataclass
class ShopDetails:
    """Contact and storefront details scraped from a shop website"""
    email: str = ""
    sells_online: Any = False
    fishing_report: Any = False
    social_media: str = ""


class BaseComponent(ABC):
    """Base class for components holding external resources"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self._initialized = False

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the component"""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources"""
        pass

    def is_initialized(self) -> bool:
        """Check if component is initialized"""
        return self._initialized


class PageDocument(ABC):
    """Queryable view of a loaded page"""

    @abstractmethod
    def anchors(self) -> List[Tuple[str, str]]:
        """All anchors as (absolute href, lower-cased visible text)"""
        pass

    @abstractmethod
    def visible_text(self, selector: str) -> Optional[str]:
        """Visible text of the first selector match, or None"""
        pass

    @abstractmethod
    def body_text(self) -> str:
        """Text of the whole body"""
        pass

    @abstractmethod
    def has_element_with_text(self, tag: str, keyword: str) -> bool:
        """Whether any `tag` element contains `keyword` (case-insensitive)"""
        pass

    @abstractmethod
    def first_attribute(self, selector: str, attribute: str) -> Optional[str]:
        """Attribute value of the first selector match, or None"""
        pass


@dataclass
class PageResponse:
    """Response descriptor returned by a successful load"""
    url: str
    status_code: Optional[int]
    document: PageDocument


class PageFetcherInterface(ABC):
    """Capability the crawler uses to load pages"""

    @abstractmethod
    async def load(self, url: str, retries: int = 2) -> PageResponse:
        """
        Load a URL.

        Raises:
            Blocked: the site refused access (not retried)
            NavigationFailed: every attempt failed
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying browsing session"""
        pass


class ScraperError(Exception):
    """Base exception for scraper errors"""
    pass


class ConfigurationError(ScraperError):
    """Configuration-related errors"""
    pass


class CrawlingError(ScraperError):
    """Crawling-related errors"""
    pass


class Blocked(CrawlingError):
    """The site actively refused access"""

    def __init__(self, url: str, status: int):
        self.url = url
        self.status = status
        super().__init__(f"Blocked or forbidden (HTTP {status}) at {url}")


class NavigationFailed(CrawlingError):
    """Navigation kept failing after all retries"""

    def __init__(self, url: str, cause: Any = None):
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to load {url}: {cause}")


class SiteCrawlFailed(CrawlingError):
    """An unexpected error escaped one site's crawl"""

    def __init__(self, site_url: str, cause: BaseException):
        self.site_url = site_url
        self.cause = cause
        super().__init__(f"Error scraping {site_url}: {cause}")


class SummarizationFailed(ScraperError):
    """Summarizing a single chunk failed"""

    def __init__(self, chunk_index: int, cause: BaseException):
        self.chunk_index = chunk_index
        self.cause = cause
        super().__init__(f"Summarization failed for chunk {chunk_index}: {cause}")


class APIError(ScraperError):
    """Third-party API errors"""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class CrawlCancelled(ScraperError):
    """The run was cancelled by the caller"""

    def __init__(self, message: str = "Cancelled"):
        super().__init__(message)
