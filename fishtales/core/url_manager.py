"""
URL Management for the FishTales crawler

Implements URL normalization and same-domain checks, keyword based link
prioritization, and the priority queue frontier that drives a single
site's crawl.
"""

import heapq
import itertools
import math
from typing import List, Optional, Iterable, Dict
from urllib.parse import urlparse, urlunparse

from fishtales.core.base import Site, FrontierEntry


DEFAULT_PORTS = {'http': 80, 'https': 443}


def normalize_url(url: str) -> str:
    """
    Normalize a URL for comparison and deduplication.

    Drops the query string and fragment, lowercases scheme and host, drops
    default ports, and strips trailing slashes so the root path becomes
    empty. Anything that is not an absolute URL is returned unchanged.
    """
    if not isinstance(url, str):
        return url

    try:
        parsed = urlparse(url.strip())
        host = parsed.hostname
        port = parsed.port
    except ValueError:
        return url

    if not parsed.scheme or not parsed.netloc or not host:
        return url

    scheme = parsed.scheme.lower()
    if ':' in host:
        host = f"[{host}]"
    netloc = host
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{host}:{port}"
    if parsed.username:
        userinfo = parsed.username
        if parsed.password:
            userinfo = f"{userinfo}:{parsed.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parsed.path.rstrip('/')

    return urlunparse((scheme, netloc, path, parsed.params, '', ''))


def _bare_host(url: str) -> Optional[str]:
    host = urlparse(normalize_url(url)).hostname
    if not host:
        return None
    host = host.lower()
    if host.startswith('www.'):
        host = host[4:]
    return host


def same_domain(url_a: str, url_b: str) -> bool:
    """
    Whether two URLs share a host, ignoring a leading 'www.'.

    Unparseable input on either side compares as a different domain.
    """
    try:
        host_a = _bare_host(url_a)
        host_b = _bare_host(url_b)
    except (ValueError, TypeError, AttributeError):
        return False
    return host_a is not None and host_a == host_b


def includes_any(target: str, terms: Iterable[str]) -> bool:
    """Case-insensitive check for any of `terms` inside `target`"""
    if not isinstance(target, str) or terms is None:
        return False

    lower = target.lower()
    return any(term and term.lower() in lower for term in terms)


class LinkPrioritizer:
    """
    Scores candidate links using a site's keyword vocabulary.

    Priorities:
        0   link mentions a keyword and no junk word
        1   current page mentions a keyword and link text has a click phrase
        2   link mentions a keyword and a junk word
        inf not worth following
    """

    DO_NOT_FOLLOW = math.inf

    def get_priority(self, current_url: str, link: str, link_text: str, site: Site) -> float:
        has_keyword = includes_any(link, site.keywords)
        has_junk_word = includes_any(link, site.junk_words)

        if has_keyword and not has_junk_word:
            return 0
        if includes_any(current_url, site.keywords) and includes_any(link_text, site.click_phrases):
            return 1
        if has_keyword and has_junk_word:
            return 2
        return self.DO_NOT_FOLLOW


_default_prioritizer = LinkPrioritizer()


def get_priority(current_url: str, link: str, link_text: str, site: Site) -> float:
    """Score a link with the default LinkPrioritizer"""
    return _default_prioritizer.get_priority(current_url, link, link_text, site)


class CrawlFrontier:
    """
    Min-priority queue of URLs for one site's crawl.

    Backed by a binary heap; equal priorities come out in insertion order.
    Entries with an infinite priority are never queued.
    """

    def __init__(self):
        self._heap: List[FrontierEntry] = []
        self._counter = itertools.count()

    def push(self, url: str, priority: float) -> Optional[FrontierEntry]:
        if math.isinf(priority):
            return None

        entry = FrontierEntry(priority=priority, sequence=next(self._counter), url=url)
        heapq.heappush(self._heap, entry)
        return entry

    def pop(self) -> Optional[FrontierEntry]:
        if not self._heap:
            return None
        return heapq.heappop(self._heap)

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def pending_urls(self) -> List[str]:
        """Queued URLs in visit order, without duplicates"""
        seen: Dict[str, None] = {}
        for entry in sorted(self._heap):
            seen.setdefault(entry.url, None)
        return list(seen)
