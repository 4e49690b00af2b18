"""
Tests for SiteCrawler

Crawls fixture sites served by a fake PageFetcher and checks visit order,
the visited-once and depth bounds, report extraction, per-page failure
handling and cancellation.
"""

import pytest

from fishtales.core.base import Blocked, CrawlCancelled, Site
from fishtales.core.cancellation import CancellationToken
from fishtales.core.site_crawler import SiteCrawler


REPORT_SITE = Site(url="https://a.com/", keywords=("report",))


class TestSiteCrawler:
    """Test suite for SiteCrawler"""

    @pytest.mark.asyncio
    async def test_each_url_fetched_once(self, make_fetcher, make_page):
        """Test that self links and links back to the seed are never refetched"""
        pages = {
            "https://a.com": make_page(("/report", "Reports"), ("/", "Home")),
            "https://a.com/report": make_page(
                ("/report", "Self"), ("https://a.com/", "Home"), ("/report/2?page=2", "Next"),
                body="Report one"
            ),
            "https://a.com/report/2": make_page(("/report/", "Back"), ("/report/2#top", "Top"), body="Report two"),
        }
        fetcher = make_fetcher(pages)

        result = await SiteCrawler(fetcher, REPORT_SITE, crawl_depth=20).crawl()

        assert fetcher.loads == ["https://a.com", "https://a.com/report", "https://a.com/report/2"]
        assert len(fetcher.loads) == len(set(fetcher.loads))
        assert result.visited == fetcher.loads
        assert result.failures == []
        assert not result.depth_limit_reached

    @pytest.mark.asyncio
    async def test_depth_bound(self, make_fetcher, make_page):
        """Test that at most crawl_depth distinct URLs are visited"""
        pages = {"https://a.com": make_page(("/report/1", "1"), ("/report/2", "2"))}
        for i in range(1, 50):
            pages[f"https://a.com/report/{i}"] = make_page(
                (f"/report/{i + 1}", "next"), (f"/report/{i + 2}", "skip"), body=f"Report {i}"
            )
        fetcher = make_fetcher(pages)

        result = await SiteCrawler(fetcher, REPORT_SITE, crawl_depth=3).crawl()

        assert len(fetcher.loads) == 3
        assert len(result.visited) == 3
        assert result.depth_limit_reached
        assert result.pending
        assert not set(result.pending) & set(result.visited)

    @pytest.mark.asyncio
    async def test_end_to_end_scenario(self, make_fetcher, make_page):
        """Test one keyword link followed and one unrelated link pruned"""
        site = Site(url="https://shop.example/reports", keywords=("report",))
        pages = {
            "https://shop.example/reports": make_page(("/reports/june", "June"), ("/about", "About us")),
            "https://shop.example/reports/june": make_page(body="June 12: Madison fishing well"),
        }
        fetcher = make_fetcher(pages)

        result = await SiteCrawler(fetcher, site, crawl_depth=5).crawl()

        assert fetcher.loads == ["https://shop.example/reports", "https://shop.example/reports/june"]
        assert len(result.reports) == 1
        assert result.reports[0].source_url.endswith("/reports/june")
        assert result.reports[0].text == "June 12: Madison fishing well"
        assert str(result.reports[0]) == (
            "June 12: Madison fishing well\nSource: https://shop.example/reports/june"
        )
        assert "https://shop.example/about" not in result.visited
        assert not result.depth_limit_reached

    @pytest.mark.asyncio
    async def test_seed_page_is_not_scraped(self, make_fetcher, make_page):
        pages = {"https://a.com": make_page(body="Home page report text")}
        fetcher = make_fetcher(pages)

        result = await SiteCrawler(fetcher, REPORT_SITE, crawl_depth=5).crawl()

        assert result.reports == []
        assert result.visited == ["https://a.com"]

    @pytest.mark.asyncio
    async def test_selector_limits_report_text(self, make_fetcher):
        site = Site(url="https://a.com", selector=".entry", keywords=("report",))
        pages = {
            "https://a.com": '<body><a href="/report/1">1</a><a href="/report/2">2</a></body>',
            "https://a.com/report/1": '<body><div class="entry">Hatch is on</div><footer>Footer</footer></body>',
            "https://a.com/report/2": '<body><div class="other">No entry here</div></body>',
        }
        fetcher = make_fetcher(pages)

        result = await SiteCrawler(fetcher, site, crawl_depth=5).crawl()

        assert [report.text for report in result.reports] == ["Hatch is on"]

    @pytest.mark.asyncio
    async def test_page_failures_are_recorded_and_skipped(self, make_fetcher, make_page):
        """Test that blocked and unreachable pages do not stop the crawl"""
        pages = {
            "https://a.com": make_page(("/report/a", "A"), ("/report/b", "B"), ("/report/c", "C")),
            "https://a.com/report/c": make_page(body="Report C"),
        }
        errors = {"https://a.com/report/a": Blocked("https://a.com/report/a", 403)}
        fetcher = make_fetcher(pages, errors)

        result = await SiteCrawler(fetcher, REPORT_SITE, crawl_depth=10).crawl()

        assert fetcher.loads == [
            "https://a.com", "https://a.com/report/a", "https://a.com/report/b", "https://a.com/report/c"
        ]
        assert [report.text for report in result.reports] == ["Report C"]
        assert len(result.failures) == 2
        assert result.failures[0].startswith("Error navigating to https://a.com/report/a:")
        assert "HTTP 403" in result.failures[0]
        assert result.failures[1].startswith("Error navigating to https://a.com/report/b:")

    @pytest.mark.asyncio
    async def test_seed_failure(self, make_fetcher):
        fetcher = make_fetcher({})

        result = await SiteCrawler(fetcher, REPORT_SITE, crawl_depth=5).crawl()

        assert result.reports == []
        assert result.visited == ["https://a.com"]
        assert len(result.failures) == 1

    @pytest.mark.asyncio
    async def test_priority_order(self, make_fetcher, make_page):
        """Test that links are visited by priority class"""
        site = Site(
            url="https://a.com/reports",
            keywords=("report",),
            junk_words=("archive",),
            click_phrases=("read more",),
        )
        pages = {
            "https://a.com/reports": make_page(
                ("/reports/archive", "Old"),
                ("/story", "Read more"),
                ("/reports/new", "New"),
            ),
        }
        fetcher = make_fetcher(pages)

        result = await SiteCrawler(fetcher, site, crawl_depth=10).crawl()

        assert result.visited == [
            "https://a.com/reports",
            "https://a.com/reports/new",
            "https://a.com/story",
            "https://a.com/reports/archive",
        ]

    @pytest.mark.asyncio
    async def test_scope_is_the_seed_domain(self, make_fetcher, make_page):
        pages = {
            "https://a.com": make_page(
                ("https://other.com/report", "Elsewhere"),
                ("https://www.a.com/report/x", "Same site"),
            ),
            "https://www.a.com/report/x": make_page(body="Report X"),
        }
        fetcher = make_fetcher(pages)

        result = await SiteCrawler(fetcher, REPORT_SITE, crawl_depth=10).crawl()

        assert "https://other.com/report" not in fetcher.loads
        assert "https://www.a.com/report/x" in fetcher.loads
        assert [report.text for report in result.reports] == ["Report X"]

    @pytest.mark.asyncio
    async def test_cancellation_stops_within_one_iteration(self, make_fetcher, make_page):
        pages = {
            "https://a.com": make_page(("/report/1", "1"), ("/report/2", "2")),
            "https://a.com/report/1": make_page(body="Report 1"),
            "https://a.com/report/2": make_page(body="Report 2"),
        }
        fetcher = make_fetcher(pages)
        token = CancellationToken(check=lambda: len(fetcher.loads) >= 1)

        with pytest.raises(CrawlCancelled):
            await SiteCrawler(fetcher, REPORT_SITE, crawl_depth=10, cancel_token=token).crawl()

        assert fetcher.loads == ["https://a.com"]

    def test_crawl_depth_must_be_positive(self, make_fetcher):
        with pytest.raises(ValueError):
            SiteCrawler(make_fetcher({}), REPORT_SITE, crawl_depth=0)
