"""
FishTales

Crawls fly-fishing shop and guide websites for recent fishing reports and
summarizes them with a text-generation model. Also looks up fly shops through
a maps search provider and collects their contact details.

Features:
- Prioritized per-site crawling on crawl4ai with a bounded worker pool
- Blocked-page detection and retrying page loads
- Date-based report filtering and token-bounded chunking
- Chunked summarization with Gemini
- Shop lookup with website details scraping
- Configurable via YAML/JSON and environment variables
"""

__version__ = "0.1.0"
