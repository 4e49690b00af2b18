"""
Component Factory for FishTales

This module provides functions to build the job orchestrators and their
components from configuration.
"""

from typing import Dict, Any, Optional

from fishtales.clients.maps_search import MapsSearchClient
from fishtales.clients.summarizer import GeminiSummarizer
from fishtales.core.cancellation import CancellationToken
from fishtales.core.crawl_engine import CrawlEngine
from fishtales.core.logging import get_logger
from fishtales.core.orchestrator import CrawlRun, ReportOrchestrator, ScoutOrchestrator, ShopOrchestrator
from fishtales.core.progress import ProgressReporter
from fishtales.storage.text_output import TextFileSink


def create_run(cancel_token: Optional[CancellationToken] = None,
               progress: Optional[ProgressReporter] = None) -> CrawlRun:
    """Create the per-job context"""
    return CrawlRun(cancel_token=cancel_token, progress=progress)


def create_sink(config: Dict[str, Any]) -> TextFileSink:
    return TextFileSink(config.get('output', {}).get('directory', './media/txt'))


def create_report_orchestrator(config: Dict[str, Any], api_key: str,
                               run: Optional[CrawlRun] = None) -> ReportOrchestrator:
    """
    Create the report job with a browser engine, a Gemini summarizer and a
    file sink.

    Args:
        config: Configuration dictionary
        api_key: Gemini API key
        run: Job context to share with the caller
    """
    logger = get_logger()
    logger.info("Creating report job components")

    engine = CrawlEngine(config)
    summarizer = GeminiSummarizer(config, api_key)
    sink = create_sink(config)

    return ReportOrchestrator(config, engine, summarizer, sink, run=run or create_run())


def create_shop_orchestrator(config: Dict[str, Any], api_key: str,
                             run: Optional[CrawlRun] = None) -> ShopOrchestrator:
    """
    Create the shop lookup job with a browser engine, a maps search client
    and a file sink.

    Args:
        config: Configuration dictionary
        api_key: SerpAPI key
        run: Job context to share with the caller
    """
    logger = get_logger()
    logger.info("Creating shop job components")

    engine = CrawlEngine(config)
    search_client = MapsSearchClient(config, api_key)
    sink = create_sink(config)

    return ShopOrchestrator(config, engine, search_client, sink, run=run or create_run())


def create_scout_orchestrator(config: Dict[str, Any],
                              run: Optional[CrawlRun] = None) -> ScoutOrchestrator:
    """Create the site scout job with a file sink"""
    return ScoutOrchestrator(config, create_sink(config), run=run or create_run())
