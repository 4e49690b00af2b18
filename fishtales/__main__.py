#!/usr/bin/env python3
"""
FishTales - Main Entry Point

This module serves as the main entry point for the crawler. It loads the
configuration, sets up logging, and runs the selected job.
"""

import asyncio
import signal
import sys
from typing import List, Optional

from fishtales.cli.arguments import CLIManager
from fishtales.core.base import ConfigurationError, CrawlCancelled
from fishtales.core.cancellation import CancellationToken
from fishtales.core.config import ConfigManager
from fishtales.core.logging import setup_logging, get_logger, logging_manager
from fishtales.core.progress import ProgressReporter
from fishtales.storage.site_loader import load_report_websites
from fishtales.utils.component_factory import (
    create_run,
    create_report_orchestrator,
    create_scout_orchestrator,
    create_shop_orchestrator,
)


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def print_progress(message: str, update_last: bool) -> None:
    print(message, flush=True)


async def run_reports(cli_manager: CLIManager, args, config_manager: ConfigManager,
                      token: CancellationToken) -> int:
    logger = get_logger()
    sites = cli_manager.get_sites_from_args(args)
    if not sites:
        logger.error(f"No valid sites found in {args.site_file}")
        return EXIT_FAILED

    params = cli_manager.apply_overrides(args, config_manager.scraper_config)
    api_key = config_manager.get_api_key(config_manager.summary_config.api_key_env)

    run = create_run(cancel_token=token, progress=ProgressReporter(print_progress))
    orchestrator = create_report_orchestrator(config_manager.as_dict(), api_key, run)
    try:
        result = await orchestrator.run(sites, params)
    finally:
        await orchestrator.summarizer.cleanup()

    logging_manager.generate_summary_report({
        'sites': len(sites),
        'reports_found': result.reports_found,
        'reports_kept': len(result.reports),
        'chunks': result.chunks,
        'errors': result.failures,
    })
    if result.summary:
        print(f"\n{result.summary}\n")
    return EXIT_OK


async def run_shops(args, config_manager: ConfigManager, token: CancellationToken) -> int:
    api_key = config_manager.get_api_key(config_manager.search_config.api_key_env)

    run = create_run(cancel_token=token, progress=ProgressReporter(print_progress))
    orchestrator = create_shop_orchestrator(config_manager.as_dict(), api_key, run)
    try:
        result = await orchestrator.run(args.query, args.lat, args.lng, args.max_results)
    finally:
        await orchestrator.search_client.cleanup()

    get_logger().info(f"Wrote {len(result.rows)} shops")
    return EXIT_OK


async def run_scout(cli_manager: CLIManager, args, config_manager: ConfigManager,
                    token: CancellationToken) -> int:
    sites = cli_manager.get_sites_from_args(args)
    report_websites = load_report_websites(args.shop_file)

    run = create_run(cancel_token=token, progress=ProgressReporter(print_progress))
    orchestrator = create_scout_orchestrator(config_manager.as_dict(), run)
    result = await orchestrator.run(report_websites, sites)

    get_logger().info(f"Found {len(result.missing)} sites missing from {args.site_file}")
    return EXIT_OK


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the crawler"""
    cli_manager = CLIManager()
    args = cli_manager.parse_arguments(argv)

    if args.examples:
        print("\nFishTales - Usage Examples\n")
        print(cli_manager.get_usage_examples())
        return EXIT_OK

    # Load configuration
    config_manager = ConfigManager(args.config)
    try:
        config_manager.load_config()
        if args.output_dir:
            config_manager.output_config.directory = args.output_dir
        config_manager.validate_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILED

    # Set up logging
    logging_config = config_manager.logging_config
    setup_logging(
        level=args.log_level or logging_config.level,
        log_file=logging_config.file,
        max_size=logging_config.max_size,
        backup_count=logging_config.backup_count
    )
    logger = get_logger()
    logger.info(f"Running {args.mode} job")

    # Ctrl-C cancels the job; the crawl unwinds and closes the browser
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except NotImplementedError:
        pass

    try:
        if args.mode == "shops":
            return await run_shops(args, config_manager, token)
        if args.mode == "scout":
            return await run_scout(cli_manager, args, config_manager, token)
        return await run_reports(cli_manager, args, config_manager, token)
    except CrawlCancelled:
        logger.warning("Job cancelled by user")
        return EXIT_CANCELLED
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_FAILED
    except Exception as e:
        logger.error(f"Job failed: {e}", exc_info=True)
        return EXIT_FAILED
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass
        logging_manager.close()


def cli() -> None:
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nFishTales interrupted by user")
        sys.exit(EXIT_CANCELLED)


if __name__ == "__main__":
    cli()
