"""
Command Line Argument Parsing for FishTales

Handles command line arguments for job selection, site list input, and
configuration overrides.
"""

import argparse
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from fishtales import __version__
from fishtales.core.base import Site
from fishtales.core.config import ScraperConfig
from fishtales.storage.site_loader import SiteLoader, split_list


class CLIManager:
    """
    Command line interface manager for the crawler

    Handles command line arguments for job selection, site list input and
    configuration overrides. Provides validation and help documentation.
    """

    def __init__(self):
        self.parser = self._create_parser()
        self.site_loader = SiteLoader()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all options

        Returns:
            Configured argument parser
        """
        parser = argparse.ArgumentParser(
            prog="fishtales",
            description="Fly-fishing report crawler and shop lookup",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter,
            epilog=self._get_epilog()
        )

        # Job selection
        parser.add_argument(
            "--mode",
            choices=["reports", "shops", "scout"],
            default="reports",
            help="Job to run: crawl sites for fishing reports, look up shops, or find report sites missing from the site list"
        )

        # Report job options
        report_group = parser.add_argument_group("Report Job")
        report_group.add_argument(
            "--site-file",
            help="Path to the site list (CSV, JSON or YAML)"
        )
        report_group.add_argument(
            "--crawl-depth",
            type=int,
            help="Maximum number of pages to visit per site"
        )
        report_group.add_argument(
            "--max-age",
            type=int,
            help="Drop reports dated more than this many days ago"
        )
        report_group.add_argument(
            "--token-limit",
            type=int,
            help="Estimated token budget per summarization chunk"
        )
        report_group.add_argument(
            "--filter-keywords",
            help="Comma-separated keywords; only reports mentioning one are kept"
        )
        report_group.add_argument(
            "--include-site-list",
            action="store_true",
            help="Also write the per-site crawl log"
        )

        # Shop job options
        shop_group = parser.add_argument_group("Shop Job")
        shop_group.add_argument(
            "--query",
            help="Search query, e.g. 'fly fishing shop'"
        )
        shop_group.add_argument(
            "--lat",
            type=float,
            help="Latitude of the search center"
        )
        shop_group.add_argument(
            "--lng",
            type=float,
            help="Longitude of the search center"
        )
        shop_group.add_argument(
            "--max-results",
            type=int,
            help="Maximum number of shops to look up"
        )

        # Site scout options
        scout_group = parser.add_argument_group("Site Scout Job")
        scout_group.add_argument(
            "--shop-file",
            help="Shop lookup export (CSV) whose report-publishing websites are checked against --site-file"
        )

        # Configuration options
        config_group = parser.add_argument_group("Configuration")
        config_group.add_argument(
            "--config",
            default="config/config.yaml",
            help="Path to configuration file (created with defaults if missing)"
        )
        config_group.add_argument(
            "--log-level",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Logging level"
        )
        config_group.add_argument(
            "--concurrency",
            type=int,
            help="Maximum number of sites crawled at once"
        )
        config_group.add_argument(
            "--output-dir",
            help="Directory for output files"
        )

        parser.add_argument(
            "--version",
            action="version",
            version=f"FishTales v{__version__}"
        )

        parser.add_argument(
            "--examples",
            action="store_true",
            help="Show usage examples and exit"
        )

        return parser

    def _get_epilog(self) -> str:
        """
        Get epilog text for help message

        Returns:
            Formatted epilog text
        """
        return """
Examples:
  # Crawl the sites in a sheet and summarize recent reports
  python -m fishtales --mode=reports --site-file=sites.csv

  # Keep only reports about specific rivers, over the last week
  python -m fishtales --site-file=sites.csv --max-age=7 --filter-keywords="Madison,Yellowstone"

  # Write the crawl log alongside the reports
  python -m fishtales --site-file=sites.yaml --crawl-depth=10 --include-site-list

  # Look up fly shops around Bozeman
  python -m fishtales --mode=shops --query="fly fishing shop" --lat=45.68 --lng=-111.04

  # Append report-publishing shops missing from the site list
  python -m fishtales --mode=scout --shop-file=shops.csv --site-file=sites.csv

Notes:
  - Report summaries require the GEMINI_API_KEY environment variable
  - Shop lookups require the SERP_API_KEY environment variable
  - CONCURRENCY and RUN_HEADLESS environment variables override the config file
  - Output files are written to ./media/txt unless --output-dir is given
"""

    def parse_arguments(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """
        Parse command line arguments

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        parsed_args = self.parser.parse_args(args)
        if not parsed_args.examples:
            self.validate_arguments(parsed_args)
        return parsed_args

    def validate_arguments(self, args: argparse.Namespace) -> bool:
        """
        Validate parsed arguments for consistency

        Exits through parser.error() when arguments are invalid.
        """
        if args.mode == "reports":
            if not args.site_file:
                self.parser.error("Report mode requires --site-file")
            if not Path(args.site_file).is_file():
                self.parser.error(f"Site file not found: {args.site_file}")

        if args.mode == "scout":
            if not args.shop_file or not args.site_file:
                self.parser.error("Scout mode requires --shop-file and --site-file")
            for path in (args.shop_file, args.site_file):
                if not Path(path).is_file():
                    self.parser.error(f"File not found: {path}")

        if args.mode == "shops":
            if not args.query:
                self.parser.error("Shop mode requires --query")
            if args.lat is None or args.lng is None:
                self.parser.error("Shop mode requires --lat and --lng")
            if not -90 <= args.lat <= 90:
                self.parser.error("Latitude must be between -90 and 90")
            if not -180 <= args.lng <= 180:
                self.parser.error("Longitude must be between -180 and 180")

        if args.crawl_depth is not None and args.crawl_depth <= 0:
            self.parser.error("Crawl depth must be greater than 0")

        if args.concurrency is not None and args.concurrency <= 0:
            self.parser.error("Concurrency must be greater than 0")

        if args.token_limit is not None and args.token_limit <= 0:
            self.parser.error("Token limit must be greater than 0")

        if args.max_age is not None and args.max_age < 0:
            self.parser.error("Maximum age must be non-negative")

        if args.max_results is not None and args.max_results <= 0:
            self.parser.error("Maximum results must be greater than 0")

        return True

    def get_sites_from_args(self, args: argparse.Namespace) -> List[Site]:
        """
        Load the site list named on the command line

        Raises:
            ConfigurationError: If the file cannot be read
        """
        return self.site_loader.load(args.site_file)

    def apply_overrides(self, args: argparse.Namespace, base: ScraperConfig) -> ScraperConfig:
        """
        Return `base` with any command line overrides applied
        """
        overrides = {}
        if args.crawl_depth is not None:
            overrides['crawl_depth'] = args.crawl_depth
        if args.max_age is not None:
            overrides['max_age_days'] = args.max_age
        if args.token_limit is not None:
            overrides['token_limit'] = args.token_limit
        if args.concurrency is not None:
            overrides['concurrency'] = args.concurrency
        if args.filter_keywords:
            overrides['filter_by_keywords'] = True
            overrides['keyword_list'] = list(split_list(args.filter_keywords))
        if args.include_site_list:
            overrides['include_site_list'] = True
        return replace(base, **overrides)

    def print_help(self) -> None:
        """Print help message"""
        self.parser.print_help()

    def get_usage_examples(self) -> str:
        return self._get_epilog()
