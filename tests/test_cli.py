#!/usr/bin/env python3
"""
Test script for CLI functionality

Tests the command line interface by simulating different command line
arguments and verifying the parsed values, validation and overrides.
"""

import pytest

from fishtales.cli.arguments import CLIManager
from fishtales.core.config import ScraperConfig


@pytest.fixture
def site_file(tmp_path):
    path = tmp_path / "sites.csv"
    path.write_text("url,keywords\nhttps://www.blueribbonflies.com,report\n", encoding="utf-8")
    return str(path)


def test_default_args(site_file):
    """Test default arguments"""
    cli = CLIManager()
    args = cli.parse_arguments(["--site-file", site_file])

    assert args.mode == "reports"
    assert args.config == "config/config.yaml"
    assert args.crawl_depth is None
    assert args.include_site_list is False

    sites = cli.get_sites_from_args(args)
    assert [site.url for site in sites] == ["https://www.blueribbonflies.com"]
    assert sites[0].keywords == ("report",)

    print("✓ Default arguments test passed")


def test_report_overrides(site_file):
    """Test that report options override the configured scraper settings"""
    cli = CLIManager()
    args = cli.parse_arguments([
        "--site-file", site_file,
        "--crawl-depth", "8",
        "--max-age", "0",
        "--token-limit", "4000",
        "--concurrency", "2",
        "--filter-keywords", "Madison, Yellowstone",
        "--include-site-list",
    ])

    params = cli.apply_overrides(args, ScraperConfig())

    assert params.crawl_depth == 8
    assert params.max_age_days == 0
    assert params.token_limit == 4000
    assert params.concurrency == 2
    assert params.filter_by_keywords is True
    assert params.keyword_list == ["Madison", "Yellowstone"]
    assert params.include_site_list is True

    print("✓ Report overrides test passed")


def test_no_overrides_keeps_config(site_file):
    """Test that unset options leave the configuration alone"""
    cli = CLIManager()
    base = ScraperConfig(crawl_depth=12, keyword_list=["gallatin"])
    args = cli.parse_arguments(["--site-file", site_file])

    assert cli.apply_overrides(args, base) == base


def test_shop_args():
    """Test shop mode arguments"""
    cli = CLIManager()
    args = cli.parse_arguments([
        "--mode=shops",
        "--query", "fly fishing shop",
        "--lat", "45.68",
        "--lng", "-111.04",
        "--max-results", "40",
    ])

    assert args.mode == "shops"
    assert args.query == "fly fishing shop"
    assert args.lat == pytest.approx(45.68)
    assert args.lng == pytest.approx(-111.04)
    assert args.max_results == 40

    print("✓ Shop arguments test passed")


def test_scout_args(site_file, tmp_path):
    """Test scout mode arguments"""
    shop_file = tmp_path / "shops.csv"
    shop_file.write_text("Website,Has Report\n", encoding="utf-8")

    cli = CLIManager()
    args = cli.parse_arguments(["--mode=scout", "--shop-file", str(shop_file), "--site-file", site_file])

    assert args.mode == "scout"
    assert args.shop_file == str(shop_file)


@pytest.mark.parametrize("argv", [
    ["--mode=scout"],
    ["--mode=scout", "--shop-file", "shops.csv"],
    ["--mode=scout", "--shop-file", "missing-shops.csv", "--site-file", "missing-sites.csv"],
])
def test_invalid_scout_args(argv):
    """Test that scout mode needs both input files"""
    cli = CLIManager()
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_arguments(argv)
    assert exc_info.value.code == 2


@pytest.mark.parametrize("argv", [
    [],
    ["--site-file", "does-not-exist.csv"],
    ["--mode=shops", "--lat", "1", "--lng", "1"],
    ["--mode=shops", "--query", "fly shop", "--lat", "1"],
    ["--mode=shops", "--query", "fly shop", "--lat", "91", "--lng", "1"],
    ["--mode=shops", "--query", "fly shop", "--lat", "1", "--lng", "-181"],
    ["--mode=shops", "--query", "fly shop", "--lat", "1", "--lng", "1", "--max-results", "0"],
])
def test_invalid_args(argv):
    """Test that inconsistent arguments exit with a usage error"""
    cli = CLIManager()
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_arguments(argv)
    assert exc_info.value.code == 2


@pytest.mark.parametrize("option,value", [
    ("--crawl-depth", "0"),
    ("--concurrency", "0"),
    ("--token-limit", "-5"),
    ("--max-age", "-1"),
])
def test_invalid_numbers(site_file, option, value):
    """Test numeric option bounds"""
    cli = CLIManager()
    with pytest.raises(SystemExit):
        cli.parse_arguments(["--site-file", site_file, option, value])


def test_examples_skip_validation():
    """Test that --examples works without a site file"""
    cli = CLIManager()
    args = cli.parse_arguments(["--examples"])
    assert args.examples is True


def test_help_output():
    """Test help output"""
    cli = CLIManager()
    help_text = cli.get_usage_examples()

    assert "Examples:" in help_text
    assert "python -m fishtales" in help_text
    assert "GEMINI_API_KEY" in help_text

    print("✓ Help output test passed")
