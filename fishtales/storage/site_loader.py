"""
Site list loading

Reads crawl seeds from CSV, JSON or YAML files. Each entry carries a URL plus
the selector and word lists the link prioritizer ranks links with. Also holds
the site scout helpers that find report-publishing shops missing from a
site list.
"""

import csv
import io
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List

import validators
import yaml

from fishtales.core.base import ConfigurationError, Site
from fishtales.core.logging import get_logger
from fishtales.core.url_manager import normalize_url, same_domain


# Column names as they appear in site sheets; keys are Site field names
COLUMNS = {
    'url': 'url',
    'selector': 'selector',
    'keywords': 'keywords',
    'junk_words': 'junk-words',
    'click_phrases': 'click-phrases',
}


def split_list(value: Any) -> tuple:
    """Turn "a, b,,c" or ["a", " b"] into ("a", "b", "c")"""
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = str(value).split(',')
    return tuple(str(item).strip() for item in items if str(item).strip())


class SiteLoader:
    """Loads Site entries from a file"""

    def __init__(self):
        self.logger = get_logger('site_loader')

    def load(self, path: str) -> List[Site]:
        """
        Load sites from `path`, picking the format from the file suffix

        Raises:
            ConfigurationError: if the file is missing or cannot be parsed
        """
        file_path = Path(path)
        if not file_path.is_file():
            raise ConfigurationError(f"Site file not found: {path}")

        suffix = file_path.suffix.lower()
        try:
            if suffix == '.json':
                with open(file_path, 'r', encoding='utf-8') as f:
                    rows = json.load(f)
            elif suffix in ('.yaml', '.yml'):
                with open(file_path, 'r', encoding='utf-8') as f:
                    rows = yaml.safe_load(f)
            else:
                with open(file_path, 'r', encoding='utf-8', newline='') as f:
                    rows = list(csv.DictReader(f))
        except (OSError, ValueError, yaml.YAMLError, csv.Error) as e:
            raise ConfigurationError(f"Failed to load sites from {path}: {e}")

        if isinstance(rows, dict) and 'sites' in rows:
            rows = rows['sites']
        if not isinstance(rows, list):
            raise ConfigurationError(f"Site file {path} must contain a list of sites")

        sites = self.parse_rows(rows)
        self.logger.info(f"Loaded {len(sites)} sites from {path}")
        return sites

    def parse_rows(self, rows: Iterable[Dict[str, Any]]) -> List[Site]:
        sites = []
        for number, row in enumerate(rows, 1):
            if not isinstance(row, dict):
                self.logger.warning(f"Skipping site entry {number}: not a mapping")
                continue

            row = {str(key).strip().lower(): value for key, value in row.items() if key is not None}
            url = str(row.get('url') or '').strip()
            if not validators.url(url):
                self.logger.warning(f"Skipping site entry {number}: invalid URL {url!r}")
                continue

            selector = str(row.get(COLUMNS['selector']) or '').strip() or 'body'
            sites.append(Site(
                url=url,
                selector=selector,
                keywords=split_list(row.get(COLUMNS['keywords'])),
                junk_words=split_list(row.get(COLUMNS['junk_words'], row.get('junk_words'))),
                click_phrases=split_list(row.get(COLUMNS['click_phrases'], row.get('click_phrases'))),
            ))
        return sites


def dedupe_sites(sites: Iterable[Site]) -> List[Site]:
    """Drop sites whose normalized URL was already seen, keeping the first"""
    logger = get_logger('site_loader')
    seen = set()
    unique = []
    for site in sites:
        key = normalize_url(site.url)
        if key in seen:
            logger.warning(f"Duplicate site skipped: {site.url}")
            continue
        seen.add(key)
        unique.append(site)
    return unique


def find_missing_sites(candidate_urls: Iterable[str], known_urls: Iterable[str]) -> List[str]:
    """Candidate URLs whose domain matches none of the known URLs"""
    known = list(known_urls)
    missing: List[str] = []
    for url in candidate_urls:
        if not url:
            continue
        if any(same_domain(url, other) for other in known):
            continue
        if any(same_domain(url, other) for other in missing):
            continue
        missing.append(url)
    return missing


def load_report_websites(path: str) -> List[str]:
    """
    Websites of shops flagged as publishing a fishing report

    Reads a shop lookup export (the "Website" and "Has Report" columns).

    Raises:
        ConfigurationError: if the file is missing or cannot be parsed
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise ConfigurationError(f"Shop file not found: {path}")

    try:
        with open(file_path, 'r', encoding='utf-8', newline='') as f:
            rows = list(csv.DictReader(f))
    except (OSError, csv.Error) as e:
        raise ConfigurationError(f"Failed to load shops from {path}: {e}")

    websites = []
    for row in rows:
        row = {str(key).strip().lower(): value for key, value in row.items() if key is not None}
        has_report = str(row.get('has report') or '').strip().lower()
        website = str(row.get('website') or '').strip()
        if has_report == 'true' and validators.url(website):
            websites.append(website)
    return list(dict.fromkeys(websites))


def sites_to_csv(sites: Iterable[Site], extra_urls: Iterable[str] = ()) -> str:
    """Render sites back into a site sheet, with bare rows for `extra_urls`"""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(COLUMNS.values()))
    writer.writeheader()
    for site in sites:
        writer.writerow({
            COLUMNS['url']: site.url,
            COLUMNS['selector']: site.selector,
            COLUMNS['keywords']: ", ".join(site.keywords),
            COLUMNS['junk_words']: ", ".join(site.junk_words),
            COLUMNS['click_phrases']: ", ".join(site.click_phrases),
        })
    for url in extra_urls:
        writer.writerow({COLUMNS['url']: url})
    return buffer.getvalue()
