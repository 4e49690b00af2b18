"""
Configuration Manager for the FishTales crawler

Handles YAML/JSON configuration files and environment variable integration
with validation.
"""

import os
import json
import yaml
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field, asdict
from pathlib import Path

from fishtales.core.base import ConfigurationError


DEFAULT_SUMMARY_PROMPT = """
For each river or body of water mentioned, create a bulleted list with the
date, water conditions, fly patterns, and any hatch information. If a body of
water is mentioned more than once, merge the entries and keep the three most
recent dates separate.
""".strip()

DEFAULT_MERGE_PROMPT = """
Merge the following fishing report summaries into a single report. Combine
entries for the same body of water and keep the most recent information first.
""".strip()


@dataclass
class ScraperConfig:
    """Crawl and filtering configuration"""
    concurrency: int = 5
    crawl_depth: int = 20
    max_age_days: int = 14
    token_limit: int = 8000
    filter_by_keywords: bool = False
    keyword_list: List[str] = field(default_factory=list)
    include_site_list: bool = False


@dataclass
class BrowserSettings:
    """Headless browser configuration"""
    headless: bool = True
    page_timeout: int = 15
    retries: int = 2
    retry_delay: float = 1.0
    text_mode: bool = True


@dataclass
class SummaryConfig:
    """Text-generation provider configuration"""
    model: str = "gemini-2.0-flash"
    api_key_env: str = "GEMINI_API_KEY"
    api_url: str = "https://generativelanguage.googleapis.com/v1beta"
    summary_prompt: str = DEFAULT_SUMMARY_PROMPT
    merge_prompt: str = DEFAULT_MERGE_PROMPT
    timeout: int = 120


@dataclass
class SearchConfig:
    """Maps search provider configuration"""
    api_key_env: str = "SERP_API_KEY"
    api_url: str = "https://serpapi.com/search.json"
    page_size: int = 20
    max_results: int = 100
    zoom: str = "10z"


@dataclass
class OutputConfig:
    """Where output files are written"""
    directory: str = "./media/txt"


@dataclass
class LoggingConfig:
    """Logging system configuration"""
    level: str = "INFO"
    file: str = "./logs/fishtales.log"
    max_size: str = "10MB"
    backup_count: int = 5


_SECTIONS = {
    'scraper': ScraperConfig,
    'browser': BrowserSettings,
    'summary': SummaryConfig,
    'search': SearchConfig,
    'output': OutputConfig,
    'logging': LoggingConfig,
}


class ConfigManager:
    """
    Centralized configuration manager with support for YAML/JSON files
    and environment variable integration.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or "config/config.yaml"
        self._config_data: Dict[str, Any] = {}
        self.scraper_config: Optional[ScraperConfig] = None
        self.browser_config: Optional[BrowserSettings] = None
        self.summary_config: Optional[SummaryConfig] = None
        self.search_config: Optional[SearchConfig] = None
        self.output_config: Optional[OutputConfig] = None
        self.logging_config: Optional[LoggingConfig] = None

    def load_config(self, config_path: Optional[str] = None, create_default: bool = True) -> Dict[str, Any]:
        """Load configuration from file with environment variable override"""
        if config_path:
            self.config_path = config_path

        config_file = Path(self.config_path)

        if not config_file.exists():
            self._config_data = self._get_default_config()
            if create_default:
                self._create_default_config_file()
        else:
            try:
                with open(config_file, 'r', encoding='utf-8') as f:
                    if config_file.suffix.lower() == '.json':
                        self._config_data = json.load(f)
                    else:
                        self._config_data = yaml.safe_load(f) or {}
            except (OSError, ValueError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to load config from {config_file}: {e}")

        self._apply_env_overrides()
        self._parse_config()

        return self._config_data

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration dictionary"""
        return {name: asdict(section()) for name, section in _SECTIONS.items()}

    def _create_default_config_file(self) -> None:
        """Create default configuration file"""
        config_dir = Path(self.config_path).parent
        config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, 'w', encoding='utf-8') as f:
            yaml.dump(self._config_data, f, default_flow_style=False, indent=2, sort_keys=False)

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides"""
        if os.getenv('CONCURRENCY'):
            try:
                self._config_data.setdefault('scraper', {})['concurrency'] = int(os.getenv('CONCURRENCY'))
            except ValueError:
                pass

        if os.getenv('RUN_HEADLESS'):
            self._config_data.setdefault('browser', {})['headless'] = os.getenv('RUN_HEADLESS').lower() != 'false'

        if os.getenv('LOG_LEVEL'):
            self._config_data.setdefault('logging', {})['level'] = os.getenv('LOG_LEVEL')

    def _parse_config(self) -> None:
        """Parse configuration into dataclass objects"""
        sections = {}
        for name, section in _SECTIONS.items():
            data = self._config_data.get(name) or {}
            known = section.__dataclass_fields__
            unknown = set(data) - set(known)
            if unknown:
                raise ConfigurationError(f"Unknown keys in '{name}' section: {sorted(unknown)}")
            sections[name] = section(**data)

        self.scraper_config = sections['scraper']
        self.browser_config = sections['browser']
        self.summary_config = sections['summary']
        self.search_config = sections['search']
        self.output_config = sections['output']
        self.logging_config = sections['logging']

    def validate_config(self) -> bool:
        """Validate loaded configuration values"""
        if not self.scraper_config:
            raise ConfigurationError("Configuration not loaded")

        scraper = self.scraper_config
        if scraper.concurrency < 1:
            raise ConfigurationError("Concurrency must be at least 1")
        if scraper.crawl_depth < 1:
            raise ConfigurationError("Crawl depth must be at least 1")
        if scraper.token_limit < 1:
            raise ConfigurationError("Token limit must be at least 1")
        if scraper.max_age_days < 0:
            raise ConfigurationError("Maximum age must be non-negative")

        if self.browser_config.retries < 0:
            raise ConfigurationError("Retries must be non-negative")
        if self.search_config.page_size < 1:
            raise ConfigurationError("Search page size must be at least 1")
        if self.summary_config.timeout < 1:
            raise ConfigurationError("Summary timeout must be at least 1 second")

        return True

    def get_api_key(self, env_name: str) -> str:
        """Read an API key from the environment"""
        api_key = os.getenv(env_name)
        if not api_key:
            raise ConfigurationError(f"API key not found in environment variable: {env_name}")
        return api_key

    def as_dict(self) -> Dict[str, Any]:
        """Current configuration as a plain dictionary"""
        return {
            'scraper': asdict(self.scraper_config),
            'browser': asdict(self.browser_config),
            'summary': asdict(self.summary_config),
            'search': asdict(self.search_config),
            'output': asdict(self.output_config),
            'logging': asdict(self.logging_config),
        }
