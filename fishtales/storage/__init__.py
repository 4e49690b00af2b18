"""
Storage components for FishTales

This package contains components for:
- Loading site lists from CSV, JSON or YAML
- Writing job output files
"""

from .site_loader import SiteLoader, dedupe_sites, find_missing_sites
from .text_output import TextFileSink

__all__ = ['SiteLoader', 'dedupe_sites', 'find_missing_sites', 'TextFileSink']
