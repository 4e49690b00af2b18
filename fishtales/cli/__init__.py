"""
Command Line Interface for FishTales

This package provides command line argument parsing and validation for the
report and shop lookup jobs.

Classes:
    CLIManager: Command line interface manager for the crawler
"""

from fishtales.cli.arguments import CLIManager

__all__ = ['CLIManager']
