"""
External API clients for FishTales

This package contains aiohttp clients for:
- Gemini text generation (report summarization)
- SerpAPI maps search (shop lookup)
"""

from .summarizer import GeminiSummarizer, SummaryGenerator
from .maps_search import MapsSearchClient

__all__ = ['GeminiSummarizer', 'SummaryGenerator', 'MapsSearchClient']
