"""
Report summarization with Gemini

GeminiSummarizer is a thin aiohttp client for the generateContent REST
endpoint. SummaryGenerator splits compiled report text into chunks,
summarizes them concurrently, and merges the partial summaries.
"""

import asyncio
from typing import Dict, Any, List, Optional, Protocol

import aiohttp

from fishtales.core.base import (
    APIError,
    BaseComponent,
    CrawlCancelled,
    SummarizationFailed,
)
from fishtales.core.cancellation import CancellationToken
from fishtales.core.config import SummaryConfig
from fishtales.core.logging import get_logger
from fishtales.processors.chunker import Chunker


class Summarizer(Protocol):
    async def summarize(self, prompt: str) -> str: ...


class GeminiSummarizer(BaseComponent):
    """
    Text-generation client for the Gemini API
    """

    def __init__(self, config: Dict[str, Any], api_key: str):
        super().__init__(config)
        self.logger = get_logger('summarizer')
        self.summary_config = SummaryConfig(**config.get('summary', {}))
        self.api_key = api_key
        self.timeout = self.summary_config.timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def initialize(self) -> None:
        """Open the HTTP session"""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={'Content-Type': 'application/json'}
            )
        self._initialized = True
        self.logger.info(f"Gemini summarizer ready (model={self.summary_config.model})")

    async def cleanup(self) -> None:
        """Close the HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None
        self._initialized = False

    async def summarize(self, prompt: str) -> str:
        """
        Generate text for a prompt

        Returns:
            The stripped text of the first candidate, or "" if there is none

        Raises:
            APIError: on a non-200 response
        """
        if self.session is None:
            await self.initialize()

        url = f"{self.summary_config.api_url}/models/{self.summary_config.model}:generateContent"
        payload = {'contents': [{'parts': [{'text': prompt}]}]}

        async with self.session.post(url, params={'key': self.api_key}, json=payload) as response:
            if response.status != 200:
                body = await response.text()
                raise APIError(f"Gemini request failed with HTTP {response.status}: {body[:200]}", response.status)
            data = await response.json()

        return self._extract_text(data)

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        candidates = data.get('candidates') or []
        if not candidates:
            return ""
        parts = (candidates[0].get('content') or {}).get('parts') or []
        return "".join(part.get('text', '') for part in parts).strip()


class SummaryGenerator:
    """
    Chunk, summarize, merge.

    Each chunk is sent as "{chunk}\\n\\n{summary_prompt}"; surviving partial
    summaries are merged with "{merge_prompt}\\n\\n{summaries}". A chunk
    whose call fails is logged and left out of the merge. When every chunk
    fails no merge call is made and generate() returns None.
    """

    def __init__(self, summarizer: Summarizer, summary_prompt: str, merge_prompt: str,
                 token_limit: int, concurrency: int = 5,
                 cancel_token: Optional[CancellationToken] = None,
                 chunker: Optional[Chunker] = None):
        self.summarizer = summarizer
        self.summary_prompt = summary_prompt
        self.merge_prompt = merge_prompt
        self.token_limit = token_limit
        self.concurrency = max(1, concurrency)
        self.cancel_token = cancel_token or CancellationToken()
        self.chunker = chunker or Chunker()
        self.logger = get_logger('summary_generator')

        self.failures: List[SummarizationFailed] = []
        self.chunk_count = 0

    async def generate(self, text: str) -> Optional[str]:
        self.failures = []
        chunks = self.chunker.chunk(text, self.token_limit)
        self.chunk_count = len(chunks)
        if not chunks:
            return None

        self.logger.info(f"Summarizing {len(chunks)} chunks")
        semaphore = asyncio.Semaphore(self.concurrency)

        async def summarize_chunk(index: int, chunk: str) -> Optional[str]:
            async with semaphore:
                self.cancel_token.throw_if_cancelled()
                try:
                    return await self.summarizer.summarize(f"{chunk}\n\n{self.summary_prompt}")
                except (CrawlCancelled, asyncio.CancelledError):
                    raise
                except Exception as e:
                    failure = SummarizationFailed(index, e)
                    self.logger.warning(str(failure))
                    self.failures.append(failure)
                    return None

        tasks = [asyncio.ensure_future(summarize_chunk(i, chunk)) for i, chunk in enumerate(chunks)]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        summaries = [summary for summary in results if summary]
        if not summaries:
            self.logger.warning("No summaries generated. Skipping final summary.")
            return None

        self.cancel_token.throw_if_cancelled()
        return await self.summarizer.summarize(f"{self.merge_prompt}\n\n" + "\n\n".join(summaries))
