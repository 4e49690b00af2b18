"""
Tests for Gemini summarization

Tests the generateContent client against a mocked aiohttp session, and the
chunk / summarize / merge flow of SummaryGenerator.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fishtales.clients.summarizer import GeminiSummarizer, SummaryGenerator
from fishtales.core.base import REPORT_DIVIDER, APIError, CrawlCancelled, SummarizationFailed
from fishtales.core.cancellation import CancellationToken


@pytest.fixture
def sample_config():
    """Sample configuration for testing"""
    return {
        'summary': {
            'model': 'gemini-test',
            'api_url': 'https://gemini.example/v1beta',
        }
    }


def mock_session(status=200, payload=None, text=""):
    """aiohttp session whose post() yields one response"""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload or {})
    response.text = AsyncMock(return_value=text)

    session = MagicMock()
    session.post.return_value.__aenter__.return_value = response
    session.post.return_value.__aexit__.return_value = False
    session.close = AsyncMock()
    return session


class TestGeminiSummarizer:
    """Test cases for GeminiSummarizer"""

    @pytest.mark.asyncio
    async def test_summarize(self, sample_config):
        summarizer = GeminiSummarizer(sample_config, api_key="test-key")
        summarizer.session = mock_session(payload={
            'candidates': [{'content': {'parts': [{'text': '  Madison: '}, {'text': 'PMDs hatching.\n'}]}}]
        })

        result = await summarizer.summarize("Summarize this")

        assert result == "Madison: PMDs hatching."
        summarizer.session.post.assert_called_once_with(
            "https://gemini.example/v1beta/models/gemini-test:generateContent",
            params={'key': 'test-key'},
            json={'contents': [{'parts': [{'text': 'Summarize this'}]}]},
        )

    @pytest.mark.asyncio
    async def test_no_candidates_returns_empty_string(self, sample_config):
        summarizer = GeminiSummarizer(sample_config, api_key="test-key")
        summarizer.session = mock_session(payload={'candidates': []})

        assert await summarizer.summarize("Summarize this") == ""

    @pytest.mark.asyncio
    async def test_error_status_raises(self, sample_config):
        summarizer = GeminiSummarizer(sample_config, api_key="test-key")
        summarizer.session = mock_session(status=429, text="quota exceeded")

        with pytest.raises(APIError) as exc_info:
            await summarizer.summarize("Summarize this")

        assert exc_info.value.status == 429
        assert "quota exceeded" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_session_lifecycle(self, sample_config):
        summarizer = GeminiSummarizer(sample_config, api_key="test-key")

        with patch('fishtales.clients.summarizer.aiohttp.ClientSession') as mock_session_class:
            session = MagicMock()
            session.close = AsyncMock()
            mock_session_class.return_value = session

            await summarizer.initialize()
            assert summarizer.is_initialized()
            assert summarizer.session is session

            await summarizer.cleanup()
            session.close.assert_awaited_once()
            assert summarizer.session is None

    @pytest.mark.asyncio
    async def test_session_uses_configured_timeout(self, sample_config):
        sample_config['summary']['timeout'] = 45
        summarizer = GeminiSummarizer(sample_config, api_key="test-key")

        with patch('fishtales.clients.summarizer.aiohttp.ClientSession') as mock_session_class:
            mock_session_class.return_value.close = AsyncMock()
            await summarizer.initialize()

        timeout = mock_session_class.call_args.kwargs['timeout']
        assert timeout.total == 45


class FakeSummarizer:
    """Summarizer that echoes which report each prompt carried"""

    def __init__(self, fail_on=(), delay=0):
        self.fail_on = fail_on
        self.delay = delay
        self.prompts = []
        self.active = 0
        self.max_active = 0

    async def summarize(self, prompt: str) -> str:
        self.prompts.append(prompt)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if any(marker in prompt for marker in self.fail_on):
                raise APIError("HTTP 500", 500)
            if prompt.startswith("MERGE"):
                return "merged"
            return "summary of " + prompt.split("\n")[0]
        finally:
            self.active -= 1


def compiled(*reports):
    return REPORT_DIVIDER.join(reports)


class TestSummaryGenerator:
    """Test cases for SummaryGenerator"""

    @pytest.mark.asyncio
    async def test_chunks_then_merges(self):
        summarizer = FakeSummarizer()
        generator = SummaryGenerator(summarizer, "SUMMARIZE", "MERGE", token_limit=3)

        result = await generator.generate(compiled("report one", "report two", "report three"))

        assert result == "merged"
        assert generator.chunk_count == 3
        assert summarizer.prompts[0] == "report one" + REPORT_DIVIDER.rstrip() + "\n\nSUMMARIZE"
        assert summarizer.prompts[-1] == (
            "MERGE\n\nsummary of report one\n\nsummary of report two\n\nsummary of report three"
        )

    @pytest.mark.asyncio
    async def test_failed_chunk_is_left_out(self):
        summarizer = FakeSummarizer(fail_on=("report two",))
        generator = SummaryGenerator(summarizer, "SUMMARIZE", "MERGE", token_limit=3)

        result = await generator.generate(compiled("report one", "report two", "report three"))

        assert result == "merged"
        assert summarizer.prompts[-1] == "MERGE\n\nsummary of report one\n\nsummary of report three"
        assert len(generator.failures) == 1
        assert isinstance(generator.failures[0], SummarizationFailed)
        assert generator.failures[0].chunk_index == 1

    @pytest.mark.asyncio
    async def test_all_chunks_failing_skips_merge(self):
        summarizer = FakeSummarizer(fail_on=("report",))
        generator = SummaryGenerator(summarizer, "SUMMARIZE", "MERGE", token_limit=3)

        result = await generator.generate(compiled("report one", "report two"))

        assert result is None
        assert len(generator.failures) == 2
        assert not any(prompt.startswith("MERGE") for prompt in summarizer.prompts)

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        summarizer = FakeSummarizer(delay=0.01)
        generator = SummaryGenerator(summarizer, "SUMMARIZE", "MERGE", token_limit=3, concurrency=2)

        await generator.generate(compiled(*[f"report {i}" for i in range(6)]))

        assert summarizer.max_active == 2

    @pytest.mark.asyncio
    async def test_cancelled_before_any_call(self):
        summarizer = FakeSummarizer()
        token = CancellationToken()
        token.cancel()
        generator = SummaryGenerator(summarizer, "SUMMARIZE", "MERGE", token_limit=3, cancel_token=token)

        with pytest.raises(CrawlCancelled):
            await generator.generate(compiled("report one", "report two"))

        assert summarizer.prompts == []

    @pytest.mark.asyncio
    async def test_empty_text(self):
        summarizer = FakeSummarizer()
        generator = SummaryGenerator(summarizer, "SUMMARIZE", "MERGE", token_limit=3)

        assert await generator.generate("") is None
        assert summarizer.prompts == []
