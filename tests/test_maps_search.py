"""
Tests for MapsSearchClient
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from fishtales.clients.maps_search import MapsSearchClient
from fishtales.core.base import APIError, CrawlCancelled
from fishtales.core.cancellation import CancellationToken


@pytest.fixture
def client():
    config = {
        'search': {
            'api_url': 'https://serp.example/search.json',
            'page_size': 2,
            'max_results': 5,
        }
    }
    return MapsSearchClient(config, api_key="serp-key")


def shops(*names):
    return [{'title': name} for name in names]


class TestMapsSearchClient:
    """Test cases for MapsSearchClient"""

    @pytest.mark.asyncio
    async def test_search_request(self, client):
        response = MagicMock()
        response.status = 200
        response.json = AsyncMock(return_value={'local_results': shops("Blue Ribbon Flies")})
        client.session = MagicMock()
        client.session.get.return_value.__aenter__.return_value = response
        client.session.get.return_value.__aexit__.return_value = False

        results = await client.search("fly fishing shop", 44.66, -111.1, start=20)

        assert results == shops("Blue Ribbon Flies")
        client.session.get.assert_called_once_with(
            'https://serp.example/search.json',
            params={
                'engine': 'google_maps',
                'q': 'fly fishing shop',
                'll': '@44.66,-111.1,10z',
                'start': '20',
                'type': 'search',
                'api_key': 'serp-key',
            },
        )

    @pytest.mark.asyncio
    async def test_missing_local_results(self, client):
        response = MagicMock()
        response.status = 200
        response.json = AsyncMock(return_value={'search_metadata': {}})
        client.session = MagicMock()
        client.session.get.return_value.__aenter__.return_value = response
        client.session.get.return_value.__aexit__.return_value = False

        assert await client.search("fly shop", 0, 0) == []

    @pytest.mark.asyncio
    async def test_error_status_raises(self, client):
        response = MagicMock()
        response.status = 401
        response.text = AsyncMock(return_value="Invalid API key")
        client.session = MagicMock()
        client.session.get.return_value.__aenter__.return_value = response
        client.session.get.return_value.__aexit__.return_value = False

        with pytest.raises(APIError) as exc_info:
            await client.search("fly shop", 0, 0)

        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_search_all_stops_on_short_page(self, client):
        client.search = AsyncMock(side_effect=[shops("a", "b"), shops("c")])

        results = await client.search_all("fly shop", 1.0, 2.0)

        assert [shop['title'] for shop in results] == ["a", "b", "c"]
        assert [call.args[3] for call in client.search.call_args_list] == [0, 2]

    @pytest.mark.asyncio
    async def test_search_all_truncates_to_max_results(self, client):
        client.search = AsyncMock(side_effect=[shops("a", "b"), shops("c", "d"), shops("e", "f")])

        results = await client.search_all("fly shop", 1.0, 2.0)

        assert len(results) == 5
        assert client.search.await_count == 3

    @pytest.mark.asyncio
    async def test_search_all_explicit_max_results(self, client):
        client.search = AsyncMock(side_effect=[shops("a", "b"), shops("c", "d")])

        results = await client.search_all("fly shop", 1.0, 2.0, max_results=3)

        assert [shop['title'] for shop in results] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_search_all_cancelled(self, client):
        client.search = AsyncMock(return_value=shops("a", "b"))
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CrawlCancelled):
            await client.search_all("fly shop", 1.0, 2.0, cancel_token=token)

        client.search.assert_not_awaited()
