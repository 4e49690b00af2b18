"""
Maps search client

Looks up local businesses through SerpAPI's Google Maps engine. Results are
paged in fixed steps; a short page means there is nothing more to fetch.
"""

from typing import Dict, Any, List, Optional

import aiohttp

from fishtales.core.base import APIError, BaseComponent
from fishtales.core.cancellation import CancellationToken
from fishtales.core.config import SearchConfig
from fishtales.core.logging import get_logger


class MapsSearchClient(BaseComponent):
    """SerpAPI google_maps client"""

    def __init__(self, config: Dict[str, Any], api_key: str):
        super().__init__(config)
        self.logger = get_logger('maps_search')
        self.search_config = SearchConfig(**config.get('search', {}))
        self.api_key = api_key
        self.session: Optional[aiohttp.ClientSession] = None

    async def initialize(self) -> None:
        """Open the HTTP session"""
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=60))
        self._initialized = True

    async def cleanup(self) -> None:
        """Close the HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None
        self._initialized = False

    async def search(self, query: str, lat: float, lng: float, start: int = 0) -> List[Dict[str, Any]]:
        """Fetch one page of local results starting at offset `start`"""
        if self.session is None:
            await self.initialize()

        params = {
            'engine': 'google_maps',
            'q': query,
            'll': f"@{lat},{lng},{self.search_config.zoom}",
            'start': str(start),
            'type': 'search',
            'api_key': self.api_key,
        }

        async with self.session.get(self.search_config.api_url, params=params) as response:
            if response.status != 200:
                body = await response.text()
                raise APIError(f"Maps search failed with HTTP {response.status}: {body[:200]}", response.status)
            data = await response.json()

        return data.get('local_results') or []

    async def search_all(self, query: str, lat: float, lng: float,
                         max_results: Optional[int] = None,
                         cancel_token: Optional[CancellationToken] = None) -> List[Dict[str, Any]]:
        """Page through results until `max_results` or a short page"""
        max_results = max_results or self.search_config.max_results
        page_size = self.search_config.page_size
        results: List[Dict[str, Any]] = []

        for start in range(0, max_results, page_size):
            if cancel_token is not None:
                cancel_token.throw_if_cancelled()

            page = await self.search(query, lat, lng, start)
            results.extend(page)
            self.logger.debug(f"Search page at offset {start} returned {len(page)} results")

            if len(page) < page_size:
                break

        return results[:max_results]
