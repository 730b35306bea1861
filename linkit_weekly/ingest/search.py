"""Brave web search client used to enrich archive answers."""

from dataclasses import dataclass, field

import httpx

from ..config import Settings, get_settings
from ..logging import get_logger
from ..utils import retry_async

logger = get_logger(__name__)

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


class SearchError(Exception):
    """Raised when web search is unavailable or fails."""


@dataclass
class SearchResult:
    """One web search hit."""
    title: str
    description: str
    url: str


@dataclass
class SearchResponse:
    """Results for the query that was actually sent."""
    query: str
    results: list[SearchResult] = field(default_factory=list)
    skipped_queries: list[str] = field(default_factory=list)

    @property
    def total_results(self) -> int:
        return len(self.results)


class BraveSearchClient:
    """Async client for the Brave Search web endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.api_key = api_key or self.settings.brave_api_key
        self._transport = transport

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        """Run one web search.

        Raises:
            SearchError: If no API key is configured or the request fails
        """
        if not self.api_key:
            raise SearchError("Web search service not available: BRAVE_API_KEY is not set")

        headers = {
            "Accept": "application/json",
            "X-Subscription-Token": self.api_key,
            "User-Agent": self.settings.user_agent,
        }
        params = {"q": query, "count": max_results}

        async with httpx.AsyncClient(timeout=20.0, transport=self._transport) as client:
            async def make_request():
                response = await client.get(BRAVE_SEARCH_URL, params=params, headers=headers)
                response.raise_for_status()
                return response.json()

            try:
                data = await retry_async(
                    make_request,
                    max_retries=1,
                    exceptions=(httpx.TransportError,),
                )
            except httpx.HTTPError as e:
                raise SearchError(f"Web search failed: {e}") from e

        results = [
            SearchResult(
                title=item.get("title", ""),
                description=item.get("description", ""),
                url=item.get("url", ""),
            )
            for item in (data.get("web") or {}).get("results", [])[:max_results]
        ]
        logger.info("Web search completed", query=query, results=len(results))
        return results

    async def search_queries(self, queries: list[str], max_results: int = 5) -> SearchResponse:
        """Search only the first query; the rest are reported as skipped."""
        if not queries:
            raise SearchError("No search query given")

        query, skipped = queries[0], queries[1:]
        if skipped:
            logger.info("Only the first search query is sent", ignored=skipped)

        results = await self.search(query, max_results)
        return SearchResponse(query=query, results=results, skipped_queries=skipped)
