"""Async HTTP client for the Tavily search API."""

import logging
from typing import Any

import httpx

from ..exceptions import ConfigurationError, TransportError
from ..settings import (
    REQUEST_TIMEOUT,
    SEARCH_EXCERPT_CHARS,
    TAVILY_API_KEY,
    TAVILY_SEARCH_URL,
)
from .models import SearchHit, SearchResponse
from .protocols import EvidenceSource

logger = logging.getLogger(__name__)


class TavilySearchClient(EvidenceSource):
    """
    Async client for Tavily web search.

    Usage:
        async with TavilySearchClient() as search:
            response = await search.search("AI tools in classrooms", max_results=5)
    """

    def __init__(
        self,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Tavily client.

        Args:
            api_key: Optional default credential. If not provided, uses TAVILY_API_KEY env var.
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key or TAVILY_API_KEY
        self.search_url = TAVILY_SEARCH_URL
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "TavilySearchClient":
        self._client = httpx.AsyncClient(
            timeout=REQUEST_TIMEOUT,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    async def search(
        self,
        query: str,
        max_results: int = 5,
        api_key: str | None = None,
    ) -> SearchResponse:
        """Search the web and return hits with their citations."""
        key = api_key or self.api_key
        if not key:
            raise ConfigurationError("TAVILY_API_KEY is not configured")

        payload = {
            "api_key": key,
            "query": query,
            "search_depth": "basic",
            "max_results": max_results,
            "include_answer": True,
            "include_raw_content": False,
            "include_images": False,
        }

        logger.info(f"Searching web: query='{query}', max_results={max_results}")

        try:
            response = await self.client.post(self.search_url, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"Tavily search failed: {e}") from e

        if not response.is_success:
            logger.error(f"Tavily error: {response.status_code} - {response.text[:200]}")
            raise TransportError(
                f"Tavily search failed: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        data = response.json()
        hits = [
            SearchHit(
                uri=r.get("url") or "",
                title=r.get("title") or "",
                content=r.get("content") or "",
            )
            for r in data.get("results") or []
        ]
        logger.info(f"Search returned {len(hits)} hits")

        return SearchResponse.from_hits(hits)


def format_search_context(query: str, hits: list[SearchHit]) -> str:
    """
    Build the numbered context block handed to the reasoning model.

    Args:
        query: The step query that was searched
        hits: Hits returned for the query

    Returns:
        Context text with one numbered, truncated excerpt per hit
    """
    if not hits:
        return "No information found."

    formatted = "\n\n".join(
        f"[{i}] {hit.title}\n{hit.content[:SEARCH_EXCERPT_CHARS]}..."
        for i, hit in enumerate(hits, 1)
    )

    return f"Search Query: {query}\n\nFound {len(hits)} relevant sources:\n\n{formatted}"
