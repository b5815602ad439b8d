"""
TIPSTREAM - Web Search
Best-effort snippet retrieval used to ground single-match analysis.

Providers are tried in order (Tavily when an API key is configured, then
the free DuckDuckGo Instant Answer API). A failed or empty provider falls
through to the next; total failure yields an empty string.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple, Type

import httpx
from tavily import AsyncTavilyClient

from tipstream.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class SearchProvider(ABC):
    """One search backend returning joined text snippets."""

    # Failures that degrade this provider to "no result"
    errors: Tuple[Type[BaseException], ...] = (httpx.HTTPError, ValueError, AttributeError)

    def __init__(self, timeout: float, snippet_limit: int):
        self.timeout = timeout
        self.snippet_limit = snippet_limit

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def _perform_search(self, query: str) -> str:
        ...

    def available(self) -> bool:
        return True

    async def search(self, query: str) -> Optional[str]:
        """Snippet text, "" when nothing was found, None on error."""
        try:
            text = await self._perform_search(query)
        except httpx.TimeoutException:
            logger.warning(f"[{self.provider_name}] Search timed out for '{query[:50]}'")
            return None
        except self.errors as e:
            logger.warning(f"[{self.provider_name}] Search failed for '{query[:50]}': {e}")
            return None

        text = text[: self.snippet_limit]
        if text:
            logger.info(f"[{self.provider_name}] Found {len(text)} chars for: {query[:50]}")
        return text


class TavilyProvider(SearchProvider):
    provider_name = "Tavily"
    # The SDK raises its own error types for auth, quota and timeouts
    errors = (Exception,)

    def __init__(self, api_key: Optional[str], timeout: float, snippet_limit: int, client: Optional[AsyncTavilyClient] = None):
        super().__init__(timeout, snippet_limit)
        self.api_key = api_key
        self.client = client
        if self.client is None and self.api_key:
            self.client = AsyncTavilyClient(api_key=self.api_key)

    def available(self) -> bool:
        return self.client is not None

    async def _perform_search(self, query: str) -> str:
        response = await self.client.search(
            query,
            search_depth="basic",
            max_results=3,
            timeout=self.timeout,
        )
        results = response.get("results") or []
        snippets = [
            r.get("content") or r.get("title")
            for r in results
            if isinstance(r, dict)
        ]
        return "\n\n".join(s for s in snippets if s)


class DuckDuckGoProvider(SearchProvider):
    provider_name = "DuckDuckGo"

    def __init__(self, http: httpx.AsyncClient, url: str, timeout: float, snippet_limit: int):
        super().__init__(timeout, snippet_limit)
        self.http = http
        self.url = url

    async def _perform_search(self, query: str) -> str:
        response = await self.http.get(
            self.url,
            params={"q": query, "format": "json", "no_html": 1, "skip_disambig": 1},
            headers={"User-Agent": "Mozilla/5.0 (compatible; SportsAnalytics/1.0)"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()

        parts: List[str] = []
        if data.get("AbstractText"):
            parts.append(data["AbstractText"])
        if data.get("Answer"):
            parts.append(str(data["Answer"]))
        for topic in (data.get("RelatedTopics") or [])[:5]:
            if isinstance(topic, dict):
                text = topic.get("Text") or topic.get("FirstURL")
                if text:
                    parts.append(text)
        return "\n".join(parts)


class WebSearchClient:
    """
    Composite search client with provider fallback.

    Usage:
        async with WebSearchClient() as search:
            snippet = await search.search("Arsenal - Chelsea прогноз")
    """

    def __init__(
        self,
        settings: Settings = default_settings,
        http: Optional[httpx.AsyncClient] = None,
        tavily_client: Optional[AsyncTavilyClient] = None,
    ):
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient()
        limit = settings.SEARCH_SNIPPET_LIMIT
        self.providers: List[SearchProvider] = [
            p for p in (
                TavilyProvider(settings.TAVILY_API_KEY, settings.TAVILY_TIMEOUT, limit, client=tavily_client),
                DuckDuckGoProvider(self.http, settings.DUCKDUCKGO_API_URL, settings.DUCKDUCKGO_TIMEOUT, limit),
            )
            if p.available()
        ]

    async def search(self, query: str) -> str:
        for provider in self.providers:
            result = await provider.search(query)
            if result:
                return result
        logger.warning(f"[Search] All search methods failed for '{query[:50]}'")
        return ""

    async def close(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "WebSearchClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
