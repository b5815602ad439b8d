"""
TIPSTREAM - Web Search Unit Tests
Provider fallback and best-effort degradation
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from tipstream.services.predictions.web_search import WebSearchClient

pytestmark = pytest.mark.unit


def _client(settings, handler, tavily=None) -> WebSearchClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebSearchClient(settings, http=http, tavily_client=tavily)


DDG_PAYLOAD = {
    "AbstractText": "Arsenal vs Chelsea is a London derby.",
    "Answer": "",
    "RelatedTopics": [{"Text": "Arsenal form"}, {"Topics": []}, {"FirstURL": "https://duckduckgo.com/c/Chelsea"}],
}


class TestProviderFallback:
    """Test Tavily first, DuckDuckGo second."""

    @pytest.mark.asyncio
    async def test_tavily_used_when_keyed(self, test_settings):
        tavily = MagicMock()
        tavily.search = AsyncMock(return_value={"results": [{"content": "Arsenal 1.85"}, {"title": "Preview"}]})
        hosts = []

        def handler(request: httpx.Request) -> httpx.Response:
            hosts.append(request.url.host)
            return httpx.Response(200, json=DDG_PAYLOAD)

        client = _client(test_settings, handler, tavily)
        text = await client.search("Arsenal - Chelsea коэффициенты")
        await client.http.aclose()

        assert text == "Arsenal 1.85\n\nPreview"
        assert hosts == []
        tavily.search.assert_awaited_once_with(
            "Arsenal - Chelsea коэффициенты",
            search_depth="basic",
            max_results=3,
            timeout=test_settings.TAVILY_TIMEOUT,
        )

    @pytest.mark.asyncio
    async def test_falls_back_on_tavily_error(self, test_settings):
        tavily = MagicMock()
        tavily.search = AsyncMock(side_effect=RuntimeError("Usage limit exceeded"))

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["format"] == "json"
            return httpx.Response(200, json=DDG_PAYLOAD)

        client = _client(test_settings, handler, tavily)
        text = await client.search("Arsenal - Chelsea")
        await client.http.aclose()

        assert "London derby" in text
        assert "Arsenal form" in text
        assert "https://duckduckgo.com/c/Chelsea" in text

    @pytest.mark.asyncio
    async def test_tavily_client_built_from_key(self, test_settings):
        client = WebSearchClient(test_settings.model_copy(update={"TAVILY_API_KEY": "tvly-test"}))
        assert [p.provider_name for p in client.providers] == ["Tavily", "DuckDuckGo"]
        await client.close()

    @pytest.mark.asyncio
    async def test_tavily_skipped_without_key(self, test_settings):
        client = WebSearchClient(test_settings.model_copy(update={"TAVILY_API_KEY": ""}))
        assert [p.provider_name for p in client.providers] == ["DuckDuckGo"]
        await client.close()

    @pytest.mark.asyncio
    async def test_timeout_degrades_to_empty(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = _client(test_settings, handler)
        assert await client.search("Arsenal - Chelsea") == ""
        await client.http.aclose()

    @pytest.mark.asyncio
    async def test_snippets_are_capped(self, test_settings):
        settings = test_settings.model_copy(update={"SEARCH_SNIPPET_LIMIT": 10})

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"AbstractText": "x" * 100})

        client = _client(settings, handler)
        assert await client.search("Arsenal - Chelsea") == "x" * 10
        await client.http.aclose()

    @pytest.mark.asyncio
    async def test_non_json_body_degrades(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>rate limited</html>")

        client = _client(test_settings, handler)
        assert await client.search("Arsenal - Chelsea") == ""
        await client.http.aclose()
