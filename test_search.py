"""
Evidence Source Tests

Tests for the Tavily search client against a mocked HTTP transport.
"""

import asyncio
import json

import httpx
import pytest

from insightflow.exceptions import ConfigurationError, TransportError
from insightflow.search import SearchHit, Source, TavilySearchClient, format_search_context


def make_transport(results=None, status_code=200, calls=None):
    """Mock Tavily endpoint that records request payloads."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(json.loads(request.content))
        if status_code != 200:
            return httpx.Response(status_code, text='{"detail": "Invalid API key"}')
        return httpx.Response(200, json={"answer": "ignored", "results": results or []})

    return httpx.MockTransport(handler)


def test_search_projects_hits_to_citations():
    """Citations are the hits' (uri, title) pairs in hit order."""
    calls = []
    results = [
        {"url": "https://a.example/1", "title": "First", "content": "alpha", "score": 0.9},
        {"url": "https://b.example/2", "title": "Second", "content": "beta", "score": 0.5},
    ]

    async def run():
        async with TavilySearchClient(api_key="tvly-test", transport=make_transport(results, calls=calls)) as search:
            return await search.search("AI tools in classrooms", max_results=5)

    response = asyncio.run(run())

    assert [hit.uri for hit in response.hits] == ["https://a.example/1", "https://b.example/2"]
    assert response.hits[0].content == "alpha"
    assert response.citations == [
        Source(uri="https://a.example/1", title="First"),
        Source(uri="https://b.example/2", title="Second"),
    ]

    assert len(calls) == 1
    assert calls[0]["query"] == "AI tools in classrooms"
    assert calls[0]["max_results"] == 5
    assert calls[0]["api_key"] == "tvly-test"


def test_call_site_credential_overrides_default():
    calls = []

    async def run():
        async with TavilySearchClient(api_key="default-key", transport=make_transport(calls=calls)) as search:
            return await search.search("q", 3, api_key="call-site-key")

    response = asyncio.run(run())

    assert response.hits == []
    assert response.citations == []
    assert calls[0]["api_key"] == "call-site-key"


def test_missing_credential_fails_without_request():
    """No credential anywhere means a configuration error and no network call."""
    calls = []

    async def run():
        async with TavilySearchClient(transport=make_transport(calls=calls)) as search:
            search.api_key = None
            await search.search("q", 5)

    with pytest.raises(ConfigurationError):
        asyncio.run(run())

    assert calls == []


def test_error_response_carries_body():
    async def run():
        async with TavilySearchClient(api_key="bad", transport=make_transport(status_code=401)) as search:
            await search.search("q", 5)

    with pytest.raises(TransportError) as exc_info:
        asyncio.run(run())

    assert exc_info.value.status_code == 401
    assert exc_info.value.body == '{"detail": "Invalid API key"}'
    assert "Invalid API key" in str(exc_info.value)


def test_client_requires_context_manager():
    with pytest.raises(RuntimeError):
        asyncio.run(TavilySearchClient(api_key="k").search("q", 5))


def test_format_search_context():
    hits = [
        SearchHit(uri="https://a.example", title="First", content="x" * 800),
        SearchHit(uri="https://b.example", title="Second", content="short"),
    ]
    context = format_search_context("battery recycling", hits)

    assert context.startswith("Search Query: battery recycling\n\nFound 2 relevant sources:\n\n")
    assert "[1] First\n" + "x" * 500 + "..." in context
    assert "x" * 501 not in context
    assert "[2] Second\nshort..." in context
    assert format_search_context("q", []) == "No information found."


def test_source_display_title_falls_back_to_hostname():
    assert Source(uri="https://www.example.org/path", title="").display_title == "www.example.org"
    assert Source(uri="https://www.example.org/path", title="Example").display_title == "Example"


def main():
    """Run all tests."""
    test_search_projects_hits_to_citations()
    test_call_site_credential_overrides_default()
    test_missing_credential_fails_without_request()
    test_error_response_carries_body()
    test_client_requires_context_manager()
    test_format_search_context()
    test_source_display_title_falls_back_to_hostname()
    print("ALL SEARCH TESTS PASSED!")


if __name__ == "__main__":
    main()
