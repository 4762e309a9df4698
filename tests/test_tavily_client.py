import asyncio
import json
from datetime import date

import httpx
import pytest

from tools.web.contracts import SearchError
from tools.web.tavily_client import TavilyWebClient


def run_with(handler, call, **kwargs):
    async def scenario():
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = TavilyWebClient("tvly-test", http_client=http_client, **kwargs)
        try:
            return await call(client)
        finally:
            await client.aclose()

    return asyncio.run(scenario())


def test_search_maps_results():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        seen["payload"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "results": [
                    {
                        "title": "Paris - Wikipedia",
                        "url": "https://en.wikipedia.org/wiki/Paris",
                        "content": "Paris is the capital of France.",
                        "published_date": "2024-05-01T10:00:00Z",
                    },
                    {"title": "No url", "url": "", "content": "skip me"},
                    {"url": "https://example.com/undated", "content": "x" * 500},
                ]
            },
        )

    results = run_with(handler, lambda c: c.search("capital of France", max_results=50))

    assert seen["auth"] == "Bearer tvly-test"
    assert seen["path"] == "/search"
    assert seen["payload"]["query"] == "capital of France"
    assert seen["payload"]["max_results"] == 20
    assert len(results) == 2
    assert results[0].title == "Paris - Wikipedia"
    assert results[0].date == "2024-05-01"
    assert results[1].title == "https://example.com/undated"
    assert results[1].date == date.today().isoformat()
    assert len(results[1].snippet) <= 320


def test_search_http_error_raises_search_error():
    def handler(request):
        return httpx.Response(500, json={"detail": "boom"})

    with pytest.raises(SearchError):
        run_with(handler, lambda c: c.search("anything"))


def test_extract_returns_truncated_content():
    def handler(request):
        assert request.url.path == "/extract"
        assert json.loads(request.content) == {"urls": ["https://example.com/a"]}
        return httpx.Response(
            200, json={"results": [{"url": "https://example.com/a", "raw_content": "abcdefghij"}]}
        )

    extraction = run_with(handler, lambda c: c.extract("https://example.com/a"), max_content_chars=4)

    assert extraction.success
    assert extraction.content == "abcd"
    assert extraction.as_text() == "abcd"


def test_extract_reports_failed_results():
    def handler(request):
        return httpx.Response(
            200,
            json={"results": [], "failed_results": [{"url": "https://x.test", "error": "blocked"}]},
        )

    extraction = run_with(handler, lambda c: c.extract("https://x.test"))

    assert not extraction.success
    assert extraction.as_text() == "Error: blocked"


def test_extract_never_raises_on_transport_errors():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    extraction = run_with(handler, lambda c: c.extract("https://x.test"))

    assert not extraction.success
    assert extraction.as_text().startswith("Error: ")


def test_requires_api_key():
    with pytest.raises(ValueError):
        TavilyWebClient("")


def test_search_non_json_body_raises_search_error():
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(SearchError):
        run_with(handler, lambda c: c.search("anything"))


def test_extract_non_json_body_is_a_failed_extraction():
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    extraction = run_with(handler, lambda c: c.extract("https://x.test"))

    assert not extraction.success
    assert extraction.as_text().startswith("Error: ")
