"""Tavily REST client for web search and page extraction.

Tavily handles:
- Relevance-ranked web search
- JavaScript rendering and readable-text extraction for a URL

Both calls go through one shared httpx.AsyncClient.
"""

from datetime import date
from typing import Any

import httpx

from utils.logger import get_logger

from .base import BaseContentExtractor, BaseSearchClient
from .contracts import ExtractionResult, SearchError, SearchResult

logger = get_logger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
TAVILY_EXTRACT_URL = "https://api.tavily.com/extract"
DEFAULT_TIMEOUT_S = 15.0
DEFAULT_MAX_CONTENT_CHARS = 20000
MAX_SNIPPET_CHARS = 320


def _trim_text(text: Any, limit: int = MAX_SNIPPET_CHARS) -> str:
    raw = str(text or "").strip()
    if len(raw) <= limit:
        return raw
    return raw[: limit - 3].rstrip() + "..."


def _result_date(item: dict[str, Any]) -> str:
    published = str(item.get("published_date") or "").strip()
    if published:
        return published[:10]
    return date.today().isoformat()


class TavilyWebClient(BaseSearchClient, BaseContentExtractor):
    """
    Tavily-powered search provider and content extractor.
    """

    def __init__(
        self,
        api_key: str,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        max_content_chars: int = DEFAULT_MAX_CONTENT_CHARS,
        search_depth: str = "basic",
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize Tavily client.

        Args:
            api_key: Tavily API key
            timeout_s: Per-request timeout in seconds
            max_content_chars: Extracted text is truncated to this length
            search_depth: "basic" (faster) or "advanced" (deeper)
            http_client: Optional preconfigured client (tests pass a MockTransport)
        """
        if not api_key:
            raise ValueError("TAVILY_API_KEY not set")
        self.api_key = api_key
        self.max_content_chars = max_content_chars
        self.search_depth = search_depth
        self._client = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post(
            url,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        response.raise_for_status()
        data = response.json() if response.content else {}
        return data if isinstance(data, dict) else {}

    async def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        """
        Search the web using Tavily.

        Args:
            query: Search query
            max_results: Maximum number of results (1-20)

        Returns:
            Results in provider rank order

        Raises:
            SearchError: On transport or HTTP failure
        """
        payload = {
            "query": query,
            "search_depth": self.search_depth,
            "max_results": max(1, min(int(max_results), 20)),
            "include_answer": False,
            "include_raw_content": False,
        }

        try:
            data = await self._post(TAVILY_SEARCH_URL, payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Tavily search failed",
                extra={
                    "extra_fields": {
                        "query": query,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                },
            )
            raise SearchError(f"Search failed for '{query}': {e}") from e

        results = []
        for item in data.get("results") or []:
            url = str(item.get("url") or "").strip()
            if not url:
                continue
            results.append(
                SearchResult(
                    title=str(item.get("title") or "").strip() or url,
                    url=url,
                    snippet=_trim_text(item.get("content")),
                    date=_result_date(item),
                )
            )

        logger.info(
            f"Tavily returned {len(results)} results",
            extra={"extra_fields": {"query": query, "result_count": len(results)}},
        )
        return results

    async def extract(self, url: str) -> ExtractionResult:
        """
        Extract the readable text of one page.

        Never raises for provider failures; returns success=False with a reason.
        """
        try:
            data = await self._post(TAVILY_EXTRACT_URL, {"urls": [url]})
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Tavily extract failed",
                extra={"extra_fields": {"url": url, "error": str(e)}},
            )
            return ExtractionResult(url=url, success=False, error=str(e) or type(e).__name__)

        for item in data.get("results") or []:
            content = str(item.get("raw_content") or "").strip()
            if content:
                return ExtractionResult(
                    url=url, success=True, content=content[: self.max_content_chars]
                )

        reason = "No content extracted"
        for failed in data.get("failed_results") or []:
            if failed.get("error"):
                reason = str(failed["error"])
                break
        return ExtractionResult(url=url, success=False, error=reason)
