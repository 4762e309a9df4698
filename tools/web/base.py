"""Abstract search and extraction providers."""

from abc import ABC, abstractmethod

from api.errors import RateLimitExceededError
from utils.rate_limiter import RateLimitConfig, RateLimiter

from .contracts import ExtractionResult, SearchResult


class BaseSearchClient(ABC):
    """Web search provider: query in, ranked results out."""

    @abstractmethod
    async def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        """
        Search the web.

        Raises:
            SearchError: If the provider call fails
        """


class BaseContentExtractor(ABC):
    """Page text extractor: URL in, readable text or failure reason out."""

    @abstractmethod
    async def extract(self, url: str) -> ExtractionResult:
        """Extract readable text. Failures are returned, not raised."""


class RateLimitedSearchClient(BaseSearchClient):
    """Search client that draws each query from the shared rate-limit budget."""

    def __init__(self, inner: BaseSearchClient, limiter: RateLimiter, config: RateLimitConfig):
        self.inner = inner
        self.limiter = limiter
        self.config = config

    async def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        if not await self.limiter.acquire(self.config):
            raise RateLimitExceededError(self.config.key_prefix)
        return await self.inner.search(query, max_results=max_results)
