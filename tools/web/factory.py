"""Factory for the web collaborators of the research controller."""

from api.base_client import BaseInferenceClient
from storage.kv_store import KeyValueStore
from utils.logger import get_logger
from utils.rate_limiter import RateLimitConfig, RateLimiter

from .base import RateLimitedSearchClient
from .cache import MemoizingCache
from .summarizer import URLSummarizer
from .tavily_client import TavilyWebClient

logger = get_logger(__name__)


def create_web_client(
    api_key: str | None, *, timeout_s: float = 15.0, max_content_chars: int = 20000
) -> TavilyWebClient:
    """
    Create the Tavily search + extraction client.

    Raises:
        ValueError: If the Tavily API key is not set
    """
    if not api_key:
        raise ValueError("TAVILY_API_KEY not set in environment")

    logger.info("Using Tavily for web search and extraction")
    return TavilyWebClient(api_key, timeout_s=timeout_s, max_content_chars=max_content_chars)


def create_search_client(
    web_client: TavilyWebClient, limiter: RateLimiter, config: RateLimitConfig
) -> RateLimitedSearchClient:
    """Wrap the search side of web_client with the shared search rate limit."""
    return RateLimitedSearchClient(web_client, limiter, config)


def create_summarizer(
    client: BaseInferenceClient, store: KeyValueStore, ttl_seconds: int
) -> URLSummarizer:
    """Create a URL summarizer memoized in the shared store."""
    return URLSummarizer(client, MemoizingCache(store), ttl_seconds=ttl_seconds)
