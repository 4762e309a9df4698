"""Query-focused summarization of extracted page text, memoized per (query, url)."""

from dataclasses import dataclass
from typing import Sequence

from api.base_client import BaseInferenceClient
from models.conversation import ConversationTurn, format_turns
from models.inference import TokenUsage
from utils.logger import get_logger

from .cache import MemoizingCache, make_cache_key
from .contracts import SearchResult

logger = get_logger(__name__)

SUMMARIZE_OPERATION = "summarize-url"
DEFAULT_SUMMARY_TTL_SECONDS = 6 * 60 * 60
SUMMARY_MAX_TOKENS = 2000

SUMMARIZER_SYSTEM_PROMPT = """You are a research extraction specialist. Given a research topic and raw web content, write a detailed synthesis as a cohesive narrative.

Extract the information relevant to the research topic: facts, statistics, methodologies, claims and context. Keep technical terminology and domain-specific language from the source.

Guidelines:
- Keep data anchored to its original context (e.g. "2024 study of 150 patients", not "a recent study")
- Integrate metrics, dates and quantities where they belong in the narrative
- Write connected paragraphs, not bullet lists
- If the content lacks some aspect of the research topic, say so explicitly

Never make up information and never rely on outside knowledge."""


@dataclass(frozen=True)
class SummaryResult:
    text: str
    usage: TokenUsage | None
    cache_hit: bool = False


class URLSummarizer:
    """
    Condenses one page's extracted text into a synthesis for one query.

    Results are cached in the shared store keyed on (query, url), so the same
    page found again for the same query costs no inference.
    """

    def __init__(
        self,
        client: BaseInferenceClient,
        cache: MemoizingCache,
        ttl_seconds: int = DEFAULT_SUMMARY_TTL_SECONDS,
    ):
        self.client = client
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    def build_prompt(
        self,
        query: str,
        source: SearchResult,
        extracted_text: str,
        prior_turns: Sequence[ConversationTurn] = (),
    ) -> str:
        return "\n".join(
            [
                f'Research Topic: "{query}"',
                "",
                "Conversation Context:",
                format_turns(prior_turns),
                "",
                "Source Information:",
                f"- Title: {source.title}",
                f"- URL: {source.url}",
                f"- Date: {source.date}",
                f"- Snippet: {source.snippet}",
                "",
                "Raw Content:",
                extracted_text,
                "",
                "Please provide a comprehensive synthesis of the above content as it relates to the research topic.",
            ]
        )

    async def summarize(
        self,
        query: str,
        source: SearchResult,
        extracted_text: str,
        prior_turns: Sequence[ConversationTurn] = (),
    ) -> SummaryResult:
        """
        Summarize extracted_text for query.

        Raises:
            InferenceError: If the summarization call fails
        """
        usage: TokenUsage | None = None

        async def compute() -> str:
            nonlocal usage
            result = await self.client.generate_text(
                self.build_prompt(query, source, extracted_text, prior_turns),
                system=SUMMARIZER_SYSTEM_PROMPT,
                max_tokens=SUMMARY_MAX_TOKENS,
            )
            usage = result.usage
            return result.text

        key = make_cache_key(SUMMARIZE_OPERATION, [query, source.url])
        text, cache_hit = await self.cache.get_or_compute(key, self.ttl_seconds, compute)

        if cache_hit:
            logger.info(
                "Summary served from cache",
                extra={"extra_fields": {"url": source.url, "query": query}},
            )
        return SummaryResult(text=str(text), usage=usage, cache_hit=cache_hit)
