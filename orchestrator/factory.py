"""Wires a ResearchController from environment configuration."""

from api.base_client import BaseInferenceClient
from api.rate_limited_client import RateLimitedInferenceClient
from config.config import Config, ModelType
from storage.kv_store import KeyValueStore, get_default_store
from tools.web.factory import create_search_client, create_summarizer, create_web_client
from utils.logger import get_logger
from utils.rate_limiter import RateLimiter

from .answerer import AnswerWriter
from .core import ResearchController
from .evaluator import EvidenceEvaluator
from .query_planner import QueryPlanner

logger = get_logger(__name__)


def initialize_client(config: Config, model_name: str) -> BaseInferenceClient:
    """
    Initialize the inference client for the configured provider.

    Raises:
        ValueError: If the provider is unsupported or its API key is missing
    """
    if config.MODEL_TYPE == ModelType.OPENAI.value:
        from api.openai_client import OpenAIClient

        if not config.OPENAI_API_KEY:
            raise ValueError("OPENAI_API_KEY not found in environment variables")
        return OpenAIClient(api_key=config.OPENAI_API_KEY, model_name=model_name)

    if config.MODEL_TYPE == ModelType.GEMINI.value:
        from api.google_gemini_client import GeminiClient

        if not config.GOOGLE_GEMINI_API_KEY:
            raise ValueError("GOOGLE_GEMINI_API_KEY not found in environment variables")
        return GeminiClient(api_key=config.GOOGLE_GEMINI_API_KEY, model_name=model_name)

    raise ValueError(f"Unsupported MODEL_TYPE: {config.MODEL_TYPE}. Must be 'openai' or 'gemini'")


def create_research_controller(
    config: Config | None = None, store: KeyValueStore | None = None
) -> ResearchController:
    """
    Build a fully wired ResearchController.

    Args:
        config: Configuration (defaults to Config() from the environment)
        store: Shared key-value store (defaults to the process-wide store)

    Returns:
        ResearchController whose inference and search calls share the
        store-backed rate limits and whose summaries are memoized
    """
    config = config or Config()
    store = store or get_default_store()
    limiter = RateLimiter(store)

    main_client = RateLimitedInferenceClient(
        initialize_client(config, config.DEFAULT_MODEL), limiter, config.LLM_RATE_LIMIT
    )
    summary_client = RateLimitedInferenceClient(
        initialize_client(config, config.SUMMARIZATION_MODEL), limiter, config.LLM_RATE_LIMIT
    )

    web_client = create_web_client(
        config.TAVILY_API_KEY,
        timeout_s=config.WEB_TIMEOUT_S,
        max_content_chars=config.MAX_EXTRACT_CHARS,
    )
    settings = config.research_settings

    logger.info(
        "Research controller configured",
        extra={
            "extra_fields": {
                "provider": config.MODEL_TYPE,
                "model": config.DEFAULT_MODEL,
                "summarization_model": config.SUMMARIZATION_MODEL,
                "max_steps": settings.max_steps,
                "max_sources": settings.max_sources_per_iteration,
            }
        },
    )

    return ResearchController(
        planner=QueryPlanner(main_client, max_queries=settings.max_queries_per_plan),
        evaluator=EvidenceEvaluator(main_client),
        answerer=AnswerWriter(main_client, max_tokens=settings.answer_max_tokens),
        search=create_search_client(web_client, limiter, config.SEARCH_RATE_LIMIT),
        extractor=web_client,
        summarizer=create_summarizer(summary_client, store, config.SUMMARY_CACHE_TTL_SECONDS),
        settings=settings,
    )
