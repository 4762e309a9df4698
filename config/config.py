import os
from dotenv import load_dotenv
from pathlib import Path
from enum import Enum

from orchestrator.research_types import ResearchSettings
from utils.rate_limiter import RateLimitConfig


class ModelType(Enum):
    """Supported inference providers."""
    OPENAI = "openai"
    GEMINI = "gemini"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'")


class Config:
    """Configuration management for the application."""

    def __init__(self):
        """Initialize configuration with environment variables."""
        # Load environment variables from .env file if it exists
        env_path = Path(__file__).parent.parent / '.env'
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # API Configuration
        self.OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
        self.GOOGLE_GEMINI_API_KEY = os.getenv('GOOGLE_GEMINI_API_KEY')
        self.TAVILY_API_KEY = os.getenv('TAVILY_API_KEY')

        # Model Configuration
        self.MODEL_TYPE = os.getenv('MODEL_TYPE', ModelType.OPENAI.value).lower()
        if self.MODEL_TYPE == ModelType.GEMINI.value:
            self.DEFAULT_MODEL = os.getenv('DEFAULT_MODEL', 'gemini-2.0-flash-001')
            self.SUMMARIZATION_MODEL = os.getenv('SUMMARIZATION_MODEL', 'gemini-2.0-flash-lite')
        else:
            self.DEFAULT_MODEL = os.getenv('DEFAULT_MODEL', 'gpt-4o-mini')
            self.SUMMARIZATION_MODEL = os.getenv('SUMMARIZATION_MODEL', self.DEFAULT_MODEL)

        # Research loop
        self.RESEARCH_MAX_STEPS = _int_env('RESEARCH_MAX_STEPS', 10)
        self.RESEARCH_MAX_SOURCES = _int_env('RESEARCH_MAX_SOURCES', 8)
        self.RESEARCH_RESULTS_PER_QUERY = _int_env('RESEARCH_RESULTS_PER_QUERY', 5)
        self.SUMMARY_CACHE_TTL_SECONDS = _int_env('SUMMARY_CACHE_TTL_SECONDS', 6 * 60 * 60)
        self.MAX_EXTRACT_CHARS = _int_env('MAX_EXTRACT_CHARS', 20000)
        self.WEB_TIMEOUT_S = float(os.getenv('WEB_TIMEOUT_S', '15'))

        # Rate limits (fixed window, shared store)
        self.LLM_RATE_LIMIT = RateLimitConfig(
            max_requests=_int_env('LLM_RATE_LIMIT_MAX_REQUESTS', 60),
            window_ms=_int_env('LLM_RATE_LIMIT_WINDOW_MS', 60_000),
            key_prefix=os.getenv('LLM_RATE_LIMIT_PREFIX', 'llm'),
            max_retries=_int_env('LLM_RATE_LIMIT_MAX_RETRIES', 3),
        )
        self.SEARCH_RATE_LIMIT = RateLimitConfig(
            max_requests=_int_env('SEARCH_RATE_LIMIT_MAX_REQUESTS', 30),
            window_ms=_int_env('SEARCH_RATE_LIMIT_WINDOW_MS', 60_000),
            key_prefix=os.getenv('SEARCH_RATE_LIMIT_PREFIX', 'search'),
            max_retries=_int_env('SEARCH_RATE_LIMIT_MAX_RETRIES', 3),
        )
        self.GLOBAL_RATE_LIMIT = RateLimitConfig(
            max_requests=_int_env('GLOBAL_RATE_LIMIT_MAX_REQUESTS', 1),
            window_ms=_int_env('GLOBAL_RATE_LIMIT_WINDOW_MS', 5000),
            key_prefix=os.getenv('GLOBAL_RATE_LIMIT_PREFIX', 'global_llm'),
            max_retries=_int_env('GLOBAL_RATE_LIMIT_MAX_RETRIES', 3),
        )

    @property
    def research_settings(self) -> ResearchSettings:
        return ResearchSettings(
            max_steps=self.RESEARCH_MAX_STEPS,
            max_sources_per_iteration=self.RESEARCH_MAX_SOURCES,
            results_per_query=self.RESEARCH_RESULTS_PER_QUERY,
        )

    def missing_keys(self) -> list[str]:
        """
        Names of required environment variables that are not set.

        Returns:
            list[str]: Empty when the configuration is complete
        """
        missing = []
        if self.MODEL_TYPE == ModelType.OPENAI.value and not self.OPENAI_API_KEY:
            missing.append('OPENAI_API_KEY')
        elif self.MODEL_TYPE == ModelType.GEMINI.value and not self.GOOGLE_GEMINI_API_KEY:
            missing.append('GOOGLE_GEMINI_API_KEY')
        if not self.TAVILY_API_KEY:
            missing.append('TAVILY_API_KEY')
        return missing

    def validate(self) -> bool:
        """
        Validate that all required configuration is present for the selected provider.

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        if self.MODEL_TYPE not in [e.value for e in ModelType]:
            print(f"Error: Unknown MODEL_TYPE '{self.MODEL_TYPE}'. Must be one of: {', '.join([e.value for e in ModelType])}")
            return False

        missing = self.missing_keys()
        if missing:
            print(f"Error: {', '.join(missing)} not set. Please set it in the .env file.")
            return False

        return True

    def get_model_info(self) -> str:
        """
        Get information about the currently selected model.

        Returns:
            str: Formatted string with model information
        """
        if self.MODEL_TYPE == ModelType.OPENAI.value:
            return f"OpenAI ({self.DEFAULT_MODEL})"
        elif self.MODEL_TYPE == ModelType.GEMINI.value:
            return f"Google Gemini ({self.DEFAULT_MODEL})"
        return "Unknown"
