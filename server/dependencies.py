"""FastAPI dependencies for configuration, rate limiting and controller access."""

from config.config import Config
from storage.kv_store import get_default_store
from utils.rate_limiter import RateLimiter


def get_config() -> Config:
    """Dependency to get configuration (singleton pattern)."""
    if not hasattr(get_config, "_instance"):
        get_config._instance = Config()
    return get_config._instance


def get_rate_limiter() -> RateLimiter:
    """Dependency to get the limiter over the process-shared store."""
    if not hasattr(get_rate_limiter, "_instance"):
        get_rate_limiter._instance = RateLimiter(get_default_store())
    return get_rate_limiter._instance


def get_controller():
    """Dependency to get research controller instance (singleton pattern)."""
    from orchestrator.factory import create_research_controller

    if not hasattr(get_controller, "_instance"):
        get_controller._instance = create_research_controller(get_config(), get_default_store())
    return get_controller._instance
