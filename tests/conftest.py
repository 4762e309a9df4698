import os

import pytest
from dotenv import load_dotenv

from storage.kv_store import InMemoryKeyValueStore

# Load environment variables from .env file for tests
load_dotenv()


@pytest.fixture
def store():
    """Fresh in-memory store per test."""
    return InMemoryKeyValueStore()


@pytest.fixture
def tavily_api_key():
    """Fixture to provide the Tavily key from environment variables."""
    key = os.getenv("TAVILY_API_KEY")
    if not key:
        pytest.skip("TAVILY_API_KEY environment variable not set")
    return key


@pytest.fixture
def mock_env(monkeypatch):
    """Fixture to mock environment variables for testing."""
    env_vars = {
        "MODEL_TYPE": "openai",
        "OPENAI_API_KEY": "test-openai-key",
        "TAVILY_API_KEY": "test-tavily-key",
        "RESEARCH_MAX_STEPS": "4",
        "GLOBAL_RATE_LIMIT_MAX_REQUESTS": "2",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars
