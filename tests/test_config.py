import pytest

from config.config import Config
from orchestrator.core import ResearchController
from orchestrator.factory import create_research_controller, initialize_client
from storage.kv_store import InMemoryKeyValueStore
from tools.web.factory import create_web_client

pytestmark = pytest.mark.unit


def test_config_reads_environment(mock_env):
    config = Config()

    assert config.MODEL_TYPE == "openai"
    assert config.research_settings.max_steps == 4
    assert config.research_settings.max_sources_per_iteration == 8
    assert config.GLOBAL_RATE_LIMIT.max_requests == 2
    assert config.GLOBAL_RATE_LIMIT.key_prefix == "global_llm"
    assert config.missing_keys() == []
    assert config.validate()


def test_missing_keys_are_reported(monkeypatch):
    monkeypatch.setenv("MODEL_TYPE", "gemini")
    monkeypatch.setenv("GOOGLE_GEMINI_API_KEY", "")
    monkeypatch.setenv("TAVILY_API_KEY", "")

    config = Config()

    assert config.missing_keys() == ["GOOGLE_GEMINI_API_KEY", "TAVILY_API_KEY"]
    assert not config.validate()


def test_invalid_integer_setting(monkeypatch):
    monkeypatch.setenv("RESEARCH_MAX_STEPS", "many")

    with pytest.raises(ValueError):
        Config()


def test_unknown_provider_is_rejected(mock_env, monkeypatch):
    monkeypatch.setenv("MODEL_TYPE", "llama")

    config = Config()

    assert not config.validate()
    with pytest.raises(ValueError):
        initialize_client(config, "any-model")


def test_web_client_requires_key():
    with pytest.raises(ValueError):
        create_web_client(None)


def test_factory_wires_controller(mock_env):
    controller = create_research_controller(Config(), InMemoryKeyValueStore())

    assert isinstance(controller, ResearchController)
    assert controller.settings.max_steps == 4
    assert controller.planner.client.provider_name == "openai"
