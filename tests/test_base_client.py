import asyncio
from types import SimpleNamespace

import pytest

from api.base_client import BaseInferenceClient
from api.errors import InferenceError
from api.openai_client import OpenAIClient
from orchestrator.research_types import EvaluationSchema, ResearchPlanSchema


class DummyClient(BaseInferenceClient):
    provider_name = "dummy"

    async def generate_text(self, prompt, *, system=None, max_tokens=2000, temperature=0.3):
        raise NotImplementedError

    async def generate_object(self, prompt, schema, *, system=None, max_tokens=2000):
        raise NotImplementedError


@pytest.fixture
def client():
    return DummyClient("key", model_name="dummy-model")


def test_parse_plain_json(client):
    value = client._parse_object('{"plan": "p", "queries": ["a", "b"]}', ResearchPlanSchema)
    assert value.queries == ["a", "b"]


def test_parse_fenced_json(client):
    text = '```json\n{"action": "answer", "reasoning": "ok"}\n```'
    assert client._parse_object(text, EvaluationSchema).action == "answer"


@pytest.mark.parametrize(
    "text",
    [None, "", "not json", '{"plan": "p", "queries": []}', '{"action": "maybe"}'],
)
def test_parse_invalid_output(client, text):
    schema = ResearchPlanSchema if text and "plan" in text else EvaluationSchema
    with pytest.raises(InferenceError) as exc_info:
        client._parse_object(text, schema)
    assert exc_info.value.code == "invalid_output"
    assert exc_info.value.retryable is False


def test_schema_instruction_embeds_json_schema(client):
    instruction = client._schema_instruction(EvaluationSchema)
    assert '"action"' in instruction
    assert "JSON" in instruction


class APITimeoutError(Exception):
    pass


class StatusError(Exception):
    def __init__(self, status_code):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


@pytest.mark.parametrize(
    "exc,code,retryable",
    [
        (APITimeoutError("slow"), "timeout", True),
        (StatusError(429), "rate_limit", True),
        (StatusError(401), "auth", False),
        (StatusError(400), "bad_request", False),
        (StatusError(503), "provider_error", True),
        (ValueError("odd"), "unknown", False),
    ],
)
def test_normalize_error(client, exc, code, retryable):
    error = client._normalize_error(exc)
    assert error.code == code
    assert error.retryable is retryable
    assert error.provider == "dummy"


class FakeCompletions:
    def __init__(self, content=None, exc=None):
        self.content = content
        self.exc = exc
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.exc:
            raise self.exc
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))],
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=8, total_tokens=20),
        )


def _openai_with(completions):
    client = OpenAIClient(api_key="sk-test")
    client.client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return client


def test_openai_generate_object_uses_json_mode():
    completions = FakeCompletions(content='{"plan": "p", "queries": ["q"]}')
    client = _openai_with(completions)

    result = asyncio.run(client.generate_object("prompt", ResearchPlanSchema, system="sys"))

    assert result.value.queries == ["q"]
    assert result.usage.total_tokens == 20
    assert completions.kwargs["response_format"] == {"type": "json_object"}
    assert completions.kwargs["messages"][0]["content"].startswith("sys")


def test_openai_errors_are_normalized():
    client = _openai_with(FakeCompletions(exc=StatusError(429)))

    with pytest.raises(InferenceError) as exc_info:
        asyncio.run(client.generate_text("prompt"))
    assert exc_info.value.code == "rate_limit"
