"""
FastAPI contract and guardrail tests.

A FakeController is injected through dependency overrides, so no inference
provider, search provider or network call is involved. The global rate limit
runs against an in-memory store.
"""

import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from orchestrator.events import PlanReadyEvent, SourcesFoundEvent, TokenUsageEvent, publish
from orchestrator.research_types import ResearchOutcome, ResearchState
from server.app import create_app
from server.dependencies import get_config, get_controller, get_rate_limiter
from storage.kv_store import InMemoryKeyValueStore
from tools.web.contracts import SourceDoc
from utils.rate_limiter import RateLimitConfig, RateLimiter

from fakes import FakeClock, FullStore

pytestmark = pytest.mark.integration

PARIS = SourceDoc(id=1, title="Paris - Wikipedia", url="https://en.wikipedia.org/wiki/Paris")


class FakeController:
    def __init__(self):
        self.calls = []

    async def run(self, question, prior_turns=None, event_sink=None):
        self.calls.append((question, list(prior_turns or [])))
        publish(event_sink, PlanReadyEvent(query_count=1, plan_summary="Find it", queries=("q",), step=1))
        publish(event_sink, SourcesFoundEvent(count=1, label="q", sources=(PARIS,)))
        publish(event_sink, TokenUsageEvent(total_tokens=42))
        return ResearchOutcome(
            answer=f"The capital of France is Paris [{PARIS.title}]({PARIS.url}).",
            total_tokens=42,
            steps=1,
            state=ResearchState.ANSWERED,
            sources=[PARIS],
        )


def _config(limit):
    return SimpleNamespace(GLOBAL_RATE_LIMIT=limit)


@pytest.fixture()
def controller():
    return FakeController()


@pytest.fixture()
def app(controller):
    app = create_app()
    app.dependency_overrides[get_controller] = lambda: controller
    app.dependency_overrides[get_rate_limiter] = lambda: RateLimiter(InMemoryKeyValueStore())
    app.dependency_overrides[get_config] = lambda: _config(
        RateLimitConfig(max_requests=100, window_ms=60_000, key_prefix="global_test")
    )
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_research_returns_cited_answer(client, controller):
    r = client.post("/v1/research", json={"question": "What is the capital of France?"})

    assert r.status_code == 200
    data = r.json()
    assert "](https://en.wikipedia.org/wiki/Paris)" in data["answer"]
    assert data["state"] == "answered"
    assert data["steps"] == 1
    assert data["total_tokens"] == 42
    assert data["sources"][0]["url"] == PARIS.url
    assert [e["type"] for e in data["events"]] == ["plan-ready", "sources-found", "token-usage"]
    assert controller.calls == [("What is the capital of France?", [])]


def test_empty_question_is_rejected(client):
    r = client.post("/v1/research", json={"question": ""})
    assert r.status_code == 422


def test_history_is_trimmed_to_recent_turns(client, controller):
    history = [
        {"role": "user" if i % 2 == 0 else "assistant", "content": f"message {i}"}
        for i in range(12)
    ]

    r = client.post("/v1/research", json={"question": "and then?", "conversation_history": history})

    assert r.status_code == 200
    turns = controller.calls[0][1]
    assert len(turns) == 10
    assert turns[0] == {"role": "user", "text": "message 2"}


def test_oversized_history_is_rejected(client):
    history = [{"role": "user", "content": "x" * 9000}]

    r = client.post("/v1/research", json={"question": "q", "conversation_history": history})

    assert r.status_code == 400


def test_global_rate_limit_returns_429(app):
    clock = FakeClock(now_ms=1000)
    app.dependency_overrides[get_rate_limiter] = lambda: RateLimiter(
        FullStore(), clock=clock, sleep=clock.sleep
    )
    client = TestClient(app)

    r = client.post("/v1/research", json={"question": "q"})

    assert r.status_code == 429
    assert len(clock.sleeps) == 3


def test_global_rate_limit_waits_for_next_window(app, controller):
    clock = FakeClock(now_ms=1000)
    limiter = RateLimiter(InMemoryKeyValueStore(clock=clock.seconds), clock=clock, sleep=clock.sleep)
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    app.dependency_overrides[get_config] = lambda: _config(
        RateLimitConfig(max_requests=1, window_ms=5000, key_prefix="global_llm")
    )
    client = TestClient(app)

    first = client.post("/v1/research", json={"question": "one"})
    second = client.post("/v1/research", json={"question": "two"})

    assert first.status_code == 200
    assert second.status_code == 200
    assert clock.sleeps == [4.0]
    assert len(controller.calls) == 2


def _parse_sse(body: str) -> list[tuple[str, dict]]:
    frames = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        frames.append((lines["event"], json.loads(lines["data"])))
    return frames


def test_stream_emits_progress_then_answer(client):
    r = client.post("/v1/research/stream", json={"question": "What is the capital of France?"})

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")
    frames = _parse_sse(r.text)
    assert [name for name, _ in frames] == [
        "plan-ready",
        "sources-found",
        "token-usage",
        "answer",
    ]
    assert frames[1][1]["sources"][0]["url"] == PARIS.url
    answer = frames[-1][1]
    assert answer["state"] == "answered"
    assert "Paris" in answer["answer"]
