import asyncio

from orchestrator.events import (
    CollectingSink,
    EventChannel,
    PlanReadyEvent,
    SourcesFoundEvent,
    TokenUsageEvent,
    publish,
)
from tools.web.contracts import SourceDoc


def test_event_payloads():
    plan = PlanReadyEvent(query_count=2, plan_summary="Check", queries=("a", "b"), step=1)
    sources = SourcesFoundEvent(
        count=1, label="a | b", sources=(SourceDoc(id=1, title="T", url="https://t.example"),)
    )

    assert plan.to_dict() == {
        "type": "plan-ready",
        "query_count": 2,
        "plan_summary": "Check",
        "queries": ["a", "b"],
        "step": 1,
    }
    assert sources.to_dict()["sources"] == [{"title": "T", "url": "https://t.example", "snippet": ""}]
    assert TokenUsageEvent(total_tokens=5).to_dict() == {"type": "token-usage", "total_tokens": 5}


def test_collecting_sink_filters_by_type():
    sink = CollectingSink()
    publish(sink, TokenUsageEvent(total_tokens=1))
    publish(sink, PlanReadyEvent(query_count=1, plan_summary="p"))
    publish(sink, TokenUsageEvent(total_tokens=3))

    assert [e.total_tokens for e in sink.of_type("token-usage")] == [1, 3]


def test_publish_isolates_failing_sink():
    def broken(event):
        raise RuntimeError("consumer crashed")

    publish(broken, TokenUsageEvent(total_tokens=1))
    publish(None, TokenUsageEvent(total_tokens=1))


def test_channel_delivers_in_order_until_closed():
    async def scenario():
        channel = EventChannel()
        for n in range(3):
            channel.emit(TokenUsageEvent(total_tokens=n))
        channel.close()
        channel.emit(TokenUsageEvent(total_tokens=99))
        return [event.total_tokens async for event in channel]

    assert asyncio.run(scenario()) == [0, 1, 2]


def test_channel_drops_when_full():
    async def scenario():
        channel = EventChannel(maxsize=2)
        for n in range(4):
            channel(TokenUsageEvent(total_tokens=n))
        channel.close()
        return channel, [event.total_tokens async for event in channel]

    channel, received = asyncio.run(scenario())
    assert received == [0, 1]
    assert channel.dropped == 2
