"""
Progress events published by the research controller.

The controller only writes events; transports (SSE, CLI, tests) drain them.
A sink is any callable taking one event. Sink failures are logged and never
change the research outcome.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable

from tools.web.contracts import SourceDoc
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CHANNEL_SIZE = 256


@dataclass(frozen=True)
class PlanReadyEvent:
    query_count: int
    plan_summary: str
    queries: tuple[str, ...] = ()
    step: int = 0

    type = "plan-ready"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "query_count": self.query_count,
            "plan_summary": self.plan_summary,
            "queries": list(self.queries),
            "step": self.step,
        }


@dataclass(frozen=True)
class SourcesFoundEvent:
    count: int
    label: str
    sources: tuple[SourceDoc, ...] = field(default_factory=tuple)

    type = "sources-found"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "count": self.count,
            "label": self.label,
            "sources": [
                {"title": s.title, "url": s.url, "snippet": s.snippet} for s in self.sources
            ],
        }


@dataclass(frozen=True)
class TokenUsageEvent:
    total_tokens: int

    type = "token-usage"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "total_tokens": self.total_tokens}


ResearchEvent = PlanReadyEvent | SourcesFoundEvent | TokenUsageEvent
EventSink = Callable[[ResearchEvent], None]


class CollectingSink:
    """Keeps every event in order (tests, CLI)."""

    def __init__(self):
        self.events: list[ResearchEvent] = []

    def __call__(self, event: ResearchEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[ResearchEvent]:
        return [e for e in self.events if e.type == event_type]


class EventChannel:
    """
    Bounded, append-only channel between the controller and one consumer.

    emit() never blocks the controller: when the consumer falls behind and
    the buffer is full, the event is dropped and logged.
    """

    _CLOSED = object()

    def __init__(self, maxsize: int = DEFAULT_CHANNEL_SIZE):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize + 1)  # +1 reserves the close marker
        self._maxsize = maxsize
        self._closed = False
        self.dropped = 0

    def __call__(self, event: ResearchEvent) -> None:
        self.emit(event)

    def emit(self, event: ResearchEvent) -> None:
        if self._closed:
            return
        if self._queue.qsize() >= self._maxsize:
            self.dropped += 1
            logger.warning(
                "Event channel full; dropping event",
                extra={"extra_fields": {"event_type": event.type, "dropped": self.dropped}},
            )
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(self._CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> ResearchEvent:
        item = await self._queue.get()
        if item is self._CLOSED:
            raise StopAsyncIteration
        return item


def publish(sink: EventSink | None, event: ResearchEvent) -> None:
    """Deliver event to sink, isolating the caller from sink failures."""
    if sink is None:
        return
    try:
        sink(event)
    except Exception as e:
        logger.warning(
            "Event sink raised; ignoring",
            extra={"extra_fields": {"event_type": event.type, "error": str(e)}},
        )
