from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

T = TypeVar("T")

ERROR_CODES = {
    "timeout",
    "auth",
    "rate_limit",
    "bad_request",
    "provider_error",
    "invalid_output",
    "unknown",
}


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self):
        if self.total_tokens == 0 and (self.prompt_tokens > 0 or self.completion_tokens > 0):
            object.__setattr__(self, "total_tokens", self.prompt_tokens + self.completion_tokens)

    @classmethod
    def from_dict(cls, usage: dict[str, int] | None) -> "TokenUsage":
        if not usage:
            return cls()
        return cls(
            prompt_tokens=int(usage.get("prompt_tokens") or 0),
            completion_tokens=int(usage.get("completion_tokens") or 0),
            total_tokens=int(usage.get("total_tokens") or 0),
        )


@dataclass(frozen=True)
class NormalizedError:
    code: str
    message: str
    provider: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.code not in ERROR_CODES:
            object.__setattr__(self, "code", "unknown")


@dataclass(frozen=True)
class InferenceResult:
    text: str
    usage: TokenUsage
    provider: str
    model: str
    latency_ms: int = 0


@dataclass(frozen=True)
class ObjectResult(Generic[T]):
    value: T
    usage: TokenUsage
    provider: str
    model: str
    latency_ms: int = 0


@dataclass(frozen=True)
class UsageEntry:
    """One inference call's token counts, tagged with the role that made it."""

    source: str  # "query-planner" | "evaluator" | "summarize-url" | "answer"
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )

    @classmethod
    def from_usage(cls, source: str, usage: TokenUsage) -> "UsageEntry":
        return cls(
            source=source,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "timestamp": self.timestamp,
        }
