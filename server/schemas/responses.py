"""Pydantic response models (DTOs) for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class SourceDTO(BaseModel):
    id: int
    title: str
    url: str
    snippet: str = ""


class UsageEntryDTO(BaseModel):
    source: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ResearchResponseDTO(BaseModel):
    request_id: str
    answer: str
    state: str
    steps: int
    total_tokens: int
    sources: list[SourceDTO] = Field(default_factory=list)
    usage: list[UsageEntryDTO] = Field(default_factory=list)
    events: list[dict[str, Any]] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def from_outcome(cls, request_id: str, outcome, events=None):
        """Convert a ResearchOutcome to DTO."""
        return cls(
            request_id=request_id,
            answer=outcome.answer,
            state=outcome.state.value,
            steps=outcome.steps,
            total_tokens=outcome.total_tokens,
            sources=[SourceDTO(**s.to_dict()) for s in outcome.sources],
            usage=[
                UsageEntryDTO(
                    source=u.source,
                    prompt_tokens=u.prompt_tokens,
                    completion_tokens=u.completion_tokens,
                    total_tokens=u.total_tokens,
                )
                for u in outcome.usage
            ],
            events=[e.to_dict() for e in (events or [])],
            error=outcome.error,
        )


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str
