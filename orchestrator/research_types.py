from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from models.inference import UsageEntry
from tools.web.contracts import SourceDoc


class InvalidDecisionError(Exception):
    """The model returned a decision the controller cannot act on."""


class ResearchState(str, Enum):
    PLANNING = "planning"
    GATHERING = "gathering"
    EVALUATING = "evaluating"
    ANSWERING = "answering"
    ANSWERED = "answered"
    FAILED = "failed"


class DecisionKind(str, Enum):
    PLAN = "plan"
    CONTINUE = "continue"
    ANSWER = "answer"


@dataclass(frozen=True)
class PlanDecision:
    rationale: str
    queries: tuple[str, ...]
    kind: DecisionKind = field(default=DecisionKind.PLAN, init=False)

    def __post_init__(self):
        if not self.queries:
            raise InvalidDecisionError("A plan needs at least one query")


@dataclass(frozen=True)
class ContinueDecision:
    feedback: str
    reasoning: str = ""
    kind: DecisionKind = field(default=DecisionKind.CONTINUE, init=False)

    def __post_init__(self):
        if not self.feedback.strip():
            raise InvalidDecisionError("A continue decision needs feedback")


@dataclass(frozen=True)
class AnswerDecision:
    reasoning: str = ""
    kind: DecisionKind = field(default=DecisionKind.ANSWER, init=False)


EvaluationDecision = ContinueDecision | AnswerDecision


@dataclass(frozen=True)
class ResearchSettings:
    max_steps: int = 10
    max_sources_per_iteration: int = 8
    results_per_query: int = 5
    max_queries_per_plan: int = 5
    answer_max_tokens: int = 2000


@dataclass(frozen=True)
class ResearchOutcome:
    answer: str
    total_tokens: int
    steps: int
    state: ResearchState
    sources: list[SourceDoc] = field(default_factory=list)
    usage: list[UsageEntry] = field(default_factory=list)
    error: str | None = None

    @property
    def is_success(self) -> bool:
        return self.state == ResearchState.ANSWERED and self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "answer": self.answer,
            "total_tokens": self.total_tokens,
            "steps": self.steps,
            "state": self.state.value,
            "sources": [s.to_dict() for s in self.sources],
            "usage": [u.to_dict() for u in self.usage],
            "error": self.error,
        }


# Structured-output schemas requested from the inference service


class ResearchPlanSchema(BaseModel):
    plan: str = Field(
        ...,
        description=(
            "A research plan: analysis of the question, key concepts, and the strategy "
            "for the searches that follow."
        ),
    )
    queries: list[str] = Field(
        ...,
        min_length=1,
        description=(
            "3-5 sequential search queries, foundational to specific. Each is a concrete "
            "natural-language query without Boolean operators."
        ),
    )


class EvaluationSchema(BaseModel):
    action: Literal["answer", "continue"] = Field(
        ...,
        description="'answer' if the evidence is sufficient, 'continue' to search more.",
    )
    reasoning: str = Field("", description="Why this action was chosen.")
    feedback: str | None = Field(
        None,
        description=(
            "Required for 'continue': what information is missing and what to search next. "
            "Omit for 'answer'."
        ),
    )
