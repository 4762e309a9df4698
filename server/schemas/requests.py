"""Pydantic request models for FastAPI endpoints."""

from pydantic import BaseModel, Field


class ConversationHistoryItem(BaseModel):
    role: str = Field(..., pattern="^(user|assistant|system)$")
    content: str


class ResearchRequest(BaseModel):
    question: str = Field(..., min_length=1)
    conversation_history: list[ConversationHistoryItem] | None = None

    def prior_turns(self) -> list[dict[str, str]]:
        return [
            {"role": item.role, "text": item.content}
            for item in (self.conversation_history or [])
        ]
