"""Shared utilities for FastAPI routes."""

import json
from typing import Any

from fastapi import HTTPException, status

from server.schemas.requests import ResearchRequest

MAX_CONTEXT_MESSAGES = 10
MAX_CONTEXT_CHARS = 8000


def validate_and_trim_context(request: ResearchRequest) -> ResearchRequest:
    """Validate and trim conversation history to prevent token explosion."""
    history = request.conversation_history
    if not history:
        return request

    # Trim to last N messages
    if len(history) > MAX_CONTEXT_MESSAGES:
        history = history[-MAX_CONTEXT_MESSAGES:]

    total_chars = sum(len(item.content) for item in history)
    if total_chars > MAX_CONTEXT_CHARS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Conversation history exceeds {MAX_CONTEXT_CHARS} characters",
        )

    request.conversation_history = history
    return request


def format_sse(event: str, data: dict[str, Any]) -> str:
    """Encode one server-sent event frame."""
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"
