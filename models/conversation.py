"""
Conversation turns supplied by the caller as prior history.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

VALID_ROLES = {"user", "assistant", "system"}


@dataclass(frozen=True)
class ConversationTurn:
    """
    One prior message in the conversation.

    Attributes:
        role: 'user', 'assistant' or 'system'
        text: Message content
    """

    role: str
    text: str

    def __post_init__(self):
        if self.role not in VALID_ROLES:
            raise ValueError(f"Invalid role '{self.role}'. Must be one of {sorted(VALID_ROLES)}")

    @classmethod
    def from_dict(cls, message: Mapping[str, Any]) -> "ConversationTurn":
        """Accept both {'role','text'} and chat-style {'role','content'} dicts."""
        text = message.get("text", message.get("content", ""))
        return cls(role=str(message.get("role", "user")), text=str(text or ""))


def to_turns(history: Iterable[ConversationTurn | Mapping[str, Any]] | None) -> tuple[ConversationTurn, ...]:
    """Normalize caller-supplied history into an immutable tuple of turns."""
    if not history:
        return ()
    return tuple(
        item if isinstance(item, ConversationTurn) else ConversationTurn.from_dict(item)
        for item in history
    )


def format_turns(turns: Iterable[ConversationTurn]) -> str:
    """Render turns as 'role: text' blocks, or a placeholder when empty."""
    lines = [f"{turn.role}: {turn.text}" for turn in turns]
    return "\n\n".join(lines) if lines else "No previous conversation."
