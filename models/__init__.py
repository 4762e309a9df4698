"""
Models package for inference results and conversation turns.
"""

from .conversation import ConversationTurn
from .inference import InferenceResult, NormalizedError, ObjectResult, TokenUsage, UsageEntry

__all__ = [
    "ConversationTurn",
    "InferenceResult",
    "NormalizedError",
    "ObjectResult",
    "TokenUsage",
    "UsageEntry",
]
