"""Exceptions raised by inference clients and their rate-limited wrappers."""

from models.inference import NormalizedError


class InferenceError(Exception):
    """An inference call failed; carries the normalized cause."""

    def __init__(self, error: NormalizedError):
        super().__init__(f"{error.provider} {error.code}: {error.message}")
        self.error = error

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def retryable(self) -> bool:
        return self.error.retryable


class RateLimitExceededError(Exception):
    """The shared rate limit stayed exhausted after all retries."""

    def __init__(self, key_prefix: str, reset_time: int | None = None):
        super().__init__(f"Rate limit '{key_prefix}' exhausted")
        self.key_prefix = key_prefix
        self.reset_time = reset_time
