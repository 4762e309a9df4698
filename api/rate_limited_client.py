"""Inference client decorator that draws from the shared rate-limit budget."""

from typing import TypeVar

from pydantic import BaseModel

from models.inference import InferenceResult, ObjectResult
from utils.logger import get_logger
from utils.rate_limiter import RateLimitConfig, RateLimiter

from .base_client import BaseInferenceClient
from .errors import RateLimitExceededError

logger = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class RateLimitedInferenceClient(BaseInferenceClient):
    """
    Wrap another inference client so every call first acquires a slot in
    the shared fixed-window limiter.

    Raises RateLimitExceededError when the window stays full after the
    configured retries.
    """

    def __init__(self, inner: BaseInferenceClient, limiter: RateLimiter, config: RateLimitConfig):
        super().__init__(inner.api_key, model_name=inner.model_name)
        self.inner = inner
        self.limiter = limiter
        self.config = config
        self.provider_name = inner.provider_name

    async def _acquire(self) -> None:
        if not await self.limiter.acquire(self.config):
            logger.warning(
                "Inference rate limit exhausted",
                extra={
                    "extra_fields": {
                        "key_prefix": self.config.key_prefix,
                        "provider": self.provider_name,
                    }
                },
            )
            raise RateLimitExceededError(self.config.key_prefix)

    async def generate_text(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int = 2000,
        temperature: float = 0.3,
    ) -> InferenceResult:
        await self._acquire()
        return await self.inner.generate_text(
            prompt, system=system, max_tokens=max_tokens, temperature=temperature
        )

    async def generate_object(
        self,
        prompt: str,
        schema: type[SchemaT],
        *,
        system: str | None = None,
        max_tokens: int = 2000,
    ) -> ObjectResult[SchemaT]:
        await self._acquire()
        return await self.inner.generate_object(
            prompt, schema, system=system, max_tokens=max_tokens
        )
