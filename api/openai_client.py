import time
from typing import TypeVar

import openai
from pydantic import BaseModel

from models.inference import InferenceResult, ObjectResult, TokenUsage
from utils.logger import get_logger

from .base_client import BaseInferenceClient
from .errors import InferenceError

logger = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class OpenAIClient(BaseInferenceClient):
    """
    Async client for the OpenAI chat completions API.
    Structured output uses JSON mode plus pydantic validation.
    """

    provider_name = "openai"

    def __init__(self, api_key: str, model_name: str = "gpt-4o-mini", **kwargs):
        """
        Initialize the OpenAI client.

        Args:
            api_key: The OpenAI API key
            model_name: The model to use (default: gpt-4o-mini)
            **kwargs: Passed through to openai.AsyncOpenAI (e.g. timeout, base_url)
        """
        super().__init__(api_key, model_name=model_name)
        self.client = openai.AsyncOpenAI(api_key=api_key, **kwargs)

    @staticmethod
    def _usage(response) -> TokenUsage:
        usage = getattr(response, "usage", None)
        if usage is None:
            return TokenUsage()
        return TokenUsage(
            prompt_tokens=usage.prompt_tokens or 0,
            completion_tokens=usage.completion_tokens or 0,
            total_tokens=usage.total_tokens or 0,
        )

    async def _complete(self, messages: list[dict[str, str]], **params):
        start_time = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name, messages=messages, **params
            )
        except Exception as e:
            error = self._normalize_error(e)
            logger.error(
                f"OpenAI completion failed: {error.code}",
                extra={
                    "extra_fields": {
                        "model": self.model_name,
                        "error_code": error.code,
                        "error_message": error.message,
                        "retryable": error.retryable,
                    }
                },
            )
            raise InferenceError(error) from e
        return response, self._measure_latency(start_time)

    async def generate_text(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int = 2000,
        temperature: float = 0.3,
    ) -> InferenceResult:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response, latency_ms = await self._complete(
            messages, max_tokens=max_tokens, temperature=temperature
        )
        text = (response.choices[0].message.content or "") if response.choices else ""
        usage = self._usage(response)

        logger.info(
            "OpenAI completion successful",
            extra={
                "extra_fields": {
                    "model": self.model_name,
                    "latency_ms": latency_ms,
                    "tokens": usage.total_tokens,
                }
            },
        )
        return InferenceResult(
            text=text,
            usage=usage,
            provider=self.provider_name,
            model=self.model_name,
            latency_ms=latency_ms,
        )

    async def generate_object(
        self,
        prompt: str,
        schema: type[SchemaT],
        *,
        system: str | None = None,
        max_tokens: int = 2000,
    ) -> ObjectResult[SchemaT]:
        system_parts = [system] if system else []
        system_parts.append(self._schema_instruction(schema))
        messages = [
            {"role": "system", "content": "\n\n".join(system_parts)},
            {"role": "user", "content": prompt},
        ]

        response, latency_ms = await self._complete(
            messages,
            max_tokens=max_tokens,
            temperature=0,
            response_format={"type": "json_object"},
        )
        text = response.choices[0].message.content if response.choices else None
        value = self._parse_object(text, schema)

        return ObjectResult(
            value=value,
            usage=self._usage(response),
            provider=self.provider_name,
            model=self.model_name,
            latency_ms=latency_ms,
        )
