import time
from typing import TypeVar

from google import genai
from pydantic import BaseModel

from models.inference import InferenceResult, ObjectResult, TokenUsage
from utils.logger import get_logger

from .base_client import BaseInferenceClient
from .errors import InferenceError

logger = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class GeminiClient(BaseInferenceClient):
    """
    Async client for the Google Gemini API using the google.genai package.
    """

    provider_name = "gemini"

    def __init__(self, api_key: str, model_name: str = "gemini-2.0-flash-001", **kwargs):
        """
        Initialize the Gemini client.

        Args:
            api_key: The Google Gemini API key
            model_name: The model to use (default: gemini-2.0-flash-001)
        """
        super().__init__(api_key, model_name=model_name)

        if not api_key:
            raise ValueError("API key is required for Gemini")

        self.client = genai.Client(api_key=api_key)

    @staticmethod
    def _usage(response) -> TokenUsage:
        usage_metadata = getattr(response, "usage_metadata", None)
        if usage_metadata is None:
            return TokenUsage()
        return TokenUsage(
            prompt_tokens=getattr(usage_metadata, "prompt_token_count", 0) or 0,
            completion_tokens=getattr(usage_metadata, "candidates_token_count", 0) or 0,
            total_tokens=getattr(usage_metadata, "total_token_count", 0) or 0,
        )

    async def _generate(self, prompt: str, config: dict):
        start_time = time.perf_counter()
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name, contents=prompt, config=config
            )
        except Exception as e:
            error = self._normalize_error(e)
            logger.error(
                f"Gemini completion failed: {error.code}",
                extra={
                    "extra_fields": {
                        "model": self.model_name,
                        "error_code": error.code,
                        "error_message": error.message,
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
        config = {"temperature": temperature, "max_output_tokens": max_tokens}
        if system:
            config["system_instruction"] = system

        response, latency_ms = await self._generate(prompt, config)
        usage = self._usage(response)

        logger.info(
            "Gemini completion successful",
            extra={
                "extra_fields": {
                    "model": self.model_name,
                    "latency_ms": latency_ms,
                    "tokens": usage.total_tokens,
                }
            },
        )
        return InferenceResult(
            text=getattr(response, "text", None) or "",
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
        config = {
            "temperature": 0,
            "max_output_tokens": max_tokens,
            "response_mime_type": "application/json",
            "system_instruction": "\n\n".join(system_parts),
        }

        response, latency_ms = await self._generate(prompt, config)
        value = self._parse_object(getattr(response, "text", None), schema)

        return ObjectResult(
            value=value,
            usage=self._usage(response),
            provider=self.provider_name,
            model=self.model_name,
            latency_ms=latency_ms,
        )
