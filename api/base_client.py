import json
import time
from abc import ABC, abstractmethod
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from models.inference import InferenceResult, NormalizedError, ObjectResult

from .errors import InferenceError

SchemaT = TypeVar("SchemaT", bound=BaseModel)

JSON_INSTRUCTION = (
    "Respond with a single JSON object and nothing else. "
    "It must validate against this JSON schema:\n{schema}"
)


class BaseInferenceClient(ABC):
    """
    Abstract base class for inference providers.

    The research core depends only on this surface: plain text generation and
    schema-validated structured generation, each returning token usage.
    Provider failures are raised as InferenceError with a NormalizedError.
    """

    provider_name: str = "unknown"

    def __init__(self, api_key: str, model_name: str | None = None, **kwargs):
        """
        Initialize the client.

        Args:
            api_key: API key for the inference service
            model_name: Default model for calls made by this client
            **kwargs: Additional provider-specific parameters
        """
        self.api_key = api_key
        self.model_name = model_name

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int = 2000,
        temperature: float = 0.3,
    ) -> InferenceResult:
        """
        Generate free-form text.

        Args:
            prompt: User prompt
            system: Optional system instruction
            max_tokens: Output token cap
            temperature: Sampling temperature

        Returns:
            InferenceResult with text and token usage

        Raises:
            InferenceError: If the provider call fails
        """

    @abstractmethod
    async def generate_object(
        self,
        prompt: str,
        schema: type[SchemaT],
        *,
        system: str | None = None,
        max_tokens: int = 2000,
    ) -> ObjectResult[SchemaT]:
        """
        Generate a JSON object validated against a pydantic schema.

        Raises:
            InferenceError: If the provider call fails or the output does not
                validate (code "invalid_output")
        """

    def _schema_instruction(self, schema: type[BaseModel]) -> str:
        return JSON_INSTRUCTION.format(schema=json.dumps(schema.model_json_schema()))

    def _parse_object(self, text: str | None, schema: type[SchemaT]) -> SchemaT:
        """Validate provider text as the requested schema."""
        raw = (text or "").strip()
        # Some models wrap JSON in a markdown fence even in JSON mode
        if raw.startswith("```"):
            raw = raw.strip("`")
            if raw.lower().startswith("json"):
                raw = raw[4:]
        try:
            return schema.model_validate_json(raw)
        except ValidationError as e:
            raise InferenceError(
                NormalizedError(
                    code="invalid_output",
                    message=f"Output did not match {schema.__name__}: {e.error_count()} errors",
                    provider=self.provider_name,
                    retryable=False,
                    details={"schema": schema.__name__},
                )
            ) from e

    @staticmethod
    def _measure_latency(start_time: float) -> int:
        return int((time.perf_counter() - start_time) * 1000)

    def _normalize_error(self, exc: Exception) -> NormalizedError:
        """Map a provider exception onto the shared error taxonomy."""
        name = type(exc).__name__.lower()
        message = str(exc) or type(exc).__name__
        status = getattr(exc, "status_code", None) or getattr(exc, "code", None)

        if "timeout" in name:
            code, retryable = "timeout", True
        elif "ratelimit" in name or status == 429:
            code, retryable = "rate_limit", True
        elif "authentication" in name or "permission" in name or status in (401, 403):
            code, retryable = "auth", False
        elif "badrequest" in name or status in (400, 404, 422):
            code, retryable = "bad_request", False
        elif "connection" in name or "server" in name or (
            isinstance(status, int) and status >= 500
        ):
            code, retryable = "provider_error", True
        else:
            code, retryable = "unknown", False

        return NormalizedError(
            code=code,
            message=message[:500],
            provider=self.provider_name,
            retryable=retryable,
            details={"exception_type": type(exc).__name__},
        )
