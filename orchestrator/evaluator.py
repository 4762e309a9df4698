"""Decides whether the gathered evidence is enough to answer."""

from api.base_client import BaseInferenceClient
from utils.logger import get_logger

from .research_context import ResearchContext
from .research_types import (
    AnswerDecision,
    ContinueDecision,
    EvaluationDecision,
    EvaluationSchema,
    InvalidDecisionError,
)

logger = get_logger(__name__)

USAGE_SOURCE = "evaluator"

EVALUATOR_SYSTEM_PROMPT = """You are a research evaluator. Decide whether the evidence gathered so far is sufficient to answer the user's question completely and accurately.

Choose "answer" when the search history covers every part of the question with credible, specific information.

Choose "continue" when something is missing, contradictory, outdated or too vague. In that case you must give feedback: name the missing information precisely and suggest what to search for next. Do not suggest repeating searches that already failed to help."""


class EvidenceEvaluator:
    def __init__(self, client: BaseInferenceClient):
        self.client = client

    def build_prompt(self, context: ResearchContext) -> str:
        return "\n".join(
            [
                f'User Question: "{context.question}"',
                "",
                "Here is the research gathered so far:",
                "",
                context.formatted_context(),
                "",
                "Is this enough to answer the question? Decide the next action.",
            ]
        )

    async def evaluate(self, context: ResearchContext) -> EvaluationDecision:
        """
        Raises:
            InferenceError: If the inference call fails
            InvalidDecisionError: If a 'continue' carries neither feedback nor reasoning
        """
        result = await self.client.generate_object(
            self.build_prompt(context), EvaluationSchema, system=EVALUATOR_SYSTEM_PROMPT
        )
        context.report_usage(USAGE_SOURCE, result.usage)
        value = result.value

        if value.action == "answer":
            return AnswerDecision(reasoning=value.reasoning)

        feedback = (value.feedback or "").strip() or value.reasoning.strip()
        if not feedback:
            raise InvalidDecisionError("Evaluator chose 'continue' without feedback")
        return ContinueDecision(feedback=feedback, reasoning=value.reasoning)
