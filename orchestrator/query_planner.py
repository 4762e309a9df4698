"""Research plan and query generation for one loop iteration."""

from api.base_client import BaseInferenceClient
from utils.logger import get_logger

from .research_context import ResearchContext
from .research_types import InvalidDecisionError, PlanDecision, ResearchPlanSchema

logger = get_logger(__name__)

USAGE_SOURCE = "query-planner"

PLANNER_SYSTEM_PROMPT = """You are a strategic research planner. You break complex questions into logical search steps, and you write a research plan before generating any queries.

First analyze the question: its core components and key concepts, implicit assumptions, required foundational knowledge, and likely information gaps.

Then write a plan that outlines the logical progression of information needed, the dependencies between pieces of information, and the angles worth covering.

If previous evaluation feedback is available, use it: address the gaps it names, build on what was already found, and avoid repeating searches that did not help.

Finally, translate the plan into 3-5 sequential search queries that:
- are specific and focused, not broad
- are plain natural language, with no Boolean operators (no AND/OR, no quotes-and-minus syntax)
- progress from foundational to specific information
- address the gaps named in the feedback"""


class QueryPlanner:
    """Asks the inference service for a rationale plus concrete search queries."""

    def __init__(self, client: BaseInferenceClient, max_queries: int = 5):
        self.client = client
        self.max_queries = max_queries

    def build_prompt(self, context: ResearchContext) -> str:
        parts = [
            f'User Question: "{context.question}"',
            "",
            "Current Context:",
            context.formatted_context(),
            "",
            "Based on the current context, previous feedback (if any), and the user's "
            "question, create a research plan and generate the next set of search queries.",
        ]
        return "\n".join(parts)

    def _clean_queries(self, queries: list[str]) -> tuple[str, ...]:
        cleaned: list[str] = []
        seen: set[str] = set()
        for query in queries:
            text = " ".join(str(query).split())
            if text and text.lower() not in seen:
                seen.add(text.lower())
                cleaned.append(text)
        return tuple(cleaned[: self.max_queries])

    async def plan(self, context: ResearchContext) -> PlanDecision:
        """
        Generate the plan for the next iteration and log its token usage.

        Raises:
            InferenceError: If the inference call fails
            InvalidDecisionError: If no usable query comes back
        """
        result = await self.client.generate_object(
            self.build_prompt(context), ResearchPlanSchema, system=PLANNER_SYSTEM_PROMPT
        )
        context.report_usage(USAGE_SOURCE, result.usage)

        queries = self._clean_queries(result.value.queries)
        if not queries:
            raise InvalidDecisionError("Planner returned no usable queries")

        logger.info(
            f"Generated {len(queries)} queries",
            extra={"extra_fields": {"step": context.step, "queries": list(queries)}},
        )
        return PlanDecision(rationale=result.value.plan.strip(), queries=queries)
