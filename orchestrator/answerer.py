"""Final answer synthesis from the research context."""

from api.base_client import BaseInferenceClient

from .research_context import ResearchContext

USAGE_SOURCE = "answer"

ANSWER_GUIDELINES = [
    "You are a careful research assistant. Answer the user's question using only the search context provided.",
    "",
    "Guidelines:",
    "- Base every claim on the search context; never rely on outside knowledge",
    "- Cite sources inline as markdown links, e.g. [Source title](https://example.com)",
    "- If sources conflict, present both sides and say which is better supported",
    "- Be concise and lead with the direct answer",
]

SUFFICIENT_NOTE = "You have gathered sufficient information to answer reliably."
FINAL_NOTE = (
    "IMPORTANT: The research budget is exhausted and the information may be incomplete. "
    "Give your best answer from what is available and clearly state the gaps or "
    "limitations instead of presenting the answer as complete."
)


class AnswerWriter:
    def __init__(self, client: BaseInferenceClient, max_tokens: int = 2000):
        self.client = client
        self.max_tokens = max_tokens

    def build_system_prompt(self, context: ResearchContext, is_final: bool) -> str:
        return "\n".join(
            [
                *ANSWER_GUIDELINES,
                "",
                FINAL_NOTE if is_final else SUFFICIENT_NOTE,
                "",
                "Search Context:",
                context.formatted_context(),
            ]
        )

    async def answer(self, context: ResearchContext, *, is_final: bool) -> str:
        """
        Raises:
            InferenceError: If the inference call fails
        """
        result = await self.client.generate_text(
            context.question,
            system=self.build_system_prompt(context, is_final),
            max_tokens=self.max_tokens,
        )
        context.report_usage(USAGE_SOURCE, result.usage)
        return result.text.strip()
