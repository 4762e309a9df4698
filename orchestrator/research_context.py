"""
ResearchContext - loop-scoped state for one research request.

Created once per request and owned exclusively by one controller run. It is
never stored globally or shared between requests. The formatted view it
produces is the evidence block of every inference prompt, so formatting is
deterministic and follows insertion order.
"""

from typing import Iterable, Sequence

from models.conversation import ConversationTurn, format_turns, to_turns
from models.inference import TokenUsage, UsageEntry
from tools.web.contracts import EvidenceItem, SearchRecord, SourceDoc
from tools.web.sources import build_source_list


class ResearchContext:
    """
    Accumulates search history, evaluator feedback and token usage across
    loop iterations.

    Attributes:
        question: The user's question (immutable)
        prior_turns: Conversation history supplied by the caller (immutable)
        step: Completed iterations; only ever increases
        search_history: SearchRecords in the order they were reported
        last_feedback: Evaluator guidance from the latest iteration
        usage_log: One entry per inference call, append-only
    """

    def __init__(self, question: str, prior_turns: Iterable[ConversationTurn] | None = None):
        self._question = question
        self._prior_turns = to_turns(prior_turns)
        self._step = 0
        self._search_history: list[SearchRecord] = []
        self._last_feedback = ""
        self._usage_log: list[UsageEntry] = []

    @property
    def question(self) -> str:
        return self._question

    @property
    def prior_turns(self) -> tuple[ConversationTurn, ...]:
        return self._prior_turns

    @property
    def step(self) -> int:
        return self._step

    @property
    def search_history(self) -> tuple[SearchRecord, ...]:
        return tuple(self._search_history)

    @property
    def last_feedback(self) -> str:
        return self._last_feedback

    @property
    def usage_log(self) -> tuple[UsageEntry, ...]:
        return tuple(self._usage_log)

    @property
    def total_tokens(self) -> int:
        return sum(entry.total_tokens for entry in self._usage_log)

    @property
    def evidence_count(self) -> int:
        return sum(len(record.results) for record in self._search_history)

    def should_stop(self, max_steps: int) -> bool:
        return self._step >= max_steps

    def increment_step(self) -> int:
        self._step += 1
        return self._step

    def report_search(self, record: SearchRecord) -> None:
        self._search_history.append(record)

    def report_searches(self, records: Sequence[SearchRecord]) -> None:
        self._search_history.extend(records)

    def set_feedback(self, feedback: str) -> None:
        self._last_feedback = (feedback or "").strip()

    def report_usage(self, source: str, usage: TokenUsage | None) -> None:
        if usage is None:
            return
        self._usage_log.append(UsageEntry.from_usage(source, usage))

    def collect_sources(self) -> list[SourceDoc]:
        """Every source seen so far, deduplicated by URL, for display."""
        return build_source_list(self._search_history)

    @staticmethod
    def _format_item(item: EvidenceItem) -> str:
        return "\n\n".join(
            [
                f"### {item.date} - {item.title}",
                item.url,
                item.snippet,
                "<summary>",
                item.summary,
                "</summary>",
            ]
        )

    def format_conversation(self) -> str:
        return format_turns(self._prior_turns)

    def format_search_history(self) -> str:
        blocks = []
        for record in self._search_history:
            parts = [f'## Query: "{record.query}"']
            if record.results:
                parts.extend(self._format_item(item) for item in record.results)
            else:
                parts.append("No results.")
            blocks.append("\n\n".join(parts))
        return "\n\n".join(blocks)

    def formatted_context(self) -> str:
        parts = [
            "## Conversation History:",
            self.format_conversation(),
            f'## User Question: "{self._question}"',
            f"## Current Step: {self._step}",
            "## Search History:",
            self.format_search_history() or "No searches yet.",
        ]
        if self._last_feedback:
            parts.extend(["## Previous Evaluation Feedback:", self._last_feedback])
        return "\n\n".join(parts)
