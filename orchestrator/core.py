"""
ResearchController - the iterative plan / gather / evaluate loop.

Key guarantees:
- No exception bubbles up from run(): the caller always receives an answer,
  either synthesized, best-effort after the step ceiling, or an apology
- Single search / extraction / summarization failures are absorbed per item
- Iterations are strictly sequential; work inside an iteration fans out
- Cancellation (asyncio.CancelledError) is never swallowed
"""

import asyncio
import concurrent.futures
import time
import uuid
from typing import Iterable, Sequence

from api.errors import InferenceError, RateLimitExceededError
from models.conversation import ConversationTurn
from models.inference import TokenUsage
from tools.web.base import BaseContentExtractor, BaseSearchClient
from tools.web.contracts import EvidenceItem, ExtractionResult, SearchRecord, SearchResult, SourceDoc
from tools.web.sources import deduplicate_results
from tools.web.summarizer import SUMMARIZE_OPERATION, URLSummarizer
from utils.logger import get_logger

from .answerer import AnswerWriter
from .evaluator import EvidenceEvaluator
from .events import EventSink, PlanReadyEvent, SourcesFoundEvent, TokenUsageEvent, publish
from .query_planner import QueryPlanner
from .research_context import ResearchContext
from .research_types import (
    DecisionKind,
    InvalidDecisionError,
    ResearchOutcome,
    ResearchSettings,
    ResearchState,
)

logger = get_logger(__name__)

PLAN_SUMMARY_CHARS = 100


class ResearchController:
    """
    Drives one research request from question to cited answer.

    Example usage:
        controller = ResearchController(planner, evaluator, answerer, search, extractor, summarizer)
        outcome = controller.run_sync("What is the capital of France?")
        print(outcome.answer)
    """

    def __init__(
        self,
        planner: QueryPlanner,
        evaluator: EvidenceEvaluator,
        answerer: AnswerWriter,
        search: BaseSearchClient,
        extractor: BaseContentExtractor,
        summarizer: URLSummarizer,
        settings: ResearchSettings | None = None,
    ):
        self.planner = planner
        self.evaluator = evaluator
        self.answerer = answerer
        self.search = search
        self.extractor = extractor
        self.summarizer = summarizer
        self.settings = settings or ResearchSettings()

    # ------------------------------------------------------------------
    # Gathering
    # ------------------------------------------------------------------

    async def _safe_search(self, query: str) -> list[SearchResult]:
        try:
            return await self.search.search(query, max_results=self.settings.results_per_query)
        except Exception as e:
            logger.warning(
                f"Search failed for query: {query}",
                extra={"extra_fields": {"query": query, "error": str(e), "error_type": type(e).__name__}},
            )
            return []

    async def _safe_extract(self, url: str) -> ExtractionResult:
        try:
            return await self.extractor.extract(url)
        except Exception as e:
            logger.warning(
                f"Extraction failed for {url}",
                extra={"extra_fields": {"url": url, "error": str(e), "error_type": type(e).__name__}},
            )
            return ExtractionResult(url=url, success=False, error=str(e) or type(e).__name__)

    async def _build_evidence(
        self, query: str, result: SearchResult, prior_turns: Sequence[ConversationTurn]
    ) -> tuple[EvidenceItem, TokenUsage | None]:
        """Extract and summarize one source. Returns (item, token usage or None)."""
        extraction = await self._safe_extract(result.url)
        extracted_text = extraction.as_text()
        summary = extracted_text
        usage: TokenUsage | None = None

        if extraction.success:
            try:
                summarized = await self.summarizer.summarize(
                    query, result, extracted_text, prior_turns
                )
                summary = summarized.text or extracted_text
                usage = summarized.usage
            except Exception as e:
                logger.warning(
                    f"Summarization failed for {result.url}; using extracted text",
                    extra={
                        "extra_fields": {
                            "url": result.url,
                            "error": str(e),
                            "error_type": type(e).__name__,
                        }
                    },
                )

        item = EvidenceItem(
            url=result.url,
            title=result.title,
            snippet=result.snippet,
            date=result.date,
            extracted_text=extracted_text,
            summary=summary,
        )
        return item, usage

    async def _gather(
        self,
        context: ResearchContext,
        queries: Sequence[str],
        event_sink: EventSink | None,
    ) -> list[SearchRecord]:
        # 1. Fan out every planned search
        search_results = await asyncio.gather(*(self._safe_search(q) for q in queries))
        batches = list(zip(queries, search_results))

        # 2. Deduplicate across all queries of this iteration, then cap
        survivors = deduplicate_results(batches, self.settings.max_sources_per_iteration)
        logger.info(
            f"Kept {len(survivors)} unique sources from {sum(len(r) for r in search_results)} results",
            extra={"extra_fields": {"step": context.step, "query_count": len(queries)}},
        )

        publish(
            event_sink,
            SourcesFoundEvent(
                count=len(survivors),
                label=" | ".join(queries),
                sources=tuple(
                    SourceDoc(id=i, title=r.title, url=r.url, snippet=r.snippet)
                    for i, (_, r) in enumerate(survivors, start=1)
                ),
            ),
        )

        # 3. Extract + summarize the survivors concurrently
        built = await asyncio.gather(
            *(self._build_evidence(q, r, context.prior_turns) for q, r in survivors)
        )

        # Usage is folded in here, after fan-in, so only this task writes the context
        by_query: dict[str, list[EvidenceItem]] = {q: [] for q in queries}
        for (query, _), (item, usage) in zip(survivors, built):
            by_query[query].append(item)
            context.report_usage(SUMMARIZE_OPERATION, usage)

        return [SearchRecord(query=q, results=by_query[q]) for q in queries]

    # ------------------------------------------------------------------
    # Answering and degraded outcomes
    # ------------------------------------------------------------------

    @staticmethod
    def _describe_failure(exc: Exception) -> str:
        if isinstance(exc, RateLimitExceededError):
            return "The research service is busy right now (rate limit reached). Please try again shortly."
        if isinstance(exc, InferenceError):
            return f"The language model service failed ({exc.code})."
        if isinstance(exc, InvalidDecisionError):
            return "The research planner returned a response I could not act on."
        return "An unexpected error occurred."

    @staticmethod
    def _source_footer(sources: Iterable[SourceDoc]) -> str:
        lines = [f"- [{s.title}]({s.url})" for s in sources]
        if not lines:
            return ""
        return "\n\nSources gathered before the problem occurred:\n" + "\n".join(lines)

    def _outcome(
        self,
        context: ResearchContext,
        answer: str,
        state: ResearchState,
        error: str | None = None,
    ) -> ResearchOutcome:
        return ResearchOutcome(
            answer=answer,
            total_tokens=context.total_tokens,
            steps=context.step,
            state=state,
            sources=context.collect_sources(),
            usage=list(context.usage_log),
            error=error,
        )

    def _failed(
        self,
        context: ResearchContext,
        exc: Exception,
        request_id: str,
        state: ResearchState = ResearchState.ANSWERING,
    ) -> ResearchOutcome:
        logger.error(
            f"Research failed while {state.value}: {type(exc).__name__}",
            exc_info=True,
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "step": context.step,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                }
            },
        )
        answer = (
            f'Sorry, I ran into a problem while researching your question: "{context.question}". '
            f"{self._describe_failure(exc)}"
            f"{self._source_footer(context.collect_sources())}"
        )
        return self._outcome(context, answer, ResearchState.FAILED, error=type(exc).__name__)

    async def _answer(
        self,
        context: ResearchContext,
        *,
        is_final: bool,
        event_sink: EventSink | None,
        request_id: str,
    ) -> ResearchOutcome:
        if is_final and context.evidence_count == 0:
            logger.warning(
                "Step ceiling reached without evidence",
                extra={"extra_fields": {"request_id": request_id, "steps": context.step}},
            )
            answer = (
                f'The information needed to answer "{context.question}" could not be fully '
                f"gathered: after {context.step} research steps no usable sources were found. "
                "Please try rephrasing the question or ask again later."
            )
            return self._outcome(context, answer, ResearchState.ANSWERED, error="no_evidence")

        try:
            answer = await self.answerer.answer(context, is_final=is_final)
        except Exception as e:
            return self._failed(context, e, request_id)

        publish(event_sink, TokenUsageEvent(total_tokens=context.total_tokens))
        return self._outcome(context, answer, ResearchState.ANSWERED)

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    async def run(
        self,
        question: str,
        prior_turns: Iterable[ConversationTurn | dict] | None = None,
        event_sink: EventSink | None = None,
    ) -> ResearchOutcome:
        """
        Research question and return a cited answer.

        Args:
            question: The user's question
            prior_turns: Earlier conversation turns, oldest first
            event_sink: Optional callable receiving progress events

        Returns:
            ResearchOutcome; never raises except on cancellation
        """
        request_id = str(uuid.uuid4())
        context = ResearchContext(question, prior_turns)
        started = time.perf_counter()
        state = ResearchState.PLANNING

        logger.info(
            "Research started",
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "question": question[:200],
                    "prior_turns": len(context.prior_turns),
                    "max_steps": self.settings.max_steps,
                }
            },
        )

        try:
            while not context.should_stop(self.settings.max_steps):
                state = ResearchState.PLANNING
                plan = await self.planner.plan(context)
                publish(
                    event_sink,
                    PlanReadyEvent(
                        query_count=len(plan.queries),
                        plan_summary=plan.rationale[:PLAN_SUMMARY_CHARS],
                        queries=plan.queries,
                        step=context.step + 1,
                    ),
                )

                state = ResearchState.GATHERING
                records = await self._gather(context, plan.queries, event_sink)
                context.report_searches(records)

                state = ResearchState.EVALUATING
                decision = await self.evaluator.evaluate(context)
                context.increment_step()
                publish(event_sink, TokenUsageEvent(total_tokens=context.total_tokens))

                logger.info(
                    f"Step {context.step} decision: {decision.kind.value}",
                    extra={
                        "extra_fields": {
                            "request_id": request_id,
                            "step": context.step,
                            "evidence_count": context.evidence_count,
                            "total_tokens": context.total_tokens,
                        }
                    },
                )

                if decision.kind == DecisionKind.ANSWER:
                    state = ResearchState.ANSWERING
                    return await self._answer(
                        context, is_final=False, event_sink=event_sink, request_id=request_id
                    )

                context.set_feedback(decision.feedback)

            state = ResearchState.ANSWERING
            logger.info(
                "Step ceiling reached; answering with available evidence",
                extra={"extra_fields": {"request_id": request_id, "steps": context.step}},
            )
            return await self._answer(
                context, is_final=True, event_sink=event_sink, request_id=request_id
            )

        except Exception as e:
            return self._failed(context, e, request_id, state)

        finally:
            logger.info(
                "Research finished",
                extra={
                    "extra_fields": {
                        "request_id": request_id,
                        "steps": context.step,
                        "total_tokens": context.total_tokens,
                        "elapsed_ms": int((time.perf_counter() - started) * 1000),
                    }
                },
            )

    def run_sync(
        self,
        question: str,
        prior_turns: Iterable[ConversationTurn | dict] | None = None,
        event_sink: EventSink | None = None,
    ) -> ResearchOutcome:
        """
        Synchronous wrapper for run.

        When an event loop is already running, the research runs in a separate
        thread with its own loop.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.run(question, prior_turns, event_sink))

        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(asyncio.run, self.run(question, prior_turns, event_sink))
            return future.result()
