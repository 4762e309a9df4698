"""Research endpoints: one-shot JSON and server-sent event stream."""

import asyncio
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from config.config import Config
from orchestrator.core import ResearchController
from orchestrator.events import CollectingSink, EventChannel
from server.dependencies import get_config, get_controller, get_rate_limiter
from server.schemas.requests import ResearchRequest
from server.schemas.responses import ResearchResponseDTO
from server.utils import format_sse, validate_and_trim_context
from utils.logger import get_logger
from utils.rate_limiter import RateLimiter

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["Research"])

DISCONNECT_POLL_S = 0.5


async def enforce_global_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    config: Config = Depends(get_config),
) -> None:
    """Admit the request under the deployment-wide limit, waiting for a reset if needed."""
    limit = config.GLOBAL_RATE_LIMIT
    result = await limiter.check(limit)
    if not result.allowed:
        logger.info(
            "Global rate limit reached; waiting for window reset",
            extra={
                "extra_fields": {
                    "path": request.url.path,
                    "total_hits": result.total_hits,
                    "reset_time": result.reset_time,
                }
            },
        )
        if not await result.retry():
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded. Please try again later.",
            )
    await limiter.record(limit)


@router.post(
    "/research",
    response_model=ResearchResponseDTO,
    dependencies=[Depends(enforce_global_limit)],
)
async def research(
    body: ResearchRequest,
    controller: ResearchController = Depends(get_controller),
):
    """Research a question and return the cited answer with its sources."""
    request_id = str(uuid.uuid4())
    body = validate_and_trim_context(body)
    sink = CollectingSink()

    logger.info(
        "Research request received",
        extra={"extra_fields": {"request_id": request_id, "question": body.question[:200]}},
    )

    outcome = await controller.run(body.question, body.prior_turns(), sink)
    return ResearchResponseDTO.from_outcome(request_id, outcome, sink.events)


async def _watch_disconnect(request: Request, task: asyncio.Task) -> None:
    while not task.done():
        if await request.is_disconnected():
            logger.info("Client disconnected; cancelling research")
            task.cancel()
            return
        await asyncio.sleep(DISCONNECT_POLL_S)


@router.post("/research/stream", dependencies=[Depends(enforce_global_limit)])
async def research_stream(
    body: ResearchRequest,
    request: Request,
    controller: ResearchController = Depends(get_controller),
):
    """
    Stream progress events as SSE, then a final "answer" event.

    The research task is cancelled when the client goes away.
    """
    request_id = str(uuid.uuid4())
    body = validate_and_trim_context(body)

    async def event_stream():
        channel = EventChannel()
        task = asyncio.create_task(controller.run(body.question, body.prior_turns(), channel))
        task.add_done_callback(lambda _: channel.close())
        watcher = asyncio.create_task(_watch_disconnect(request, task))
        try:
            async for event in channel:
                yield format_sse(event.type, event.to_dict())

            if task.cancelled():
                return
            outcome = await task
            payload = ResearchResponseDTO.from_outcome(request_id, outcome).model_dump()
            yield format_sse("answer", payload)
        except asyncio.CancelledError:
            logger.info(
                "Research stream cancelled",
                extra={"extra_fields": {"request_id": request_id}},
            )
            raise
        finally:
            watcher.cancel()
            if not task.done():
                task.cancel()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Request-ID": request_id},
    )
