"""
Server-sent-event transport for agent runs.

Every frame is ``data: <JSON>\\n\\n`` with one of four payload types:

    {"type": "chunk", "content": ...}
    {"type": "tool_call", "data": {...}}
    {"type": "done", "requestId", "fullResponse", "usage", "toolCalls"}
    {"type": "error", "error": ...}

Frames are produced one per event, with no batching, and the stream
always ends with exactly one ``done`` or ``error`` frame.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable

from quran_agent.llm.types import Message
from quran_agent.orchestrator.cancellation import CancellationToken
from quran_agent.orchestrator.core import Orchestrator
from quran_agent.orchestrator.events import (
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    ToolCallEvent,
)
from quran_agent.session.store import RequestStore

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

GENERIC_FAILURE = "Failed to generate response"
DISCONNECTED = "client disconnected"
DISCONNECT_POLL_INTERVAL = 0.25


def sse_frame(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


async def stream_agent_run(
    orchestrator: Orchestrator,
    *,
    request_id: Any,
    prompt: str,
    model: str | None = None,
    history: list[Message] | None = None,
    store: RequestStore | None = None,
    cancel: CancellationToken | None = None,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    poll_interval: float = DISCONNECT_POLL_INTERVAL,
) -> AsyncIterator[str]:
    """
    Run the agent and yield SSE frames.

    The final answer is persisted through *store* before the ``done``
    frame; a persistence failure is logged and does not affect the
    stream.  *is_disconnected* is polled every *poll_interval* seconds,
    also while a provider or tool call is in flight; once it reports the
    client gone the run is cancelled and nothing more is written.
    """
    cancel = cancel or CancellationToken()
    tool_calls: list[dict] = []
    run = orchestrator.run(prompt, model=model, history=history, cancel=cancel)
    watcher = (
        asyncio.create_task(_watch_disconnect(is_disconnected, cancel, request_id, poll_interval))
        if is_disconnected is not None
        else None
    )

    try:
        async for event in run:
            if cancel.reason == DISCONNECTED:
                return
            if is_disconnected is not None and await is_disconnected():
                logger.info("Client disconnected from request %s; cancelling run", request_id)
                cancel.cancel(DISCONNECTED)
                return

            if isinstance(event, ChunkEvent):
                yield sse_frame(event.to_dict())
            elif isinstance(event, ToolCallEvent):
                tool_calls.append(event.data)
                yield sse_frame(event.to_dict())
            elif isinstance(event, DoneEvent):
                await _persist(store, request_id, event.full_response)
                yield sse_frame(
                    {
                        "type": "done",
                        "requestId": request_id,
                        "fullResponse": event.full_response,
                        "usage": event.usage.to_dict(),
                        "toolCalls": tool_calls,
                    }
                )
                return
            elif isinstance(event, ErrorEvent):
                yield sse_frame(event.to_dict())
                return
    except Exception as exc:
        logger.exception("Agent run for request %s crashed", request_id)
        yield sse_frame({"type": "error", "error": str(exc) or GENERIC_FAILURE})
    finally:
        # Covers the consumer closing the stream early as well.
        cancel.cancel("stream closed")
        if watcher is not None:
            watcher.cancel()
            try:
                await watcher
            except asyncio.CancelledError:
                pass
        await run.aclose()


async def _watch_disconnect(
    is_disconnected: Callable[[], Awaitable[bool]],
    cancel: CancellationToken,
    request_id: Any,
    poll_interval: float,
) -> None:
    """Cancel the run as soon as the client goes away, even mid-call."""
    while not cancel.cancelled:
        if await is_disconnected():
            logger.info("Client disconnected from request %s; cancelling run", request_id)
            cancel.cancel(DISCONNECTED)
            return
        await asyncio.sleep(poll_interval)


async def _persist(store: RequestStore | None, request_id: Any, response: str) -> None:
    if store is None:
        return
    try:
        saved = await store.save_response(request_id, response)
    except Exception:
        logger.exception("Failed to persist response for request %s", request_id)
        return
    if not saved:
        logger.warning("Request %s vanished before its response was saved", request_id)
