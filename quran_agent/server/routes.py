"""HTTP endpoints for the agent."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from quran_agent.bootstrap import AgentStack
from quran_agent.errors import CompletionError
from quran_agent.llm.types import Message
from quran_agent.server.streaming import SSE_HEADERS, stream_agent_run

logger = logging.getLogger(__name__)

router = APIRouter()

MISSING_FIELDS = "Missing required fields: requestId, model, and prompt are required"


class HistoryMessage(BaseModel):
    role: str = Field(pattern="^(user|assistant)$")
    content: str


class GeneratePayload(BaseModel):
    """Body of ``POST /api/llm-requests/generate``.

    Required fields are optional here so that a missing one produces the
    same 400 body as an empty one.
    """

    requestId: int | None = None
    model: str | None = None
    prompt: str | None = None
    conversationHistory: list[HistoryMessage] | None = None


class CreateRequestPayload(BaseModel):
    prompt: str = Field(min_length=1)
    model: str = Field(min_length=1)
    chatId: int | None = None


def _stack(request: Request) -> AgentStack:
    return request.app.state.stack


def _fail(status: int, error: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": error}, status_code=status)


@router.post("/api/llm-requests", status_code=201)
async def create_request(payload: CreateRequestPayload, request: Request):
    req = await _stack(request).store.create(payload.prompt, payload.model, chat_id=payload.chatId)
    return {"success": True, "data": req.to_dict()}


@router.post("/api/llm-requests/generate")
async def generate(payload: GeneratePayload, request: Request):
    if not payload.requestId or not payload.model or not payload.prompt:
        logger.error("Generate called with missing fields")
        return _fail(400, MISSING_FIELDS)

    stack = _stack(request)
    if not await stack.store.exists(payload.requestId):
        logger.error("Request not found: %s", payload.requestId)
        return _fail(404, "Request not found")

    history = [Message(role=m.role, content=m.content) for m in payload.conversationHistory or []]
    frames = stream_agent_run(
        stack.orchestrator,
        request_id=payload.requestId,
        prompt=payload.prompt,
        model=payload.model,
        history=history,
        store=stack.store,
        is_disconnected=request.is_disconnected,
    )
    return StreamingResponse(frames, media_type="text/event-stream", headers=SSE_HEADERS)


@router.get("/api/agent/tools")
async def list_tools(request: Request):
    return {"tools": _stack(request).executor.list_tools()}


@router.get("/api/models")
async def list_models(request: Request, popular: bool = False):
    try:
        models = await _stack(request).client.list_models(popular=popular)
    except CompletionError as exc:
        logger.error("Error fetching models: %s", exc.message)
        return _fail(500, exc.message or "Failed to fetch models")
    return {"success": True, "data": models}
