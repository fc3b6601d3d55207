"""
OpenRouter chat-completion provider.

Speaks the OpenAI ``/chat/completions`` wire protocol, so it also works with
any compatible endpoint (OpenAI itself, vLLM, LM Studio, ...).

Dependencies: ``httpx`` (async HTTP client).  No ``openai`` SDK needed.
"""

from __future__ import annotations

import json
import logging
from uuid import uuid4

import httpx

from quran_agent.errors import CompletionError
from quran_agent.llm.providers.base import Provider
from quran_agent.llm.types import Completion, Message, ToolCall
from quran_agent.types import Usage

logger = logging.getLogger(__name__)


class OpenRouterProvider(Provider):
    """
    Non-streaming provider for OpenRouter and OpenAI-compatible endpoints.

    Parameters
    ----------
    url:
        Base URL of the API, e.g. ``"https://openrouter.ai/api/v1"``.
    api_key:
        Bearer token.  Pass ``""`` for unauthenticated local endpoints.
    app_url, app_title:
        Sent as ``HTTP-Referer`` / ``X-Title`` for OpenRouter attribution.
    timeout:
        HTTP request timeout in seconds.
    max_retries:
        Automatic retries on transient HTTP errors (5xx, 429).  The agent
        loop never retries, so this defaults to 0.
    transport:
        Optional ``httpx`` transport, used by tests to stub the network.
    """

    def __init__(
        self,
        url: str = "https://openrouter.ai/api/v1",
        api_key: str = "",
        app_url: str = "http://localhost:3000",
        app_title: str = "Quran Arabic Tech",
        timeout: float = 120.0,
        max_retries: int = 0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._api_key = api_key
        self._app_url = app_url
        self._app_title = app_title
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport

    @property
    def name(self) -> str:
        return "openrouter"

    async def complete(
        self,
        messages: list[Message],
        *,
        model: str,
        tools: list[dict] | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> Completion:
        body = self._build_body(messages, model, tools, temperature, max_tokens)
        data = await self._send("POST", "/chat/completions", body)
        return self._parse_response(data)

    async def list_models(self) -> list[dict]:
        data = await self._send("GET", "/models")
        models = data.get("data") if isinstance(data, dict) else None
        if models is None:
            return []
        if not isinstance(models, list):
            raise CompletionError("OpenRouter API error: model list is not an array")
        logger.debug("Fetched %d models", len(models))
        return models

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "HTTP-Referer": self._app_url,
            "X-Title": self._app_title,
        }
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_body(
        self,
        messages: list[Message],
        model: str,
        tools: list[dict] | None,
        temperature: float,
        max_tokens: int | None,
    ) -> dict:
        body: dict = {
            "model": model,
            "messages": [m.to_wire() for m in messages],
            "temperature": temperature,
        }
        if max_tokens:
            body["max_tokens"] = max_tokens
        if tools:
            body["tools"] = tools
            body["tool_choice"] = "auto"
        logger.info(
            "REQUEST: model=%s tools=%d messages=%d max_tokens=%s",
            model,
            len(tools) if tools else 0,
            len(body["messages"]),
            max_tokens,
        )
        return body

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _send(self, method: str, path: str, body: dict | None = None) -> dict:
        url = f"{self._url}{path}"
        headers = self._build_headers()

        last_error: CompletionError | None = None
        for attempt in range(1 + self._max_retries):
            try:
                async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                    resp = await client.request(method, url, json=body, headers=headers)
            except httpx.TransportError as exc:
                last_error = CompletionError(f"OpenRouter request failed: {exc}")
                logger.warning("%s %s transport error (attempt %d): %s", method, path, attempt + 1, exc)
                continue

            if resp.status_code == 429 or resp.status_code >= 500:
                last_error = CompletionError(
                    _error_message(resp), status_code=resp.status_code
                )
                logger.warning("%s %s HTTP %d (attempt %d)", method, path, resp.status_code, attempt + 1)
                continue

            if resp.status_code >= 400:
                raise CompletionError(_error_message(resp), status_code=resp.status_code)

            try:
                data = resp.json()
            except ValueError as exc:
                raise CompletionError(f"OpenRouter returned invalid JSON: {exc}") from exc
            if isinstance(data, dict) and data.get("error"):
                raise CompletionError(_error_message(resp), status_code=resp.status_code)
            return data

        assert last_error is not None
        raise last_error

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    def _parse_response(self, data: dict) -> Completion:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise CompletionError("OpenRouter API error: response contained no choices")

        choice = choices[0]
        message = choice.get("message") or {}
        tool_calls: list[ToolCall] = []
        for raw_tc in message.get("tool_calls") or []:
            func = raw_tc.get("function") or {}
            name = func.get("name")
            if not name:
                raise CompletionError("OpenRouter API error: tool call without a function name")
            args = func.get("arguments")
            if args is None:
                args = "{}"
            elif not isinstance(args, str):
                args = json.dumps(args, ensure_ascii=False)
            tool_calls.append(
                ToolCall(id=raw_tc.get("id") or _fallback_call_id(), name=name, arguments=args)
            )

        return Completion(
            content=message.get("content"),
            tool_calls=tool_calls,
            finish_reason=choice.get("finish_reason"),
            usage=Usage.from_dict(data.get("usage")),
            model=data.get("model"),
        )


def _fallback_call_id() -> str:
    return f"call_{uuid4().hex[:12]}"


def _error_message(resp: httpx.Response) -> str:
    detail = ""
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            detail = err.get("message") or ""
        elif isinstance(err, str):
            detail = err
    if not detail:
        detail = resp.reason_phrase or f"HTTP {resp.status_code}"
    return f"OpenRouter API error: {detail}"
