"""
Mock completion providers for testing.

Provides canned assistant turns so tests can exercise the client and the
agent loop without hitting real APIs.
"""

from __future__ import annotations

import asyncio
import json
import itertools

from quran_agent.errors import CompletionError
from quran_agent.llm.providers.base import Provider
from quran_agent.llm.types import Completion, Message, ToolCall
from quran_agent.types import Usage

_ids = itertools.count(1)


def tool_call(name: str, arguments: dict | str | None = None, call_id: str | None = None) -> ToolCall:
    """Build a ``ToolCall``; dict arguments are JSON-encoded like a provider would."""
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments, ensure_ascii=False)
    return ToolCall(id=call_id or f"call_{next(_ids)}", name=name, arguments=arguments)


def make_completion(
    content: str | None = None,
    tool_calls: list[ToolCall] | None = None,
    prompt_tokens: int = 10,
    completion_tokens: int = 5,
) -> Completion:
    return Completion(
        content=content,
        tool_calls=tool_calls or [],
        finish_reason="tool_calls" if tool_calls else "stop",
        usage=Usage(prompt_tokens, completion_tokens, prompt_tokens + completion_tokens),
    )


class ScriptedProvider(Provider):
    """
    A provider that returns pre-configured turns in order.

    Usage::

        provider = ScriptedProvider([
            make_completion(tool_calls=[tool_call("get_surah_info", {"surah_number": 1})]),
            make_completion("الفاتحة سبع آيات"),
        ])

    Once the script runs out the last turn is repeated.  Every call records
    a snapshot of the messages it received.
    """

    def __init__(
        self,
        turns: list[Completion],
        model_name: str = "mock-model",
        models: list[dict] | None = None,
    ) -> None:
        self._turns = list(turns)
        self._model_name = model_name
        self._models = models or []
        self.call_count = 0
        self.calls: list[dict] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self._model_name

    @property
    def last_messages(self) -> list[Message] | None:
        return self.calls[-1]["messages"] if self.calls else None

    async def complete(
        self,
        messages: list[Message],
        *,
        model: str,
        tools: list[dict] | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> Completion:
        self.calls.append(
            {
                "messages": list(messages),
                "model": model,
                "tools": tools,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        idx = min(self.call_count, len(self._turns) - 1)
        self.call_count += 1
        return self._turns[idx]

    async def list_models(self) -> list[dict]:
        return list(self._models)

    async def aclose(self) -> None:
        self.closed = True


class FailingProvider(Provider):
    """Raises on every call; ``exc`` defaults to a ``CompletionError``."""

    def __init__(self, exc: Exception | None = None) -> None:
        self.exc = exc or CompletionError("OpenRouter API error: Service Unavailable", status_code=503)
        self.call_count = 0

    @property
    def name(self) -> str:
        return "failing"

    async def complete(self, messages, *, model, tools=None, temperature=0.7, max_tokens=None):
        self.call_count += 1
        raise self.exc

    async def list_models(self) -> list[dict]:
        raise self.exc


class BlockingProvider(Provider):
    """Never answers until cancelled; ``started`` fires when a call begins."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.cancelled = False

    @property
    def name(self) -> str:
        return "blocking"

    async def complete(self, messages, *, model, tools=None, temperature=0.7, max_tokens=None):
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise


MODEL_CATALOGUE = [
    {"id": "openai/gpt-4o", "name": "OpenAI: GPT-4o", "context_length": 128000},
    {"id": "openai/gpt-4o-mini", "name": "OpenAI: GPT-4o-mini", "context_length": 128000},
    {"id": "qwen/qwen-2.5-72b-instruct", "name": "Qwen2.5 72B Instruct", "context_length": 32768},
]
