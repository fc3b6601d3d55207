"""
Agent loop -- the bounded state machine behind every answer.

Each iteration:
1. Dispatch: send the transcript and tool catalogue to the completion client
2. Inspect: a turn carrying tool calls wants tools, anything else is final
3. ExecuteTools: run every requested call, append one tool message per call
4. Repeat until a final answer arrives or the iteration budget runs out

When the budget runs out the loop still answers, using the best material
it has seen (last assistant text, else the last tool result, else a
generic notice).
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from quran_agent.errors import CompletionError, RunCancelled, ToolExecutionError
from quran_agent.llm.client import ChatCompletionClient
from quran_agent.llm.token_counter import TokenCounter
from quran_agent.llm.types import Message, ToolCall
from quran_agent.orchestrator.cancellation import CancellationToken
from quran_agent.orchestrator.events import (
    AgentEvent,
    ChunkEvent,
    DoneEvent,
    ErrorEvent,
    ToolCallEvent,
)
from quran_agent.prompts import labels
from quran_agent.tools.executor import ToolExecutor
from quran_agent.types import ErrorCode, ResultStatus, ToolResult, Usage

logger = logging.getLogger(__name__)

_WORDS = re.compile(r"\S+\s*|\s+")


def split_for_streaming(text: str) -> list[str]:
    """Word-sized pieces whose concatenation is exactly *text*."""
    return _WORDS.findall(text)


def to_tool_content(data: Any, max_items: int) -> tuple[str, Any]:
    """
    Shape a tool's result for the transcript.

    Returns the JSON text for the tool message and the payload it encodes:
    empty lists and ``None`` become explicit sentinels, long lists are cut
    to *max_items*.
    """
    if isinstance(data, list) and not data:
        payload: Any = {"status": ResultStatus.NO_RESULTS, "message": labels.NO_RESULTS_MESSAGE}
    elif data is None:
        payload = {"status": ResultStatus.NOT_FOUND, "message": labels.NOT_FOUND_MESSAGE}
    elif isinstance(data, list) and len(data) > max_items:
        payload = data[:max_items]
    else:
        payload = data
    return json.dumps(payload, ensure_ascii=False), payload


def format_tool_fallback(tool_name: str | None, payload: Any) -> str:
    label = labels.tool_label(tool_name) if tool_name else labels.LAST_OPERATION_LABEL
    if isinstance(payload, str):
        return f"{label}:\n{payload}"
    return f"{label}:\n{json.dumps(payload, ensure_ascii=False, indent=2)}"


@dataclass
class _RunState:
    """Everything one run owns; never shared between runs."""

    transcript: list[Message]
    usage: Usage = field(default_factory=Usage)
    emitted: list[str] = field(default_factory=list)
    iterations: int = 0
    last_text: str | None = None
    last_tool_name: str | None = None
    last_tool_payload: Any = None

    def chunk(self, content: str) -> ChunkEvent:
        self.emitted.append(content)
        return ChunkEvent(content)

    @property
    def full_response(self) -> str:
        return "".join(self.emitted)


class Orchestrator:
    """
    Runs one conversation turn against the model and the Quran tools.

    Parameters
    ----------
    client : ChatCompletionClient
        Completion client (owns the provider and output-token caps).
    executor : ToolExecutor
        Executes tool calls by name.
    system_prompt : str
        Always the first transcript entry; never modified.
    max_iterations : int
        Dispatch budget per run.
    max_tool_results : int
        Items of a list result forwarded to the model; the event keeps all.
    parallel_tools : bool
        Run the calls of one turn concurrently (results keep request order).
    max_prompt_tokens : int
        Stop dispatching once the transcript exceeds this estimate (0 = off).
    token_counter : TokenCounter
        Used for the prompt-token budget and debug logging.
    """

    def __init__(
        self,
        client: ChatCompletionClient,
        executor: ToolExecutor,
        system_prompt: str,
        *,
        max_iterations: int = 5,
        max_tool_results: int = 10,
        parallel_tools: bool = False,
        max_prompt_tokens: int = 0,
        token_counter: TokenCounter | None = None,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.client = client
        self.executor = executor
        self.system_prompt = system_prompt
        self.max_iterations = max_iterations
        self.max_tool_results = max_tool_results
        self.parallel_tools = parallel_tools
        self.max_prompt_tokens = max_prompt_tokens
        self.token_counter = token_counter

    async def run(
        self,
        user_message: str,
        *,
        model: str | None = None,
        history: list[Message] | None = None,
        cancel: CancellationToken | None = None,
    ) -> AsyncIterator[AgentEvent]:
        """
        Answer *user_message*, yielding events as work progresses.

        Completion failures and cancellation end the run with an
        ``ErrorEvent``; tool failures are reported to the model and the
        loop carries on.
        """
        cancel = cancel or CancellationToken()
        state = _RunState(
            transcript=[
                Message(role="system", content=self.system_prompt),
                *(history or []),
                Message(role="user", content=user_message),
            ]
        )
        tools_schema = self.executor.to_openai_schema()
        logger.info(
            "Agent run started: model=%s history=%d", model or self.client.default_model,
            len(history or []),
        )

        try:
            while state.iterations < self.max_iterations:
                cancel.raise_if_cancelled()
                if self._over_prompt_budget(state, tools_schema):
                    break
                state.iterations += 1

                completion = await cancel.guard(
                    self.client.complete(state.transcript, model=model, tools=tools_schema)
                )
                state.usage.add(completion.usage)
                if completion.content and completion.content.strip():
                    state.last_text = completion.content
                logger.debug(
                    "Iteration %d/%d: finish_reason=%s tool_calls=%d",
                    state.iterations, self.max_iterations,
                    completion.finish_reason, len(completion.tool_calls),
                )

                if not completion.wants_tools:
                    answer = completion.content or ""
                    if not answer.strip():
                        logger.warning("Model returned an empty final answer")
                        break
                    for piece in split_for_streaming(answer):
                        yield state.chunk(piece)
                    logger.info(
                        "Agent run finished: iterations=%d total_tokens=%d",
                        state.iterations, state.usage.total_tokens,
                    )
                    yield DoneEvent(
                        usage=state.usage,
                        full_response=state.full_response,
                        answer=answer,
                        iterations=state.iterations,
                    )
                    return

                state.transcript.append(completion.to_message())
                async for event in self._execute_tools(state, completion.tool_calls, cancel):
                    yield event

            fallback = self._fallback(state)
            logger.warning("Agent run hit its budget after %d iterations", state.iterations)
            yield state.chunk(fallback)
            yield DoneEvent(
                usage=state.usage,
                full_response=state.full_response,
                answer=fallback,
                iterations=state.iterations,
                budget_exhausted=True,
            )
        except CompletionError as exc:
            logger.error("Completion failed: %s", exc.message)
            yield ErrorEvent(exc.message, code=exc.code)
        except RunCancelled as exc:
            logger.info("Agent run cancelled: %s", exc.message)
            yield ErrorEvent(exc.message, code=ErrorCode.CANCELLED)

    # ------------------------------------------------------------------
    # ExecuteTools
    # ------------------------------------------------------------------

    async def _execute_tools(
        self,
        state: _RunState,
        calls: list[ToolCall],
        cancel: CancellationToken,
    ) -> AsyncIterator[AgentEvent]:
        if self.parallel_tools and len(calls) > 1:
            for tc in calls:
                yield state.chunk(labels.tool_started(tc.name))
            results = await cancel.guard(
                asyncio.gather(*(self._run_call(tc) for tc in calls))
            )
            for tc, result in zip(calls, results):
                for event in self._record(state, tc, result):
                    yield event
            return

        for tc in calls:
            yield state.chunk(labels.tool_started(tc.name))
            result = await cancel.guard(self._run_call(tc))
            for event in self._record(state, tc, result):
                yield event

    async def _run_call(self, tc: ToolCall) -> ToolResult:
        try:
            data = await self.executor.execute(tc.name, tc.arguments)
        except ToolExecutionError as exc:
            logger.warning("Tool %s failed (%s): %s", tc.name, exc.code, exc.message)
            return ToolResult(
                tool_call_id=tc.id,
                name=tc.name,
                success=False,
                content=json.dumps({"error": exc.message, "code": exc.code}, ensure_ascii=False),
                error=exc.message,
                error_code=exc.code,
            )

        content, payload = to_tool_content(data, self.max_tool_results)
        return ToolResult(
            tool_call_id=tc.id,
            name=tc.name,
            success=True,
            content=content,
            data=data,
            metadata={"payload": payload},
        )

    def _record(self, state: _RunState, tc: ToolCall, result: ToolResult) -> list[AgentEvent]:
        state.transcript.append(
            Message(role="tool", content=result.content, tool_call_id=tc.id, name=tc.name)
        )

        events: list[AgentEvent] = [
            ToolCallEvent(
                id=tc.id,
                tool=tc.name,
                arguments=_event_arguments(tc),
                result=result.data,
                error=result.error,
                error_code=result.error_code,
            )
        ]
        if not result.success:
            events.append(state.chunk(labels.tool_failed()))
            return events

        state.last_tool_name = tc.name
        state.last_tool_payload = result.metadata["payload"]
        if result.count > 0:
            events.append(state.chunk(labels.tool_found(result.count)))
        else:
            events.append(state.chunk(labels.tool_empty()))
        return events

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def _over_prompt_budget(self, state: _RunState, tools_schema: list[dict]) -> bool:
        if not self.max_prompt_tokens or self.token_counter is None:
            return False
        estimate = self.token_counter.count_messages(state.transcript, tools_schema)
        if estimate > self.max_prompt_tokens:
            logger.warning(
                "Prompt estimate %d exceeds budget %d; finalizing", estimate, self.max_prompt_tokens
            )
            return True
        return False

    def _fallback(self, state: _RunState) -> str:
        parts = [labels.BUDGET_EXHAUSTED_NOTICE]
        if state.last_text and state.last_text.strip():
            parts.append(state.last_text.strip())
        elif state.last_tool_payload is not None:
            parts.append(format_tool_fallback(state.last_tool_name, state.last_tool_payload))
        else:
            parts.append(labels.NO_FURTHER_DATA_NOTICE)
        return "\n\n".join(parts)


def _event_arguments(tc: ToolCall) -> Any:
    try:
        return tc.parse_arguments()
    except ValueError:
        return tc.arguments
