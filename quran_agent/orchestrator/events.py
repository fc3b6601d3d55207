"""
Events emitted by one agent run.

A run yields any number of ``ChunkEvent`` / ``ToolCallEvent`` followed by
exactly one terminal event, ``DoneEvent`` or ``ErrorEvent``.  ``to_dict``
gives the wire payload the streaming transport writes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Union

from quran_agent.types import Usage

EVENT_CHUNK = "chunk"
EVENT_TOOL_CALL = "tool_call"
EVENT_DONE = "done"
EVENT_ERROR = "error"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ChunkEvent:
    type: ClassVar[str] = EVENT_CHUNK
    content: str

    def to_dict(self) -> dict:
        return {"type": self.type, "content": self.content}


@dataclass(frozen=True)
class ToolCallEvent:
    """Report of one executed tool call.

    ``result`` holds the full normalized result even when the transcript
    only received a truncated copy.
    """

    type: ClassVar[str] = EVENT_TOOL_CALL
    id: str
    tool: str
    arguments: Any
    result: Any = None
    error: str | None = None
    error_code: str | None = None
    timestamp: str = field(default_factory=_now)

    @property
    def data(self) -> dict:
        d: dict = {
            "id": self.id,
            "tool": self.tool,
            "arguments": self.arguments,
            "result": self.result,
            "timestamp": self.timestamp,
        }
        if self.error is not None:
            d["error"] = self.error
            d["errorCode"] = self.error_code
        return d

    def to_dict(self) -> dict:
        return {"type": self.type, "data": self.data}


@dataclass(frozen=True)
class DoneEvent:
    type: ClassVar[str] = EVENT_DONE
    usage: Usage
    full_response: str
    answer: str = ""
    iterations: int = 0
    budget_exhausted: bool = False

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "usage": self.usage.to_dict(),
            "fullResponse": self.full_response,
        }


@dataclass(frozen=True)
class ErrorEvent:
    type: ClassVar[str] = EVENT_ERROR
    error: str
    code: str | None = None

    def to_dict(self) -> dict:
        return {"type": self.type, "error": self.error}


AgentEvent = Union[ChunkEvent, ToolCallEvent, DoneEvent, ErrorEvent]
TERMINAL_EVENTS = (DoneEvent, ErrorEvent)
