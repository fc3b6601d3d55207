"""Core types for the LLM subsystem."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from quran_agent.types import Usage


@dataclass
class ToolCall:
    """A model-requested tool invocation.

    ``arguments`` is kept exactly as the provider sent it (a JSON-encoded
    object); it is parsed and validated at the executor boundary.
    """

    id: str
    name: str
    arguments: str = "{}"

    def parse_arguments(self) -> dict:
        """Decode ``arguments``; raises ``ValueError`` if it is not a JSON object."""
        raw = self.arguments.strip() if self.arguments else ""
        if not raw:
            return {}
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            raise ValueError("tool arguments must be a JSON object")
        return parsed

    def to_wire(self) -> dict:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass
class Message:
    """A single message in a conversation."""

    role: str  # "system", "user", "assistant", "tool"
    content: str | None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None

    def to_wire(self) -> dict:
        m: dict = {"role": self.role, "content": self.content}
        if self.tool_calls:
            m["tool_calls"] = [tc.to_wire() for tc in self.tool_calls]
        if self.tool_call_id:
            m["tool_call_id"] = self.tool_call_id
        if self.name:
            m["name"] = self.name
        return m

    @classmethod
    def from_dict(cls, d: dict) -> "Message":
        tool_calls = None
        if d.get("tool_calls"):
            tool_calls = []
            for raw in d["tool_calls"]:
                func = raw.get("function", {})
                args = func.get("arguments", "{}")
                if not isinstance(args, str):
                    args = json.dumps(args, ensure_ascii=False)
                tool_calls.append(ToolCall(id=raw.get("id", ""), name=func.get("name", ""), arguments=args))
        return cls(
            role=d["role"],
            content=d.get("content"),
            tool_calls=tool_calls,
            tool_call_id=d.get("tool_call_id"),
            name=d.get("name"),
        )


@dataclass
class Completion:
    """
    One assistant turn returned by the completion client.

    A turn that carries tool calls "wants tools" whether or not it also
    carries text.
    """

    content: str | None
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: str | None = None
    usage: Usage = field(default_factory=Usage)
    model: str | None = None

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)

    def to_message(self) -> Message:
        return Message(
            role="assistant",
            content=self.content,
            tool_calls=list(self.tool_calls) or None,
        )
