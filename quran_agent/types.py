from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def add(self, other: "Usage | None") -> None:
        if other is None:
            return
        self.prompt_tokens += other.prompt_tokens
        self.completion_tokens += other.completion_tokens
        self.total_tokens += other.total_tokens

    @classmethod
    def from_dict(cls, d: dict | None) -> "Usage":
        d = d or {}
        prompt = int(d.get("prompt_tokens") or 0)
        completion = int(d.get("completion_tokens") or 0)
        total = int(d.get("total_tokens") or (prompt + completion))
        return cls(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)

    def to_dict(self) -> dict:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class ToolResult:
    """Outcome of one tool call as seen by the control loop.

    ``data`` is the full normalized payload reported to event consumers;
    ``content`` is the JSON text fed back to the model (possibly truncated
    or replaced by a sentinel object).
    """

    tool_call_id: str
    name: str
    success: bool
    content: str
    data: Any = None
    error: str | None = None
    error_code: str | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def count(self) -> int:
        if isinstance(self.data, list):
            return len(self.data)
        return 0 if self.data is None else 1

    def payload(self) -> Any:
        return json.loads(self.content)


class ErrorCode:
    INVALID_ARGUMENTS = "invalid_arguments"
    UNKNOWN_TOOL = "unknown_tool"
    BACKEND_ERROR = "backend_error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    COMPLETION_ERROR = "completion_error"
    EMBEDDING_ERROR = "embedding_error"


class ResultStatus:
    NO_RESULTS = "no_results"
    NOT_FOUND = "not_found"
