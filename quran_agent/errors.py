"""Exception taxonomy shared by the tools, the completion client and the loop."""

from __future__ import annotations

from quran_agent.types import ErrorCode


class QuranAgentError(Exception):
    code: str = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ToolExecutionError(QuranAgentError):
    """A single tool call could not produce a result."""


class UnknownTool(ToolExecutionError):
    code = ErrorCode.UNKNOWN_TOOL

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.tool_name = name


class InvalidArguments(ToolExecutionError):
    code = ErrorCode.INVALID_ARGUMENTS


class ToolBackendError(ToolExecutionError):
    code = ErrorCode.BACKEND_ERROR

    def __init__(self, message: str, cause: BaseException | None = None, code: str | None = None):
        super().__init__(message)
        self.cause = cause
        if code:
            self.code = code


class CompletionError(QuranAgentError):
    """The chat-completion provider failed or returned an unusable turn."""

    code = ErrorCode.COMPLETION_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EmbeddingError(QuranAgentError):
    code = ErrorCode.EMBEDDING_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RunCancelled(QuranAgentError):
    code = ErrorCode.CANCELLED

    def __init__(self, message: str = "cancelled"):
        super().__init__(message)
