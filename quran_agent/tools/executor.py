"""
Tool executor: the single entry point the agent loop uses to run tools.

``execute`` takes a tool name and its arguments (a dict, or the raw JSON
string a provider sent), validates them against the tool's schema, builds
the typed parameter object and runs the tool under a timeout.  Every
failure is raised as a ``ToolExecutionError`` subclass so callers can
turn it into a model-visible error result.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from quran_agent.backends.base import BackendError
from quran_agent.errors import (
    EmbeddingError,
    InvalidArguments,
    ToolBackendError,
    ToolExecutionError,
)
from quran_agent.tools.base import Tool
from quran_agent.tools.registry import ToolRegistry
from quran_agent.tools.validation import ToolValidator
from quran_agent.types import ErrorCode

logger = logging.getLogger(__name__)


class ToolExecutor:
    def __init__(self, registry: ToolRegistry, timeout: float = 30.0) -> None:
        self.registry = registry
        self.timeout = timeout

    def list_tools(self) -> list[dict]:
        return [t.describe() for t in self.registry.list()]

    def to_openai_schema(self) -> list[dict]:
        return self.registry.to_openai_schema()

    def get(self, name: str) -> Tool | None:
        return self.registry.get(name)

    async def execute(self, name: str, arguments: dict | str | None) -> Any:
        tool = self.registry.require(name)
        args = self._decode(arguments)

        ok, err = ToolValidator.validate(tool, args)
        if not ok:
            raise InvalidArguments(f"Invalid arguments for {name}: {err}")

        try:
            params = tool.parse(args)
        except (TypeError, ValueError) as exc:
            raise InvalidArguments(f"Invalid arguments for {name}: {exc}") from exc

        logger.debug("Executing %s with %s", name, params)
        try:
            return await asyncio.wait_for(tool.execute(params), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise ToolBackendError(
                f"Tool {name} timed out after {self.timeout}s", cause=exc, code=ErrorCode.TIMEOUT
            ) from exc
        except ToolExecutionError:
            raise
        except (BackendError, EmbeddingError) as exc:
            raise ToolBackendError(f"{name} failed: {exc}", cause=exc) from exc
        except Exception as exc:
            logger.exception("Tool %s raised", name)
            raise ToolBackendError(f"{name} failed: {type(exc).__name__}: {exc}", cause=exc) from exc

    @staticmethod
    def _decode(arguments: dict | str | None) -> dict:
        if arguments is None:
            return {}
        if isinstance(arguments, str):
            raw = arguments.strip()
            if not raw:
                return {}
            try:
                arguments = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise InvalidArguments(f"Arguments are not valid JSON: {exc.msg}") from exc
        if not isinstance(arguments, dict):
            raise InvalidArguments("Arguments must be a JSON object")
        # Models often send explicit nulls for optional fields they don't use.
        return {k: v for k, v in arguments.items() if v is not None}
