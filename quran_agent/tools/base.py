from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import fields
from typing import Any

from quran_agent.prompts.labels import DEFAULT_TOOL_LABEL


def normalize_schema(schema: dict) -> dict:
    s = dict(schema or {})
    s.setdefault("type", "object")
    s.setdefault("additionalProperties", False)
    return s


class Tool(ABC):
    """
    A read-only retrieval operation the model can call.

    ``params_type`` is a dataclass describing the validated arguments;
    ``parse`` builds it (applying defaults and caps) and ``execute``
    receives only that object, never the raw JSON.
    """

    params_type: type

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def parameters(self) -> dict: ...

    @property
    def label(self) -> str:
        """Short user-facing progress text shown while the tool runs."""
        return DEFAULT_TOOL_LABEL

    def parse(self, arguments: dict) -> Any:
        known = {f.name for f in fields(self.params_type)}
        return self.params_type(**{k: v for k, v in arguments.items() if k in known})

    @abstractmethod
    async def execute(self, params: Any) -> Any:
        """Return a list of records, a single record, or ``None``."""
        ...

    def describe(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": normalize_schema(self.parameters),
        }

    def to_openai_schema(self) -> dict:
        return {"type": "function", "function": self.describe()}
