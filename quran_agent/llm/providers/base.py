"""Abstract base class for chat-completion providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from quran_agent.llm.types import Completion, Message


class Provider(ABC):
    """
    A provider encapsulates access to a single chat-completion endpoint.

    Implementations return exactly one assistant turn per call and raise
    ``CompletionError`` for every transport, HTTP or protocol failure.
    """

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        *,
        model: str,
        tools: list[dict] | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> Completion:
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (e.g. ``"openrouter"``)."""
        ...

    async def list_models(self) -> list[dict]:
        """Model descriptors served by the endpoint; empty if it has no catalogue."""
        return []

    async def aclose(self) -> None:
        return None
