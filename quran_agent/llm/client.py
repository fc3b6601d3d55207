"""
Chat-completion client used by the agent loop.

Wraps a ``Provider`` with the per-model output-token cap and the default
sampling settings, and guarantees that every failure surfaces as a single
``CompletionError``.  It never retries on its own.
"""

from __future__ import annotations

import logging

from quran_agent.errors import CompletionError
from quran_agent.llm.limits import OutputTokenLimits
from quran_agent.llm.providers.base import Provider
from quran_agent.llm.types import Completion, Message

logger = logging.getLogger(__name__)

# Offered first in model pickers.
POPULAR_MODELS = (
    "openai/gpt-4o",
    "openai/gpt-4o-mini",
    "anthropic/claude-3.5-sonnet",
    "anthropic/claude-3-haiku",
    "google/gemini-pro-1.5",
    "meta-llama/llama-3.1-8b-instruct",
    "mistralai/mistral-7b-instruct",
)


class ChatCompletionClient:
    def __init__(
        self,
        provider: Provider,
        *,
        default_model: str,
        limits: OutputTokenLimits | None = None,
        temperature: float = 0.7,
    ) -> None:
        self.provider = provider
        self.default_model = default_model
        self.limits = limits or OutputTokenLimits()
        self.temperature = temperature

    def max_tokens_for(self, model: str) -> int:
        return self.limits.for_model(model)

    async def complete(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        tools: list[dict] | None = None,
        temperature: float | None = None,
    ) -> Completion:
        model = model or self.default_model
        max_tokens = self.max_tokens_for(model)
        try:
            completion = await self.provider.complete(
                messages,
                model=model,
                tools=tools,
                temperature=self.temperature if temperature is None else temperature,
                max_tokens=max_tokens,
            )
        except CompletionError:
            raise
        except Exception as exc:
            logger.exception("Provider %s failed", self.provider.name)
            raise CompletionError(f"{type(exc).__name__}: {exc}") from exc

        if completion.content is None and not completion.tool_calls:
            logger.debug("Empty assistant turn (finish_reason=%s)", completion.finish_reason)
        return completion

    async def list_models(self, *, popular: bool = False) -> list[dict]:
        try:
            models = await self.provider.list_models()
        except CompletionError:
            raise
        except Exception as exc:
            logger.exception("Provider %s failed to list models", self.provider.name)
            raise CompletionError(f"{type(exc).__name__}: {exc}") from exc
        if popular:
            models = [m for m in models if m.get("id") in POPULAR_MODELS]
        return models

    async def get_model(self, model_id: str) -> dict | None:
        for model in await self.list_models():
            if model.get("id") == model_id:
                return model
        return None

    async def validate_api_key(self) -> bool:
        """True when the provider accepts our credentials for a catalogue call."""
        try:
            await self.list_models()
        except CompletionError as exc:
            logger.warning("API key check failed: %s", exc.message)
            return False
        return True

    async def aclose(self) -> None:
        await self.provider.aclose()
