"""
Token counting backed by tiktoken.

Models unknown to tiktoken (most OpenRouter ids) fall back to the
``cl100k_base`` encoding, which is close enough for budgeting.
"""

from __future__ import annotations

import json

import tiktoken

FALLBACK_ENCODING = "cl100k_base"


class TokenCounter:
    """
    Estimate token counts for text and message lists.

    Parameters
    ----------
    model:
        Model name passed to ``tiktoken.encoding_for_model``.  Any
        ``vendor/`` prefix is stripped first.
    """

    def __init__(self, model: str | None = None) -> None:
        self.model = model
        bare = (model or "gpt-4").split("/")[-1]
        try:
            self._enc = tiktoken.encoding_for_model(bare)
        except KeyError:
            self._enc = tiktoken.get_encoding(FALLBACK_ENCODING)

    def count_text(self, text: str) -> int:
        """Return the token count for a plain string."""
        if not text:
            return 0
        return len(self._enc.encode(text))

    def count_messages(
        self,
        messages: list,
        tools: list[dict] | None = None,
    ) -> int:
        """
        Estimate the total token count for a conversation.

        Each message adds a small constant overhead (for role markers, etc.)
        plus the token count for content and any embedded tool calls.
        Tool schemas are counted too since the model sees them in the prompt.
        """
        total = 0
        for msg in messages:
            total += 4

            content = getattr(msg, "content", None) or ""
            total += self.count_text(content)

            tool_calls = getattr(msg, "tool_calls", None)
            if tool_calls:
                for tc in tool_calls:
                    total += self.count_text(tc.name)
                    total += self.count_text(tc.arguments)

            tool_call_id = getattr(msg, "tool_call_id", None)
            if tool_call_id:
                total += self.count_text(tool_call_id)

        if tools:
            total += self.count_text(json.dumps(tools, ensure_ascii=False))

        return total
