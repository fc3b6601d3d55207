"""LLM subsystem -- completion providers, output caps, embeddings."""

from quran_agent.llm.client import ChatCompletionClient
from quran_agent.llm.embeddings import EmbeddingClient
from quran_agent.llm.limits import OutputTokenLimits
from quran_agent.llm.token_counter import TokenCounter
from quran_agent.llm.types import Completion, Message, ToolCall

__all__ = [
    "ChatCompletionClient",
    "Completion",
    "EmbeddingClient",
    "Message",
    "OutputTokenLimits",
    "TokenCounter",
    "ToolCall",
]
