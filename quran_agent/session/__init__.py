"""Request persistence."""

from quran_agent.session.store import (
    LLMRequest,
    MemoryRequestStore,
    RequestStore,
    SqlRequestStore,
)

__all__ = ["LLMRequest", "MemoryRequestStore", "RequestStore", "SqlRequestStore"]
