"""Retrieval backends."""

from quran_agent.backends.base import BackendError, QuranBackend
from quran_agent.backends.memory import MemoryQuranBackend

__all__ = ["BackendError", "MemoryQuranBackend", "QuranBackend"]
