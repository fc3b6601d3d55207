"""Quran research agent: tool-calling LLM loop over Quran text and tafsir."""

__version__ = "0.1.0"
