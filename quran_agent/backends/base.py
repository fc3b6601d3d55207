"""Retrieval backend interface (abstract)."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BackendError(Exception):
    """Structured error from a backend operation."""

    def __init__(self, message: str, code: str = ""):
        super().__init__(message)
        self.code = code


class QuranBackend(ABC):
    """
    Read-only access to Quran text, tafsir and surah metadata.

    Rows are returned as plain dicts keyed by storage column name
    (``sura``, ``aya``, ``ayah_key``, ``text``, ...); shaping them for the
    model is the tools' job.  Implementations raise ``BackendError`` when
    the store itself is unavailable, never for an empty result.
    """

    @abstractmethod
    async def search_text(self, query: str, text_type_id: int, limit: int) -> list[dict]:
        """Lexical/fuzzy match over normalized verse text, best match first."""
        ...

    @abstractmethod
    async def search_embedding(
        self,
        embedding: list[float],
        text_type_id: int,
        limit: int,
        threshold: float,
    ) -> list[dict]:
        """Verses whose cosine similarity to *embedding* is at least *threshold*."""
        ...

    @abstractmethod
    async def get_ayah(self, sura: int, aya: int, text_type_id: int) -> dict | None:
        ...

    @abstractmethod
    async def get_surah_ayahs(
        self, sura: int, text_type_id: int, limit: int | None = None
    ) -> list[dict]:
        ...

    @abstractmethod
    async def search_tafsir(self, query: str, edition_id: int | None, limit: int) -> list[dict]:
        ...

    @abstractmethod
    async def get_tafsir(self, sura: int, aya: int, edition_id: int | None = None) -> list[dict]:
        ...

    @abstractmethod
    async def get_surah(self, sura: int) -> dict | None:
        ...

    async def aclose(self) -> None:
        return None
