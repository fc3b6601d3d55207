"""
PostgreSQL backend.

Requires the ``pg_trgm`` extension for lexical search and ``pgvector`` for
semantic search (``quran_text.embedding`` compared as ``halfvec(3072)``).
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from quran_agent.backends.base import BackendError, QuranBackend

logger = logging.getLogger(__name__)

_VERSE_COLUMNS = "sura, aya, text, text_norm, text_type_id, ayah_key"
_TAFSIR_COLUMNS = "id, edition_id, sura, aya, to_sura, to_aya, ayah_keys, chunk_idx, text"

SQL_SEARCH_TEXT = f"""
    SELECT {_VERSE_COLUMNS}, similarity(text_norm, :query) AS sim_score
    FROM quran_text
    WHERE (text_norm % :query OR text_norm LIKE '%' || :query || '%')
      AND text_type_id = :text_type_id
    ORDER BY sim_score DESC, sura, aya
    LIMIT :limit
"""

SQL_SEARCH_EMBEDDING = f"""
    SELECT {_VERSE_COLUMNS},
           1 - (embedding::halfvec(3072) <=> CAST(:embedding AS vector)::halfvec(3072)) AS similarity
    FROM quran_text
    WHERE text_type_id = :text_type_id
      AND embedding IS NOT NULL
      AND 1 - (embedding::halfvec(3072) <=> CAST(:embedding AS vector)::halfvec(3072)) >= :threshold
    ORDER BY similarity DESC
    LIMIT :limit
"""

SQL_GET_AYAH = f"""
    SELECT {_VERSE_COLUMNS}
    FROM quran_text
    WHERE sura = :sura AND aya = :aya AND text_type_id = :text_type_id
"""

SQL_SURAH_AYAHS = f"""
    SELECT {_VERSE_COLUMNS}
    FROM quran_text
    WHERE sura = :sura AND text_type_id = :text_type_id
    ORDER BY aya
"""

SQL_SEARCH_TAFSIR = f"""
    SELECT {_TAFSIR_COLUMNS}, similarity(text_norm, :query) AS sim_score
    FROM tafsir_chunks
    WHERE (text_norm % :query OR text_norm LIKE '%' || :query || '%')
"""

SQL_TAFSIR_FOR_AYAH = f"""
    SELECT {_TAFSIR_COLUMNS}
    FROM tafsir_chunks
    WHERE sura = :sura AND aya = :aya
"""

SQL_GET_SURAH = """
    SELECT id, name_ar, name_en, revelation, ayah_count, page_start, page_end
    FROM surahs
    WHERE id = :sura
"""


def vector_literal(embedding: list[float]) -> str:
    return "[" + ",".join(repr(float(v)) for v in embedding) + "]"


class PostgresQuranBackend(QuranBackend):
    """
    Parameters
    ----------
    engine:
        An ``AsyncEngine``; pass ``url`` instead to have one created.
    url:
        SQLAlchemy URL, e.g. ``postgresql+asyncpg://user:pw@host/quran``.
    """

    def __init__(
        self,
        engine: AsyncEngine | None = None,
        *,
        url: str | None = None,
        pool_size: int = 5,
        echo: bool = False,
    ) -> None:
        if engine is None:
            if not url:
                raise ValueError("PostgresQuranBackend needs an engine or a url")
            engine = create_async_engine(url, pool_size=pool_size, echo=echo)
            self._owns_engine = True
        else:
            self._owns_engine = False
        self._engine = engine

    async def _fetch(self, sql: str, params: dict) -> list[dict]:
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text(sql), params)
                return [dict(row) for row in result.mappings().all()]
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Query failed: %s", exc)
            raise BackendError(f"database query failed: {exc}", code="db_error") from exc

    async def search_text(self, query: str, text_type_id: int, limit: int) -> list[dict]:
        return await self._fetch(
            SQL_SEARCH_TEXT,
            {"query": query, "text_type_id": text_type_id, "limit": limit},
        )

    async def search_embedding(
        self,
        embedding: list[float],
        text_type_id: int,
        limit: int,
        threshold: float,
    ) -> list[dict]:
        return await self._fetch(
            SQL_SEARCH_EMBEDDING,
            {
                "embedding": vector_literal(embedding),
                "text_type_id": text_type_id,
                "threshold": threshold,
                "limit": limit,
            },
        )

    async def get_ayah(self, sura: int, aya: int, text_type_id: int) -> dict | None:
        rows = await self._fetch(
            SQL_GET_AYAH, {"sura": sura, "aya": aya, "text_type_id": text_type_id}
        )
        return rows[0] if rows else None

    async def get_surah_ayahs(
        self, sura: int, text_type_id: int, limit: int | None = None
    ) -> list[dict]:
        sql = SQL_SURAH_AYAHS
        params: dict = {"sura": sura, "text_type_id": text_type_id}
        if limit:
            sql += " LIMIT :limit"
            params["limit"] = limit
        return await self._fetch(sql, params)

    async def search_tafsir(self, query: str, edition_id: int | None, limit: int) -> list[dict]:
        sql = SQL_SEARCH_TAFSIR
        params: dict = {"query": query, "limit": limit}
        if edition_id:
            sql += " AND edition_id = :edition_id"
            params["edition_id"] = edition_id
        sql += " ORDER BY sim_score DESC, id LIMIT :limit"
        return await self._fetch(sql, params)

    async def get_tafsir(self, sura: int, aya: int, edition_id: int | None = None) -> list[dict]:
        sql = SQL_TAFSIR_FOR_AYAH
        params: dict = {"sura": sura, "aya": aya}
        if edition_id:
            sql += " AND edition_id = :edition_id"
            params["edition_id"] = edition_id
        sql += " ORDER BY edition_id, chunk_idx"
        return await self._fetch(sql, params)

    async def get_surah(self, sura: int) -> dict | None:
        rows = await self._fetch(SQL_GET_SURAH, {"sura": sura})
        return rows[0] if rows else None

    async def aclose(self) -> None:
        if self._owns_engine:
            await self._engine.dispose()
