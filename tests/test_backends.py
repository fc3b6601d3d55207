"""Tests for the retrieval backends."""

from __future__ import annotations

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from quran_agent.backends.base import BackendError
from quran_agent.backends.memory import (
    MemoryQuranBackend,
    cosine_similarity,
    trigram_similarity,
    trigrams,
)
from quran_agent.backends.postgres import PostgresQuranBackend, vector_literal


class TestTrigrams:
    def test_padding_like_pg_trgm(self):
        assert trigrams("cat") == {"  c", " ca", "cat", "at "}

    def test_identical_strings(self):
        assert trigram_similarity("الله الصمد", "الله الصمد") == 1.0

    def test_disjoint_strings(self):
        assert trigram_similarity("abc", "xyz") == 0.0
        assert trigram_similarity("", "xyz") == 0.0

    def test_cosine(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == 1.0
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0


class TestMemoryQuranBackend:
    @pytest.fixture
    def backend(self):
        return MemoryQuranBackend()

    async def test_search_text_filters_by_text_type(self, backend):
        rows = await backend.search_text("Allah", 2, 10)
        assert {r["ayah_key"] for r in rows} == {"112:1", "112:2"}
        assert all(r["text_type_id"] == 2 for r in rows)

    async def test_search_text_limit(self, backend):
        rows = await backend.search_text("الله", 1, 1)
        assert len(rows) == 1

    async def test_semantic_search_without_vectors_is_empty(self, backend):
        assert await backend.search_embedding([1.0, 0.0], 1, 10, 0.0) == []

    async def test_semantic_search_with_vectors(self):
        def vectorize(text):
            return [1.0, 0.0] if "الصمد" in text else [0.0, 1.0]

        backend = MemoryQuranBackend(vectorize=vectorize)
        rows = await backend.search_embedding([1.0, 0.0], 1, 10, 0.9)
        assert [r["ayah_key"] for r in rows] == ["112:2"]
        assert rows[0]["similarity"] == 1.0

    async def test_rows_are_copies(self, backend):
        row = await backend.get_surah(1)
        row["name_en"] = "changed"
        assert (await backend.get_surah(1))["name_en"] == "Al-Fatihah"

    async def test_custom_data(self):
        backend = MemoryQuranBackend(
            verses=[{"sura": 5, "aya": 1, "text": "t", "text_norm": "t",
                     "text_type_id": 1, "ayah_key": "5:1"}],
            surahs=[],
            tafsir=[],
        )
        assert (await backend.get_ayah(5, 1, 1))["ayah_key"] == "5:1"
        assert await backend.get_surah(1) is None
        assert await backend.get_tafsir(5, 1) == []


class TestPostgresQuranBackend:
    """Runs the plain lookups against SQLite; fuzzy and vector search need PostgreSQL."""

    @pytest.fixture
    async def engine(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'quran.db'}")
        async with engine.begin() as conn:
            await conn.execute(text(
                "CREATE TABLE quran_text (sura INTEGER, aya INTEGER, text TEXT, "
                "text_norm TEXT, text_type_id INTEGER, ayah_key TEXT)"
            ))
            for aya, verse in enumerate(["قل هو الله احد", "الله الصمد", "لم يلد ولم يولد"], 1):
                await conn.execute(
                    text("INSERT INTO quran_text VALUES (112, :aya, :t, :t, 1, :key)"),
                    {"aya": aya, "t": verse, "key": f"112:{aya}"},
                )
        yield engine
        await engine.dispose()

    async def test_get_ayah(self, engine):
        backend = PostgresQuranBackend(engine)
        row = await backend.get_ayah(112, 2, 1)
        assert row["ayah_key"] == "112:2"
        assert row["text"] == "الله الصمد"
        assert await backend.get_ayah(112, 9, 1) is None

    async def test_get_surah_ayahs(self, engine):
        backend = PostgresQuranBackend(engine)
        rows = await backend.get_surah_ayahs(112, 1)
        assert [r["aya"] for r in rows] == [1, 2, 3]
        rows = await backend.get_surah_ayahs(112, 1, limit=2)
        assert [r["aya"] for r in rows] == [1, 2]

    async def test_database_error_becomes_backend_error(self, engine):
        backend = PostgresQuranBackend(engine)
        with pytest.raises(BackendError, match="database query failed") as exc_info:
            await backend.get_surah(1)
        assert exc_info.value.code == "db_error"

    async def test_does_not_dispose_borrowed_engine(self, engine):
        await PostgresQuranBackend(engine).aclose()
        assert await PostgresQuranBackend(engine).get_ayah(112, 1, 1) is not None

    def test_requires_engine_or_url(self):
        with pytest.raises(ValueError):
            PostgresQuranBackend()

    def test_vector_literal(self):
        assert vector_literal([1, 0.5]) == "[1.0,0.5]"
