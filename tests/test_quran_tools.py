"""Tests for the Quran retrieval tools over the in-memory backend."""

from __future__ import annotations

import pytest

from quran_agent.backends.memory import MemoryQuranBackend
from quran_agent.llm.embeddings import HashingEmbedder
from quran_agent.prompts.labels import TOOL_LABELS
from quran_agent.tools.quran import (
    AyahReferenceParams,
    KeywordSearchParams,
    MeaningSearchParams,
    SurahAyahsParams,
    TafsirSearchParams,
    ToolName,
    build_quran_tools,
    parse_ayah_key,
)


class RecordingBackend(MemoryQuranBackend):
    """Finds nothing for multi-word queries; remembers every query."""

    def __init__(self):
        super().__init__()
        self.queries: list[str] = []

    async def search_text(self, query, text_type_id, limit):
        self.queries.append(query)
        if " " in query:
            return []
        return await super().search_text(query, text_type_id, limit)


@pytest.fixture
def embedder():
    return HashingEmbedder()


@pytest.fixture
def backend(embedder):
    return MemoryQuranBackend(vectorize=embedder.vector)


@pytest.fixture
def tools(backend, embedder):
    return build_quran_tools(backend, embedder)


async def run(tools, name: ToolName, **args):
    tool = tools[name]
    return await tool.execute(tool.parse(args))


class TestCatalogue:
    def test_one_tool_per_name(self, tools):
        assert set(tools) == set(ToolName)
        for name, tool in tools.items():
            assert tool.name == name.value

    def test_labels_are_arabic_progress_text(self, tools):
        for name, tool in tools.items():
            assert tool.label == TOOL_LABELS[name.value]


class TestParams:
    def test_keyword_limit_capped(self):
        assert KeywordSearchParams(query="x", limit=500).limit == 50
        assert KeywordSearchParams(query="x").limit == 10

    def test_meaning_limit_capped(self):
        assert MeaningSearchParams(query="x", limit=100).limit == 30

    def test_tafsir_limit_capped(self):
        assert TafsirSearchParams(query="x", limit=99).limit == 50

    def test_surah_limit_optional_and_capped(self):
        assert SurahAyahsParams(surah_number=2).limit is None
        assert SurahAyahsParams(surah_number=2, limit=1000).limit == 300

    def test_ayah_key_canonicalized(self):
        params = AyahReferenceParams(ayah_key=" 2 : 255 ")
        assert (params.sura, params.aya) == (2, 255)
        assert params.ayah_key == "2:255"

    def test_parse_ayah_key(self):
        assert parse_ayah_key("112:4") == (112, 4)

    @pytest.mark.parametrize("query", ["   ", "\u064b", "\u0640\u064e "])
    @pytest.mark.parametrize(
        "params_type", [KeywordSearchParams, MeaningSearchParams, TafsirSearchParams]
    )
    def test_query_blank_after_normalization_rejected(self, params_type, query):
        with pytest.raises(ValueError, match="no searchable text"):
            params_type(query=query)


class TestKeywordSearch:
    async def test_finds_verses_containing_word(self, tools):
        results = await run(tools, ToolName.SEARCH_QURAN_BY_KEYWORDS, query="الصمد")
        keys = [r["ayah_key"] for r in results]
        assert "112:2" in keys
        for r in results:
            assert set(r) == {"ayah_key", "surah", "ayah", "text", "similarity_score"}

    async def test_results_best_first(self, tools):
        results = await run(tools, ToolName.SEARCH_QURAN_BY_KEYWORDS, query="الله")
        scores = [r["similarity_score"] for r in results]
        assert scores == sorted(scores, reverse=True)

    async def test_query_is_normalized(self):
        backend = RecordingBackend()
        tools = build_quran_tools(backend, HashingEmbedder())
        await run(tools, ToolName.SEARCH_QURAN_BY_KEYWORDS, query="الصَّمَدُ")
        assert backend.queries[0] == "الصمد"

    async def test_retries_with_first_significant_word(self):
        backend = RecordingBackend()
        tools = build_quran_tools(backend, HashingEmbedder())
        results = await run(tools, ToolName.SEARCH_QURAN_BY_KEYWORDS, query="قل الصمد الواحد")
        assert backend.queries == ["قل الصمد الواحد", "الصمد"]
        assert any(r["ayah_key"] == "112:2" for r in results)

    async def test_no_match_returns_empty_list(self, tools):
        results = await run(tools, ToolName.SEARCH_QURAN_BY_KEYWORDS, query="zzzz")
        assert results == []


class TestMeaningSearch:
    async def test_identical_text_scores_highest(self, tools):
        results = await run(tools, ToolName.SEARCH_QURAN_BY_MEANING, query="قُلْ هُوَ اللَّهُ أَحَدٌ")
        assert results[0]["ayah_key"] == "112:1"
        assert results[0]["similarity_score"] == pytest.approx(1.0)

    async def test_threshold_filters(self, tools):
        results = await run(
            tools, ToolName.SEARCH_QURAN_BY_MEANING, query="zzzz", similarity_threshold=0.9
        )
        assert results == []


class TestReferenceLookups:
    async def test_ayah_by_reference(self, tools):
        result = await run(tools, ToolName.GET_AYAH_BY_REFERENCE, ayah_key="2:255")
        assert result["ayah_key"] == "2:255"
        assert result["surah"] == 2
        assert result["ayah"] == 255
        assert result["text"].startswith("اللَّهُ")
        assert "similarity_score" not in result

    async def test_missing_ayah_is_none(self, tools):
        assert await run(tools, ToolName.GET_AYAH_BY_REFERENCE, ayah_key="2:1") is None

    async def test_other_text_type(self, tools):
        result = await run(tools, ToolName.GET_AYAH_BY_REFERENCE, ayah_key="112:1", text_type_id=2)
        assert result["text"] == "Say, He is Allah, the One."

    async def test_surah_ayahs_in_order(self, tools):
        results = await run(tools, ToolName.GET_SURAH_AYAHS, surah_number=1)
        assert [r["ayah"] for r in results] == [1, 2, 3, 4, 5, 6, 7]

    async def test_surah_ayahs_limit(self, tools):
        results = await run(tools, ToolName.GET_SURAH_AYAHS, surah_number=1, limit=3)
        assert [r["ayah_key"] for r in results] == ["1:1", "1:2", "1:3"]

    async def test_surah_info(self, tools):
        info = await run(tools, ToolName.GET_SURAH_INFO, surah_number=112)
        assert info["name_en"] == "Al-Ikhlas"
        assert info["ayah_count"] == 4
        assert info["revelation"] == "meccan"

    async def test_unknown_surah_info_is_none(self, tools):
        assert await run(tools, ToolName.GET_SURAH_INFO, surah_number=113) is None


class TestTafsir:
    async def test_tafsir_for_ayah_all_editions(self, tools):
        results = await run(tools, ToolName.GET_TAFSIR_FOR_AYAH, ayah_key="112:1")
        assert [r["edition_id"] for r in results] == [1, 2]
        assert all("similarity_score" not in r for r in results)
        assert results[0]["ayah_keys"] == ["112:1"]

    async def test_tafsir_for_ayah_single_edition(self, tools):
        results = await run(tools, ToolName.GET_TAFSIR_FOR_AYAH, ayah_key="112:1", edition_id=2)
        assert [r["id"] for r in results] == [4]

    async def test_search_tafsir_normalizes_query(self, tools):
        results = await run(tools, ToolName.SEARCH_TAFSIR, query="آيَة الكرسي")
        assert results[0]["id"] == 2
        assert results[0]["similarity_score"] is not None


class TestDeterminism:
    async def test_same_call_same_result(self, tools):
        first = await run(tools, ToolName.SEARCH_QURAN_BY_KEYWORDS, query="الله")
        second = await run(tools, ToolName.SEARCH_QURAN_BY_KEYWORDS, query="الله")
        assert first == second
