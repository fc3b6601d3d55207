"""
Quran retrieval tools.

The catalogue is closed: ``ToolName`` enumerates every tool the model may
call and ``build_quran_tools`` returns exactly one instance per name.
Each tool parses its arguments into a parameter dataclass (defaults and
hard caps applied there), queries the backend and shapes the rows into
the records the model sees.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from quran_agent.backends.base import QuranBackend
from quran_agent.prompts.labels import tool_label
from quran_agent.text import normalize_arabic
from quran_agent.tools.base import Tool

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
KEYWORD_LIMIT_CAP = 50
MEANING_LIMIT_CAP = 30
TAFSIR_LIMIT_CAP = 50
SURAH_LIMIT_CAP = 300
DEFAULT_SIMILARITY_THRESHOLD = 0.7
SURAH_COUNT = 114

AYAH_KEY_PATTERN = r"^\s*[0-9]{1,3}\s*:\s*[0-9]{1,3}\s*$"


class ToolName(str, Enum):
    SEARCH_QURAN_BY_KEYWORDS = "search_quran_by_keywords"
    SEARCH_QURAN_BY_MEANING = "search_quran_by_meaning"
    GET_AYAH_BY_REFERENCE = "get_ayah_by_reference"
    GET_SURAH_AYAHS = "get_surah_ayahs"
    SEARCH_TAFSIR = "search_tafsir"
    GET_TAFSIR_FOR_AYAH = "get_tafsir_for_ayah"
    GET_SURAH_INFO = "get_surah_info"


class Embedder(Protocol):
    async def embed(self, text: str) -> list[float]: ...


def parse_ayah_key(ayah_key: str) -> tuple[int, int]:
    sura, _, aya = ayah_key.partition(":")
    return int(sura), int(aya)


def _cap(limit: int | None, default: int, cap: int) -> int:
    if limit is None:
        return default
    return max(1, min(int(limit), cap))


def _searchable(query: str) -> str:
    if not normalize_arabic(query):
        raise ValueError("query has no searchable text after normalization")
    return query


# ---------------------------------------------------------------------------
# Parameter structs
# ---------------------------------------------------------------------------

@dataclass
class KeywordSearchParams:
    query: str
    text_type_id: int = 1
    limit: int = DEFAULT_LIMIT

    def __post_init__(self):
        self.query = _searchable(self.query)
        self.limit = _cap(self.limit, DEFAULT_LIMIT, KEYWORD_LIMIT_CAP)


@dataclass
class MeaningSearchParams:
    query: str
    text_type_id: int = 1
    limit: int = DEFAULT_LIMIT
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD

    def __post_init__(self):
        self.query = _searchable(self.query)
        self.limit = _cap(self.limit, DEFAULT_LIMIT, MEANING_LIMIT_CAP)
        self.similarity_threshold = float(self.similarity_threshold)


@dataclass
class AyahReferenceParams:
    ayah_key: str
    text_type_id: int = 1

    def __post_init__(self):
        self.sura, self.aya = parse_ayah_key(self.ayah_key)
        self.ayah_key = f"{self.sura}:{self.aya}"


@dataclass
class SurahAyahsParams:
    surah_number: int
    text_type_id: int = 1
    limit: int | None = None

    def __post_init__(self):
        if self.limit is not None:
            self.limit = _cap(self.limit, SURAH_LIMIT_CAP, SURAH_LIMIT_CAP)


@dataclass
class TafsirSearchParams:
    query: str
    edition_id: int | None = None
    limit: int = DEFAULT_LIMIT

    def __post_init__(self):
        self.query = _searchable(self.query)
        self.limit = _cap(self.limit, DEFAULT_LIMIT, TAFSIR_LIMIT_CAP)


@dataclass
class AyahTafsirParams:
    ayah_key: str
    edition_id: int | None = None

    def __post_init__(self):
        self.sura, self.aya = parse_ayah_key(self.ayah_key)
        self.ayah_key = f"{self.sura}:{self.aya}"


@dataclass
class SurahInfoParams:
    surah_number: int


# ---------------------------------------------------------------------------
# Record shaping
# ---------------------------------------------------------------------------

def verse_record(row: dict, score_key: str | None = None) -> dict:
    rec = {
        "ayah_key": row["ayah_key"],
        "surah": row["sura"],
        "ayah": row["aya"],
        "text": row["text"],
    }
    if score_key is not None:
        score = row.get(score_key)
        rec["similarity_score"] = float(score) if score is not None else None
    return rec


def tafsir_record(row: dict, with_score: bool = False) -> dict:
    ayah_keys = row.get("ayah_keys")
    rec = {
        "id": row["id"],
        "edition_id": row["edition_id"],
        "surah": row["sura"],
        "ayah": row["aya"],
        "ayah_keys": list(ayah_keys) if ayah_keys is not None else None,
        "text": row["text"],
    }
    if with_score:
        score = row.get("sim_score")
        rec["similarity_score"] = float(score) if score is not None else None
    return rec


def surah_record(row: dict) -> dict:
    return {
        "id": row["id"],
        "name_ar": row["name_ar"],
        "name_en": row["name_en"],
        "revelation": row["revelation"],
        "ayah_count": row["ayah_count"],
        "page_start": row["page_start"],
        "page_end": row["page_end"],
    }


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

_TEXT_TYPE_PROP = {
    "type": "integer",
    "minimum": 1,
    "description": "معرف نوع النص القرآني (1 = النص البسيط، افتراضي)",
    "default": 1,
}

_AYAH_KEY_PROP = {
    "type": "string",
    "pattern": AYAH_KEY_PATTERN,
    "description": 'مرجع الآية بصيغة "رقم_السورة:رقم_الآية" (مثال: "2:255")',
}

_SURAH_NUMBER_PROP = {
    "type": "integer",
    "minimum": 1,
    "maximum": SURAH_COUNT,
    "description": "رقم السورة (1-114)",
}

_EDITION_PROP = {
    "type": "integer",
    "minimum": 1,
    "description": "معرف نسخة التفسير (اختياري)",
}


class _QuranTool(Tool):
    tool_name: ToolName

    def __init__(self, backend: QuranBackend) -> None:
        self._backend = backend

    @property
    def name(self) -> str:
        return self.tool_name.value

    @property
    def label(self) -> str:
        return tool_label(self.name)


class SearchQuranByKeywordsTool(_QuranTool):
    """Trigram/substring search; retries with the first significant word."""

    tool_name = ToolName.SEARCH_QURAN_BY_KEYWORDS
    params_type = KeywordSearchParams

    @property
    def description(self) -> str:
        return (
            "البحث في القرآن الكريم باستخدام الكلمات المفتاحية. يستخدم البحث النصي "
            "(trigram similarity) للعثور على الآيات التي تحتوي على الكلمات المطلوبة أو مشابهة لها."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "minLength": 1,
                    "pattern": "\\S",
                    "description": "النص أو الكلمات المفتاحية للبحث عنها في القرآن (يفضل استخدام النص العربي المنقى)",
                },
                "text_type_id": _TEXT_TYPE_PROP,
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "عدد النتائج المطلوبة (افتراضي: 10، أقصى: 50)",
                    "default": DEFAULT_LIMIT,
                },
            },
            "required": ["query"],
        }

    async def execute(self, params: KeywordSearchParams) -> list[dict]:
        query = normalize_arabic(params.query)
        rows = await self._backend.search_text(query, params.text_type_id, params.limit)
        if not rows and " " in query:
            words = [w for w in query.split(" ") if len(w) > 2]
            if words:
                logger.debug("No match for %r, retrying with %r", query, words[0])
                rows = await self._backend.search_text(words[0], params.text_type_id, params.limit)
        return [verse_record(r, "sim_score") for r in rows]


class SearchQuranByMeaningTool(_QuranTool):
    tool_name = ToolName.SEARCH_QURAN_BY_MEANING
    params_type = MeaningSearchParams

    def __init__(self, backend: QuranBackend, embedder: Embedder) -> None:
        super().__init__(backend)
        self._embedder = embedder

    @property
    def description(self) -> str:
        return (
            "البحث الدلالي في القرآن الكريم باستخدام المعنى. يستخدم embeddings للعثور على "
            "الآيات المشابهة في المعنى حتى لو لم تحتوي على نفس الكلمات."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "minLength": 1,
                    "pattern": "\\S",
                    "description": "السؤال أو الموضوع للبحث عن آيات مشابهة في المعنى",
                },
                "text_type_id": _TEXT_TYPE_PROP,
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "عدد النتائج المطلوبة (افتراضي: 10، أقصى: 30)",
                    "default": DEFAULT_LIMIT,
                },
                "similarity_threshold": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 1,
                    "description": "الحد الأدنى للتشابه (0.0 - 1.0، افتراضي: 0.7)",
                    "default": DEFAULT_SIMILARITY_THRESHOLD,
                },
            },
            "required": ["query"],
        }

    async def execute(self, params: MeaningSearchParams) -> list[dict]:
        embedding = await self._embedder.embed(params.query)
        rows = await self._backend.search_embedding(
            embedding, params.text_type_id, params.limit, params.similarity_threshold
        )
        return [verse_record(r, "similarity") for r in rows]


class GetAyahByReferenceTool(_QuranTool):
    tool_name = ToolName.GET_AYAH_BY_REFERENCE
    params_type = AyahReferenceParams

    @property
    def description(self) -> str:
        return (
            'الحصول على آية محددة بالمرجع (رقم السورة:رقم الآية). مثال: "2:255" للحصول على آية الكرسي.'
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "ayah_key": _AYAH_KEY_PROP,
                "text_type_id": _TEXT_TYPE_PROP,
            },
            "required": ["ayah_key"],
        }

    async def execute(self, params: AyahReferenceParams) -> dict | None:
        row = await self._backend.get_ayah(params.sura, params.aya, params.text_type_id)
        return verse_record(row) if row else None


class GetSurahAyahsTool(_QuranTool):
    tool_name = ToolName.GET_SURAH_AYAHS
    params_type = SurahAyahsParams

    @property
    def description(self) -> str:
        return "الحصول على آيات سورة كاملة أو جزء منها."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "surah_number": _SURAH_NUMBER_PROP,
                "text_type_id": _TEXT_TYPE_PROP,
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "عدد الآيات المطلوبة (اختياري، افتراضي: جميع الآيات)",
                },
            },
            "required": ["surah_number"],
        }

    async def execute(self, params: SurahAyahsParams) -> list[dict]:
        rows = await self._backend.get_surah_ayahs(
            params.surah_number, params.text_type_id, params.limit
        )
        return [verse_record(r) for r in rows]


class SearchTafsirTool(_QuranTool):
    tool_name = ToolName.SEARCH_TAFSIR
    params_type = TafsirSearchParams

    @property
    def description(self) -> str:
        return "البحث في التفسير باستخدام الكلمات المفتاحية."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "minLength": 1,
                    "pattern": "\\S",
                    "description": "النص أو الكلمات المفتاحية للبحث في التفسير",
                },
                "edition_id": _EDITION_PROP,
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "عدد النتائج المطلوبة (افتراضي: 10)",
                    "default": DEFAULT_LIMIT,
                },
            },
            "required": ["query"],
        }

    async def execute(self, params: TafsirSearchParams) -> list[dict]:
        rows = await self._backend.search_tafsir(
            normalize_arabic(params.query), params.edition_id, params.limit
        )
        return [tafsir_record(r, with_score=True) for r in rows]


class GetTafsirForAyahTool(_QuranTool):
    tool_name = ToolName.GET_TAFSIR_FOR_AYAH
    params_type = AyahTafsirParams

    @property
    def description(self) -> str:
        return "الحصول على التفسير لآية محددة."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "ayah_key": _AYAH_KEY_PROP,
                "edition_id": _EDITION_PROP,
            },
            "required": ["ayah_key"],
        }

    async def execute(self, params: AyahTafsirParams) -> list[dict]:
        rows = await self._backend.get_tafsir(params.sura, params.aya, params.edition_id)
        return [tafsir_record(r) for r in rows]


class GetSurahInfoTool(_QuranTool):
    tool_name = ToolName.GET_SURAH_INFO
    params_type = SurahInfoParams

    @property
    def description(self) -> str:
        return "الحصول على معلومات عن سورة (الاسم، عدد الآيات، مكية/مدنية، إلخ)."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {"surah_number": _SURAH_NUMBER_PROP},
            "required": ["surah_number"],
        }

    async def execute(self, params: SurahInfoParams) -> dict | None:
        row = await self._backend.get_surah(params.surah_number)
        return surah_record(row) if row else None


def build_quran_tools(backend: QuranBackend, embedder: Embedder) -> dict[ToolName, Tool]:
    """Lookup table from every ``ToolName`` to its tool instance."""
    table: dict[ToolName, Tool] = {
        ToolName.SEARCH_QURAN_BY_KEYWORDS: SearchQuranByKeywordsTool(backend),
        ToolName.SEARCH_QURAN_BY_MEANING: SearchQuranByMeaningTool(backend, embedder),
        ToolName.GET_AYAH_BY_REFERENCE: GetAyahByReferenceTool(backend),
        ToolName.GET_SURAH_AYAHS: GetSurahAyahsTool(backend),
        ToolName.SEARCH_TAFSIR: SearchTafsirTool(backend),
        ToolName.GET_TAFSIR_FOR_AYAH: GetTafsirForAyahTool(backend),
        ToolName.GET_SURAH_INFO: GetSurahInfoTool(backend),
    }
    assert set(table) == set(ToolName)
    return table
