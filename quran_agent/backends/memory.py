"""In-memory backend for tests, demos and offline use."""

from __future__ import annotations

import copy
import math
from typing import Callable

from quran_agent.backends.base import QuranBackend
from quran_agent.text import normalize_arabic

TRIGRAM_THRESHOLD = 0.3

_SAMPLE_VERSES = [
    (1, 1, "بِسْمِ اللَّهِ الرَّحْمَٰنِ الرَّحِيمِ"),
    (1, 2, "الْحَمْدُ لِلَّهِ رَبِّ الْعَالَمِينَ"),
    (1, 3, "الرَّحْمَٰنِ الرَّحِيمِ"),
    (1, 4, "مَالِكِ يَوْمِ الدِّينِ"),
    (1, 5, "إِيَّاكَ نَعْبُدُ وَإِيَّاكَ نَسْتَعِينُ"),
    (1, 6, "اهْدِنَا الصِّرَاطَ الْمُسْتَقِيمَ"),
    (1, 7, "صِرَاطَ الَّذِينَ أَنْعَمْتَ عَلَيْهِمْ غَيْرِ الْمَغْضُوبِ عَلَيْهِمْ وَلَا الضَّالِّينَ"),
    (2, 255, "اللَّهُ لَا إِلَٰهَ إِلَّا هُوَ الْحَيُّ الْقَيُّومُ ۚ لَا تَأْخُذُهُ سِنَةٌ وَلَا نَوْمٌ ۚ "
             "لَّهُ مَا فِي السَّمَاوَاتِ وَمَا فِي الْأَرْضِ ۗ مَن ذَا الَّذِي يَشْفَعُ عِندَهُ إِلَّا بِإِذْنِهِ ۚ "
             "يَعْلَمُ مَا بَيْنَ أَيْدِيهِمْ وَمَا خَلْفَهُمْ ۖ وَلَا يُحِيطُونَ بِشَيْءٍ مِّنْ عِلْمِهِ إِلَّا بِمَا شَاءَ ۚ "
             "وَسِعَ كُرْسِيُّهُ السَّمَاوَاتِ وَالْأَرْضَ ۖ وَلَا يَئُودُهُ حِفْظُهُمَا ۚ وَهُوَ الْعَلِيُّ الْعَظِيمُ"),
    (112, 1, "قُلْ هُوَ اللَّهُ أَحَدٌ"),
    (112, 2, "اللَّهُ الصَّمَدُ"),
    (112, 3, "لَمْ يَلِدْ وَلَمْ يُولَدْ"),
    (112, 4, "وَلَمْ يَكُن لَّهُ كُفُوًا أَحَدٌ"),
]

_SAMPLE_TRANSLATIONS = [
    (112, 1, "Say, He is Allah, the One."),
    (112, 2, "Allah, the Eternal Refuge."),
    (112, 3, "He neither begets nor is born."),
    (112, 4, "Nor is there to Him any equivalent."),
]

_SAMPLE_SURAHS = [
    {"id": 1, "name_ar": "الفاتحة", "name_en": "Al-Fatihah", "revelation": "meccan",
     "ayah_count": 7, "page_start": 1, "page_end": 1},
    {"id": 2, "name_ar": "البقرة", "name_en": "Al-Baqarah", "revelation": "medinan",
     "ayah_count": 286, "page_start": 2, "page_end": 49},
    {"id": 112, "name_ar": "الإخلاص", "name_en": "Al-Ikhlas", "revelation": "meccan",
     "ayah_count": 4, "page_start": 604, "page_end": 604},
]

_SAMPLE_TAFSIR = [
    (1, 1, 1, 1, "افتتح الله كتابه بالبسملة، والمعنى: أبتدئ قراءة القرآن باسم الله مستعينا به. "
                 "والرحمن الرحيم اسمان دالان على أنه تعالى ذو الرحمة الواسعة."),
    (2, 1, 2, 255, "هذه الآية أعظم آيات القرآن وتسمى آية الكرسي، "
                   "فيها أن الله هو المعبود بحق وحده، الحي القيوم القائم على كل شيء، "
                   "لا تأخذه سنة ولا نوم، وسع كرسيه السماوات والأرض."),
    (3, 1, 112, 1, "قل أيها الرسول: هو الله المتفرد بالألوهية والربوبية والأسماء والصفات، "
                   "لا يشاركه أحد فيها."),
    (4, 2, 112, 1, "سورة الإخلاص تعدل ثلث القرآن لما تضمنته من توحيد الله."),
]


def trigrams(text: str) -> set[str]:
    """Word trigrams the way pg_trgm builds them (two leading blanks, one trailing)."""
    out: set[str] = set()
    for word in text.split():
        padded = f"  {word} "
        for i in range(len(padded) - 2):
            out.add(padded[i:i + 3])
    return out


def trigram_similarity(a: str, b: str) -> float:
    ta, tb = trigrams(a), trigrams(b)
    if not ta or not tb:
        return 0.0
    return len(ta & tb) / len(ta | tb)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a))
    nb = math.sqrt(sum(y * y for y in b))
    if na == 0 or nb == 0:
        return 0.0
    return dot / (na * nb)


class MemoryQuranBackend(QuranBackend):
    """
    A small verse/tafsir store with pg_trgm-style fuzzy matching.

    Semantic search needs *vectorize* (text -> vector) to index the verses;
    without it ``search_embedding`` returns no rows.
    """

    def __init__(
        self,
        verses: list[dict] | None = None,
        surahs: list[dict] | None = None,
        tafsir: list[dict] | None = None,
        vectorize: Callable[[str], list[float]] | None = None,
    ) -> None:
        self._verses = verses if verses is not None else _sample_verses()
        self._surahs = {s["id"]: s for s in (surahs if surahs is not None else _SAMPLE_SURAHS)}
        self._tafsir = tafsir if tafsir is not None else _sample_tafsir()
        self._vectors: dict[tuple[int, int, int], list[float]] = {}
        if vectorize is not None:
            for v in self._verses:
                key = (v["text_type_id"], v["sura"], v["aya"])
                self._vectors[key] = vectorize(v["text_norm"])

    async def search_text(self, query: str, text_type_id: int, limit: int) -> list[dict]:
        scored = []
        for v in self._verses:
            if v["text_type_id"] != text_type_id:
                continue
            score = trigram_similarity(v["text_norm"], query)
            if score >= TRIGRAM_THRESHOLD or query in v["text_norm"]:
                row = _verse_row(v)
                row["sim_score"] = round(score, 6)
                scored.append(row)
        scored.sort(key=lambda r: (-r["sim_score"], r["sura"], r["aya"]))
        return scored[:limit]

    async def search_embedding(
        self,
        embedding: list[float],
        text_type_id: int,
        limit: int,
        threshold: float,
    ) -> list[dict]:
        scored = []
        for v in self._verses:
            if v["text_type_id"] != text_type_id:
                continue
            vec = self._vectors.get((text_type_id, v["sura"], v["aya"]))
            if vec is None:
                continue
            sim = cosine_similarity(vec, embedding)
            if sim >= threshold:
                row = _verse_row(v)
                row["similarity"] = round(sim, 6)
                scored.append(row)
        scored.sort(key=lambda r: (-r["similarity"], r["sura"], r["aya"]))
        return scored[:limit]

    async def get_ayah(self, sura: int, aya: int, text_type_id: int) -> dict | None:
        for v in self._verses:
            if v["sura"] == sura and v["aya"] == aya and v["text_type_id"] == text_type_id:
                return _verse_row(v)
        return None

    async def get_surah_ayahs(
        self, sura: int, text_type_id: int, limit: int | None = None
    ) -> list[dict]:
        rows = [
            _verse_row(v)
            for v in self._verses
            if v["sura"] == sura and v["text_type_id"] == text_type_id
        ]
        rows.sort(key=lambda r: r["aya"])
        return rows[:limit] if limit else rows

    async def search_tafsir(self, query: str, edition_id: int | None, limit: int) -> list[dict]:
        scored = []
        for t in self._tafsir:
            if edition_id and t["edition_id"] != edition_id:
                continue
            score = trigram_similarity(t["text_norm"], query)
            if score >= TRIGRAM_THRESHOLD or query in t["text_norm"]:
                row = copy.deepcopy(t)
                row["sim_score"] = round(score, 6)
                scored.append(row)
        scored.sort(key=lambda r: (-r["sim_score"], r["id"]))
        return scored[:limit]

    async def get_tafsir(self, sura: int, aya: int, edition_id: int | None = None) -> list[dict]:
        rows = [
            copy.deepcopy(t)
            for t in self._tafsir
            if t["sura"] == sura and t["aya"] == aya
            and (not edition_id or t["edition_id"] == edition_id)
        ]
        rows.sort(key=lambda r: (r["edition_id"], r["chunk_idx"]))
        return rows

    async def get_surah(self, sura: int) -> dict | None:
        s = self._surahs.get(sura)
        return dict(s) if s else None


def _verse_row(v: dict) -> dict:
    return {
        "sura": v["sura"],
        "aya": v["aya"],
        "text": v["text"],
        "text_norm": v["text_norm"],
        "text_type_id": v["text_type_id"],
        "ayah_key": v["ayah_key"],
    }


def _sample_verses() -> list[dict]:
    rows = []
    for text_type_id, source in ((1, _SAMPLE_VERSES), (2, _SAMPLE_TRANSLATIONS)):
        for sura, aya, text in source:
            rows.append({
                "sura": sura,
                "aya": aya,
                "text": text,
                "text_norm": normalize_arabic(text),
                "text_type_id": text_type_id,
                "ayah_key": f"{sura}:{aya}",
            })
    return rows


def _sample_tafsir() -> list[dict]:
    rows = []
    for chunk_id, edition_id, sura, aya, text in _SAMPLE_TAFSIR:
        rows.append({
            "id": chunk_id,
            "edition_id": edition_id,
            "sura": sura,
            "aya": aya,
            "to_sura": sura,
            "to_aya": aya,
            "ayah_keys": [f"{sura}:{aya}"],
            "chunk_idx": 0,
            "text": text,
            "text_norm": normalize_arabic(text),
        })
    return rows
