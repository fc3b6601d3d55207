"""User-facing Arabic strings emitted while the agent works."""

from __future__ import annotations

DEFAULT_TOOL_LABEL = "جاري تنفيذ العملية"

TOOL_LABELS: dict[str, str] = {
    "search_quran_by_keywords": "جاري البحث في القرآن بالكلمات المفتاحية",
    "search_quran_by_meaning": "جاري البحث الدلالي في القرآن",
    "get_ayah_by_reference": "جاري جلب الآية",
    "get_surah_ayahs": "جاري جلب آيات السورة",
    "search_tafsir": "جاري البحث في التفسير",
    "get_tafsir_for_ayah": "جاري جلب تفسير الآية",
    "get_surah_info": "جاري جلب معلومات السورة",
}

NO_RESULTS_MESSAGE = (
    "لم يتم العثور على نتائج لهذا البحث. "
    "يمكنك المحاولة بكلمات مختلفة أو استخدام البحث الدلالي."
)
NOT_FOUND_MESSAGE = "لم يتم العثور على البيانات المطلوبة."

BUDGET_EXHAUSTED_NOTICE = "⚠️ بلغ الوكيل الحد الأقصى من المحاولات قبل صياغة إجابة نهائية."
NO_FURTHER_DATA_NOTICE = (
    "لم يتمكّن الوكيل من إرجاع بيانات إضافية، لكن تم تنفيذ الأدوات المطلوبة قبل التوقّف."
)
LAST_OPERATION_LABEL = "العملية الأخيرة"


def tool_label(name: str | None) -> str:
    return TOOL_LABELS.get(name or "", DEFAULT_TOOL_LABEL)


def tool_started(name: str) -> str:
    return f"\n🔍 {tool_label(name)}...\n\n"


def tool_found(count: int) -> str:
    return f"✅ تم العثور على {count} نتيجة\n\n"


def tool_empty() -> str:
    return "⚠️ لم يتم العثور على نتائج\n\n"


def tool_failed() -> str:
    return "❌ تعذّر تنفيذ الأداة\n\n"
