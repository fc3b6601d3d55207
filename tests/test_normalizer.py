"""Tests for Arabic text normalization."""

from quran_agent.text import ArabicNormalizer, normalize_arabic


class TestArabicNormalizer:
    def test_strips_tashkeel(self):
        assert normalize_arabic("بِسْمِ اللَّهِ") == "بسم الله"

    def test_strips_superscript_alef_and_tatweel(self):
        assert normalize_arabic("الرَّحْمَٰنِ") == "الرحمن"
        assert normalize_arabic("الـــله") == "الله"

    def test_unifies_alef_forms(self):
        assert normalize_arabic("أإآا") == "اااا"

    def test_teh_marbuta_and_alef_maqsura(self):
        assert normalize_arabic("رحمة") == "رحمه"
        assert normalize_arabic("هدى") == "هدي"

    def test_collapses_whitespace(self):
        assert normalize_arabic("  قل \n هو\tالله  ") == "قل هو الله"

    def test_empty(self):
        assert normalize_arabic("") == ""
        assert ArabicNormalizer.tokens("   ") == []

    def test_tokens(self):
        assert ArabicNormalizer.tokens("قُلْ هُوَ اللَّهُ أَحَدٌ") == ["قل", "هو", "الله", "احد"]

    def test_latin_text_untouched(self):
        assert normalize_arabic("Say, He is Allah") == "Say, He is Allah"

    def test_idempotent(self):
        once = normalize_arabic("وَسِعَ كُرْسِيُّهُ السَّمَاوَاتِ وَالْأَرْضَ ۖ")
        assert normalize_arabic(once) == once
