"""Arabic text normalization used for lexical matching and embeddings."""

from __future__ import annotations

import re

# Tashkeel (fathatan .. sukun and friends), superscript alef, tatweel.
_DIACRITICS = re.compile(r"[ً-ٰٟـ]")
# Alef with madda, hamza above, hamza below.
_ALEF_VARIANTS = re.compile(r"[آأإ]")
# Yeh and alef maqsura.
_YEH_VARIANTS = re.compile(r"[يى]")
_WHITESPACE = re.compile(r"\s+")

ALEF = "ا"
TEH_MARBUTA = "ة"
HEH = "ه"
YEH = "ي"


class ArabicNormalizer:
    """Folds the orthographic variants that make equal words compare unequal.

    Strips tashkeel and tatweel, unifies alef forms, maps teh marbuta to heh
    and alef maqsura to yeh, then collapses whitespace.
    """

    @staticmethod
    def normalize(text: str) -> str:
        if not text:
            return ""
        out = _DIACRITICS.sub("", text)
        out = _ALEF_VARIANTS.sub(ALEF, out)
        out = out.replace(TEH_MARBUTA, HEH)
        out = _YEH_VARIANTS.sub(YEH, out)
        out = _WHITESPACE.sub(" ", out)
        return out.strip()

    @classmethod
    def tokens(cls, text: str) -> list[str]:
        norm = cls.normalize(text)
        return norm.split(" ") if norm else []


def normalize_arabic(text: str) -> str:
    return ArabicNormalizer.normalize(text)
