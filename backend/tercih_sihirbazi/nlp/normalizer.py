"""
Türkçe metin normalleştirme.

İşlevler:
    fold                    – Türkçe duyarlı küçük harf + ASCII karşılıklar.
    normalize               – fold + noktalama temizliği + boşluk daraltma.
    expand_abbreviations    – Bilinen kısaltmaları açık yazıma çevirir.
    strip_fillers           – "üniversitesi", "bölümü" gibi dolgu kelimeleri atar.
    normalize_for_matching  – Bulanık eşleştirmede kullanılan biçim.

Dolgu kelimeleri yalnızca eşleştirme için atılır; kullanıcıya gösterilen
metin her zaman kataloğun kanonik adıdır.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Mapping

from backend.tercih_sihirbazi.nlp.seed_data import ABBREVIATIONS, FILLER_WORDS

# ── Karakter tabloları ────────────────────────────────────────────────
_TURKISH_FOLD = str.maketrans({
    "İ": "i", "I": "i", "ı": "i",
    "Ğ": "g", "ğ": "g",
    "Ü": "u", "ü": "u",
    "Ş": "s", "ş": "s",
    "Ö": "o", "ö": "o",
    "Ç": "c", "ç": "c",
    "Â": "a", "â": "a",
    "Î": "i", "î": "i",
    "Û": "u", "û": "u",
})

_ABBREVIATION_DOT = re.compile(r"(?<=[a-z])\.(?=[a-z])")
_QUESTION_MARK = re.compile(r"\?")
_NON_WORD = re.compile(r"[^a-z0-9%?\s]")
_MULTI_SPACE = re.compile(r"\s+")


def fold(text: str) -> str:
    """Türkçe harfleri küçültür ve ASCII karşılıklarına çevirir (ğ→g, ı→i, ...)."""
    if not isinstance(text, str):
        return ""
    text = text.translate(_TURKISH_FOLD).lower()
    # Kalan aksanlı harfler (é, ä ...) için birleşik işaretleri at
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize(text: str) -> str:
    """
    Eşleştirme ve sınıflandırma için metni normalleştirir.

    "?" işareti ayrı bir token olarak korunur (soru sezgisi için), "%" işareti
    öğretim dili oranları için korunur.  Fonksiyon idempotenttir:
    ``normalize(normalize(x)) == normalize(x)``.
    """
    text = fold(text)
    if not text:
        return ""
    text = _ABBREVIATION_DOT.sub("", text)  # İ.T.Ü. → itu.
    text = _QUESTION_MARK.sub(" ? ", text)
    text = _NON_WORD.sub(" ", text)
    return _MULTI_SPACE.sub(" ", text).strip()


class TextNormalizer:
    """Kısaltma ve dolgu kelime tablolarıyla yapılandırılan normalleştirici."""

    def __init__(
        self,
        filler_words: Iterable[str] = FILLER_WORDS,
        abbreviations: Mapping[str, str] = ABBREVIATIONS,
    ) -> None:
        self._filler_words = frozenset(normalize(w) for w in filler_words)
        self._abbreviations = {
            normalize(short): normalize(full) for short, full in abbreviations.items()
        }

    fold = staticmethod(fold)
    normalize = staticmethod(normalize)

    def tokens(self, text: str) -> list[str]:
        """Normalleştirilmiş kelimeler ("?" hariç)."""
        return [t for t in normalize(text).split() if t != "?"]

    def expand_abbreviations(self, text: str) -> str:
        """Kelime sınırındaki kısaltmaları tablodaki açık yazımla değiştirir."""
        words = normalize(text).split()
        return " ".join(self._abbreviations.get(w, w) for w in words)

    def strip_fillers(self, text: str) -> str:
        words = normalize(text).split()
        return " ".join(w for w in words if w not in self._filler_words and w != "?")

    def normalize_for_matching(self, text: str) -> str:
        """normalize → kısaltma açma → dolgu kelimelerini atma."""
        return self.strip_fillers(self.expand_abbreviations(text))

    def is_filler(self, word: str) -> bool:
        return normalize(word) in self._filler_words


# Modül düzeyinde varsayılan örnek
text_normalizer = TextNormalizer()
