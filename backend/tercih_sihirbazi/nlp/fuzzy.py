"""
Çok metrikli bulanık (fuzzy) string eşleştirme.

Benzerlik, birbirinden bağımsız üç metriğin en büyüğüdür:

    * Normalleştirilmiş Levenshtein benzerliği   (1 - düzenleme mesafesi / en uzun)
    * Karakter ikilisi (bigram) Jaccard benzerliği
    * En uzun ortak alt dizi (LCS) benzerliği     (lcs / en uzun)

Her metriğin kör noktası farklıdır (yazım hatası, sıra değişikliği, kısmi
örtüşme); en büyüğünü almak bir adayı tek bir metrikte başarısız olduğu
için cezalandırmaz.  Üzerine tam eşleşme, takma ad, alt dizgi ve kelime
başı eşleşmesi için ek puanlar eklenir, sonuç [0, 1] aralığına kırpılır.

Kullanım:
    from backend.tercih_sihirbazi.nlp.fuzzy import fuzzy_matcher
    fuzzy_matcher.find_matches("bogazici", universities, field_selector, limit=3)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypedDict

from rapidfuzz.distance import LCSseq, Levenshtein

from backend.tercih_sihirbazi.config import SIMILARITY_THRESHOLD
from backend.tercih_sihirbazi.nlp.normalizer import TextNormalizer, text_normalizer

logger = logging.getLogger("tercih_sihirbazi.nlp.fuzzy")

# ── Ek puanlar ────────────────────────────────────────────────────────
EXACT_MATCH_BONUS: float = 0.3
ALIAS_BONUS: float = 0.2
SUBSTRING_BONUS: float = 0.1
TOKEN_BOUNDARY_BONUS: float = 0.15


# ── Tip tanımları ─────────────────────────────────────────────────────
class _SearchFieldBase(TypedDict):
    field: str
    value: str


class SearchField(_SearchFieldBase, total=False):
    is_alias: bool


class MatchResult(TypedDict):
    item: Any
    score: float        # ek puanlar dahil, [0, 1]
    similarity: float   # yalnızca metriklerin en büyüğü, [0, 1]
    field: str
    value: str
    is_alias: bool


SimilarityMetric = Callable[[str, str], float]
FieldSelector = Callable[[Any], Iterable[SearchField]]


# ══════════════════════════════════════════════════════════════════════
#  METRİKLER
# ══════════════════════════════════════════════════════════════════════

def levenshtein_similarity(a: str, b: str) -> float:
    """1 - düzenleme mesafesi / en uzun uzunluk.  İki boş dizge için 1."""
    return float(Levenshtein.normalized_similarity(a, b))


def _bigrams(text: str) -> set[str]:
    if len(text) < 2:
        return {text} if text else set()
    return {text[i:i + 2] for i in range(len(text) - 1)}


def bigram_jaccard_similarity(a: str, b: str) -> float:
    """Karakter ikilisi kümelerinin Jaccard benzerliği."""
    if a == b:
        return 1.0
    left, right = _bigrams(a), _bigrams(b)
    if not left or not right:
        return 0.0
    return len(left & right) / len(left | right)


def lcs_similarity(a: str, b: str) -> float:
    """En uzun ortak alt dizi uzunluğu / en uzun uzunluk."""
    return float(LCSseq.normalized_similarity(a, b))


DEFAULT_METRICS: tuple[SimilarityMetric, ...] = (
    levenshtein_similarity,
    bigram_jaccard_similarity,
    lcs_similarity,
)


# ══════════════════════════════════════════════════════════════════════
#  EŞLEŞTİRİCİ
# ══════════════════════════════════════════════════════════════════════

class IndexedField(TypedDict):
    field: str
    value: str
    normalized: str
    is_alias: bool


class IndexedCandidate(TypedDict):
    item: Any
    fields: list[IndexedField]


class FuzzyMatcher:
    """Sorguyu aday dizgelere karşı puanlayan saf (yan etkisiz) eşleştirici."""

    def __init__(
        self,
        normalizer: TextNormalizer = text_normalizer,
        metrics: Sequence[SimilarityMetric] = DEFAULT_METRICS,
        threshold: float = SIMILARITY_THRESHOLD,
    ) -> None:
        self._normalizer = normalizer
        self._metrics = tuple(metrics)
        self.threshold = threshold

    # ── Benzerlik ─────────────────────────────────────────────────
    def similarity(self, query: str, candidate: str) -> float:
        """Normalleştirilmiş iki dizge arasında metriklerin en büyüğü."""
        if not query or not candidate:
            return 0.0
        return max(metric(query, candidate) for metric in self._metrics)

    def _score(self, query: str, candidate: str, is_alias: bool) -> tuple[float, float]:
        """(ek puanlı skor, ham benzerlik) – ikisi de normalleştirilmiş girdiyle."""
        if not query or not candidate:
            return 0.0, 0.0
        similarity = self.similarity(query, candidate)

        score = similarity
        if query == candidate:
            score += EXACT_MATCH_BONUS
        if is_alias:
            score += ALIAS_BONUS
        if query in candidate or candidate in query:
            score += SUBSTRING_BONUS
        if _token_boundary_match(query.split(), candidate.split()):
            score += TOKEN_BOUNDARY_BONUS

        return min(score, 1.0), similarity

    def get_similarity_score(self, text1: str, text2: str, is_alias: bool = False) -> float:
        """İki ham metin arasındaki ek puanlı benzerlik skoru ([0, 1])."""
        try:
            query = self._normalizer.normalize_for_matching(text1)
            candidate = self._normalizer.normalize_for_matching(text2)
        except Exception:
            logger.debug("Benzerlik hesaplanamadı: %r / %r", text1, text2, exc_info=True)
            return 0.0
        return self._score(query, candidate, is_alias)[0]

    # ── İndeks ────────────────────────────────────────────────────
    def index(self, items: Iterable[Any], field_selector: FieldSelector) -> list[IndexedCandidate]:
        """
        Adayların arama alanlarını bir kez normalleştirir.

        Aynı aday kümesi üzerinde çok sayıda sorgu yapılacaksa (ör. varlık
        çıkarımında her kelime grubu için) indeks bir kez hazırlanıp
        ``search_index`` ile tekrar kullanılır.
        """
        indexed: list[IndexedCandidate] = []
        for item in items or ():
            try:
                fields = list(field_selector(item))
            except Exception:
                logger.debug("Arama alanları okunamadı, aday atlandı: %r", item, exc_info=True)
                continue

            prepared: list[IndexedField] = []
            for f in fields:
                value = f.get("value") if isinstance(f, dict) else None
                if not isinstance(value, str) or not value.strip():
                    continue
                normalized = self._normalizer.normalize_for_matching(value)
                if not normalized:
                    continue
                prepared.append(IndexedField(
                    field=str(f.get("field", "")),
                    value=value,
                    normalized=normalized,
                    is_alias=bool(f.get("is_alias", False)),
                ))
            if prepared:
                indexed.append(IndexedCandidate(item=item, fields=prepared))
        return indexed

    # ── Arama ─────────────────────────────────────────────────────
    def search_index(
        self,
        query: str,
        index: Sequence[IndexedCandidate],
        limit: int = 10,
        threshold: float | None = None,
        *,
        prenormalized: bool = False,
    ) -> list[MatchResult]:
        """
        Hazır indeks üzerinde arama.

        Her aday için yalnızca en yüksek skorlu alanı tutar (eşitlikte ilk
        alan), eşiğin altındaki adayları atar, skora göre azalan sırada
        (eşitlikte girdi sırasını koruyarak) ``limit`` kadar sonuç döndürür.
        """
        if not isinstance(query, str) or limit <= 0 or not index:
            return []
        normalized_query = query if prenormalized else self._normalizer.normalize_for_matching(query)
        if not normalized_query:
            return []

        min_score = self.threshold if threshold is None else threshold
        scored: list[tuple[float, MatchResult]] = []

        for candidate in index:
            best: MatchResult | None = None
            best_score = 0.0
            for f in candidate["fields"]:
                score, similarity = self._score(normalized_query, f["normalized"], f["is_alias"])
                if best is None or score > best_score:
                    best_score = score
                    best = MatchResult(
                        item=candidate["item"],
                        score=round(score, 4),
                        similarity=round(similarity, 4),
                        field=f["field"],
                        value=f["value"],
                        is_alias=f["is_alias"],
                    )
            # Eşik yuvarlanmamış skorla karşılaştırılır; yuvarlama yalnızca çıktı için
            if best is not None and best_score >= min_score:
                scored.append((best_score, best))

        # sort() kararlıdır: eşit skorlar girdi sırasını korur
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [result for _, result in scored[:limit]]

    def find_matches(
        self,
        query: str,
        items: Iterable[Any],
        field_selector: FieldSelector,
        limit: int = 10,
        threshold: float | None = None,
    ) -> list[MatchResult]:
        """Sorguyu adaylara karşı puanlar; eşiği geçenleri sıralı döndürür."""
        if not isinstance(query, str) or not query.strip() or not items:
            return []
        return self.search_index(query, self.index(items, field_selector), limit, threshold)

    def find_best_match(
        self,
        query: str,
        items: Iterable[Any],
        field_selector: FieldSelector,
        threshold: float | None = None,
    ) -> MatchResult | None:
        matches = self.find_matches(query, items, field_selector, limit=1, threshold=threshold)
        return matches[0] if matches else None


def _token_boundary_match(query_words: list[str], candidate_words: list[str]) -> bool:
    """Sorgudaki bir kelime adaydaki bir kelimenin öneki mi (ya da tersi)?"""
    return any(
        qw.startswith(cw) or cw.startswith(qw)
        for qw in query_words
        for cw in candidate_words
    )


# Modül düzeyinde tekil (singleton) eşleştirici örneği
fuzzy_matcher = FuzzyMatcher()
