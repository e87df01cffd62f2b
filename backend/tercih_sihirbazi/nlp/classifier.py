"""
Ağırlıklı anahtar kelime tabanlı niyet (intent) sınıflandırıcı.

Her niyetin ağırlıklı anahtar kelime/ifade tablosu vardır.  Skor, metinde
geçen anahtar kelimelerin ağırlıklarının toplamı ile bağlam düzeltmelerinin
toplamıdır:

    * sayı içeren mesajlar hesaplama niyetlerini güçlendirir,
    * soru işareti / soru kelimesi sorgu niyetlerini güçlendirir,
    * bir önceki turdaki niyet küçük bir "yapışkanlık" payı alır.

En yüksek skor kazanır; eşit skorda tabloda önce tanımlanan niyet seçilir.
Seçilen niyetin güveni minimum kanıt eşiğini geçmiyorsa soru sezgisine göre
"general" ya da "clarification_needed" döndürülür.  Sınıflandırıcı hiçbir
girdide hata fırlatmaz.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, TypedDict

from backend.tercih_sihirbazi.config import MIN_INTENT_EVIDENCE
from backend.tercih_sihirbazi.nlp.normalizer import normalize
from backend.tercih_sihirbazi.nlp.seed_data import (
    CALCULATION_INTENTS,
    INQUIRY_INTENTS,
    INTENT_KEYWORDS,
    QUESTION_WORDS,
)

logger = logging.getLogger("tercih_sihirbazi.nlp.classifier")

# ── Bağlam düzeltmeleri ───────────────────────────────────────────────
NUMERIC_BOOST: float = 0.3
QUESTION_BOOST: float = 0.2
STICKINESS_BOOST: float = 0.2

# Niyet bulunamadığında varlıklardan çıkarım için kanıt ağırlıkları
ENTITY_EVIDENCE: dict[str, float] = {"university": 0.5, "department": 0.4}

_PARTIAL_MATCH_SCORE: float = 0.5
_MIN_PREFIX_LENGTH: int = 3


class Intent(str, Enum):
    """Kapalı niyet kümesi."""

    TYT_CALCULATION = "tyt_calculation"
    AYT_CALCULATION = "ayt_calculation"
    NET_CALCULATION = "net_calculation"
    BASE_SCORE = "base_score"
    QUOTA_INQUIRY = "quota_inquiry"
    DEPARTMENT_SEARCH = "department_search"
    UNIVERSITY_INFO = "university_info"
    STUDY_ADVICE = "study_advice"
    GREETING = "greeting"
    THANKS = "thanks"
    GENERAL = "general"
    # Sınıflandırıcının kendisi seçmez; geri dönüş ve durum makinesi için
    CLARIFICATION_NEEDED = "clarification_needed"
    COMPLETED = "completed"
    ERROR = "error"

    @classmethod
    def coerce(cls, value: Any) -> Intent | None:
        """Dize veya Intent değerini Intent'e çevirir; bilinmiyorsa None."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None


class IntentClassification(TypedDict):
    intent: str
    confidence: float
    keywords: list[str]
    score: float


def evidence_confidence(score: float) -> float:
    """
    Biriken kanıttan güven skoru: ``1 - e^(-skor)``.

    Monoton artandır; kanıt yokken 0'a, kanıt doygunlaştıkça 1'e yaklaşır.
    """
    if score <= 0 or math.isnan(score):
        return 0.0
    return round(1.0 - math.exp(-score), 4)


class IntentClassifier:
    """Türkçe metinden niyet seçen sınıflandırıcı."""

    def __init__(
        self,
        keyword_table: Mapping[str, list[tuple[list[str], float]]] = INTENT_KEYWORDS,
        question_words: Iterable[str] = QUESTION_WORDS,
        calculation_intents: Iterable[str] = CALCULATION_INTENTS,
        inquiry_intents: Iterable[str] = INQUIRY_INTENTS,
        min_evidence: float = MIN_INTENT_EVIDENCE,
    ) -> None:
        # Anahtar kelimeler bir kez normalleştirilir; tablo sırası korunur
        self._patterns: list[tuple[str, list[tuple[str, list[str], str, float]]]] = []
        for intent, groups in keyword_table.items():
            compiled = []
            for keywords, weight in groups:
                for keyword in keywords:
                    norm = normalize(keyword)
                    if norm:
                        compiled.append((norm, norm.split(), keyword, weight))
            self._patterns.append((intent, compiled))

        normalized_questions = [normalize(q) for q in question_words]
        self._question_words = frozenset(q for q in normalized_questions if " " not in q)
        self._question_phrases = tuple(q for q in normalized_questions if " " in q)
        self._calculation_intents = frozenset(calculation_intents)
        self._inquiry_intents = frozenset(inquiry_intents)
        self.min_evidence = min_evidence

    # ── Sınıflandırma ─────────────────────────────────────────────────
    def classify(self, text: str, previous_intent: str | Intent | None = None) -> IntentClassification:
        """
        Metin için niyet, güven ve kanıt listesi döndürür.

        Metin ham ya da önceden normalleştirilmiş olabilir (normalleştirme
        idempotenttir).
        """
        normalized = normalize(text) if isinstance(text, str) else ""
        words = [w for w in normalized.split() if w != "?"]
        previous = Intent.coerce(previous_intent) if previous_intent else None

        has_number = any(ch.isdigit() for ch in normalized)
        is_question = self.is_question(normalized)

        best_intent: str | None = None
        best_score = 0.0
        best_keywords: list[str] = []
        all_scores: dict[str, float] = {}

        for intent, patterns in self._patterns:
            score = 0.0
            matched: list[str] = []
            for norm, kw_words, raw, weight in patterns:
                keyword_score = self._keyword_score(normalized, words, norm, kw_words)
                if keyword_score > 0:
                    score += keyword_score * weight
                    if raw not in matched:
                        matched.append(raw)

            if has_number and intent in self._calculation_intents:
                score += NUMERIC_BOOST
            if is_question and intent in self._inquiry_intents:
                score += QUESTION_BOOST
            if previous is not None and previous.value == intent:
                score += STICKINESS_BOOST

            all_scores[intent] = round(score, 4)
            # Kesin büyüktür: eşitlikte önce tanımlanan niyet kalır
            if score > best_score:
                best_intent, best_score, best_keywords = intent, score, matched

        logger.debug("Niyet skorları: %s", all_scores)

        # Eşik güvene uygulanır: seçilen niyetin güveni eşikten büyük olmalı
        confidence = evidence_confidence(best_score)
        if best_intent is None or confidence <= self.min_evidence:
            return self.handle_unknown_intent(normalized, best_score)

        return IntentClassification(
            intent=best_intent,
            confidence=confidence,
            keywords=best_keywords,
            score=round(best_score, 4),
        )

    def handle_unknown_intent(self, normalized: str, score: float = 0.0) -> IntentClassification:
        """Kanıt yetersizse soru sezgisiyle geri dönüş niyeti seçer."""
        if self.is_question(normalized):
            return IntentClassification(
                intent=Intent.CLARIFICATION_NEEDED.value,
                confidence=evidence_confidence(score),
                keywords=["question detected"],
                score=round(score, 4),
            )
        return IntentClassification(
            intent=Intent.GENERAL.value,
            confidence=evidence_confidence(score),
            keywords=[],
            score=round(score, 4),
        )

    def infer_from_entities(
        self,
        classification: IntentClassification,
        entities: Mapping[str, Any],
    ) -> IntentClassification:
        """
        Geri dönüş niyeti seçildiyse bu turdaki varlıklardan niyet çıkarır.

        Üniversite + bölüm → net_calculation, yalnızca üniversite →
        department_search.  Diğer durumlarda sınıflandırma aynen döner.
        """
        if classification["intent"] not in (Intent.GENERAL.value, Intent.CLARIFICATION_NEEDED.value):
            return classification

        has_university = bool(entities.get("university"))
        has_department = bool(entities.get("department"))
        if has_university and has_department:
            intent = Intent.NET_CALCULATION
        elif has_university:
            intent = Intent.DEPARTMENT_SEARCH
        else:
            return classification

        score = classification["score"] + sum(
            weight for key, weight in ENTITY_EVIDENCE.items() if entities.get(key)
        )
        return IntentClassification(
            intent=intent.value,
            confidence=evidence_confidence(score),
            keywords=["inferred from entities"],
            score=round(score, 4),
        )

    # ── Yardımcılar ───────────────────────────────────────────────────
    @staticmethod
    def _keyword_score(text: str, words: list[str], keyword: str, keyword_words: list[str]) -> float:
        if len(keyword_words) == 1:
            if keyword in words:
                return 1.0
            # Türkçe ekler: "puanım", "kontenjanı" ...
            if len(keyword) >= _MIN_PREFIX_LENGTH and any(w.startswith(keyword) for w in words):
                return _PARTIAL_MATCH_SCORE
            return 0.0
        # Çok kelimeli ifade: kelime sınırında geçmeli
        if f" {keyword} " in f" {text} ":
            return float(len(keyword_words))
        return 0.0

    def is_question(self, text: str) -> bool:
        """Soru işareti veya soru kelimesi içeriyor mu?"""
        normalized = normalize(text) if isinstance(text, str) else ""
        if not normalized:
            return False
        if "?" in normalized:
            return True
        words = normalized.split()
        if any(w in self._question_words for w in words):
            return True
        # "nedir", "hangisidir", "kactir" gibi ekli soru kelimeleri
        if any(
            w.startswith(q) for w in words for q in self._question_words if len(q) >= 4
        ):
            return True
        padded = f" {normalized} "
        return any(f" {p} " in padded for p in self._question_phrases)

    @property
    def intents(self) -> list[str]:
        """Anahtar kelime tablosundaki niyetler (tanım sırasıyla)."""
        return [intent for intent, _ in self._patterns]

    # ── Öneriler ──────────────────────────────────────────────────────
    @staticmethod
    def suggest_intents(entities: Mapping[str, Any]) -> list[str]:
        """Bilinen varlıklara göre kullanıcıya sorulabilecek örnek sorular."""
        if entities.get("university") and entities.get("department"):
            return [
                "Bu bölüm için kaç net gerekli?",
                "Taban puanı nedir?",
                "Kontenjanı kaç kişi?",
            ]
        if entities.get("university"):
            return [
                "Hangi bölümler var?",
                "En popüler bölümler neler?",
            ]
        return [
            "Hangi üniversiteyi merak ediyorsunuz?",
            "Net hesaplama nasıl yapılır?",
            "Taban puan sorgulama nasıl yapılır?",
        ]

    @staticmethod
    def validate(classification: IntentClassification, entities: Mapping[str, Any]) -> bool:
        """Sınıflandırmanın bilinen varlıklarla tutarlı olup olmadığını kontrol eder."""
        intent = Intent.coerce(classification["intent"])
        confidence = classification["confidence"]

        if intent is Intent.NET_CALCULATION:
            return confidence > 0.5 or bool(entities.get("university") and entities.get("department"))
        if intent in (Intent.BASE_SCORE, Intent.QUOTA_INQUIRY):
            return confidence > 0.4 or bool(entities.get("university"))
        if intent is Intent.DEPARTMENT_SEARCH:
            return confidence > 0.4
        return confidence > 0.3


# Modül düzeyinde tekil (singleton) sınıflandırıcı örneği
classifier = IntentClassifier()
