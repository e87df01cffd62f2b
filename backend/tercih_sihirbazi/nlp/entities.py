"""
Türkçe metinden tipli varlık (entity) çıkarımı.

Varlık türleri:
    university / department – katalog üzerinde bulanık eşleştirme
    scoreType               – puan türü tablosu (SAY, EA, SÖZ, DİL, TYT, AYT)
    language                – öğretim dili tablosu ("%30 İngilizce" dahil)
    numbers                 – ders bazında doğru/yanlış sayıları, hedef net/puan
                              ve etiketsiz sayılar

Eşleşme bulunamaması hata değildir; ilgili varlık sonuçta yer almaz.
Çözümlenemeyen parçalar sessizce atlanır.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import Any, TypedDict

from backend.tercih_sihirbazi.config import ENTITY_CONFIDENCE_THRESHOLD
from backend.tercih_sihirbazi.knowledge.catalog import ReferenceCatalog, reference_catalog
from backend.tercih_sihirbazi.nlp.fuzzy import (
    FuzzyMatcher,
    IndexedCandidate,
    fuzzy_matcher,
    levenshtein_similarity,
)
from backend.tercih_sihirbazi.nlp.normalizer import TextNormalizer, normalize, text_normalizer
from backend.tercih_sihirbazi.nlp.seed_data import (
    EXAM_QUESTION_COUNTS,
    LANGUAGES,
    SCORE_TYPES,
    SUBJECT_KEYWORDS,
)

logger = logging.getLogger("tercih_sihirbazi.nlp.entities")

MAX_SPAN_WORDS: int = 4

_EXPLICIT_COUNT_CONFIDENCE: float = 0.95
_INFERRED_COUNT_CONFIDENCE: float = 0.85
_TARGET_CONFIDENCE: float = 0.8
_LANGUAGE_CONFIDENCE: float = 0.9
_UNLABELED_CONFIDENCE: float = 0.5
_FUZZY_TERM_SIMILARITY: float = 0.8

_TOKEN = re.compile(r"\S+")
_NUMBER = re.compile(r"\b\d+\b")
_TARGET_NET = re.compile(r"\b(\d{1,3})\s*net\b")
_TARGET_SCORE = re.compile(r"\b(\d{2,3})\s*puan\w*")
_LANGUAGE_RATIO = re.compile(r"(?:%\s*|yuzde\s+)(\d{1,3})\s*(ingilizce|english|ing)\b")
_STAGE = re.compile(r"\b(tyt|ayt)\b")


class EntityType(str, Enum):
    UNIVERSITY = "university"
    DEPARTMENT = "department"
    SCORE_TYPE = "scoreType"
    LANGUAGE = "language"
    NUMBERS = "numbers"


ALL_ENTITY_TYPES: tuple[str, ...] = tuple(t.value for t in EntityType)


class EntityMatch(TypedDict):
    entity: str         # varlık haritasındaki anahtar (ör. "university", "tyt_math")
    value: Any
    confidence: float
    start: int          # normalleştirilmiş metindeki karakter aralığı
    end: int
    text: str


class EntityExtractor:
    """Katalog, tablo ve kalıp kurallarıyla varlık çıkarıcı."""

    def __init__(
        self,
        catalog: ReferenceCatalog = reference_catalog,
        matcher: FuzzyMatcher = fuzzy_matcher,
        normalizer: TextNormalizer = text_normalizer,
        score_types: Mapping[str, tuple[str, float]] = SCORE_TYPES,
        languages: Mapping[str, str] = LANGUAGES,
        subject_keywords: Mapping[str, str] = SUBJECT_KEYWORDS,
        question_counts: Mapping[str, Mapping[str, int]] = EXAM_QUESTION_COUNTS,
        min_confidence: float = ENTITY_CONFIDENCE_THRESHOLD,
    ) -> None:
        self._catalog = catalog
        self._matcher = matcher
        self._normalizer = normalizer
        self._score_types = [(normalize(term), code, conf) for term, (code, conf) in score_types.items()]
        self._languages = {normalize(term): name for term, name in languages.items()}
        self._question_counts = question_counts
        self.min_confidence = min_confidence

        # Uzun anahtar kelimeler önce denenmeli ("fen bilimleri" > "fen")
        keywords = sorted(subject_keywords, key=len, reverse=True)
        self._subject_keywords = {normalize(k): v for k, v in subject_keywords.items()}
        alternation = "|".join(re.escape(normalize(k)) for k in keywords)
        # "<ders> <n> doğru [<n> yanlış]" ya da yalnızca "<ders> <n> yanlış";
        # etiketsiz veya "net" etiketli sayılar ders sayısı sayılmaz
        self._subject_pattern = re.compile(
            rf"\b(?P<subject>{alternation})\w*\s+"
            r"(?:(?P<correct>\d{1,3})\s*(?:dogru\b|d\b)"
            r"(?:\s*(?:ve\s+)?(?P<wrong>\d{1,3})\s*(?:yanlis\w*|y\b))?"
            r"|(?P<wrong_only>\d{1,3})\s*(?:yanlis\w*|y\b))"
        )

    # ── Ana giriş ─────────────────────────────────────────────────────
    def extract_entities(
        self,
        text: str,
        entity_types: Iterable[str] | None = None,
        intent: str | None = None,
    ) -> list[EntityMatch]:
        """
        Metindeki varlıkları güven skoruna göre azalan sırada döndürür.

        Args:
            text:         Ham veya normalleştirilmiş kullanıcı mesajı.
            entity_types: Çıkarılacak türler; None ise hepsi.
            intent:       Sınav aşaması belirsizse (TYT/AYT) ipucu olarak kullanılır.
        """
        normalized = normalize(text) if isinstance(text, str) else ""
        if not normalized:
            return []

        requested = [
            t.value if isinstance(t, EntityType) else str(t)
            for t in (entity_types if entity_types is not None else ALL_ENTITY_TYPES)
        ]
        matches: list[EntityMatch] = []
        consumed: list[tuple[int, int]] = []

        # Sayılar önce: ders adları ("türkçe 30 doğru") dil olarak okunmasın
        if EntityType.NUMBERS.value in requested:
            matches.extend(self._guarded(self.extract_numbers, normalized, intent, consumed))
        if EntityType.UNIVERSITY.value in requested:
            matches.extend(self._guarded(
                self._extract_catalog_entities, normalized,
                self._catalog.snapshot.university_index, EntityType.UNIVERSITY.value,
            ))
        if EntityType.DEPARTMENT.value in requested:
            matches.extend(self._guarded(
                self._extract_catalog_entities, normalized,
                self._catalog.snapshot.department_index, EntityType.DEPARTMENT.value,
            ))
        if EntityType.SCORE_TYPE.value in requested:
            matches.extend(self._guarded(self.extract_score_types, normalized))
        if EntityType.LANGUAGE.value in requested:
            matches.extend(self._guarded(self.extract_languages, normalized, consumed))

        # sorted() kararlı: eşit güvende çıkarım sırası korunur
        return sorted(matches, key=lambda m: m["confidence"], reverse=True)

    def extract_entity_map(
        self,
        text: str,
        entity_types: Iterable[str] | None = None,
        intent: str | None = None,
    ) -> dict[str, Any]:
        return self.to_entity_map(self.extract_entities(text, entity_types, intent))

    @staticmethod
    def to_entity_map(matches: Sequence[EntityMatch]) -> dict[str, Any]:
        """Her anahtar için en yüksek güvenli eşleşmenin değeri."""
        entity_map: dict[str, Any] = {}
        for match in sorted(matches, key=lambda m: m["confidence"], reverse=True):
            if match["value"] is not None and match["entity"] not in entity_map:
                entity_map[match["entity"]] = match["value"]
        return entity_map

    def _guarded(self, func, *args) -> list[EntityMatch]:
        try:
            return func(*args)
        except Exception:
            logger.exception("Varlık çıkarımı başarısız (%s), boş sonuçla devam ediliyor.", func.__name__)
            return []

    # ── Üniversite / bölüm ────────────────────────────────────────────
    def _extract_catalog_entities(
        self,
        normalized: str,
        index: Sequence[IndexedCandidate],
        entity: str,
    ) -> list[EntityMatch]:
        """
        Kelime gruplarını (1..MAX_SPAN_WORDS) katalogla karşılaştırır.

        Bir grup, hem ek puanlı skoru hem ham benzerliği ``min_confidence``
        değerini geçerse aday olur.  Adaylar skor, benzerlik ve grup uzunluğuna
        göre sıralanır; çakışmayan en iyi adaylar seçilir.
        """
        if not index:
            return []

        tokens = [(m.group(), m.start(), m.end()) for m in _TOKEN.finditer(normalized)]
        candidates: list[tuple[float, float, int, int, EntityMatch]] = []
        seen_forms: set[str] = set()

        for size in range(1, MAX_SPAN_WORDS + 1):
            for i in range(len(tokens) - size + 1):
                window = tokens[i:i + size]
                words = [w for w, _, _ in window]
                if any(w == "?" or any(ch.isdigit() for ch in w) for w in words):
                    continue
                # Dolgu kelimesiyle başlayan/biten gruplar kısa hâlinin tekrarıdır
                if self._normalizer.is_filler(words[0]) or (size > 1 and self._normalizer.is_filler(words[-1])):
                    continue
                form = self._normalizer.normalize_for_matching(" ".join(words))
                if not form or form in seen_forms:
                    continue
                seen_forms.add(form)

                results = self._matcher.search_index(
                    form, index, limit=1, threshold=self.min_confidence, prenormalized=True,
                )
                if not results or results[0]["similarity"] < self.min_confidence:
                    continue
                best = results[0]
                start, end = window[0][1], window[-1][2]
                candidates.append((
                    best["score"], best["similarity"], size, start,
                    EntityMatch(
                        entity=entity,
                        value=best["item"]["name"],
                        confidence=best["score"],
                        start=start,
                        end=end,
                        text=normalized[start:end],
                    ),
                ))

        candidates.sort(key=lambda c: (-c[0], -c[1], -c[2], c[3]))

        selected: list[EntityMatch] = []
        for _, _, _, _, match in candidates:
            if any(match["value"] == s["value"] for s in selected):
                continue
            if any(match["start"] < s["end"] and s["start"] < match["end"] for s in selected):
                continue
            selected.append(match)
        return selected

    # ── Puan türü ─────────────────────────────────────────────────────
    def extract_score_types(self, normalized: str) -> list[EntityMatch]:
        """Tablodaki terimler; uzun tek kelimeli terimlerde bulanık içerme."""
        padded = f" {normalized} "
        tokens = [(m.group(), m.start(), m.end()) for m in _TOKEN.finditer(normalized)]
        matches: list[EntityMatch] = []

        for term, code, confidence in self._score_types:
            idx = padded.find(f" {term} ")
            if idx != -1:
                matches.append(EntityMatch(
                    entity=EntityType.SCORE_TYPE.value, value=code, confidence=confidence,
                    start=idx, end=idx + len(term), text=term,
                ))
                continue
            if " " in term or len(term) < 5:
                continue
            # "sayisalci", "sozelden", "sayisl" gibi ekli/hatalı yazımlar
            for word, start, end in tokens:
                similarity = 1.0 if word.startswith(term) else levenshtein_similarity(word, term)
                if similarity >= _FUZZY_TERM_SIMILARITY:
                    matches.append(EntityMatch(
                        entity=EntityType.SCORE_TYPE.value, value=code,
                        confidence=round(confidence * similarity, 4),
                        start=start, end=end, text=word,
                    ))
                    break
        return matches

    # ── Öğretim dili ──────────────────────────────────────────────────
    def extract_languages(
        self,
        normalized: str,
        consumed: list[tuple[int, int]] | None = None,
    ) -> list[EntityMatch]:
        consumed = consumed if consumed is not None else []
        matches: list[EntityMatch] = []

        for m in _LANGUAGE_RATIO.finditer(normalized):
            matches.append(EntityMatch(
                entity=EntityType.LANGUAGE.value, value=f"%{int(m.group(1))} İngilizce",
                confidence=_LANGUAGE_CONFIDENCE, start=m.start(), end=m.end(), text=m.group(),
            ))
            consumed.append((m.start(), m.end()))

        tokens = [(m.group(), m.start(), m.end()) for m in _TOKEN.finditer(normalized)]
        for i, (word, start, end) in enumerate(tokens):
            name = self._languages.get(word)
            if name is None or _overlaps(start, end, consumed):
                continue
            # "tyt türkçe" bir ders adıdır, öğretim dili değil
            if i > 0 and tokens[i - 1][0] in ("tyt", "ayt"):
                continue
            matches.append(EntityMatch(
                entity=EntityType.LANGUAGE.value, value=name,
                confidence=_LANGUAGE_CONFIDENCE, start=start, end=end, text=word,
            ))
        return matches

    # ── Sayısal varlıklar ─────────────────────────────────────────────
    def extract_numbers(
        self,
        normalized: str,
        intent: str | None = None,
        consumed: list[tuple[int, int]] | None = None,
    ) -> list[EntityMatch]:
        """
        Ders bazında doğru/yanlış sayıları, hedef net/puan ve etiketsiz sayılar.

        Yalnızca doğru sayısı verilmişse yanlış sayısı
        ``max(0, soru sayısı - doğru)`` olarak tamamlanır.
        """
        consumed = consumed if consumed is not None else []
        matches: list[EntityMatch] = []
        # "%30 ingilizce" içindeki sayı öğretim dilinin parçasıdır
        language_spans = [(m.start(), m.end()) for m in _LANGUAGE_RATIO.finditer(normalized)]

        for m in self._subject_pattern.finditer(normalized):
            subject = self._subject_keywords.get(m.group("subject"))
            stage = self._exam_stage(normalized, m.start(), subject, intent)
            if subject is None or stage is None:
                continue
            question_count = self._question_counts[stage][subject]

            value: dict[str, int]
            if m.group("wrong_only") is not None:
                # Yalnızca yanlış sayısı: doğru sayısı tahmin edilmez
                correct = 0
                wrong = int(m.group("wrong_only"))
                value = {"wrong": wrong}
                confidence = _INFERRED_COUNT_CONFIDENCE
            elif m.group("wrong") is not None:
                correct = int(m.group("correct"))
                wrong = int(m.group("wrong"))
                value = {"correct": correct, "wrong": wrong}
                confidence = _EXPLICIT_COUNT_CONFIDENCE
            else:
                correct = int(m.group("correct"))
                wrong = max(0, question_count - correct)
                value = {"correct": correct, "wrong": wrong}
                confidence = _INFERRED_COUNT_CONFIDENCE

            if correct + wrong > question_count:
                logger.debug(
                    "Geçersiz sayı atlandı: %s %s (%d doğru, %d yanlış, %d soru)",
                    stage, subject, correct, wrong, question_count,
                )
                consumed.append((m.start(), m.end()))
                continue

            matches.append(EntityMatch(
                entity=f"{stage}_{subject}",
                value=value,
                confidence=confidence,
                start=m.start(),
                end=m.end(),
                text=m.group(),
            ))
            consumed.append((m.start(), m.end()))

        for pattern, key in ((_TARGET_NET, "targetNet"), (_TARGET_SCORE, "targetScore")):
            for m in pattern.finditer(normalized):
                if _overlaps(m.start(), m.end(), consumed):
                    continue
                matches.append(EntityMatch(
                    entity=key, value=int(m.group(1)), confidence=_TARGET_CONFIDENCE,
                    start=m.start(), end=m.end(), text=m.group(),
                ))
                consumed.append((m.start(), m.end()))

        unlabeled = [
            (int(m.group()), m.start(), m.end())
            for m in _NUMBER.finditer(normalized)
            if not _overlaps(m.start(), m.end(), consumed)
            and not _overlaps(m.start(), m.end(), language_spans)
        ]
        if unlabeled:
            matches.append(EntityMatch(
                entity=EntityType.NUMBERS.value,
                value=[n for n, _, _ in unlabeled],
                confidence=_UNLABELED_CONFIDENCE,
                start=unlabeled[0][1],
                end=unlabeled[-1][2],
                text=normalized[unlabeled[0][1]:unlabeled[-1][2]],
            ))
        return matches

    def _exam_stage(self, normalized: str, position: int, subject: str | None, intent: str | None) -> str | None:
        """Dersin ait olduğu sınav: en yakın önceki "tyt"/"ayt", niyet, ders tablosu."""
        if subject is None:
            return None
        preceding = _STAGE.findall(normalized[:position])
        stage = preceding[-1] if preceding else None
        if stage is None and intent in ("tyt_calculation", "ayt_calculation"):
            stage = intent.split("_", 1)[0]
        if stage is not None and subject in self._question_counts.get(stage, {}):
            return stage
        # Aşama belirsiz veya ders o aşamada yok: dersi içeren ilk tablo
        for candidate, subjects in self._question_counts.items():
            if subject in subjects:
                return candidate
        return None


def _overlaps(start: int, end: int, ranges: Iterable[tuple[int, int]]) -> bool:
    return any(start < r_end and r_start < end for r_start, r_end in ranges)


# Modül düzeyinde varsayılan çıkarıcı
entity_extractor = EntityExtractor()
