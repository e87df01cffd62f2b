"""
Takip (follow-up) önerileri.

Niyete özgü şablonlar, eksik varlıklar için netleştirme soruları, kullanıcı
takıldığında yardım listesi ve biriken varlıklara göre bilgilendirici
notlar üretir.  Çıktı önceliğe göre azalan sırada, eşit öncelikte tanım
sırasıyla (kararlı sıralama) döner.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import Any, TypedDict

from backend.tercih_sihirbazi.config import MAX_SUGGESTIONS
from backend.tercih_sihirbazi.dialogue.context import ConversationContextManager, context_manager
from backend.tercih_sihirbazi.nlp.normalizer import fold
from backend.tercih_sihirbazi.nlp.seed_data import (
    CONFUSION_INDICATORS,
    ENGINEERING_KEYWORDS,
    ENTITY_QUESTIONS,
    FALLBACK_FOLLOW_UPS,
    FOLLOW_UP_TEMPLATES,
    GENERAL_FOLLOW_UPS,
    HELP_FOLLOW_UPS,
    SOCIAL_SCIENCE_KEYWORDS,
)

logger = logging.getLogger("tercih_sihirbazi.dialogue.followup")

CLARIFICATION_PRIORITY: int = 10
CONFUSION_THRESHOLD: int = 2


class FollowUpType(str, Enum):
    QUESTION = "question"
    ACTION = "action"
    INFORMATION = "information"


class _FollowUpBase(TypedDict):
    type: str
    text: str
    priority: int


class FollowUpSuggestion(_FollowUpBase, total=False):
    intent: str
    entities: dict[str, Any]


class FollowUpHandler:
    """Bağlam yöneticisine dayanarak sıralı öneri listesi üretir."""

    def __init__(
        self,
        contexts: ConversationContextManager = context_manager,
        templates: Mapping[str, Sequence[Mapping[str, Any]]] = FOLLOW_UP_TEMPLATES,
        general_follow_ups: Sequence[Mapping[str, Any]] = GENERAL_FOLLOW_UPS,
        help_follow_ups: Sequence[Mapping[str, Any]] = HELP_FOLLOW_UPS,
        fallback_follow_ups: Sequence[Mapping[str, Any]] = FALLBACK_FOLLOW_UPS,
        entity_questions: Mapping[str, str] = ENTITY_QUESTIONS,
        confusion_indicators: Iterable[str] = CONFUSION_INDICATORS,
        max_suggestions: int = MAX_SUGGESTIONS,
    ) -> None:
        self._contexts = contexts
        self._templates = templates
        self._general = general_follow_ups
        self._help = help_follow_ups
        self._fallback = fallback_follow_ups
        self._entity_questions = entity_questions
        self._confusion_indicators = tuple(fold(c) for c in confusion_indicators)
        self.max_suggestions = max_suggestions

    # ── Ana giriş ─────────────────────────────────────────────────────
    def generate_follow_up_suggestions(
        self,
        session_id: str,
        intent: str,
        entities: Mapping[str, Any] | None = None,
    ) -> list[FollowUpSuggestion]:
        """
        Niyet şablonları + bağlamsal notlar, önceliğe göre ilk N öneri.

        ``entities`` verilirse oturumda biriken varlıkların üzerine yazılır
        (henüz kaydedilmemiş bu turun varlıkları için).
        """
        try:
            known = self._known_entities(session_id, entities)
            templates = self._templates.get(intent)
            if templates is None:
                suggestions = [_copy(t) for t in self._general]
            else:
                suggestions = self._render_templates(templates, known)
            suggestions.extend(self.generate_contextual_suggestions(known))
            return self._rank(suggestions)
        except Exception:
            logger.exception("Takip önerileri üretilemedi (oturum=%s, niyet=%s)", session_id, intent)
            return self.generate_fallback_suggestions()

    def generate_clarification_follow_ups(
        self,
        session_id: str,
        intent: str,
        entities: Mapping[str, Any] | None = None,
    ) -> list[FollowUpSuggestion]:
        """Eksik her zorunlu varlık için bir soru önerisi."""
        known = self._known_entities(session_id, entities)
        suggestions: list[FollowUpSuggestion] = []
        for entity in self._contexts.get_required_entities(intent):
            if known.get(entity) is not None:
                continue
            text = self._entity_questions.get(entity)
            if text:
                suggestions.append(FollowUpSuggestion(
                    type=FollowUpType.QUESTION.value,
                    text=text,
                    intent="clarification_needed",
                    priority=CLARIFICATION_PRIORITY,
                ))
        return suggestions

    # ── Yardım ────────────────────────────────────────────────────────
    def should_offer_help(self, session_id: str, user_message: str, repeated: bool | None = None) -> bool:
        """
        Kullanıcı aynı soruyu tekrarlıyorsa ya da son mesajlarında en az iki
        kez kafa karışıklığı ifadesi geçiyorsa True.

        ``repeated`` verilirse tekrar kontrolü yeniden yapılmaz (tur
        kaydedilmeden önce hesaplanmış değer).
        """
        if repeated is None:
            repeated = self._contexts.is_repeating_question(session_id, user_message)
        if repeated:
            return True

        snapshot = self._contexts.get_conversation_context(session_id)
        history = list(snapshot["history"]) if snapshot else []
        history.append(user_message)
        confused = sum(1 for message in history if self.contains_confusion_indicator(message))
        return confused >= CONFUSION_THRESHOLD

    def contains_confusion_indicator(self, message: str) -> bool:
        folded = fold(message)
        return any(indicator in folded for indicator in self._confusion_indicators)

    def generate_help_suggestions(self) -> list[FollowUpSuggestion]:
        return [_copy(t) for t in self._help]

    def generate_fallback_suggestions(self) -> list[FollowUpSuggestion]:
        return [_copy(t) for t in self._fallback]

    # ── Bağlamsal notlar ──────────────────────────────────────────────
    @staticmethod
    def generate_contextual_suggestions(entities: Mapping[str, Any]) -> list[FollowUpSuggestion]:
        suggestions: list[FollowUpSuggestion] = []
        department = fold(str(entities.get("department") or ""))

        if department and any(fold(k) in department for k in ENGINEERING_KEYWORDS):
            suggestions.append(FollowUpSuggestion(
                type=FollowUpType.INFORMATION.value,
                text="Mühendislik bölümleri genellikle SAY puan türünden öğrenci alır",
                priority=4,
            ))
        if department and any(fold(k) in department for k in SOCIAL_SCIENCE_KEYWORDS):
            suggestions.append(FollowUpSuggestion(
                type=FollowUpType.INFORMATION.value,
                text="Sosyal bilimler bölümleri EA veya SÖZ puan türünden öğrenci alır",
                priority=4,
            ))
        language = entities.get("language")
        if isinstance(language, str) and "İngilizce" in language:
            suggestions.append(FollowUpSuggestion(
                type=FollowUpType.INFORMATION.value,
                text="İngilizce bölümler genellikle daha yüksek puan ister",
                priority=3,
            ))
        return suggestions

    # ── Yardımcılar ───────────────────────────────────────────────────
    def _known_entities(self, session_id: str, entities: Mapping[str, Any] | None) -> dict[str, Any]:
        known = self._contexts.get_accumulated_entities(session_id)
        for key, value in (entities or {}).items():
            if value is not None:
                known[key] = value
        return known

    @staticmethod
    def _render_templates(
        templates: Sequence[Mapping[str, Any]],
        entities: Mapping[str, Any],
    ) -> list[FollowUpSuggestion]:
        suggestions: list[FollowUpSuggestion] = []
        for template in templates:
            requires = template.get("requires", ())
            if any(entities.get(key) is None for key in requires):
                continue
            if any(entities.get(key) is not None for key in template.get("excludes", ())):
                continue
            try:
                text = template["text"].format_map({k: entities[k] for k in requires})
            except (KeyError, IndexError, ValueError):
                logger.debug("Şablon doldurulamadı, atlandı: %s", template["text"])
                continue

            suggestion = FollowUpSuggestion(
                type=template["type"],
                text=text,
                priority=int(template["priority"]),
            )
            if template.get("intent"):
                suggestion["intent"] = template["intent"]
            if requires:
                suggestion["entities"] = {key: entities[key] for key in requires}
            suggestions.append(suggestion)
        return suggestions

    def _rank(self, suggestions: list[FollowUpSuggestion]) -> list[FollowUpSuggestion]:
        # sorted() kararlı: eşit öncelikte tanım sırası korunur
        ranked = sorted(suggestions, key=lambda s: s["priority"], reverse=True)
        return ranked[: self.max_suggestions]


def _copy(template: Mapping[str, Any]) -> FollowUpSuggestion:
    suggestion = FollowUpSuggestion(
        type=template["type"],
        text=template["text"],
        priority=int(template["priority"]),
    )
    if template.get("intent"):
        suggestion["intent"] = template["intent"]
    return suggestion


follow_up_handler = FollowUpHandler()
