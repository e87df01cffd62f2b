"""
Tur bazlı diyalog akışı.

    ham metin → normalleştirme → niyet → varlıklar → bağlam (birleştirme +
    durum geçişi) → takip önerileri → cevap zarfı

``process_turn`` dış dünyaya açılan tek giriş noktasıdır ve hiçbir koşulda
hata fırlatmaz: girdi hataları nazik bir netleştirme cevabına, beklenmeyen
hatalar sabit hata zarfına dönüştürülür.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.tercih_sihirbazi.config import MAX_CLARIFICATION_QUESTIONS, MAX_MESSAGE_LENGTH
from backend.tercih_sihirbazi.dialogue.context import ConversationContextManager, context_manager
from backend.tercih_sihirbazi.dialogue.followup import FollowUpHandler, FollowUpSuggestion
from backend.tercih_sihirbazi.dialogue.responses import ResponseRenderer, response_renderer
from backend.tercih_sihirbazi.errors import InputValidationError
from backend.tercih_sihirbazi.nlp.classifier import (
    STICKINESS_BOOST,
    Intent,
    IntentClassification,
    IntentClassifier,
    classifier,
    evidence_confidence,
)
from backend.tercih_sihirbazi.nlp.entities import EntityExtractor, entity_extractor
from backend.tercih_sihirbazi.nlp.normalizer import normalize
from backend.tercih_sihirbazi.nlp.seed_data import (
    EMPTY_MESSAGE_REPLY,
    ERROR_MESSAGE,
    ERROR_SUGGESTIONS,
)

logger = logging.getLogger("tercih_sihirbazi.dialogue.orchestrator")

ANONYMOUS_USER: str = "anonim"

# Eksik bir varlığı dolduran her kısa cevap için kanıt
SLOT_EVIDENCE: float = 0.5
_FALLBACK_INTENTS = (Intent.GENERAL.value, Intent.CLARIFICATION_NEEDED.value)


# ── Cevap zarfı ───────────────────────────────────────────────────────
class DialogueResponse(BaseModel):
    """Diğer bileşenlerin tükettiği sabit cevap sözleşmesi (camelCase JSON)."""

    model_config = ConfigDict(populate_by_name=True)

    intent: str
    entities: dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    message: str
    suggestions: list[str] = Field(default_factory=list)
    clarification_needed: Optional[bool] = Field(None, alias="clarificationNeeded")
    follow_up_questions: Optional[list[str]] = Field(None, alias="followUpQuestions")
    session_id: Optional[str] = Field(None, alias="sessionId")


def error_response(session_id: str | None = None) -> DialogueResponse:
    return DialogueResponse(
        intent=Intent.ERROR.value,
        entities={},
        confidence=0.0,
        message=ERROR_MESSAGE,
        suggestions=list(ERROR_SUGGESTIONS),
        session_id=session_id,
    )


# ══════════════════════════════════════════════════════════════════════
#  ORKESTRATÖR
# ══════════════════════════════════════════════════════════════════════

class DialogueOrchestrator:
    def __init__(
        self,
        intent_classifier: IntentClassifier = classifier,
        extractor: EntityExtractor = entity_extractor,
        contexts: ConversationContextManager = context_manager,
        follow_ups: FollowUpHandler | None = None,
        renderer: ResponseRenderer = response_renderer,
        max_clarification_questions: int = MAX_CLARIFICATION_QUESTIONS,
    ) -> None:
        self.classifier = intent_classifier
        self.extractor = extractor
        self.contexts = contexts
        self.follow_ups = follow_ups or FollowUpHandler(contexts)
        self.renderer = renderer
        self.max_clarification_questions = max_clarification_questions

    # ── Ana giriş ─────────────────────────────────────────────────────
    def process_turn(self, session_id: Any, user_id: Any, raw_text: Any) -> DialogueResponse:
        """
        Bir kullanıcı mesajını işler ve cevap zarfını döndürür.

        Boş/geçersiz oturum kimliği için yeni kimlik üretilir; boş mesaj
        bağlama dokunmadan netleştirme cevabı alır.  Beklenmeyen her hata
        loglanır ve ``intent="error"`` zarfına çevrilir.
        """
        session_id = self._session_id(session_id)
        try:
            text = self._validate_text(raw_text)
        except InputValidationError as exc:
            logger.info("Geçersiz girdi (oturum=%s): %s", session_id, exc)
            return DialogueResponse(
                intent=Intent.CLARIFICATION_NEEDED.value,
                entities=self.contexts.get_accumulated_entities(session_id),
                confidence=0.0,
                message=EMPTY_MESSAGE_REPLY,
                suggestions=[s["text"] for s in self.follow_ups.generate_help_suggestions()],
                clarification_needed=True,
                session_id=session_id,
            )

        user_id = user_id.strip() if isinstance(user_id, str) and user_id.strip() else ANONYMOUS_USER

        try:
            # Aynı oturumun turları birbirini bekler; farklı oturumlar paralel
            with self.contexts.session_lock(session_id):
                return self._process(session_id, user_id, text)
        except Exception:
            logger.exception("Tur işlenemedi (oturum=%s)", session_id)
            return error_response(session_id)

    def _process(self, session_id: str, user_id: str, text: str) -> DialogueResponse:
        normalized = normalize(text)
        context = self.contexts.get_or_create_context(session_id, user_id)
        previous_intent = context.previous_intent

        classification = self.classifier.classify(normalized, previous_intent)
        matches = self.extractor.extract_entities(normalized, intent=classification["intent"])
        turn_entities = self.extractor.to_entity_map(matches)
        classification = self._continue_slot_filling(session_id, classification, previous_intent, turn_entities)
        classification = self.classifier.infer_from_entities(classification, turn_entities)
        intent = classification["intent"]

        logger.debug(
            "Tur (oturum=%s): niyet=%s güven=%.4f kanıt=%s varlık=%s",
            session_id, intent, classification["confidence"], classification["keywords"], turn_entities,
        )

        # Tekrar ve kafa karışıklığı kontrolü tur kaydedilmeden önce yapılmalı
        repeated = self.contexts.is_repeating_question(session_id, text)
        offer_help = self.follow_ups.should_offer_help(session_id, text, repeated=repeated)
        self.contexts.add_entry(session_id, intent, turn_entities, text)
        merged = self.contexts.get_accumulated_entities(session_id)

        missing = self.contexts.get_missing_entities(session_id, intent)
        consistent = self.classifier.validate(classification, merged)
        if not consistent:
            logger.debug("Niyet bilinen varlıklarla zayıf destekleniyor (oturum=%s): %s", session_id, intent)
        clarification_needed = (
            bool(missing) or not consistent or intent == Intent.CLARIFICATION_NEEDED.value
        )
        questions: list[str] = []

        if missing:
            questions = self.contexts.generate_clarification_questions(
                session_id, intent, limit=self.max_clarification_questions,
            )
            message = self.renderer.render_clarification(intent, questions)
        else:
            message = self.renderer.render(intent, merged)

        suggestions = [s["text"] for s in self._suggestions(session_id, intent, offer_help, bool(missing))]
        if not consistent and not offer_help and not missing:
            # Zayıf niyette bilinen varlıklara uygun örnek sorular önerilir
            suggestions = self.classifier.suggest_intents(merged)
        self.contexts.update_latest_response(session_id, message)

        return DialogueResponse(
            intent=intent,
            entities=merged,
            confidence=classification["confidence"],
            message=message,
            suggestions=suggestions,
            clarification_needed=clarification_needed,
            follow_up_questions=questions or None,
            session_id=session_id,
        )

    def _continue_slot_filling(
        self,
        session_id: str,
        classification: IntentClassification,
        previous_intent: str | None,
        turn_entities: dict[str, Any],
    ) -> IntentClassification:
        """
        Yalnızca eksik bilgiyi veren kısa cevaplar ("sayısal", "ODTÜ") önceki
        niyeti sürdürür: sınıflandırma geri dönüşe düşmüşse ve bu tur önceki
        niyetin eksik varlıklarından en az birini dolduruyorsa önceki niyet
        seçilir.
        """
        if previous_intent is None or classification["intent"] not in _FALLBACK_INTENTS:
            return classification
        filled = [
            entity for entity in self.contexts.get_missing_entities(session_id, previous_intent)
            if turn_entities.get(entity) is not None
        ]
        if not filled:
            return classification

        score = classification["score"] + STICKINESS_BOOST + SLOT_EVIDENCE * len(filled)
        return IntentClassification(
            intent=previous_intent,
            confidence=evidence_confidence(score),
            keywords=["slot filling"],
            score=round(score, 4),
        )

    def _suggestions(
        self,
        session_id: str,
        intent: str,
        offer_help: bool,
        missing: bool,
    ) -> list[FollowUpSuggestion]:
        if offer_help:
            logger.info("Kullanıcı takılmış görünüyor, yardım önerileri sunuluyor (oturum=%s)", session_id)
            return self.follow_ups.generate_help_suggestions()
        if missing:
            clarifications = self.follow_ups.generate_clarification_follow_ups(session_id, intent)
            if clarifications:
                return clarifications[: self.follow_ups.max_suggestions]
        return self.follow_ups.generate_follow_up_suggestions(session_id, intent)

    # ── Girdi doğrulama ───────────────────────────────────────────────
    @staticmethod
    def _session_id(session_id: Any) -> str:
        if isinstance(session_id, str) and session_id.strip():
            return session_id.strip()
        generated = uuid.uuid4().hex
        logger.info("Oturum kimliği boş, yeni kimlik üretildi: %s", generated)
        return generated

    @staticmethod
    def _validate_text(raw_text: Any) -> str:
        if not isinstance(raw_text, str):
            raise InputValidationError("Mesaj metni bir dize olmalı.")
        text = raw_text.strip()
        if not text:
            raise InputValidationError("Mesaj metni boş.")
        return text[:MAX_MESSAGE_LENGTH]


dialogue_orchestrator = DialogueOrchestrator()
