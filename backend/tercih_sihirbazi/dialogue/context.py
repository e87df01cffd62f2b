"""
Oturum bazlı konuşma bağlamı.

Her oturum için:
    * sınırlı kapasiteli tur geçmişi (en eski tur önce atılır),
    * turlar boyunca biriken varlık haritası (son boş olmayan değer kazanır),
    * ileri yönlü konuşma durum makinesi
      (initial → gathering_info → processing → completed)
tutulur.

Eşzamanlılık: aynı oturumu değiştiren işlemler oturuma özgü bir kilitle
sıralanır; farklı oturumlar birbirini beklemez.  Süre aşımı taraması da aynı
kilidi alır ve silmeden önce boşta kalma süresini yeniden kontrol eder.
Tarama bu sınıf tarafından zamanlanmaz; çağıran taraf (ör. uygulama yaşam
döngüsündeki arka plan görevi) ``cleanup_expired_contexts`` çağırır.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, TypedDict

from backend.tercih_sihirbazi.config import (
    CONTEXT_EXPIRY_MINUTES,
    MAX_CONTEXT_ENTRIES,
    REPETITION_WINDOW,
)
from backend.tercih_sihirbazi.errors import StateCorruptionError
from backend.tercih_sihirbazi.nlp.normalizer import normalize
from backend.tercih_sihirbazi.nlp.seed_data import CLARIFICATION_QUESTIONS, REQUIRED_ENTITIES

logger = logging.getLogger("tercih_sihirbazi.dialogue.context")

HISTORY_PREVIEW_SIZE: int = 5
SUMMARY_SIZE: int = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationState(str, Enum):
    INITIAL = "initial"
    GATHERING_INFO = "gathering_info"
    PROCESSING = "processing"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _STATE_ORDER.index(self)


_STATE_ORDER: tuple[ConversationState, ...] = (
    ConversationState.INITIAL,
    ConversationState.GATHERING_INFO,
    ConversationState.PROCESSING,
    ConversationState.COMPLETED,
)


# ── Veri yapıları ─────────────────────────────────────────────────────
@dataclass
class TurnEntry:
    timestamp: datetime
    intent: str
    entities: dict[str, Any]
    user_message: str
    normalized_message: str
    bot_response: str | None = None


@dataclass
class SessionContext:
    session_id: str
    user_id: str
    entries: deque[TurnEntry]
    entities: dict[str, Any] = field(default_factory=dict)
    state: ConversationState = ConversationState.INITIAL
    created_at: datetime = field(default_factory=_utcnow)
    last_activity: datetime = field(default_factory=_utcnow)
    turn_count: int = 0

    @property
    def previous_intent(self) -> str | None:
        return self.entries[-1].intent if self.entries else None


class ConversationSnapshot(TypedDict):
    previous_intent: str | None
    entities: dict[str, Any]
    history: list[str]


# ══════════════════════════════════════════════════════════════════════
#  BAĞLAM YÖNETİCİSİ
# ══════════════════════════════════════════════════════════════════════

class ConversationContextManager:
    """Bellek içi, oturum anahtarlı konuşma bağlamı deposu."""

    def __init__(
        self,
        max_entries: int = MAX_CONTEXT_ENTRIES,
        expiry_minutes: float = CONTEXT_EXPIRY_MINUTES,
        repetition_window: int = REPETITION_WINDOW,
        required_entities: Mapping[str, tuple[str, ...]] = REQUIRED_ENTITIES,
        clarification_questions: Mapping[str, Mapping[str, str]] = CLARIFICATION_QUESTIONS,
        clock: Callable[[], datetime] = _utcnow,
        strict: bool = False,
    ) -> None:
        self.max_entries = max(1, max_entries)
        self.expiry = timedelta(minutes=expiry_minutes)
        self.repetition_window = repetition_window
        self._required_entities = required_entities
        self._clarification_questions = clarification_questions
        self._clock = clock
        self.strict = strict

        self._contexts: dict[str, SessionContext] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    # ── Kilitleme ─────────────────────────────────────────────────────
    @contextmanager
    def session_lock(self, session_id: str) -> Iterator[None]:
        """
        Oturuma özgü yeniden girilebilir kilit.

        Kilit beklenirken oturum silinip kilidi kayıttan çıkarılmışsa yeni
        kilitle tekrar denenir; böylece silinen bir oturumun eski kilidiyle
        çalışan iki iş parçacığı oluşmaz.
        """
        while True:
            with self._registry_lock:
                lock = self._locks.setdefault(session_id, threading.RLock())
            lock.acquire()
            with self._registry_lock:
                current = self._locks.get(session_id)
            if current is lock:
                break
            lock.release()
        try:
            yield
        finally:
            lock.release()

    def _lookup(self, session_id: str) -> SessionContext | None:
        with self._registry_lock:
            return self._contexts.get(session_id)

    def _missing_session(self, session_id: str, operation: str) -> None:
        if self.strict:
            raise StateCorruptionError(session_id)
        logger.warning("Var olmayan oturumda %s denendi, yok sayılıyor: %s", operation, session_id)

    # ── Oluşturma / güncelleme ────────────────────────────────────────
    def get_or_create_context(self, session_id: str, user_id: str) -> SessionContext:
        with self.session_lock(session_id):
            now = self._clock()
            context = self._lookup(session_id)
            if context is None:
                context = SessionContext(
                    session_id=session_id,
                    user_id=user_id,
                    entries=deque(maxlen=self.max_entries),
                    created_at=now,
                    last_activity=now,
                )
                with self._registry_lock:
                    self._contexts[session_id] = context
                logger.info("Yeni konuşma bağlamı oluşturuldu: %s (kullanıcı: %s)", session_id, user_id)
            else:
                context.last_activity = now
            return context

    def add_entry(
        self,
        session_id: str,
        intent: str,
        entities: Mapping[str, Any],
        user_message: str,
        bot_response: str | None = None,
    ) -> None:
        """Turu geçmişe ekler, varlıkları birleştirir ve durumu ilerletir."""
        with self.session_lock(session_id):
            context = self._lookup(session_id)
            if context is None:
                self._missing_session(session_id, "tur ekleme")
                return

            turn_entities = dict(entities or {})
            context.entries.append(TurnEntry(
                timestamp=self._clock(),
                intent=intent,
                entities=turn_entities,
                user_message=user_message,
                normalized_message=normalize(user_message),
                bot_response=bot_response,
            ))
            context.turn_count += 1
            self._merge_entities(context, turn_entities)
            self._advance_state(context, intent)
            context.last_activity = self._clock()

            logger.debug(
                "Tur eklendi: %s niyet=%s varlık=%d durum=%s",
                session_id, intent, len(turn_entities), context.state.value,
            )

    def update_latest_response(self, session_id: str, bot_response: str) -> None:
        with self.session_lock(session_id):
            context = self._lookup(session_id)
            if context is None:
                self._missing_session(session_id, "cevap güncelleme")
                return
            if not context.entries:
                return
            context.entries[-1].bot_response = bot_response
            context.last_activity = self._clock()

    @staticmethod
    def _merge_entities(context: SessionContext, new_entities: Mapping[str, Any]) -> None:
        # Boş (None) değer mevcut değeri silmez
        for key, value in new_entities.items():
            if value is not None:
                context.entities[key] = value

    def _advance_state(self, context: SessionContext, intent: str) -> None:
        has_all = self._has_all(context, intent)
        target = context.state

        if target is ConversationState.INITIAL:
            target = ConversationState.GATHERING_INFO
        if has_all and intent != "clarification_needed":
            target = _max_state(target, ConversationState.PROCESSING)
        if intent == "completed" or (has_all and context.turn_count > 1):
            target = ConversationState.COMPLETED

        # Durum yalnızca ileri gider
        if target.rank > context.state.rank:
            logger.debug("Durum geçişi %s: %s → %s", context.session_id, context.state.value, target.value)
            context.state = target

    # ── Sorgular ──────────────────────────────────────────────────────
    def get_context(self, session_id: str) -> SessionContext | None:
        return self._lookup(session_id)

    def get_conversation_context(self, session_id: str) -> ConversationSnapshot | None:
        """Sınıflandırma için önceki niyet, biriken varlıklar ve son mesajlar."""
        context = self._lookup(session_id)
        if context is None:
            return None
        with self.session_lock(session_id):
            entries = list(context.entries)
            return ConversationSnapshot(
                previous_intent=entries[-1].intent if entries else None,
                entities=dict(context.entities),
                history=[e.user_message for e in entries[-HISTORY_PREVIEW_SIZE:]],
            )

    def get_accumulated_entities(self, session_id: str) -> dict[str, Any]:
        context = self._lookup(session_id)
        if context is None:
            return {}
        with self.session_lock(session_id):
            return dict(context.entities)

    def get_state(self, session_id: str) -> ConversationState | None:
        context = self._lookup(session_id)
        return context.state if context is not None else None

    def get_required_entities(self, intent: str) -> tuple[str, ...]:
        """Niyet için zorunlu varlıklar; tabloda olmayan niyetler için boş."""
        return tuple(self._required_entities.get(intent, ()))

    def _has_all(self, context: SessionContext, intent: str) -> bool:
        return all(context.entities.get(e) is not None for e in self.get_required_entities(intent))

    def get_missing_entities(self, session_id: str, intent: str) -> list[str]:
        required = self.get_required_entities(intent)
        context = self._lookup(session_id)
        if context is None:
            return list(required)
        with self.session_lock(session_id):
            return [e for e in required if context.entities.get(e) is None]

    def has_required_entities(self, session_id: str, intent: str) -> bool:
        # Oturum yoksa tüm zorunlu varlıklar eksik sayılır
        return not self.get_missing_entities(session_id, intent)

    def generate_clarification_questions(
        self,
        session_id: str,
        intent: str,
        limit: int | None = None,
    ) -> list[str]:
        """Eksik her zorunlu varlık için (niyet, varlık) anahtarlı hazır soru."""
        templates = self._clarification_questions.get(intent, {})
        questions = [
            templates[entity]
            for entity in self.get_missing_entities(session_id, intent)
            if entity in templates
        ]
        return questions[:limit] if limit is not None else questions

    def is_repeating_question(self, session_id: str, user_message: str) -> bool:
        """Normalleştirilmiş mesaj son K mesajdan biriyle aynı mı?"""
        normalized = normalize(user_message)
        context = self._lookup(session_id)
        if context is None or not normalized or self.repetition_window <= 0:
            return False
        with self.session_lock(session_id):
            recent = list(context.entries)[-self.repetition_window:]
        return any(e.normalized_message == normalized for e in recent)

    def get_conversation_summary(self, session_id: str) -> str:
        context = self._lookup(session_id)
        if context is None or not context.entries:
            return "Yeni konuşma başlatıldı."
        with self.session_lock(session_id):
            recent = list(context.entries)[-SUMMARY_SIZE:]

        parts = []
        for entry in recent:
            if entry.entities:
                parts.append(f"{entry.intent} ({', '.join(entry.entities)} belirtildi)")
            else:
                parts.append(entry.intent)
        return "Son konuşma: " + " → ".join(parts)

    # ── Silme / süre aşımı ────────────────────────────────────────────
    def clear_context(self, session_id: str) -> bool:
        """Oturumu siler (açık sıfırlama).  Oturum varsa True."""
        with self.session_lock(session_id):
            with self._registry_lock:
                removed = self._contexts.pop(session_id, None)
                self._locks.pop(session_id, None)
        if removed is not None:
            logger.info("Konuşma bağlamı silindi: %s", session_id)
        return removed is not None

    def cleanup_expired_contexts(self, now: datetime | None = None) -> int:
        """
        Boşta kalma süresi zaman aşımını geçen oturumları siler.

        Her aday oturumun kilidi alınır ve süre kilit altında yeniden
        kontrol edilir; kilit beklenirken güncellenen oturum korunur.

        Returns:
            Silinen oturum sayısı.
        """
        now = now or self._clock()
        with self._registry_lock:
            candidates = [
                sid for sid, ctx in self._contexts.items()
                if now - ctx.last_activity > self.expiry
            ]
            orphan_locks = [
                (sid, lock) for sid, lock in self._locks.items() if sid not in self._contexts
            ]

        removed = 0
        for session_id in candidates:
            with self.session_lock(session_id):
                with self._registry_lock:
                    context = self._contexts.get(session_id)
                    if context is None or now - context.last_activity <= self.expiry:
                        continue
                    del self._contexts[session_id]
                    self._locks.pop(session_id, None)
                    removed += 1

        # Bağlamı hiç oluşmamış oturumların kilitleri (kullanımda değilse)
        for session_id, lock in orphan_locks:
            if not lock.acquire(blocking=False):
                continue
            try:
                with self._registry_lock:
                    if session_id not in self._contexts and self._locks.get(session_id) is lock:
                        del self._locks[session_id]
            finally:
                lock.release()

        if removed:
            logger.info("Süresi dolan %d oturum silindi, kalan: %d", removed, len(self._contexts))
        return removed

    # ── İstatistik ────────────────────────────────────────────────────
    def get_stats(self) -> dict[str, Any]:
        with self._registry_lock:
            sessions = list(self._contexts.values())
        if not sessions:
            return {"total_sessions": 0, "average_entries": 0.0, "oldest_session": None}
        return {
            "total_sessions": len(sessions),
            "average_entries": round(sum(len(s.entries) for s in sessions) / len(sessions), 2),
            "oldest_session": min(s.created_at for s in sessions).isoformat(),
        }

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._contexts)

    def __contains__(self, session_id: object) -> bool:
        with self._registry_lock:
            return session_id in self._contexts


def _max_state(a: ConversationState, b: ConversationState) -> ConversationState:
    return a if a.rank >= b.rank else b


# Uygulama genelinde paylaşılan bağlam deposu
context_manager = ConversationContextManager()
