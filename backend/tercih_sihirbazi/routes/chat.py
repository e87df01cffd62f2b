"""Öğrenci sohbet endpoint'leri."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session, select

from backend.tercih_sihirbazi.config import MAX_MESSAGE_LENGTH
from backend.tercih_sihirbazi.db import get_session
from backend.tercih_sihirbazi.dialogue.orchestrator import DialogueResponse, dialogue_orchestrator
from backend.tercih_sihirbazi.models import Message, UserSession

logger = logging.getLogger("tercih_sihirbazi.chat")

router = APIRouter(prefix="/api/chat", tags=["chat"])


# ── Request şeması ────────────────────────────────────────────────────
class ChatRequest(BaseModel):
    session_id: Optional[str] = Field(None, max_length=64)
    user_id: Optional[str] = Field(None, max_length=64)
    text: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


# ── Mesaj gönderme endpoint'i ─────────────────────────────────────────
@router.post("/message", response_model=DialogueResponse)
def send_message(
    body: ChatRequest,
    session: Session = Depends(get_session),
) -> DialogueResponse:
    """
    Öğrenciden gelen mesajı işler:
    1. Diyalog motorundan cevap zarfını alır (oturum kimliği yoksa üretilir).
    2. Oturum kaydı yoksa oluşturur.
    3. Kullanıcı ve bot mesajlarını niyet/varlık bilgisiyle kaydeder.
    """
    response = dialogue_orchestrator.process_turn(body.session_id, body.user_id, body.text)
    session_id = response.session_id or ""

    if session_id and not session.get(UserSession, session_id):
        session.add(UserSession(id=session_id, user_id=(body.user_id or "anonim").strip() or "anonim"))
        session.commit()

    session.add(Message(
        session_id=session_id,
        role="user",
        text=body.text.strip(),
        intent=response.intent,
        confidence=response.confidence,
        entities=response.entities,
    ))
    session.add(Message(
        session_id=session_id,
        role="bot",
        text=response.message,
        intent=response.intent,
    ))
    session.commit()

    logger.info("Mesaj işlendi (oturum=%s, niyet=%s, güven=%.4f)", session_id, response.intent, response.confidence)
    return response


# ── Sohbet geçmişi ───────────────────────────────────────────────────
@router.get("/history")
def get_history(
    session_id: str,
    after_id: Optional[int] = None,
    session: Session = Depends(get_session),
) -> list[dict]:
    """
    Belirli bir oturumun mesaj geçmişini döndürür.

    after_id verilirse yalnızca o id'den büyük mesajları döndürür (polling).
    """
    query = select(Message).where(Message.session_id == session_id)
    if after_id is not None:
        query = query.where(Message.id > after_id)  # type: ignore[operator]
    query = query.order_by(Message.id.asc())  # type: ignore[union-attr]

    messages = session.exec(query).all()
    return [
        {
            "id": m.id,
            "role": m.role,
            "text": m.text,
            "intent": m.intent,
            "confidence": m.confidence,
            "entities": m.entities,
            "created_at": m.created_at.isoformat() if m.created_at else None,
        }
        for m in messages
    ]


# ── Konuşma bağlamı ──────────────────────────────────────────────────
@router.get("/summary/{session_id}")
def get_summary(session_id: str) -> dict:
    """Bellekteki konuşma bağlamının özeti."""
    contexts = dialogue_orchestrator.contexts
    context = contexts.get_context(session_id)
    if context is None:
        raise HTTPException(status_code=404, detail="Oturum bulunamadı.")
    return {
        "session_id": session_id,
        "summary": contexts.get_conversation_summary(session_id),
        "state": context.state.value,
        "entities": contexts.get_accumulated_entities(session_id),
    }


@router.delete("/context/{session_id}")
def clear_context(session_id: str) -> dict:
    """Konuşma bağlamını sıfırlar (mesaj geçmişi korunur)."""
    if not dialogue_orchestrator.contexts.clear_context(session_id):
        raise HTTPException(status_code=404, detail="Oturum bulunamadı.")
    return {"session_id": session_id, "cleared": True}


# ── Niyetler ──────────────────────────────────────────────────────────
@router.get("/intents")
def get_intents() -> list[str]:
    """Sınıflandırıcının seçebileceği niyetler."""
    return dialogue_orchestrator.classifier.intents
