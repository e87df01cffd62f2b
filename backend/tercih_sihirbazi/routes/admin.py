"""Yönetim endpoint'leri – bağlam istatistikleri, süre aşımı taraması, katalog yenileme."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session, func, select

from backend.tercih_sihirbazi.db import get_session
from backend.tercih_sihirbazi.dialogue.orchestrator import dialogue_orchestrator
from backend.tercih_sihirbazi.errors import CatalogError
from backend.tercih_sihirbazi.knowledge.catalog import reference_catalog
from backend.tercih_sihirbazi.models import Message, UserSession

logger = logging.getLogger("tercih_sihirbazi.admin")

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ── Şemalar ───────────────────────────────────────────────────────────
class CatalogRefresh(BaseModel):
    path: Optional[str] = None


# ── İstatistikler ────────────────────────────────────────────────────
@router.get("/stats")
def get_stats(session: Session = Depends(get_session)) -> dict:
    """Bellekteki bağlamlar, kayıtlı oturumlar ve niyet dağılımı."""
    total_sessions = session.exec(select(func.count(UserSession.id))).one()
    total_messages = session.exec(select(func.count(Message.id))).one()

    intent_counts = {}
    rows = session.exec(
        select(Message.intent, func.count(Message.id))
        .where(Message.role == "user")
        .group_by(Message.intent)
    ).all()
    for intent, cnt in rows:
        intent_counts[intent or "Bilinmiyor"] = cnt

    return {
        "contexts": dialogue_orchestrator.contexts.get_stats(),
        "total_sessions": total_sessions,
        "total_messages": total_messages,
        "by_intent": intent_counts,
        "catalog": reference_catalog.stats(),
    }


# ── Süre aşımı taraması ──────────────────────────────────────────────
@router.post("/sweep")
def sweep_contexts() -> dict:
    """Boşta kalma süresi dolan konuşma bağlamlarını hemen temizler."""
    removed = dialogue_orchestrator.contexts.cleanup_expired_contexts()
    return {"removed": removed, "remaining": len(dialogue_orchestrator.contexts)}


# ── Katalog ───────────────────────────────────────────────────────────
@router.post("/catalog/refresh")
def refresh_catalog(body: Optional[CatalogRefresh] = None) -> dict:
    """Referans kataloğu yeniden yükler; hata olursa eski katalog kullanılmaya devam eder."""
    try:
        reference_catalog.refresh(body.path if body else None)
    except CatalogError as exc:
        logger.warning("Katalog yenilenemedi: %s", exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return reference_catalog.stats()
