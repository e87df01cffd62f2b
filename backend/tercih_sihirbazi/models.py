"""SQLModel veri modelleri – sohbet dökümü."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ── Kullanıcı oturumu ────────────────────────────────────────────────
class UserSession(SQLModel, table=True):
    __tablename__ = "user_sessions"

    id: str = Field(primary_key=True, max_length=64)
    user_id: str = Field(default="anonim", max_length=64, index=True)
    created_at: datetime = Field(default_factory=_now)


# ── Mesaj ─────────────────────────────────────────────────────────────
class Message(SQLModel, table=True):
    __tablename__ = "messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: str = Field(max_length=64, index=True)
    role: str = Field(max_length=10)  # "user" | "bot"
    text: str
    intent: Optional[str] = Field(default=None, max_length=50, index=True)
    confidence: Optional[float] = Field(default=None)
    entities: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=_now)
