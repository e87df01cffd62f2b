"""Uygulama yapılandırması – .env dosyasından okunur."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# .env dosyasını yükle (proje kök dizininde)
_env_path = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_env_path)

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# Veritabanı dosyası backend/ klasörü altında oluşturulur
DATABASE_URL: str = os.getenv(
    "DATABASE_URL",
    "sqlite:///" + str(Path(__file__).resolve().parents[1] / "tercih_sihirbazi.db"),
)

# Katalog dosyası verilmezse seed_data içindeki yerleşik katalog kullanılır
CATALOG_PATH: str | None = os.getenv("CATALOG_PATH") or None

# ── Bulanık eşleştirme ───────────────────────────────────────────────
# Katalog aramasında kabul edilen en düşük benzerlik
SIMILARITY_THRESHOLD: float = float(os.getenv("SIMILARITY_THRESHOLD", "0.6"))
# Serbest metinden çıkarılan bir parçanın varlık sayılması için gereken skor
ENTITY_CONFIDENCE_THRESHOLD: float = float(os.getenv("ENTITY_CONFIDENCE_THRESHOLD", "0.8"))

# ── Niyet sınıflandırma ──────────────────────────────────────────────
MIN_INTENT_EVIDENCE: float = float(os.getenv("MIN_INTENT_EVIDENCE", "0.5"))

# ── Konuşma bağlamı ──────────────────────────────────────────────────
MAX_CONTEXT_ENTRIES: int = int(os.getenv("MAX_CONTEXT_ENTRIES", "10"))
CONTEXT_EXPIRY_MINUTES: float = float(os.getenv("CONTEXT_EXPIRY_MINUTES", "30"))
REPETITION_WINDOW: int = int(os.getenv("REPETITION_WINDOW", "3"))
MAX_CLARIFICATION_QUESTIONS: int = int(os.getenv("MAX_CLARIFICATION_QUESTIONS", "2"))
MAX_SUGGESTIONS: int = int(os.getenv("MAX_SUGGESTIONS", "4"))

# Süresi dolan oturumları temizleyen arka plan görevinin periyodu (0 → kapalı)
SWEEP_INTERVAL_SECONDS: float = float(os.getenv("SWEEP_INTERVAL_SECONDS", "300"))

MAX_MESSAGE_LENGTH: int = 2000
