"""
Tercih Sihirbazı – Ana FastAPI uygulaması.

Çalıştırma:
    uvicorn backend.tercih_sihirbazi.main:app --reload
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.tercih_sihirbazi.config import LOG_LEVEL, SWEEP_INTERVAL_SECONDS
from backend.tercih_sihirbazi.db import create_db_and_tables
from backend.tercih_sihirbazi.dialogue.context import ConversationContextManager
from backend.tercih_sihirbazi.dialogue.orchestrator import dialogue_orchestrator
from backend.tercih_sihirbazi.knowledge.catalog import reference_catalog
from backend.tercih_sihirbazi.routes.admin import router as admin_router
from backend.tercih_sihirbazi.routes.catalog import router as catalog_router
from backend.tercih_sihirbazi.routes.chat import router as chat_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("tercih_sihirbazi")


# ── Süre aşımı taraması ──────────────────────────────────────────────
async def run_sweep(contexts: ConversationContextManager | None = None) -> int:
    """
    Süre aşımı taramasını iş parçacığı havuzunda çalıştırır.

    Tarama oturum kilitlerini bekleyebilir; olay döngüsünü bloklamamalı.
    """
    if contexts is None:
        contexts = dialogue_orchestrator.contexts
    return await asyncio.to_thread(contexts.cleanup_expired_contexts)


async def sweep_expired_contexts(interval: float) -> None:
    """Boşta kalan konuşma bağlamlarını periyodik olarak temizler."""
    while True:
        await asyncio.sleep(interval)
        try:
            await run_sweep()
        except Exception:
            logger.exception("Bağlam taraması başarısız.")


# ── Yaşam döngüsü ────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Uygulama başlatılırken DB, referans katalog ve tarama görevini hazırla."""
    logger.info("Veritabanı tabloları oluşturuluyor...")
    create_db_and_tables()

    logger.info("Referans katalog yükleniyor...")
    try:
        reference_catalog.build()
    except Exception:
        logger.exception("Katalog dosyası yüklenemedi – yerleşik katalog kullanılıyor.")
        reference_catalog.build_seed()

    sweep_task: asyncio.Task | None = None
    if SWEEP_INTERVAL_SECONDS > 0:
        sweep_task = asyncio.create_task(sweep_expired_contexts(SWEEP_INTERVAL_SECONDS))

    logger.info("Uygulama hazır!")

    yield  # Uygulama çalışıyor

    if sweep_task is not None:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass
    logger.info("Uygulama kapatılıyor.")


# ── FastAPI uygulaması ────────────────────────────────────────────────
app = FastAPI(
    title="Tercih Sihirbazı",
    description="Üniversite tercih asistanı – çok turlu Türkçe diyalog motoru",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS (geliştirme ortamı için)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Router'ları ekle
app.include_router(chat_router)
app.include_router(admin_router)
app.include_router(catalog_router)


@app.get("/health", include_in_schema=False)
async def health() -> dict:
    return {"status": "ok", "catalog_ready": reference_catalog.is_ready}
