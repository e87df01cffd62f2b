"""Ortak test fixture'ları."""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Uygulama modülleri import edilmeden önce: geçici veritabanı, tarama görevi kapalı
_TMP_DIR = Path(tempfile.mkdtemp(prefix="tercih_test_"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ["SWEEP_INTERVAL_SECONDS"] = "0"
os.environ.pop("CATALOG_PATH", None)

import pytest  # noqa: E402

from backend.tercih_sihirbazi.dialogue.context import ConversationContextManager  # noqa: E402
from backend.tercih_sihirbazi.dialogue.followup import FollowUpHandler  # noqa: E402
from backend.tercih_sihirbazi.dialogue.orchestrator import DialogueOrchestrator  # noqa: E402
from backend.tercih_sihirbazi.knowledge.catalog import ReferenceCatalog  # noqa: E402
from backend.tercih_sihirbazi.nlp.classifier import IntentClassifier  # noqa: E402
from backend.tercih_sihirbazi.nlp.entities import EntityExtractor  # noqa: E402


class FakeClock:
    """Elle ilerletilen saat (süre aşımı testleri için)."""

    def __init__(self) -> None:
        self.now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(scope="session")
def catalog():
    reference = ReferenceCatalog()
    reference.build_seed()
    return reference


@pytest.fixture(scope="session")
def extractor(catalog):
    return EntityExtractor(catalog=catalog)


@pytest.fixture(scope="session")
def intent_classifier():
    return IntentClassifier()


@pytest.fixture
def contexts(clock):
    return ConversationContextManager(clock=clock)


@pytest.fixture
def follow_ups(contexts):
    return FollowUpHandler(contexts)


@pytest.fixture
def orchestrator(intent_classifier, extractor, contexts, follow_ups):
    return DialogueOrchestrator(
        intent_classifier=intent_classifier,
        extractor=extractor,
        contexts=contexts,
        follow_ups=follow_ups,
    )
