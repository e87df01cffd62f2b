"""
Üniversite / bölüm referans kataloğu.

Katalog, dış bir veri aktarım sürecinin ürettiği JSON dosyasından (ya da
dosya yoksa seed_data içindeki yerleşik listelerden) okunur ve salt okunur
bir anlık görüntü (snapshot) olarak tutulur.  Yenileme yeni bir görüntü
oluşturup tek atamayla değiştirir; devam eden aramalar eski görüntüyü
kullanmaya devam eder.

JSON biçimi:
    {
      "universities": [{"name": "...", "aliases": ["..."], "city": "..."}],
      "departments":  [{"name": "...", "aliases": ["..."]}]
    }

Kullanım:
    from backend.tercih_sihirbazi.knowledge.catalog import reference_catalog
    reference_catalog.search_universities("odtü")
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, TypedDict

from pydantic import BaseModel, Field, ValidationError, field_validator

from backend.tercih_sihirbazi.config import CATALOG_PATH
from backend.tercih_sihirbazi.errors import CatalogError
from backend.tercih_sihirbazi.nlp.fuzzy import (
    FuzzyMatcher,
    IndexedCandidate,
    MatchResult,
    SearchField,
    fuzzy_matcher,
)
from backend.tercih_sihirbazi.nlp.seed_data import DEPARTMENT_CATALOG, UNIVERSITY_CATALOG

logger = logging.getLogger("tercih_sihirbazi.knowledge.catalog")


# ── Tip tanımları ─────────────────────────────────────────────────────
class _CatalogItemBase(TypedDict):
    name: str
    aliases: list[str]


class CatalogItem(_CatalogItemBase, total=False):
    city: str


def catalog_fields(item: CatalogItem) -> list[SearchField]:
    """Arama alanları: kanonik ad + takma adlar."""
    fields: list[SearchField] = [SearchField(field="name", value=item["name"])]
    fields.extend(
        SearchField(field="alias", value=alias, is_alias=True)
        for alias in item.get("aliases", [])
    )
    return fields


class CatalogSnapshot:
    """Değiştirilemez katalog görüntüsü ve önceden hazırlanmış arama indeksleri."""

    def __init__(
        self,
        universities: list[CatalogItem],
        departments: list[CatalogItem],
        source: str,
        matcher: FuzzyMatcher = fuzzy_matcher,
    ) -> None:
        self.universities: tuple[CatalogItem, ...] = tuple(universities)
        self.departments: tuple[CatalogItem, ...] = tuple(departments)
        self.source = source
        self.loaded_at = datetime.now(timezone.utc)
        self.university_index: list[IndexedCandidate] = matcher.index(self.universities, catalog_fields)
        self.department_index: list[IndexedCandidate] = matcher.index(self.departments, catalog_fields)


# ── Katalog sağlayıcı ────────────────────────────────────────────────
class ReferenceCatalog:
    """Periyodik olarak yenilenen salt okunur katalog sağlayıcı."""

    def __init__(self, matcher: FuzzyMatcher = fuzzy_matcher) -> None:
        self._matcher = matcher
        self._snapshot: CatalogSnapshot | None = None

    # ── Hazır mı? ─────────────────────────────────────────────────
    @property
    def is_ready(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> CatalogSnapshot:
        """Geçerli görüntü; henüz yüklenmediyse yerleşik katalogla oluşturulur."""
        snapshot = self._snapshot
        if snapshot is None:
            snapshot = self.build()
        return snapshot

    # ── Oluştur / yükle ───────────────────────────────────────────
    def build(self, catalog_path: str | Path | None = None, force: bool = False) -> CatalogSnapshot:
        """
        Kataloğu yükler.

        Args:
            catalog_path: JSON dosya yolu.  None ise CATALOG_PATH, o da yoksa
                          yerleşik katalog kullanılır.
            force:        True ise mevcut görüntü olsa bile yeniden yükler.

        Raises:
            CatalogError: Dosya okunamıyor veya biçimi hatalıysa;
                          yenilemede açıkça verilen dosya yoksa.
        """
        if self._snapshot is not None and not force:
            return self._snapshot

        path = Path(catalog_path) if catalog_path else (Path(CATALOG_PATH) if CATALOG_PATH else None)

        if path is None:
            return self.build_seed()

        if not path.exists():
            # Açıkça istenen yenileme dosya yoksa görüntüyü değiştirmez
            if force and catalog_path:
                raise CatalogError(f"Katalog dosyası bulunamadı: {path}")
            logger.warning("Katalog dosyası bulunamadı, yerleşik katalog kullanılıyor: %s", path)
            return self.build_seed()

        logger.info("Katalog dosyadan yükleniyor: %s", path)
        universities, departments = _load_catalog_file(path)
        return self._install(universities, departments, str(path))

    def build_seed(self) -> CatalogSnapshot:
        """seed_data içindeki yerleşik katalogu yükler."""
        universities = [_coerce_item(u) for u in UNIVERSITY_CATALOG]
        departments = [_coerce_item(d) for d in DEPARTMENT_CATALOG]
        return self._install(universities, departments, "seed")

    def _install(
        self,
        universities: list[CatalogItem],
        departments: list[CatalogItem],
        source: str,
    ) -> CatalogSnapshot:
        snapshot = CatalogSnapshot(universities, departments, source, self._matcher)
        self._snapshot = snapshot
        logger.info(
            "Katalog hazır – %d üniversite, %d bölüm (kaynak: %s).",
            len(snapshot.universities),
            len(snapshot.departments),
            source,
        )
        return snapshot

    def refresh(self, catalog_path: str | Path | None = None) -> CatalogSnapshot:
        """Kataloğu yeniden yükler; hata olursa eski görüntü korunur."""
        return self.build(catalog_path=catalog_path, force=True)

    # ── Arama ─────────────────────────────────────────────────────
    def search_universities(self, query: str, limit: int = 10) -> list[MatchResult]:
        return self._matcher.search_index(query, self.snapshot.university_index, limit)

    def search_departments(self, query: str, limit: int = 10) -> list[MatchResult]:
        return self._matcher.search_index(query, self.snapshot.department_index, limit)

    def stats(self) -> dict:
        snapshot = self._snapshot
        if snapshot is None:
            return {"ready": False}
        return {
            "ready": True,
            "source": snapshot.source,
            "universities": len(snapshot.universities),
            "departments": len(snapshot.departments),
            "loaded_at": snapshot.loaded_at.isoformat(),
        }


# ── Dosya okuma ───────────────────────────────────────────────────────
class CatalogEntry(BaseModel):
    """Dosyadaki tek üniversite / bölüm kaydı."""

    name: str = Field(min_length=1)
    aliases: list[str] = Field(default_factory=list)
    city: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("ad boş olamaz")
        return value

    @field_validator("aliases", mode="before")
    @classmethod
    def _none_aliases(cls, value):
        return [] if value is None else value

    def to_item(self) -> CatalogItem:
        item = CatalogItem(name=self.name, aliases=[a for a in self.aliases if a.strip()])
        if self.city:
            item["city"] = self.city
        return item


class CatalogFile(BaseModel):
    universities: list[CatalogEntry] = Field(default_factory=list)
    departments: list[CatalogEntry] = Field(default_factory=list)


def _coerce_item(raw: object) -> CatalogItem:
    try:
        return CatalogEntry.model_validate(raw).to_item()
    except ValidationError as exc:
        raise CatalogError(f"Geçersiz katalog kaydı: {raw!r}") from exc


def _load_catalog_file(path: Path) -> tuple[list[CatalogItem], list[CatalogItem]]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"Katalog dosyası okunamadı: {path}") from exc

    try:
        data = CatalogFile.model_validate_json(raw)
    except ValidationError as exc:
        raise CatalogError(f"Katalog dosyası geçersiz: {path} ({exc.error_count()} hata)") from exc

    return (
        [entry.to_item() for entry in data.universities],
        [entry.to_item() for entry in data.departments],
    )


# ── Modül düzeyinde tekil örnek ───────────────────────────────────────
reference_catalog = ReferenceCatalog()
