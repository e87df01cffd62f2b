"""Katalog arama endpoint'leri (bulanık eşleştirme)."""

from __future__ import annotations

from fastapi import APIRouter, Query

from backend.tercih_sihirbazi.knowledge.catalog import reference_catalog
from backend.tercih_sihirbazi.nlp.fuzzy import MatchResult

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


def _serialize(results: list[MatchResult]) -> list[dict]:
    return [
        {
            "name": r["item"]["name"],
            "city": r["item"].get("city"),
            "matched_field": r["field"],
            "matched_value": r["value"],
            "score": r["score"],
        }
        for r in results
    ]


@router.get("/universities")
def search_universities(
    q: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(5, ge=1, le=50),
) -> list[dict]:
    return _serialize(reference_catalog.search_universities(q, limit))


@router.get("/departments")
def search_departments(
    q: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(5, ge=1, le=50),
) -> list[dict]:
    return _serialize(reference_catalog.search_departments(q, limit))
