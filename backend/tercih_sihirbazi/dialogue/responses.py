"""Niyet + biriken varlıklardan kullanıcıya gösterilecek cevap metni."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from backend.tercih_sihirbazi.nlp.seed_data import (
    CLARIFICATION_PREFIX,
    EXAM_QUESTION_COUNTS,
    RESPONSE_PLACEHOLDERS,
    RESPONSE_TEMPLATES,
    SUBJECT_LABELS,
)


class ResponseRenderer(Protocol):
    def render(self, intent: str, entities: Mapping[str, Any]) -> str: ...

    def render_clarification(self, intent: str, questions: Sequence[str]) -> str: ...


class _Placeholders(dict):
    """Şablonda eksik kalan alanlar için varsayılan metin."""

    def __init__(self, values: Mapping[str, Any], defaults: Mapping[str, str]) -> None:
        super().__init__(values)
        self._defaults = defaults

    def __missing__(self, key: str) -> str:
        return self._defaults.get(key, "")


class TemplateResponseRenderer:
    """Sabit şablon tablosuyla çalışan varsayılan cevap üretici."""

    def __init__(
        self,
        templates: Mapping[str, str] = RESPONSE_TEMPLATES,
        placeholders: Mapping[str, str] = RESPONSE_PLACEHOLDERS,
        subject_labels: Mapping[str, str] = SUBJECT_LABELS,
        question_counts: Mapping[str, Mapping[str, int]] = EXAM_QUESTION_COUNTS,
        clarification_prefix: str = CLARIFICATION_PREFIX,
    ) -> None:
        self._templates = templates
        self._placeholders = placeholders
        self._subject_labels = subject_labels
        self._question_counts = question_counts
        self._clarification_prefix = clarification_prefix

    def render(self, intent: str, entities: Mapping[str, Any]) -> str:
        template = self._templates.get(intent) or self._templates["general"]
        values: dict[str, Any] = {
            key: value for key, value in entities.items()
            if isinstance(value, (str, int, float)) and value != ""
        }
        stage = intent.split("_", 1)[0] if intent in ("tyt_calculation", "ayt_calculation") else None
        summary = self.exam_summary(entities, stage)
        if summary:
            values["exam_summary"] = summary
        return template.format_map(_Placeholders(values, self._placeholders))

    def render_clarification(self, intent: str, questions: Sequence[str]) -> str:
        if not questions:
            return self._templates["clarification_needed"]
        return "\n".join([self._clarification_prefix, *questions])

    def exam_summary(self, entities: Mapping[str, Any], stage: str | None = None) -> str:
        """Ör. "Matematik: 35 doğru, 5 yanlış; Türkçe: 30 doğru, 10 yanlış"."""
        parts = []
        stages = [stage] if stage else list(self._question_counts)
        for exam in stages:
            for subject in self._question_counts.get(exam, {}):
                counts = entities.get(f"{exam}_{subject}")
                if not isinstance(counts, Mapping):
                    continue
                label = self._subject_labels.get(subject, subject)
                counted = [
                    f"{counts[key]} {word}"
                    for key, word in (("correct", "doğru"), ("wrong", "yanlış"))
                    if counts.get(key) is not None
                ]
                parts.append(f"{label}: {', '.join(counted)}")
        return "; ".join(parts) + ("." if parts else "")


response_renderer = TemplateResponseRenderer()
