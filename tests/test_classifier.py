import math

import pytest

from backend.tercih_sihirbazi.config import MIN_INTENT_EVIDENCE
from backend.tercih_sihirbazi.nlp.classifier import Intent, IntentClassifier, evidence_confidence
from backend.tercih_sihirbazi.nlp.seed_data import INTENT_KEYWORDS


@pytest.mark.parametrize(
    "text, expected",
    [
        ("merhaba", "greeting"),
        ("teşekkürler", "thanks"),
        ("kontenjan", "quota_inquiry"),
        ("taban puan", "base_score"),
        ("tavsiye", "study_advice"),
        ("kampüs yurt burs", "university_info"),
        ("bölümler", "department_search"),
        ("alan yeterlilik testi", "ayt_calculation"),
        ("net hesapla", "net_calculation"),
        ("tyt netim", "tyt_calculation"),
        ("seçenek", "department_search"),
        ("strateji", "study_advice"),
        ("fizik", "ayt_calculation"),
        ("edebiyat", "ayt_calculation"),
        ("yapmalı", "net_calculation"),
        ("nerede", "university_info"),
        ("sıralama", "base_score"),
        ("motivasyon", "study_advice"),
    ],
)
def test_single_intent_keywords(intent_classifier, text, expected):
    result = intent_classifier.classify(text)
    assert result["intent"] == expected
    assert result["confidence"] > MIN_INTENT_EVIDENCE
    assert result["keywords"]


@pytest.mark.parametrize("intent, groups", list(INTENT_KEYWORDS.items()))
def test_every_keyword_weight_clears_the_floor(intent, groups):
    for _, weight in groups:
        assert evidence_confidence(weight) > MIN_INTENT_EVIDENCE


def test_floor_applies_to_confidence():
    strict = IntentClassifier(keyword_table={"greeting": [(["hey"], 0.6)]})
    result = strict.classify("hey")
    assert result["intent"] == "general"
    assert result["confidence"] <= MIN_INTENT_EVIDENCE


def test_calculation_beats_greeting(intent_classifier):
    assert intent_classifier.classify("TYT matematik 35 doğru 5 yanlış")["intent"] == "tyt_calculation"
    assert intent_classifier.classify("Merhaba, TYT matematik 35 doğru 5 yanlış")["intent"] == "tyt_calculation"


def test_equal_scores_resolve_by_declaration_order(intent_classifier):
    # base_score ve quota_inquiry aynı skoru alır; tabloda base_score önce
    assert intent_classifier.classify("kapasite puan")["intent"] == "base_score"


def test_previous_intent_breaks_ties(intent_classifier):
    result = intent_classifier.classify("kapasite puan", previous_intent="quota_inquiry")
    assert result["intent"] == "quota_inquiry"


def test_unknown_previous_intent_is_ignored(intent_classifier):
    result = intent_classifier.classify("kontenjan", previous_intent="bilinmeyen")
    assert result["intent"] == "quota_inquiry"


def test_question_without_evidence_needs_clarification(intent_classifier):
    result = intent_classifier.classify("bu ne?")
    assert result["intent"] == Intent.CLARIFICATION_NEEDED.value
    assert result["keywords"] == ["question detected"]


@pytest.mark.parametrize("text", ["", "   ", "asdf qwer", None, 42])
def test_no_evidence_falls_back_to_general(intent_classifier, text):
    result = intent_classifier.classify(text)
    assert result["intent"] == "general"
    assert 0.0 <= result["confidence"] < 0.5


def test_confidence_grows_with_evidence(intent_classifier):
    weak = intent_classifier.classify("kontenjan")
    strong = intent_classifier.classify("kontenjan kaç kişi kapasite")
    assert strong["intent"] == weak["intent"] == "quota_inquiry"
    assert strong["confidence"] > weak["confidence"]


def test_evidence_confidence_bounds():
    assert evidence_confidence(0) == 0.0
    assert evidence_confidence(-1) == 0.0
    assert evidence_confidence(float("nan")) == 0.0
    assert evidence_confidence(1.0) == pytest.approx(1 - math.exp(-1), abs=1e-4)
    values = [evidence_confidence(s) for s in (0.5, 1, 2, 4, 8)]
    assert values == sorted(values)
    assert all(0.0 <= v <= 1.0 for v in values)
    assert evidence_confidence(20) > 0.999


def test_is_question(intent_classifier):
    assert intent_classifier.is_question("Taban puanı nedir")
    assert intent_classifier.is_question("kontenjan?")
    assert intent_classifier.is_question("ne zaman açıklanır")
    assert not intent_classifier.is_question("bilgisayar mühendisliği")


def test_infer_from_entities(intent_classifier):
    general = intent_classifier.classify("")
    inferred = intent_classifier.infer_from_entities(
        general, {"university": "İstanbul Teknik Üniversitesi", "department": "Bilgisayar Mühendisliği"}
    )
    assert inferred["intent"] == "net_calculation"
    assert inferred["confidence"] == evidence_confidence(0.9)

    inferred = intent_classifier.infer_from_entities(general, {"university": "Gazi Üniversitesi"})
    assert inferred["intent"] == "department_search"

    unchanged = intent_classifier.infer_from_entities(general, {"department": "Hukuk"})
    assert unchanged["intent"] == "general"


def test_infer_does_not_override_keyword_intent(intent_classifier):
    greeting = intent_classifier.classify("merhaba")
    result = intent_classifier.infer_from_entities(greeting, {"university": "Gazi Üniversitesi"})
    assert result["intent"] == "greeting"


def test_intents_keep_declaration_order(intent_classifier):
    intents = intent_classifier.intents
    assert intents[0] == "tyt_calculation"
    assert intents.index("net_calculation") < intents.index("greeting")


def test_injected_keyword_table():
    custom = IntentClassifier(keyword_table={"greeting": [(["hey"], 1.0)]})
    assert custom.classify("hey")["intent"] == "greeting"
    assert custom.intents == ["greeting"]


def test_suggest_intents():
    both = IntentClassifier.suggest_intents({"university": "x", "department": "y"})
    assert "Taban puanı nedir?" in both
    assert IntentClassifier.suggest_intents({}) != both


def test_validate():
    result = {"intent": "net_calculation", "confidence": 0.2, "keywords": [], "score": 0.2}
    assert not IntentClassifier.validate(result, {})
    assert IntentClassifier.validate(result, {"university": "x", "department": "y"})
