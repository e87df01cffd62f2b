import pytest

from backend.tercih_sihirbazi.nlp.normalizer import normalize


# ── Üniversite / bölüm ────────────────────────────────────────────────
def test_alias_and_department_resolution(extractor):
    matches = extractor.extract_entities(
        "İTÜ bilgisayar mühendisliği için kaç net gerekir", ["university", "department"]
    )
    by_entity = {m["entity"]: m for m in matches}

    assert by_entity["university"]["value"] == "İstanbul Teknik Üniversitesi"
    assert by_entity["university"]["confidence"] >= 0.8
    assert by_entity["department"]["value"] == "Bilgisayar Mühendisliği"
    assert by_entity["department"]["confidence"] >= 0.8
    assert len([m for m in matches if m["entity"] == "university"]) == 1


@pytest.mark.parametrize(
    "text, university, department",
    [
        ("ODTÜ makine", "Orta Doğu Teknik Üniversitesi", "Makine Mühendisliği"),
        ("hacetepe tıp", "Hacettepe Üniversitesi", "Tıp"),
        ("Boğaziçi Üniversitesi psikoloji bölümü", "Boğaziçi Üniversitesi", "Psikoloji"),
        ("istanbul teknik üni bil müh", "İstanbul Teknik Üniversitesi", "Bilgisayar Mühendisliği"),
    ],
)
def test_catalog_entities(extractor, text, university, department):
    entity_map = extractor.extract_entity_map(text, ["university", "department"])
    assert entity_map == {"university": university, "department": department}


def test_common_words_are_not_universities(extractor):
    assert extractor.extract_entity_map("kaç net gerekir eğer", ["university"]) == {}


def test_requested_types_only(extractor):
    entity_map = extractor.extract_entity_map("İTÜ bilgisayar", ["department"])
    assert "university" not in entity_map
    assert entity_map["department"] == "Bilgisayar Mühendisliği"


def test_spans_point_into_normalized_text(extractor):
    text = "ODTÜ makine mühendisliği taban puanı"
    normalized = normalize(text)
    for match in extractor.extract_entities(text):
        assert normalized[match["start"]:match["end"]] == match["text"]


def test_matches_sorted_by_confidence(extractor):
    matches = extractor.extract_entities("tyt matematik 30 doğru 450 puan %30 ingilizce ODTÜ")
    confidences = [m["confidence"] for m in matches]
    assert confidences == sorted(confidences, reverse=True)
    assert all(0.0 <= c <= 1.0 for c in confidences)


# ── Puan türü / dil ───────────────────────────────────────────────────
@pytest.mark.parametrize(
    "text, code",
    [
        ("sayısal puanla", "SAY"),
        ("EA için", "EA"),
        ("sözelciyim", "SÖZ"),
        ("eşit ağırlık", "EA"),
        ("yabancı dil", "DİL"),
    ],
)
def test_score_types(extractor, text, code):
    assert extractor.extract_entity_map(text, ["scoreType"]) == {"scoreType": code}


@pytest.mark.parametrize(
    "text, language",
    [
        ("%30 İngilizce", "%30 İngilizce"),
        ("yüzde 100 ingilizce", "%100 İngilizce"),
        ("ingilizce bölümler", "İngilizce"),
        ("Türkçe eğitim", "Türkçe"),
    ],
)
def test_languages(extractor, text, language):
    entity_map = extractor.extract_entity_map(text)
    assert entity_map["language"] == language
    assert "numbers" not in entity_map


# ── Sayısal varlıklar ─────────────────────────────────────────────────
def test_correct_and_wrong_counts(extractor):
    matches = extractor.extract_entities("TYT matematik 35 doğru 5 yanlış", ["numbers"])
    assert len(matches) == 1
    assert matches[0]["entity"] == "tyt_math"
    assert matches[0]["value"] == {"correct": 35, "wrong": 5}
    assert matches[0]["confidence"] == 0.95


def test_wrong_count_is_inferred(extractor):
    entity_map = extractor.extract_entity_map("TYT türkçe 30 doğru")
    assert entity_map["tyt_turkish"] == {"correct": 30, "wrong": 10}
    assert "language" not in entity_map


def test_several_subjects(extractor):
    entity_map = extractor.extract_entity_map("tyt türkçe 32 doğru 4 yanlış, fen 12 doğru")
    assert entity_map["tyt_turkish"] == {"correct": 32, "wrong": 4}
    assert entity_map["tyt_science"] == {"correct": 12, "wrong": 8}


def test_short_forms(extractor):
    assert extractor.extract_entity_map("mat 30 d 10 y")["tyt_math"] == {"correct": 30, "wrong": 10}


def test_stage_from_subject_table(extractor):
    assert extractor.extract_entity_map("fizik 10 doğru")["ayt_physics"] == {"correct": 10, "wrong": 4}


def test_stage_from_intent_hint(extractor):
    entity_map = extractor.extract_entity_map("matematik 30 doğru", intent="ayt_calculation")
    assert entity_map["ayt_math"] == {"correct": 30, "wrong": 10}


def test_nearest_stage_keyword_wins(extractor):
    entity_map = extractor.extract_entity_map("tyt türkçe 35 doğru ayt matematik 20 doğru")
    assert entity_map["tyt_turkish"] == {"correct": 35, "wrong": 5}
    assert entity_map["ayt_math"] == {"correct": 20, "wrong": 20}


def test_impossible_counts_are_skipped(extractor):
    entity_map = extractor.extract_entity_map("tyt fen 25 doğru")
    assert "tyt_science" not in entity_map
    assert "numbers" not in entity_map


def test_wrong_only_count_is_not_taken_as_correct(extractor):
    entity_map = extractor.extract_entity_map("tyt matematik 5 yanlış", ["numbers"])
    assert entity_map == {"tyt_math": {"wrong": 5}}


def test_net_after_subject_is_a_target_not_a_count(extractor):
    entity_map = extractor.extract_entity_map("tyt matematik 35 net", ["numbers"])
    assert "tyt_math" not in entity_map
    assert entity_map["targetNet"] == 35


def test_unlabeled_number_after_subject_is_not_a_count(extractor):
    entity_map = extractor.extract_entity_map("tyt matematik 30", ["numbers"])
    assert entity_map == {"numbers": [30]}


def test_targets(extractor):
    assert extractor.extract_entity_map("90 net yapmam lazım")["targetNet"] == 90
    assert extractor.extract_entity_map("450 puan hedefliyorum")["targetScore"] == 450


def test_unlabeled_numbers(extractor):
    entity_map = extractor.extract_entity_map("elimde 12 ve 7 var", ["numbers"])
    assert entity_map == {"numbers": [12, 7]}


@pytest.mark.parametrize("text", ["", "   ", None, 17])
def test_bad_input_yields_nothing(extractor, text):
    assert extractor.extract_entities(text) == []


def test_to_entity_map_prefers_confident_match(extractor):
    matches = [
        {"entity": "scoreType", "value": "TYT", "confidence": 0.85, "start": 0, "end": 3, "text": "tyt"},
        {"entity": "scoreType", "value": "SAY", "confidence": 0.95, "start": 4, "end": 7, "text": "say"},
        {"entity": "department", "value": None, "confidence": 0.99, "start": 8, "end": 9, "text": "x"},
    ]
    assert extractor.to_entity_map(matches) == {"scoreType": "SAY"}
