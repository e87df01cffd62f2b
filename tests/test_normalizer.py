import pytest

from backend.tercih_sihirbazi.nlp.normalizer import TextNormalizer, fold, normalize, text_normalizer


def test_fold_turkish_letters():
    assert fold("ĞÜŞİÖÇ ğüşıöç") == "gusioc gusioc"
    assert fold("Işık") == "isik"


def test_normalize_basic():
    assert normalize("İstanbul Teknik Üniversitesi") == "istanbul teknik universitesi"
    assert normalize("  Boğaziçi   Üniversitesi!! ") == "bogazici universitesi"


def test_normalize_keeps_question_mark_as_token():
    assert normalize("İ.T.Ü. bilgisayar?") == "itu bilgisayar ?"


def test_normalize_keeps_percent():
    assert normalize("%30 İngilizce") == "%30 ingilizce"


@pytest.mark.parametrize("value", [None, 123, b"bytes"])
def test_normalize_non_string(value):
    assert normalize(value) == ""


@pytest.mark.parametrize(
    "text",
    [
        "İTÜ Bilgisayar Mühendisliği için kaç net gerekir?",
        "O.D.T.Ü.  makine...",
        "TYT matematik 35 doğru, 5 yanlış",
        "%30 İngilizce / Hukuk",
        "",
        "??",
    ],
)
def test_normalize_is_idempotent(text):
    once = normalize(text)
    assert normalize(once) == once


def test_tokens_skip_question_mark():
    assert text_normalizer.tokens("Kaç net?") == ["kac", "net"]


def test_strip_fillers():
    assert text_normalizer.strip_fillers("Boğaziçi Üniversitesi") == "bogazici"
    assert text_normalizer.strip_fillers("Bilgisayar Mühendisliği bölümü") == "bilgisayar"


def test_expand_abbreviations():
    assert text_normalizer.expand_abbreviations("bil müh") == "bilgisayar muhendisligi"
    assert text_normalizer.expand_abbreviations("ankara üni") == "ankara universitesi"


def test_normalize_for_matching():
    assert text_normalizer.normalize_for_matching("bil müh") == "bilgisayar"
    assert text_normalizer.normalize_for_matching("Koç Üniversitesi") == "koc"


def test_injected_tables():
    normalizer = TextNormalizer(filler_words=["kampüsü"], abbreviations={"odtu": "orta doğu teknik"})
    assert normalizer.normalize_for_matching("ODTÜ kampüsü") == "orta dogu teknik"
    assert normalizer.is_filler("Kampüsü")
