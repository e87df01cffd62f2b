"""
Diyalog motorunun statik tabloları.

Buradaki sözlükler bileşenlere yapıcı (constructor) parametresi olarak
verilir; testlerde veya farklı bir katalogla çalışırken başka tablolar
enjekte edilebilir.  Anahtarlar doğal Türkçe yazılır, eşleştirme öncesinde
bileşenler tarafından normalleştirilir.

Yeni niyet eklemek için:
1. INTENT_KEYWORDS sözlüğüne ağırlıklı anahtar kelime grupları ekleyin (ağırlık en az
   0.7: tek bir anahtar kelimenin güveni minimum kanıt eşiğini geçmeli).
2. RESPONSE_TEMPLATES ve (gerekiyorsa) FOLLOW_UP_TEMPLATES'e şablon ekleyin.
3. Zorunlu varlıklar varsa REQUIRED_ENTITIES ve CLARIFICATION_QUESTIONS'ı güncelleyin.
"""

from __future__ import annotations

# ── Normalleştirme ────────────────────────────────────────────────────
# Yalnızca eşleştirme sırasında atılan dolgu kelimeleri (gösterimde korunur)
FILLER_WORDS: tuple[str, ...] = (
    "üniversitesi", "üniversitesinin", "üniversitesinde", "üniversitesine",
    "üniversite", "university",
    "fakültesi", "fakültesinin", "fakültesinde",
    "bölümü", "bölümünün", "bölümünde", "bölümüne",
    "mühendisliği", "mühendisliğinin", "mühendisliğine", "mühendisliğini",
    "engineering",
)

# Kısaltma → açık yazım (kelime sınırında uygulanır)
ABBREVIATIONS: dict[str, str] = {
    "üni": "üniversitesi",
    "üniv": "üniversitesi",
    "univ": "üniversitesi",
    "müh": "mühendisliği",
    "muh": "mühendisliği",
    "bil": "bilgisayar",
    "elk": "elektrik",
    "end": "endüstri",
    "mak": "makine",
    "ins": "inşaat",
    "işl": "işletme",
    "ikt": "iktisat",
    "eko": "ekonomi",
    "ula": "uluslararası",
    "siy": "siyaset",
    "sos": "sosyoloji",
    "psi": "psikoloji",
    "coğ": "coğrafya",
}

# ── Referans katalog (yerleşik) ───────────────────────────────────────
UNIVERSITY_CATALOG: list[dict] = [
    {"name": "İstanbul Üniversitesi", "city": "İstanbul",
     "aliases": ["istanbul üni", "istanbul university"]},
    {"name": "İstanbul Teknik Üniversitesi", "city": "İstanbul",
     "aliases": ["İTÜ", "İ.T.Ü.", "ITU", "teknik üni"]},
    {"name": "Boğaziçi Üniversitesi", "city": "İstanbul",
     "aliases": ["Boğaziçi", "Bosphorus"]},
    {"name": "Orta Doğu Teknik Üniversitesi", "city": "Ankara",
     "aliases": ["ODTÜ", "O.D.T.Ü.", "METU", "orta doğu"]},
    {"name": "Ankara Üniversitesi", "city": "Ankara",
     "aliases": ["ankara üni"]},
    {"name": "Hacettepe Üniversitesi", "city": "Ankara",
     "aliases": ["Hacettepe"]},
    {"name": "Gazi Üniversitesi", "city": "Ankara",
     "aliases": ["Gazi"]},
    {"name": "Marmara Üniversitesi", "city": "İstanbul",
     "aliases": ["Marmara"]},
    {"name": "Ege Üniversitesi", "city": "İzmir",
     "aliases": ["Ege"]},
    {"name": "Dokuz Eylül Üniversitesi", "city": "İzmir",
     "aliases": ["DEÜ", "D.E.Ü.", "dokuz eylül"]},
    {"name": "Bilkent Üniversitesi", "city": "Ankara",
     "aliases": ["Bilkent"]},
    {"name": "Koç Üniversitesi", "city": "İstanbul",
     "aliases": ["Koç"]},
    {"name": "Sabancı Üniversitesi", "city": "İstanbul",
     "aliases": ["Sabancı"]},
]

DEPARTMENT_CATALOG: list[dict] = [
    {"name": "Bilgisayar Mühendisliği", "aliases": ["bil müh", "bilgisayar müh", "computer engineering"]},
    {"name": "Elektrik Mühendisliği", "aliases": ["elk müh", "elektrik müh", "electrical engineering"]},
    {"name": "Endüstri Mühendisliği", "aliases": ["end müh", "endüstri müh", "industrial engineering"]},
    {"name": "Makine Mühendisliği", "aliases": ["mak müh", "makine müh", "mechanical engineering"]},
    {"name": "İnşaat Mühendisliği", "aliases": ["ins müh", "inşaat müh", "civil engineering"]},
    {"name": "Çevre Mühendisliği", "aliases": ["çev müh", "çevre müh", "environmental engineering"]},
    {"name": "İşletme", "aliases": ["business", "management"]},
    {"name": "İktisat", "aliases": ["economics", "ekonomi"]},
    {"name": "Hukuk", "aliases": ["law", "hukuk fakültesi"]},
    {"name": "Tıp", "aliases": ["medicine", "tıp fakültesi"]},
    {"name": "Diş Hekimliği", "aliases": ["dentistry", "diş"]},
    {"name": "Eczacılık", "aliases": ["pharmacy", "eczane"]},
    {"name": "Hemşirelik", "aliases": ["nursing", "hemşire"]},
    {"name": "Psikoloji", "aliases": ["psychology"]},
    {"name": "Sosyoloji", "aliases": ["sociology"]},
    {"name": "Siyaset Bilimi", "aliases": ["political science"]},
    {"name": "Uluslararası İlişkiler", "aliases": ["international relations"]},
    {"name": "Türk Dili ve Edebiyatı", "aliases": ["türk dili", "turkish literature"]},
    {"name": "İngiliz Dili ve Edebiyatı", "aliases": ["ingiliz dili", "english literature"]},
    {"name": "Çevirmenlik", "aliases": ["translation", "mütercim tercümanlık"]},
]

# ── Puan türü ve öğretim dili ─────────────────────────────────────────
# Terim → (kanonik kod, güven)
SCORE_TYPES: dict[str, tuple[str, float]] = {
    "sayısal": ("SAY", 0.95),
    "say": ("SAY", 0.95),
    "eşit ağırlık": ("EA", 0.95),
    "ea": ("EA", 0.95),
    "sözel": ("SÖZ", 0.95),
    "söz": ("SÖZ", 0.95),
    "yabancı dil": ("DİL", 0.95),
    "dil puanı": ("DİL", 0.95),
    "temel yeterlilik": ("TYT", 0.85),
    "tyt": ("TYT", 0.85),
    "alan yeterlilik": ("AYT", 0.85),
    "ayt": ("AYT", 0.85),
}

LANGUAGES: dict[str, str] = {
    "ingilizce": "İngilizce",
    "english": "İngilizce",
    "türkçe": "Türkçe",
    "turkish": "Türkçe",
    "almanca": "Almanca",
    "fransızca": "Fransızca",
}

# ── Sınav dersleri ────────────────────────────────────────────────────
# Ders başına soru sayısı (yanlış sayısı verilmezse kalan sorular yanlış sayılır)
EXAM_QUESTION_COUNTS: dict[str, dict[str, int]] = {
    "tyt": {"turkish": 40, "math": 40, "science": 20, "social": 20},
    "ayt": {
        "math": 40, "physics": 14, "chemistry": 13, "biology": 13,
        "literature": 24, "history": 10, "geography": 6,
        "philosophy": 12, "religion": 6,
    },
}

# Ders anahtar kelimesi (normalleştirilmiş kök) → ders kodu
SUBJECT_KEYWORDS: dict[str, str] = {
    "turkce": "turkish",
    "matematik": "math",
    "mat": "math",
    "fen bilimleri": "science",
    "fen": "science",
    "sosyal bilimler": "social",
    "sosyal": "social",
    "fizik": "physics",
    "kimya": "chemistry",
    "biyoloji": "biology",
    "edebiyat": "literature",
    "tarih": "history",
    "cografya": "geography",
    "felsefe": "philosophy",
    "din kulturu": "religion",
    "din": "religion",
}

SUBJECT_LABELS: dict[str, str] = {
    "turkish": "Türkçe",
    "math": "Matematik",
    "science": "Fen Bilimleri",
    "social": "Sosyal Bilimler",
    "physics": "Fizik",
    "chemistry": "Kimya",
    "biology": "Biyoloji",
    "literature": "Edebiyat",
    "history": "Tarih",
    "geography": "Coğrafya",
    "philosophy": "Felsefe",
    "religion": "Din Kültürü",
}

# ── Niyet anahtar kelimeleri ──────────────────────────────────────────
# Sıralama önemlidir: eşit skorda önce tanımlanan niyet kazanır.
INTENT_KEYWORDS: dict[str, list[tuple[list[str], float]]] = {
    "tyt_calculation": [
        (["tyt", "tyt net", "tyt hesapla", "tyt hesaplama"], 1.0),
        (["temel yeterlilik", "temel yeterlilik testi"], 0.9),
        (["tyt türkçe", "tyt matematik", "tyt fen", "tyt sosyal"], 0.8),
        (["tyt netim", "tyt puanım"], 0.9),
    ],
    "ayt_calculation": [
        (["ayt", "ayt net", "ayt hesapla", "ayt hesaplama"], 1.0),
        (["alan yeterlilik", "alan yeterlilik testi"], 0.9),
        (["ayt say", "ayt ea", "ayt söz", "ayt dil"], 0.8),
        (["ayt matematik", "ayt fizik", "ayt kimya", "ayt biyoloji"], 0.8),
        (["fizik", "kimya", "biyoloji", "edebiyat"], 0.7),
    ],
    "net_calculation": [
        (["net", "kaç net", "net sayısı", "net hesapla", "net gerekli"], 1.0),
        (["kaç soru", "soru sayısı", "doğru sayısı"], 0.9),
        (["hesapla", "hesaplama", "calculate"], 0.8),
        (["gerekli", "gerekir", "lazım"], 0.7),
        (["yapmalıyım", "yapmalı"], 0.7),
    ],
    "base_score": [
        (["taban puan", "taban puanı", "minimum puan"], 1.0),
        (["geçen sene", "geçen yıl"], 0.9),
        (["kaç puan", "ne kadar puan"], 0.9),
        (["puan", "puanı"], 0.8),
        (["en düşük", "sıralama"], 0.7),
    ],
    "quota_inquiry": [
        (["kontenjan", "kontenjanı", "quota"], 1.0),
        (["kaç kişi", "öğrenci sayısı", "kaç öğrenci"], 0.9),
        (["kapasite", "alım sayısı"], 0.8),
    ],
    "department_search": [
        (["bölüm", "bölümler", "program"], 1.0),
        (["hangi bölümler", "bölüm listesi"], 0.9),
        (["ne okumalı", "ne okuyayım", "hangi alan"], 0.7),
        (["seçenek", "seçenekler"], 0.7),
    ],
    "university_info": [
        (["üniversite hakkında", "hakkında bilgi", "üniversite bilgisi"], 1.0),
        (["kampüs", "yurt", "burs"], 0.8),
        (["devlet üniversitesi", "vakıf üniversitesi", "özel üniversite"], 0.8),
        (["nerede", "hangi şehir"], 0.7),
    ],
    "study_advice": [
        (["tavsiye", "öneri", "advice"], 1.0),
        (["nasıl çalışmalı", "nasıl çalışmalıyım", "çalışma yöntemi"], 0.9),
        (["motivasyon", "deneme sınavı", "ilham"], 0.7),
        (["strateji", "plan", "program yap"], 0.7),
    ],
    "greeting": [
        (["merhaba", "selam", "hello"], 1.0),
        (["iyi günler", "günaydın", "iyi akşamlar"], 0.9),
        (["nasılsın", "naber"], 0.8),
    ],
    "thanks": [
        (["teşekkür", "teşekkürler", "sağol", "sağolun"], 1.0),
        (["thanks", "eyvallah"], 0.9),
    ],
}

CALCULATION_INTENTS: tuple[str, ...] = ("net_calculation", "tyt_calculation", "ayt_calculation")
INQUIRY_INTENTS: tuple[str, ...] = ("base_score", "quota_inquiry", "department_search", "university_info")

QUESTION_WORDS: tuple[str, ...] = (
    "ne", "nedir", "nasıl", "neden", "niçin", "kim", "kime", "hangi",
    "hangisi", "kaç", "kaçtır", "nerede", "nereden", "nereye", "mi", "mı",
    "mu", "mü", "ne zaman",
)

CONFUSION_INDICATORS: tuple[str, ...] = (
    "anlamadım", "anlamıyorum", "ne demek", "bilmiyorum", "emin değilim",
    "karışık", "kafam karıştı", "yardım", "help",
)

# ── Slot doldurma ─────────────────────────────────────────────────────
REQUIRED_ENTITIES: dict[str, tuple[str, ...]] = {
    "net_calculation": ("university", "department", "scoreType"),
    "base_score": ("university", "department"),
    "quota_inquiry": ("university", "department"),
    "department_search": ("university",),
    "clarification_needed": (),
}

CLARIFICATION_QUESTIONS: dict[str, dict[str, str]] = {
    "net_calculation": {
        "university": "Hangi üniversiteyi merak ediyorsunuz?",
        "department": "Hangi bölüm için net hesaplama yapmak istiyorsunuz?",
        "scoreType": "Hangi puan türü için hesaplama yapmalıyım? (SAY, EA, SÖZ, DİL)",
    },
    "base_score": {
        "university": "Hangi üniversitenin taban puanını öğrenmek istiyorsunuz?",
        "department": "Hangi bölümün taban puanını merak ediyorsunuz?",
    },
    "quota_inquiry": {
        "university": "Hangi üniversitenin kontenjan bilgilerini istiyorsunuz?",
        "department": "Hangi bölümün kontenjan bilgilerini merak ediyorsunuz?",
    },
    "department_search": {
        "university": "Hangi üniversitenin bölümlerini görmek istiyorsunuz?",
    },
}

# Niyet bilinmeden sorulacak genel sorular
ENTITY_QUESTIONS: dict[str, str] = {
    "university": "Hangi üniversiteyi merak ediyorsunuz?",
    "department": "Hangi bölüm hakkında bilgi almak istiyorsunuz?",
    "scoreType": "Hangi puan türü için bilgi istiyorsunuz?",
    "language": "Türkçe mi İngilizce mi öğretim dili tercih ediyorsunuz?",
}

# ── Takip önerileri ───────────────────────────────────────────────────
# requires: hepsi mevcutsa önerilir; excludes: biri mevcutsa önerilmez.
FOLLOW_UP_TEMPLATES: dict[str, list[dict]] = {
    "net_calculation": [
        {"type": "question", "text": "{department} bölümünün taban puanını da merak ediyor musunuz?",
         "intent": "base_score", "requires": ("university", "department"), "priority": 8},
        {"type": "action", "text": "Hedef puanınızı belirtirseniz gereken neti daha net hesaplayabilirim",
         "intent": "net_calculation", "excludes": ("targetScore",), "priority": 7},
        {"type": "question", "text": "{department} bölümünün kontenjanını öğrenmek ister misiniz?",
         "intent": "quota_inquiry", "requires": ("university", "department"), "priority": 7},
        {"type": "action", "text": "Farklı bir puan türü için de hesaplama yapabiliriz ({scoreType} dışında)",
         "intent": "net_calculation", "requires": ("scoreType",), "priority": 6},
        {"type": "question", "text": "{university} bünyesinde başka hangi bölümler var?",
         "intent": "department_search", "requires": ("university",), "priority": 5},
    ],
    "base_score": [
        {"type": "question", "text": "{department} için kaç net gerekli?",
         "intent": "net_calculation", "requires": ("university", "department"), "priority": 9},
        {"type": "question", "text": "{department} bölümünün kontenjanı kaç kişi?",
         "intent": "quota_inquiry", "requires": ("university", "department"), "priority": 7},
        {"type": "action", "text": "Başka bir bölümün taban puanını da sorgulayabilirsiniz",
         "intent": "base_score", "priority": 6},
    ],
    "quota_inquiry": [
        {"type": "question", "text": "{department} için net hesaplama yapalım mı?",
         "intent": "net_calculation", "requires": ("university", "department"), "priority": 8},
        {"type": "question", "text": "{department} bölümünün taban puanı nedir?",
         "intent": "base_score", "requires": ("university", "department"), "priority": 7},
    ],
    "department_search": [
        {"type": "action", "text": "İlginizi çeken bir bölüm için net hesaplama yapabiliriz",
         "intent": "net_calculation", "requires": ("university",), "priority": 8},
        {"type": "action", "text": "Bölümlerin taban puanlarını karşılaştırabilirsiniz",
         "intent": "base_score", "requires": ("university",), "priority": 7},
    ],
    "tyt_calculation": [
        {"type": "action", "text": "AYT doğru/yanlış sayılarınızı da paylaşabilirsiniz",
         "intent": "ayt_calculation", "priority": 7},
        {"type": "question", "text": "Hangi bölümü hedefliyorsunuz?",
         "intent": "net_calculation", "excludes": ("department",), "priority": 6},
    ],
    "ayt_calculation": [
        {"type": "action", "text": "TYT doğru/yanlış sayılarınızı da paylaşabilirsiniz",
         "intent": "tyt_calculation", "priority": 7},
        {"type": "question", "text": "Hangi puan türünde tercih yapacaksınız? (SAY, EA, SÖZ, DİL)",
         "intent": "net_calculation", "excludes": ("scoreType",), "priority": 6},
    ],
    "study_advice": [
        {"type": "information", "text": "Düzenli deneme sınavı çözmek netlerinizi takip etmenin en iyi yoludur",
         "priority": 6},
        {"type": "action", "text": "Mevcut netlerinizi paylaşırsanız eksik derslerinizi birlikte belirleyebiliriz",
         "intent": "tyt_calculation", "priority": 5},
    ],
    "university_info": [
        {"type": "question", "text": "{university} bünyesindeki bölümleri görmek ister misiniz?",
         "intent": "department_search", "requires": ("university",), "priority": 7},
    ],
}

GENERAL_FOLLOW_UPS: list[dict] = [
    {"type": "action", "text": "Net hesaplama yapmak için üniversite ve bölüm belirtin",
     "intent": "net_calculation", "priority": 6},
    {"type": "action", "text": "Taban puan sorgulamak için bölüm seçin",
     "intent": "base_score", "priority": 5},
    {"type": "action", "text": "Üniversite bölümlerini keşfedin",
     "intent": "department_search", "priority": 4},
]

HELP_FOLLOW_UPS: list[dict] = [
    {"type": "information", "text": "Size nasıl yardımcı olabilirim? İşte yapabileceklerim:", "priority": 10},
    {"type": "action", "text": "Net hesaplama yapmak için üniversite ve bölüm söyleyin",
     "intent": "net_calculation", "priority": 9},
    {"type": "action", "text": "Taban puan öğrenmek için bölüm seçin", "intent": "base_score", "priority": 8},
    {"type": "action", "text": "Kontenjan bilgisi için üniversite ve bölüm belirtin",
     "intent": "quota_inquiry", "priority": 7},
]

FALLBACK_FOLLOW_UPS: list[dict] = [
    {"type": "action", "text": "Yeni bir soru sorabilirsiniz", "priority": 5},
    {"type": "information", "text": "Size nasıl yardımcı olabilirim?", "priority": 4},
]

ENGINEERING_KEYWORDS: tuple[str, ...] = (
    "mühendislik", "mühendisliği", "bilgisayar", "elektrik", "makine", "endüstri", "inşaat",
)
SOCIAL_SCIENCE_KEYWORDS: tuple[str, ...] = (
    "hukuk", "işletme", "iktisat", "psikoloji", "sosyoloji", "siyaset",
)

# ── Cevap şablonları ──────────────────────────────────────────────────
RESPONSE_TEMPLATES: dict[str, str] = {
    "net_calculation": (
        "{university} {department} bölümü için {scoreType} puan türünde net hesaplaması "
        "yapıyorum. Daha kesin bir sonuç için hedef puanınızı da belirtebilirsiniz."
    ),
    "base_score": (
        "{university} {department} bölümünün taban puanı bilgisini getiriyorum. "
        "Güncel ve kesin değerler için YÖK Atlas'ı da kontrol etmenizi öneririm."
    ),
    "quota_inquiry": (
        "{university} {department} bölümünün kontenjan bilgisini getiriyorum. "
        "Kontenjanlar her yıl ÖSYM kılavuzunda güncellenir."
    ),
    "department_search": (
        "{university} bünyesindeki bölümler hakkında bilgi verebilirim. "
        "Hangi alan ile ilgileniyorsunuz? Mühendislik, tıp, sosyal bilimler gibi..."
    ),
    "tyt_calculation": "TYT bilgilerinizi aldım. {exam_summary}",
    "ayt_calculation": "AYT bilgilerinizi aldım. {exam_summary}",
    "study_advice": (
        "Başarılı bir hazırlık için düzenli tekrar, deneme sınavları ve zayıf olduğunuz "
        "konulara odaklanan bir çalışma planı önemlidir."
    ),
    "university_info": (
        "{university} hakkında bilgi verebilirim. Bölümler, taban puanları veya "
        "kontenjanlar hakkında soru sorabilirsiniz."
    ),
    "greeting": (
        "Merhaba! Tercih Sihirbazı'na hoş geldiniz. Hangi üniversite ve bölüm "
        "hakkında bilgi almak istiyorsunuz?"
    ),
    "thanks": "Rica ederim! Başka bir sorunuz olursa buradayım.",
    "clarification_needed": "Sorunuzu tam anlayamadım. Biraz daha detay verebilir misiniz?",
    "general": (
        "Size nasıl yardımcı olabilirim? Üniversite tercihleri, net hesaplama veya "
        "bölüm bilgileri hakkında sorularınızı yanıtlayabilirim."
    ),
}

# Eksik alanlar için şablonda kullanılacak yer tutucular
RESPONSE_PLACEHOLDERS: dict[str, str] = {
    "university": "belirtilen üniversite",
    "department": "belirtilen bölüm",
    "scoreType": "ilgili",
    "exam_summary": "Ders bazında doğru ve yanlış sayılarınızı yazabilirsiniz.",
}

CLARIFICATION_PREFIX: str = "Size yardımcı olabilmem için birkaç bilgiye ihtiyacım var."

EMPTY_MESSAGE_REPLY: str = (
    "Mesajınız boş görünüyor. Üniversite, bölüm veya netlerinizle ilgili bir soru "
    "yazabilirsiniz."
)

ERROR_MESSAGE: str = (
    "Üzgünüm, mesajınızı anlayamadım. Lütfen farklı bir şekilde ifade edebilir misiniz?"
)
ERROR_SUGGESTIONS: tuple[str, ...] = (
    "Üniversite adını tam olarak yazın",
    "Bölüm adını belirtin",
    "Net sayılarınızı paylaşın",
)
