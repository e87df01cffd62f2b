import threading
import time

import pytest

from backend.tercih_sihirbazi.dialogue.context import ConversationContextManager, ConversationState
from backend.tercih_sihirbazi.errors import StateCorruptionError

ITU = "İstanbul Teknik Üniversitesi"
BIL = "Bilgisayar Mühendisliği"


def test_new_context_starts_initial(contexts):
    context = contexts.get_or_create_context("s1", "u1")
    assert context.state is ConversationState.INITIAL
    assert context.session_id == "s1"
    assert context.user_id == "u1"
    assert "s1" in contexts


def test_slot_filling_across_turns(contexts):
    contexts.get_or_create_context("s1", "u1")

    contexts.add_entry("s1", "base_score", {"university": ITU}, "İTÜ taban puanı")
    assert not contexts.has_required_entities("s1", "base_score")
    assert contexts.get_missing_entities("s1", "base_score") == ["department"]

    contexts.add_entry("s1", "base_score", {"department": BIL}, "bilgisayar")
    assert contexts.has_required_entities("s1", "base_score")
    assert contexts.get_missing_entities("s1", "base_score") == []


@pytest.mark.parametrize(
    "intent",
    ["net_calculation", "base_score", "quota_inquiry", "department_search", "clarification_needed", "greeting"],
)
def test_has_required_matches_missing(contexts, intent):
    absent = contexts.get_missing_entities("yok", intent)
    assert contexts.has_required_entities("yok", intent) == (len(absent) == 0)
    contexts.get_or_create_context("s1", "u1")
    for entities in ({}, {"university": ITU}, {"department": BIL}, {"scoreType": "SAY"}):
        contexts.add_entry("s1", intent, entities, "mesaj")
        missing = contexts.get_missing_entities("s1", intent)
        assert contexts.has_required_entities("s1", intent) == (len(missing) == 0)


def test_missing_entities_without_session(contexts):
    assert contexts.get_missing_entities("yok", "net_calculation") == ["university", "department", "scoreType"]
    assert contexts.get_missing_entities("yok", "greeting") == []
    assert contexts.has_required_entities("yok", "greeting") is True
    assert contexts.has_required_entities("yok", "net_calculation") is False


def test_merge_keeps_last_non_null_value(contexts):
    contexts.get_or_create_context("s1", "u1")
    contexts.add_entry("s1", "general", {"university": "Gazi Üniversitesi"}, "a")
    contexts.add_entry("s1", "general", {"university": None}, "b")
    assert contexts.get_accumulated_entities("s1")["university"] == "Gazi Üniversitesi"

    contexts.add_entry("s1", "general", {"university": ITU}, "c")
    contexts.add_entry("s1", "general", {}, "d")
    assert contexts.get_accumulated_entities("s1") == {"university": ITU}


def test_accumulated_entities_are_a_copy(contexts):
    contexts.get_or_create_context("s1", "u1")
    contexts.add_entry("s1", "general", {"university": ITU}, "a")
    contexts.get_accumulated_entities("s1")["university"] = "değişti"
    assert contexts.get_accumulated_entities("s1")["university"] == ITU


# ── Durum makinesi ────────────────────────────────────────────────────
def test_state_moves_forward_only(contexts):
    contexts.get_or_create_context("s1", "u1")
    seen = [contexts.get_state("s1")]

    contexts.add_entry("s1", "base_score", {"university": ITU}, "1")
    seen.append(contexts.get_state("s1"))
    assert seen[-1] is ConversationState.GATHERING_INFO

    contexts.add_entry("s1", "base_score", {"department": BIL}, "2")
    seen.append(contexts.get_state("s1"))
    assert seen[-1] is ConversationState.COMPLETED

    contexts.add_entry("s1", "net_calculation", {}, "3")
    seen.append(contexts.get_state("s1"))
    assert seen[-1] is ConversationState.COMPLETED

    ranks = [state.rank for state in seen]
    assert ranks == sorted(ranks)
    assert ConversationState.INITIAL not in seen[1:]


def test_all_entities_on_first_turn_means_processing(contexts):
    contexts.get_or_create_context("s1", "u1")
    contexts.add_entry("s1", "department_search", {"university": ITU}, "İTÜ bölümleri")
    assert contexts.get_state("s1") is ConversationState.PROCESSING


def test_clarification_intent_does_not_start_processing(contexts):
    contexts.get_or_create_context("s1", "u1")
    contexts.add_entry("s1", "clarification_needed", {}, "bu ne?")
    assert contexts.get_state("s1") is ConversationState.GATHERING_INFO


def test_completed_intent(contexts):
    contexts.get_or_create_context("s1", "u1")
    contexts.add_entry("s1", "completed", {}, "bitti")
    assert contexts.get_state("s1") is ConversationState.COMPLETED


def test_clear_resets_state(contexts):
    contexts.get_or_create_context("s1", "u1")
    contexts.add_entry("s1", "completed", {}, "bitti")
    assert contexts.clear_context("s1") is True
    assert contexts.clear_context("s1") is False
    assert contexts.get_or_create_context("s1", "u1").state is ConversationState.INITIAL


# ── Geçmiş ────────────────────────────────────────────────────────────
def test_history_is_bounded(clock):
    contexts = ConversationContextManager(max_entries=3, clock=clock)
    contexts.get_or_create_context("s1", "u1")
    for i in range(5):
        contexts.add_entry("s1", "general", {}, f"m{i}")
    entries = contexts.get_context("s1").entries
    assert len(entries) == 3
    assert [e.user_message for e in entries] == ["m2", "m3", "m4"]
    assert contexts.get_context("s1").turn_count == 5


def test_repetition_from_second_occurrence(contexts):
    contexts.get_or_create_context("s1", "u1")
    flags = []
    for text in ("Kaç net gerekir?", "kaç net gerekir ?", "KAÇ NET GEREKİR?!"):
        flags.append(contexts.is_repeating_question("s1", text))
        contexts.add_entry("s1", "net_calculation", {}, text)
    assert flags == [False, True, True]


def test_repetition_window(contexts):
    contexts.get_or_create_context("s1", "u1")
    for text in ("a", "b", "c", "d"):
        contexts.add_entry("s1", "general", {}, text)
    assert not contexts.is_repeating_question("s1", "a")
    assert contexts.is_repeating_question("s1", "b")
    assert not contexts.is_repeating_question("yok", "b")


def test_update_latest_response(contexts):
    contexts.get_or_create_context("s1", "u1")
    contexts.update_latest_response("s1", "boş geçmişte yok sayılır")
    contexts.add_entry("s1", "greeting", {}, "merhaba")
    contexts.update_latest_response("s1", "Merhaba!")
    assert contexts.get_context("s1").entries[-1].bot_response == "Merhaba!"


def test_conversation_context_snapshot(contexts):
    assert contexts.get_conversation_context("yok") is None
    contexts.get_or_create_context("s1", "u1")
    for i in range(7):
        contexts.add_entry("s1", "general", {"numbers": [i]}, f"m{i}")
    snapshot = contexts.get_conversation_context("s1")
    assert snapshot["previous_intent"] == "general"
    assert snapshot["entities"] == {"numbers": [6]}
    assert snapshot["history"] == ["m2", "m3", "m4", "m5", "m6"]


def test_conversation_summary(contexts):
    assert contexts.get_conversation_summary("yok") == "Yeni konuşma başlatıldı."
    contexts.get_or_create_context("s1", "u1")
    contexts.add_entry("s1", "greeting", {}, "merhaba")
    contexts.add_entry("s1", "base_score", {"university": ITU}, "İTÜ")
    assert contexts.get_conversation_summary("s1") == (
        "Son konuşma: greeting → base_score (university belirtildi)"
    )


def test_clarification_questions(contexts):
    contexts.get_or_create_context("s1", "u1")
    contexts.add_entry("s1", "net_calculation", {"university": ITU}, "İTÜ")
    questions = contexts.generate_clarification_questions("s1", "net_calculation")
    assert questions == [
        "Hangi bölüm için net hesaplama yapmak istiyorsunuz?",
        "Hangi puan türü için hesaplama yapmalıyım? (SAY, EA, SÖZ, DİL)",
    ]
    assert len(contexts.generate_clarification_questions("s1", "net_calculation", limit=1)) == 1
    assert contexts.generate_clarification_questions("s1", "greeting") == []


# ── Var olmayan oturum ────────────────────────────────────────────────
def test_missing_session_is_a_noop(contexts):
    contexts.add_entry("yok", "greeting", {}, "merhaba")
    contexts.update_latest_response("yok", "cevap")
    assert "yok" not in contexts
    assert len(contexts) == 0


def test_missing_session_raises_in_strict_mode(clock):
    contexts = ConversationContextManager(clock=clock, strict=True)
    with pytest.raises(StateCorruptionError):
        contexts.add_entry("yok", "greeting", {}, "merhaba")


# ── Süre aşımı ────────────────────────────────────────────────────────
def test_sweep_removes_only_idle_sessions(contexts, clock):
    contexts.get_or_create_context("eski", "u1")
    contexts.get_or_create_context("aktif", "u2")
    clock.advance(minutes=20)
    contexts.add_entry("aktif", "greeting", {}, "merhaba")
    clock.advance(minutes=15)

    assert contexts.cleanup_expired_contexts() == 1
    assert "eski" not in contexts
    assert "aktif" in contexts


def test_sweep_with_explicit_now(contexts, clock):
    contexts.get_or_create_context("s1", "u1")
    assert contexts.cleanup_expired_contexts(now=clock.now) == 0
    assert contexts.cleanup_expired_contexts(now=clock.now.replace(hour=13)) == 1


def test_stats(contexts, clock):
    assert contexts.get_stats() == {"total_sessions": 0, "average_entries": 0.0, "oldest_session": None}
    contexts.get_or_create_context("s1", "u1")
    contexts.add_entry("s1", "greeting", {}, "merhaba")
    clock.advance(minutes=1)
    contexts.get_or_create_context("s2", "u2")
    stats = contexts.get_stats()
    assert stats["total_sessions"] == 2
    assert stats["average_entries"] == 0.5
    assert stats["oldest_session"] == "2024-06-01T12:00:00+00:00"


# ── Eşzamanlılık ──────────────────────────────────────────────────────
def test_concurrent_turns_do_not_lose_updates():
    contexts = ConversationContextManager(max_entries=500)
    contexts.get_or_create_context("s1", "u1")

    def worker():
        for _ in range(25):
            with contexts.session_lock("s1"):
                count = contexts.get_accumulated_entities("s1").get("count", 0)
                contexts.add_entry("s1", "general", {"count": count + 1}, "sayaç")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert contexts.get_accumulated_entities("s1")["count"] == 200
    assert contexts.get_context("s1").turn_count == 200


def test_other_sessions_are_not_blocked():
    contexts = ConversationContextManager()
    contexts.get_or_create_context("s1", "u1")
    contexts.get_or_create_context("s2", "u2")
    done = threading.Event()

    def other_session():
        contexts.add_entry("s2", "greeting", {}, "merhaba")
        done.set()

    with contexts.session_lock("s1"):
        thread = threading.Thread(target=other_session)
        thread.start()
        assert done.wait(timeout=5)
    thread.join()


def test_sweep_waits_for_running_turn(contexts, clock):
    contexts.get_or_create_context("s1", "u1")
    clock.advance(minutes=31)
    result = {}

    def sweep():
        result["removed"] = contexts.cleanup_expired_contexts()

    with contexts.session_lock("s1"):
        thread = threading.Thread(target=sweep)
        thread.start()
        time.sleep(0.1)
        # Tarama kilidi beklerken oturum güncellenir
        contexts.add_entry("s1", "greeting", {}, "merhaba")
    thread.join(timeout=5)

    assert result["removed"] == 0
    assert "s1" in contexts


def test_lock_is_rebuilt_after_clear(contexts):
    contexts.get_or_create_context("s1", "u1")
    contexts.clear_context("s1")
    with contexts.session_lock("s1"):
        contexts.get_or_create_context("s1", "u1")
    assert "s1" in contexts
