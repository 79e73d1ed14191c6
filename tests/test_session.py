"""Tests for typepractice.core.session – scoring, speed and progression."""

from __future__ import annotations

import random
from pathlib import Path

import pytest
import yaml

from typepractice.core.arcade import MoleGame
from typepractice.core.clock import ManualClock, VirtualScheduler
from typepractice.core.content import LanguageCatalog, TextRepository
from typepractice.core.sequencer import LongTextCurriculum, SentenceCurriculum
from typepractice.core.session import (
    SessionSnapshot,
    TypingEngine,
    UnitResult,
    accuracy,
    advance_unit,
    average_accuracy,
    average_cpm,
    is_input_correct,
    is_unit_complete,
    new_session,
    normalize,
    process_input,
    realtime_cpm,
    tick,
)
from typepractice.core.settings import Difficulty, GameMode, GameSettings


def _session(text: str = "abcd", length_based: bool = True):
    return new_session(LongTextCurriculum(text), length_based_completion=length_based)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

EN_SENTENCES = [f"English sentence {i}." for i in range(12)]
KO_SENTENCES = ["\uac00나다.", "라마바.", "사아자."]


@pytest.fixture()
def content_dir(tmp_path: Path) -> Path:
    texts = tmp_path / "texts"
    texts.mkdir()
    (texts / "en.txt").write_text("\n".join(EN_SENTENCES) + "\n", encoding="utf-8")
    (texts / "ko.txt").write_text("\n\n".join(KO_SENTENCES), encoding="utf-8")
    (texts / "words_en.txt").write_text("apple\nriver\ncloud\n", encoding="utf-8")
    (texts / "words_ko.txt").write_text("사과\n바다\n", encoding="utf-8")
    (texts / "long_en.txt").write_text("First line here. Second one!\nThird?\n", encoding="utf-8")
    catalog = {
        "languages": [
            {
                "key": "en",
                "name": "English",
                "sentences": "texts/en.txt",
                "words": "texts/words_en.txt",
                "long_texts": [{"title": "Story", "file": "texts/long_en.txt"}],
            },
            {
                "key": "ko",
                "name": "한국어",
                "sentences": "texts/ko.txt",
                "words": "texts/words_ko.txt",
            },
        ]
    }
    (tmp_path / "languages.yaml").write_text(yaml.dump(catalog, allow_unicode=True), encoding="utf-8")
    return tmp_path


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(100.0)


@pytest.fixture()
def engine(content_dir: Path, clock: ManualClock) -> TypingEngine:
    return TypingEngine(
        repository=TextRepository(content_dir),
        catalog=LanguageCatalog(content_dir / "languages.yaml"),
        settings=GameSettings(language="en"),
        clock=clock,
        rng=random.Random(42),
    )


def _type_exactly(engine: TypingEngine, clock: ManualClock, step: float = 0.2) -> None:
    target = engine.target_text
    for i in range(1, len(target) + 1):
        clock.advance(step)
        engine.process_input(target[:i])


# ---------------------------------------------------------------------------
# normalize
# ---------------------------------------------------------------------------

class TestNormalize:
    def test_trims(self):
        assert normalize("  abc \n") == "abc"

    def test_none(self):
        assert normalize(None) == ""

    def test_composes_to_nfc(self):
        assert normalize("cafe\u0301") == "caf\u00e9"

    def test_hangul_jamo_compose(self):
        assert normalize("\u1100\u1161") == "\uac00"


# ---------------------------------------------------------------------------
# process_input – scoring
# ---------------------------------------------------------------------------

class TestProcessInputScoring:
    def test_perfect_prefix(self):
        s = process_input(_session(), "ab", 0.0)
        assert s.typed_count == 2
        assert s.correct_count == 2
        assert accuracy(s) == 100.0

    def test_partial_match(self):
        s = process_input(_session(), "abxy", 0.0)
        assert s.correct_count == 2
        assert accuracy(s) == 50.0

    def test_overflow_counts_as_typed_only(self):
        s = process_input(_session(), "abcdxy", 0.0)
        assert s.typed_count == 6
        assert s.correct_count == 4

    @pytest.mark.parametrize("typed", ["", "a", "zz", "abz", "qwerty", "abcd"])
    def test_correct_never_exceeds_typed(self, typed: str):
        s = process_input(_session(), typed, 0.0)
        assert s.correct_count <= s.typed_count == len(typed)
        assert 0.0 <= accuracy(s) <= 100.0

    def test_accuracy_zero_when_nothing_typed(self):
        s = _session()
        assert accuracy(s) == 0.0
        process_input(s, "   ", 0.0)
        assert accuracy(s) == 0.0

    def test_input_is_normalized(self):
        s = process_input(_session("caf\u00e9"), "  cafe\u0301 ", 0.0)
        assert s.input_text == "caf\u00e9"
        assert s.typed_count == 4
        assert accuracy(s) == 100.0

    def test_first_input_starts_session(self):
        s = _session()
        assert not s.started
        process_input(s, "a", 12.0)
        assert s.started
        assert s.start_time == 12.0
        process_input(s, "ab", 13.0)
        assert s.start_time == 12.0

    def test_completed_session_ignores_input(self):
        s = _session("One.")
        process_input(s, "One.", 0.0)
        advance_unit(s, 1.0)
        assert s.completed
        process_input(s, "xyz", 2.0)
        assert s.typed_count == 0
        assert s.input_text == ""


# ---------------------------------------------------------------------------
# process_input – speed tracking
# ---------------------------------------------------------------------------

class TestSpeedTracking:
    def test_only_growth_is_recorded(self):
        s = _session("abcdef")
        process_input(s, "abc", 0.0)
        process_input(s, "ab", 1.0)
        assert s.total_chars == 3
        assert len(s.window) == 1
        process_input(s, "abc", 2.0)
        assert s.total_chars == 4
        assert len(s.window) == 2

    def test_repeated_input_adds_nothing(self):
        s = _session()
        process_input(s, "abc", 0.0)
        process_input(s, "abc", 0.5)
        process_input(s, "abc ", 0.7)
        assert s.total_chars == 3
        assert len(s.window) == 1

    def test_realtime_zero_before_start(self):
        assert realtime_cpm(_session(), 5.0) == 0.0

    def test_realtime_reflects_recent_event_only(self):
        s = _session("abcdefghij")
        process_input(s, "abcde", 0.0)
        process_input(s, "abcdefgh", 6.0)
        assert realtime_cpm(s, 6.0) == pytest.approx(180.0)

    def test_realtime_decays_after_pause(self):
        s = _session("abcdefghij")
        process_input(s, "abcde", 0.0)
        assert realtime_cpm(s, 1.0) == pytest.approx(300.0)
        tick(s, 6.0)
        assert len(s.window) == 0
        assert realtime_cpm(s, 6.0) == 0.0

    def test_boundary_event_retained_on_tick(self):
        s = _session("abcdefghij")
        process_input(s, "abcde", 0.0)
        tick(s, 5.0)
        assert len(s.window) == 1
        assert realtime_cpm(s, 5.0) == pytest.approx(60.0)

    def test_average_cpm(self):
        s = _session("abcdefghij")
        process_input(s, "abcdef", 0.0)
        assert average_cpm(s, 30.0) == pytest.approx(12.0)

    def test_average_zero_cases(self):
        s = _session()
        assert average_cpm(s, 10.0) == 0.0
        process_input(s, "a", 10.0)
        assert average_cpm(s, 10.0) == 0.0

    def test_tick_before_start_is_harmless(self):
        s = tick(_session(), 100.0)
        assert len(s.window) == 0


# ---------------------------------------------------------------------------
# Completion policy
# ---------------------------------------------------------------------------

class TestUnitCompletion:
    def test_length_based_accepts_wrong_text(self):
        s = _session("abcd")
        assert is_unit_complete(s, "zzzz")
        assert is_unit_complete(s, "zzzzzz")
        assert not is_unit_complete(s, "zzz")

    def test_exact_match_required_when_strict(self):
        s = _session("abcd", length_based=False)
        assert not is_unit_complete(s, "zzzz")
        assert not is_unit_complete(s, "abcde")
        assert is_unit_complete(s, " abcd ")

    def test_none_input(self):
        assert not is_unit_complete(_session(), None)

    def test_prefix_check(self):
        s = _session("abcd")
        assert is_input_correct(s, "")
        assert is_input_correct(s, "abc")
        assert not is_input_correct(s, "abd")
        assert not is_input_correct(s, None)


# ---------------------------------------------------------------------------
# advance_unit
# ---------------------------------------------------------------------------

class TestAdvanceUnit:
    def test_records_result_and_resets_unit(self):
        s = _session("Ab. Cd.")
        process_input(s, "Ab.", 0.0)
        advance_unit(s, 30.0)
        assert s.results == [UnitResult(accuracy=100.0, cpm=6.0, typed="Ab.")]
        assert s.typed_count == 0
        assert s.correct_count == 0
        assert s.input_text == ""
        assert s.target_text == "Cd."

    def test_keeps_speed_state(self):
        s = _session("Ab. Cd.")
        process_input(s, "Ab.", 0.0)
        advance_unit(s, 1.0)
        assert s.total_chars == 3
        assert len(s.window) == 1
        process_input(s, "C", 2.0)
        assert s.total_chars == 4

    def test_completes_after_last_unit(self):
        s = _session("Only one.")
        process_input(s, "Only one.", 0.0)
        advance_unit(s, 1.0)
        assert s.completed
        assert not s.started
        assert s.target_text == s.curriculum.completion_message

    def test_advance_after_completion_is_noop(self):
        s = _session("Only one.")
        process_input(s, "Only", 0.0)
        advance_unit(s, 1.0)
        advance_unit(s, 2.0)
        assert len(s.results) == 1

    def test_cannot_advance_before_first_input(self):
        s = _session("Only one.")
        advance_unit(s, 1.0)
        assert not s.completed
        assert s.results == []
        assert s.target_text == "Only one."

    def test_skipping_after_first_input(self):
        s = _session("Ab. Cd.")
        process_input(s, "A", 0.0)
        advance_unit(s, 1.0)
        advance_unit(s, 2.0)
        assert s.completed
        assert s.start_time is not None
        assert [r.typed for r in s.results] == ["A", ""]

    def test_average_accuracy(self):
        s = _session("ab. cd.")
        process_input(s, "ab.", 0.0)
        advance_unit(s, 1.0)
        process_input(s, "cx.", 2.0)
        advance_unit(s, 3.0)
        assert average_accuracy(s) == pytest.approx((100.0 + 200.0 / 3.0) / 2)

    def test_average_accuracy_empty(self):
        assert average_accuracy(_session()) == 0.0


# ---------------------------------------------------------------------------
# TypingEngine – sentence mode
# ---------------------------------------------------------------------------

class TestEngineSentenceMode:
    def test_initial_state(self, engine: TypingEngine):
        assert engine.mode is GameMode.SENTENCE
        assert engine.target_text in EN_SENTENCES
        assert engine.current_unit_number() == 1
        assert engine.total_units() == 10
        assert not engine.is_active()
        assert not engine.is_completed()

    def test_becomes_active_on_input(self, engine: TypingEngine):
        engine.process_input("E")
        assert engine.is_active()
        engine.stop()
        assert not engine.is_active()

    def test_full_sentence_game(self, engine: TypingEngine, clock: ManualClock):
        seen = []
        for _ in range(10):
            assert not engine.is_completed()
            seen.append(engine.target_text)
            _type_exactly(engine, clock)
            assert engine.accuracy() == 100.0
            assert engine.is_unit_complete(engine.target_text)
            engine.advance_to_next_unit()
        assert engine.is_completed()
        assert engine.completed_unit_count() == 10
        assert len(engine.session.results) == 10
        assert engine.average_accuracy() == 100.0
        assert engine.completed_inputs() == seen
        assert len(set(seen)) == 10
        assert engine.average_unit_cpm() > 0

    def test_restart_resets_everything(self, engine: TypingEngine, clock: ManualClock):
        _type_exactly(engine, clock)
        engine.advance_to_next_unit()
        engine.start_new_game()
        assert engine.completed_unit_count() == 0
        assert engine.session.total_chars == 0
        assert engine.session.start_time is None
        assert len(engine.session.window) == 0
        assert engine.current_unit_number() == 1

    def test_skip_needs_first_input(self, engine: TypingEngine, clock: ManualClock):
        first = engine.target_text
        assert not engine.can_skip()
        engine.advance_to_next_unit()
        assert engine.current_unit_number() == 1
        assert engine.target_text == first

        clock.advance(1.0)
        engine.process_input(first[:1])
        assert engine.can_skip()
        for _ in range(10):
            engine.advance_to_next_unit()
        assert engine.is_completed()
        assert engine.can_skip()
        assert engine.session.start_time is not None

    def test_mode_specific_accessors_are_empty(self, engine: TypingEngine):
        assert engine.long_text_sentences() == []
        assert engine.long_text_index() == -1
        assert engine.full_long_text() == ""

    def test_snapshot(self, engine: TypingEngine, clock: ManualClock):
        target = engine.target_text
        engine.process_input(target[:3] + "#")
        clock.advance(1.0)
        snap = engine.snapshot()
        assert isinstance(snap, SessionSnapshot)
        assert snap.accuracy == 75.0
        assert snap.realtime_cpm == 240
        assert engine.average_cpm() == pytest.approx(240.0)
        assert snap.average_cpm == int(engine.average_cpm())
        assert snap.unit_number == 1
        assert snap.total_units == 10
        assert snap.completed is False

    def test_realtime_decays_with_ticks(self, engine: TypingEngine, clock: ManualClock):
        engine.process_input(engine.target_text[:5])
        assert engine.realtime_cpm() > 0
        clock.advance(5.5)
        engine.tick()
        assert engine.realtime_cpm() == 0.0
        assert engine.average_cpm() > 0

    def test_strict_toggle(self, engine: TypingEngine):
        engine.set_length_based_completion(False)
        wrong = "#" * len(engine.target_text)
        assert not engine.is_unit_complete(wrong)
        engine.set_length_based_completion(True)
        assert engine.is_unit_complete(wrong)
        assert engine.settings.length_based_completion is True


# ---------------------------------------------------------------------------
# TypingEngine – long text mode
# ---------------------------------------------------------------------------

class TestEngineLongTextMode:
    def test_start_first_long_text(self, engine: TypingEngine):
        engine.start_long_text_game()
        assert engine.mode is GameMode.LONG_TEXT
        assert engine.long_text_sentences() == ["First line here.", "Second one!", "Third?"]
        assert engine.full_long_text() == "First line here. Second one! Third?"
        assert engine.long_text_index() == 0
        assert engine.total_units() == 3
        assert engine.target_text == "First line here."

    def test_walk_through(self, engine: TypingEngine, clock: ManualClock):
        engine.start_long_text_game(engine.long_texts()[0])
        for expected in range(3):
            assert engine.long_text_index() == expected
            assert engine.current_unit_number() == expected + 1
            _type_exactly(engine, clock)
            engine.advance_to_next_unit()
        assert engine.is_completed()
        assert engine.average_accuracy() == 100.0

    def test_sentence_game_clears_long_text(self, engine: TypingEngine):
        engine.start_long_text_game()
        engine.start_new_game()
        assert engine.long_text_sentences() == []
        assert engine.full_long_text() == ""

    def test_language_without_long_texts(self, engine: TypingEngine):
        engine.set_language("ko")
        engine.start_long_text_game()
        assert engine.total_units() == 0
        assert engine.long_text_sentences() == []
        assert engine.target_text == LongTextCurriculum.empty_message


# ---------------------------------------------------------------------------
# TypingEngine – content and arcade hand-off
# ---------------------------------------------------------------------------

class TestEngineContent:
    def test_set_language_restarts_with_new_pool(self, engine: TypingEngine):
        engine.start_long_text_game()
        engine.set_language("ko")
        assert engine.language.key == "ko"
        assert engine.settings.language == "ko"
        assert engine.mode is GameMode.SENTENCE
        assert engine.total_units() == 3
        assert engine.target_text in KO_SENTENCES

    def test_unknown_language_falls_back(self, engine: TypingEngine):
        engine.set_language("xx")
        assert engine.language.key == "en"

    def test_words(self, engine: TypingEngine):
        assert engine.words() == ["apple", "river", "cloud"]

    def test_create_mole_game(self, engine: TypingEngine):
        engine.settings.difficulty = Difficulty.HARD
        game = engine.create_mole_game(VirtualScheduler())
        assert isinstance(game, MoleGame)
        assert game.difficulty is Difficulty.HARD
        assert engine.mode is GameMode.MOLE_GAME
        assert game.random_word() in {"apple", "river", "cloud"}

    def test_missing_sentence_file_still_playable(self, tmp_path: Path, clock: ManualClock):
        catalog_file = tmp_path / "languages.yaml"
        catalog_file.write_text(
            yaml.dump({"languages": [{"key": "en", "name": "English", "sentences": "nope.txt", "words": "nope.txt"}]}),
            encoding="utf-8",
        )
        engine = TypingEngine(
            repository=TextRepository(tmp_path),
            catalog=LanguageCatalog(catalog_file),
            clock=clock,
        )
        assert engine.total_units() == 1
        assert engine.target_text.startswith("Error")


class TestSentenceCurriculumInEngine:
    def test_curriculum_type(self, engine: TypingEngine):
        assert isinstance(engine.session.curriculum, SentenceCurriculum)
