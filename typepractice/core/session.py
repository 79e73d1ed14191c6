"""Typing session state and scoring.

A ``Session`` is a plain value object. The module-level functions take the
session and the current time and update it in place, which keeps them
deterministic under test. ``TypingEngine`` wraps one session together with a
clock, the content repository and the settings for the UI to poll.

Speed is measured in characters per minute (CPM):
  * **Realtime CPM** – characters appended during the trailing five-second
    window, divided by the span since the oldest retained event (floored at
    one second). Decays to zero when the player pauses.
  * **Average CPM** – every character appended since the first keystroke,
    divided by the minutes elapsed since then.

Only growth of the input counts as typing. Deleting characters never creates
an event and never subtracts from the totals.
"""

from __future__ import annotations

import logging
import random
import unicodedata
from dataclasses import dataclass, field
from typing import List, Optional

from typepractice.core.arcade import MoleGame
from typepractice.core.clock import Clock, Scheduler, SystemClock
from typepractice.core.content import LanguageCatalog, Language, LongText, TextRepository, load_catalog
from typepractice.core.sequencer import Curriculum, LongTextCurriculum, SentenceCurriculum
from typepractice.core.settings import GameMode, GameSettings
from typepractice.core.window import SlidingWindow

logger = logging.getLogger(__name__)

DEFAULT_SENTENCE_TEXT = "Default text: Please check file path or content."


@dataclass
class UnitResult:
    """Result recorded when a unit is finished."""

    accuracy: float
    cpm: float
    typed: str = ""


@dataclass
class SessionSnapshot:
    """Display-ready view of a session."""

    target_text: str
    input_text: str
    accuracy: float
    realtime_cpm: int
    average_cpm: int
    unit_number: int
    total_units: int
    completed: bool


@dataclass
class Session:
    curriculum: Curriculum
    target_text: str = ""
    input_text: str = ""
    typed_count: int = 0
    correct_count: int = 0
    started: bool = False
    completed: bool = False
    start_time: Optional[float] = None
    total_chars: int = 0
    window: SlidingWindow = field(default_factory=SlidingWindow)
    results: List[UnitResult] = field(default_factory=list)
    length_based_completion: bool = True
    last_input: str = ""

    @property
    def mode(self) -> GameMode:
        return self.curriculum.mode


def normalize(text: Optional[str]) -> str:
    """Trim outer whitespace and compose to NFC."""
    if text is None:
        return ""
    return unicodedata.normalize("NFC", text.strip())


def new_session(curriculum: Curriculum, length_based_completion: bool = True) -> Session:
    return Session(
        curriculum=curriculum,
        target_text=curriculum.current_text(),
        length_based_completion=length_based_completion,
    )


def process_input(session: Session, raw: Optional[str], now: float) -> Session:
    """Score the full input buffer *raw* against the current target."""
    if session.completed:
        return session
    if not session.started:
        session.started = True
        if session.start_time is None:
            session.start_time = now

    typed = normalize(raw)
    target = normalize(session.target_text)
    session.input_text = typed
    session.typed_count = len(typed)
    session.correct_count = sum(1 for a, b in zip(typed, target) if a == b)

    added = len(typed) - len(session.last_input)
    if added > 0:
        session.window.record(now, added)
        session.total_chars += added
    session.last_input = typed
    return session


def tick(session: Session, now: float) -> Session:
    """Periodic refresh: drop stale window events so realtime speed decays."""
    if session.start_time is not None:
        session.window.evict(now)
    return session


def is_unit_complete(session: Session, raw: Optional[str]) -> bool:
    if raw is None:
        return False
    typed = normalize(raw)
    target = normalize(session.target_text)
    if session.length_based_completion:
        # Typos do not block progress; only the length matters.
        return len(typed) >= len(target)
    return typed == target


def is_input_correct(session: Session, raw: Optional[str]) -> bool:
    """True while the input is still a prefix of the target."""
    if raw is None:
        return False
    return normalize(session.target_text).startswith(normalize(raw))


def accuracy(session: Session) -> float:
    if session.typed_count == 0:
        return 0.0
    return session.correct_count / session.typed_count * 100.0


def realtime_cpm(session: Session, now: float) -> float:
    if not session.started or session.start_time is None:
        return 0.0
    return session.window.rate_per_minute(now)


def average_cpm(session: Session, now: float) -> float:
    if session.start_time is None or session.total_chars == 0:
        return 0.0
    elapsed_minutes = (now - session.start_time) / 60.0
    if elapsed_minutes <= 0:
        return 0.0
    return session.total_chars / elapsed_minutes


def advance_unit(session: Session, now: float) -> Session:
    """Record the finished unit and load the next one.

    Per-unit counters reset; the speed window and the character total carry
    over so the session average keeps accumulating. A session nobody has typed
    in yet cannot advance, so it can never complete without having started.
    """
    if session.completed or session.start_time is None:
        return session
    session.results.append(
        UnitResult(
            accuracy=accuracy(session),
            cpm=average_cpm(session, now),
            typed=session.input_text,
        )
    )
    session.typed_count = 0
    session.correct_count = 0
    session.input_text = ""
    session.last_input = ""

    if session.curriculum.advance():
        session.target_text = session.curriculum.current_text()
    else:
        session.completed = True
        session.started = False
        session.target_text = session.curriculum.completion_message
    return session


def average_accuracy(session: Session) -> float:
    if not session.results:
        return 0.0
    return sum(r.accuracy for r in session.results) / len(session.results)


def average_unit_cpm(session: Session) -> float:
    if not session.results:
        return 0.0
    return sum(r.cpm for r in session.results) / len(session.results)


def snapshot(session: Session, now: float) -> SessionSnapshot:
    return SessionSnapshot(
        target_text=session.target_text,
        input_text=session.input_text,
        accuracy=round(accuracy(session), 1),
        realtime_cpm=int(realtime_cpm(session, now)),
        average_cpm=int(average_cpm(session, now)),
        unit_number=session.curriculum.current_number(),
        total_units=session.curriculum.total_units(),
        completed=session.completed,
    )


class TypingEngine:
    """Owns the current session and the content it is built from."""

    def __init__(
        self,
        repository: Optional[TextRepository] = None,
        catalog: Optional[LanguageCatalog] = None,
        settings: Optional[GameSettings] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._repository = repository or TextRepository()
        self._catalog = catalog or load_catalog()
        self.settings = settings or GameSettings()
        self._clock = clock or SystemClock()
        self._rng = rng or random.Random()
        self._language = self._resolve_language(self.settings.language)
        self._sentences: List[str] = []
        self._load_texts()
        self.session = self.start_new_game()

    # -- content -----------------------------------------------------------

    @property
    def language(self) -> Language:
        return self._language

    @property
    def catalog(self) -> LanguageCatalog:
        return self._catalog

    def set_language(self, key: str) -> None:
        """Switch content set and start a fresh sentence game."""
        self._language = self._resolve_language(key)
        self.settings.language = self._language.key
        self._load_texts()
        self.start_new_game()

    def long_texts(self) -> List[LongText]:
        return list(self._language.long_texts)

    def words(self) -> List[str]:
        """Word pool for the mole game of the current language."""
        return self._repository.load_lines(self._language.word_file)

    def _resolve_language(self, key: str) -> Language:
        try:
            return self._catalog.get(key)
        except KeyError:
            fallback = self._catalog.default()
            logger.warning("Unknown language %r, falling back to %s", key, fallback.key)
            return fallback

    def _load_texts(self) -> None:
        self._sentences = self._repository.load_lines(self._language.sentence_file)
        if not self._sentences:
            self._sentences = [DEFAULT_SENTENCE_TEXT]

    # -- game lifecycle ----------------------------------------------------

    def start_new_game(self) -> Session:
        self.settings.mode = GameMode.SENTENCE
        curriculum = SentenceCurriculum(self._sentences, rng=self._rng)
        self.session = new_session(curriculum, self.settings.length_based_completion)
        logger.info("Started sentence game with %d sentences", curriculum.total_units())
        return self.session

    def start_long_text_game(self, long_text: Optional[LongText] = None) -> Session:
        """Start typing *long_text*, or the first long text of the language."""
        if long_text is None and self._language.long_texts:
            long_text = self._language.long_texts[0]
        self.settings.mode = GameMode.LONG_TEXT
        if long_text is None:
            curriculum = LongTextCurriculum("")
        else:
            content = self._repository.load_full_text(long_text.file)
            curriculum = LongTextCurriculum(content, title=long_text.title)
        self.session = new_session(curriculum, self.settings.length_based_completion)
        logger.info("Started long text %r with %d sentences", curriculum.title, curriculum.total_units())
        return self.session

    def stop(self) -> None:
        self.session.started = False

    def set_length_based_completion(self, allow: bool) -> None:
        self.settings.length_based_completion = allow
        self.session.length_based_completion = allow

    # -- input -------------------------------------------------------------

    def process_input(self, raw: Optional[str]) -> None:
        process_input(self.session, raw, self._clock.now())

    def tick(self) -> None:
        tick(self.session, self._clock.now())

    def is_unit_complete(self, raw: Optional[str]) -> bool:
        return is_unit_complete(self.session, raw)

    def is_input_correct(self, raw: Optional[str]) -> bool:
        return is_input_correct(self.session, raw)

    def advance_to_next_unit(self) -> None:
        advance_unit(self.session, self._clock.now())
        if self.session.completed:
            logger.info(
                "Session completed: %d units, %.1f%% average accuracy",
                len(self.session.results),
                average_accuracy(self.session),
            )

    # -- metrics -----------------------------------------------------------

    def accuracy(self) -> float:
        return accuracy(self.session)

    def realtime_cpm(self) -> float:
        return realtime_cpm(self.session, self._clock.now())

    def average_cpm(self) -> float:
        return average_cpm(self.session, self._clock.now())

    def average_accuracy(self) -> float:
        return average_accuracy(self.session)

    def average_unit_cpm(self) -> float:
        return average_unit_cpm(self.session)

    def completed_unit_count(self) -> int:
        return len(self.session.results)

    def completed_inputs(self) -> List[str]:
        return [r.typed for r in self.session.results]

    def snapshot(self) -> SessionSnapshot:
        return snapshot(self.session, self._clock.now())

    # -- progress ----------------------------------------------------------

    @property
    def target_text(self) -> str:
        return self.session.target_text

    @property
    def mode(self) -> GameMode:
        return self.settings.mode

    def is_completed(self) -> bool:
        return self.session.completed

    def is_active(self) -> bool:
        return self.session.started and not self.session.completed

    def can_skip(self) -> bool:
        """True once the current session has received input, or is over."""
        return self.session.completed or self.session.start_time is not None

    def current_unit_number(self) -> int:
        return self.session.curriculum.current_number()

    def total_units(self) -> int:
        return self.session.curriculum.total_units()

    def long_text_sentences(self) -> List[str]:
        if isinstance(self.session.curriculum, LongTextCurriculum):
            return self.session.curriculum.units
        return []

    def long_text_index(self) -> int:
        if isinstance(self.session.curriculum, LongTextCurriculum):
            return self.session.curriculum.current_index()
        return -1

    def full_long_text(self) -> str:
        if isinstance(self.session.curriculum, LongTextCurriculum):
            return self.session.curriculum.source_text
        return ""

    # -- arcade ------------------------------------------------------------

    def create_mole_game(self, scheduler: Scheduler, rng: Optional[random.Random] = None) -> MoleGame:
        """Build a mole game that shares this engine's word pool and difficulty."""
        self.settings.mode = GameMode.MOLE_GAME
        return MoleGame(
            self.words(),
            scheduler,
            difficulty=self.settings.difficulty,
            rng=rng,
        )
