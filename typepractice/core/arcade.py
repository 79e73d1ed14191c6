"""Word-mole mini-game.

Words pop up at random spots of a field and vanish after a short lifetime;
typing a live word removes it and scores points. The game runs through
``COUNTDOWN -> RUNNING -> GAME_OVER`` and can be restarted from any phase.

All timing goes through a ``Scheduler`` so the game runs the same under the
Qt event loop and under a virtual clock in tests.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from typepractice.core.clock import Scheduler, TimerHandle
from typepractice.core.settings import Difficulty

logger = logging.getLogger(__name__)

GAME_DURATION = 60
HIT_SCORE = 10
COUNTDOWN_FROM = 3
COUNTDOWN_INTERVAL = 1.0
TICK_INTERVAL = 1.0
FIRST_WAVE_DELAY = 0.5
START_LABEL = "Start!"

MOLE_WIDTH = 100
MOLE_HEIGHT = 40
MAX_PLACEMENT_ATTEMPTS = 10
DEFAULT_FIELD_SIZE = (800, 420)
FALLBACK_WORD = "error"


class Phase(Enum):
    IDLE = "idle"
    COUNTDOWN = "countdown"
    RUNNING = "running"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    def intersects(self, other: "Rect") -> bool:
        """True if the interiors overlap; touching edges do not count."""
        return (
            self.x < other.x + other.width
            and other.x < self.x + self.width
            and self.y < other.y + other.height
            and other.y < self.y + self.height
        )


@dataclass
class Mole:
    word: str
    rect: Rect
    expires_at: float
    handle: Optional[TimerHandle] = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class DifficultyProfile:
    max_moles: int
    wave_min: int
    wave_max: int
    lifetime: float
    # (seconds left above which the base applies, base delay in ms), checked in order
    delay_steps: Tuple[Tuple[int, int], ...]
    final_delay_ms: int
    jitter_ms: int

    def wave_size(self, rng: random.Random) -> int:
        return rng.randint(self.wave_min, self.wave_max)

    def next_delay(self, time_left: int, rng: random.Random) -> float:
        """Seconds until the next wave; shrinks as the clock runs down."""
        base = self.final_delay_ms
        for threshold, delay in self.delay_steps:
            if time_left > threshold:
                base = delay
                break
        return (base + rng.randrange(self.jitter_ms)) / 1000.0


PROFILES: Dict[Difficulty, DifficultyProfile] = {
    Difficulty.EASY: DifficultyProfile(
        max_moles=4, wave_min=1, wave_max=1, lifetime=2.8,
        delay_steps=((30, 1800),), final_delay_ms=1500, jitter_ms=800,
    ),
    Difficulty.NORMAL: DifficultyProfile(
        max_moles=6, wave_min=1, wave_max=2, lifetime=2.0,
        delay_steps=((40, 1200), (20, 800)), final_delay_ms=500, jitter_ms=700,
    ),
    Difficulty.HARD: DifficultyProfile(
        max_moles=8, wave_min=2, wave_max=3, lifetime=1.6,
        delay_steps=((40, 500), (20, 300)), final_delay_ms=200, jitter_ms=400,
    ),
}


class MoleGame:
    def __init__(
        self,
        words: Sequence[str],
        scheduler: Scheduler,
        difficulty: Difficulty = Difficulty.NORMAL,
        rng: Optional[random.Random] = None,
        field_size: Tuple[int, int] = DEFAULT_FIELD_SIZE,
        duration: int = GAME_DURATION,
    ) -> None:
        self._words = [w for w in words if w] or [FALLBACK_WORD]
        self._scheduler = scheduler
        self._rng = rng or random.Random()
        self.difficulty = difficulty
        self.field_width, self.field_height = field_size
        self.duration = duration
        self.listeners: List[Callable[[], None]] = []

        self.phase = Phase.IDLE
        self.countdown_label = ""
        self._countdown = COUNTDOWN_FROM
        self._countdown_handle: Optional[TimerHandle] = None
        self._spawn_handle: Optional[TimerHandle] = None
        self._tick_handle: Optional[TimerHandle] = None

        self.score = 0
        self.time_left = duration
        self.moles: List[Mole] = []
        self.reset()

    @property
    def profile(self) -> DifficultyProfile:
        return PROFILES[self.difficulty]

    # -- score and time ----------------------------------------------------

    def reset(self) -> None:
        self._clear_moles()
        self.score = 0
        self.time_left = self.duration

    def tick(self) -> None:
        if self.time_left > 0:
            self.time_left -= 1

    def is_time_up(self) -> bool:
        return self.time_left <= 0

    def mole_hit(self) -> None:
        self.score += HIT_SCORE

    def random_word(self) -> str:
        return self._rng.choice(self._words)

    def live_words(self) -> List[str]:
        return [mole.word for mole in self.moles]

    # -- lifecycle ---------------------------------------------------------

    def start_game(self) -> None:
        """(Re)start from a fresh state with the 3-2-1 countdown."""
        self.stop()
        self.reset()
        self.phase = Phase.COUNTDOWN
        self._countdown = COUNTDOWN_FROM
        self.countdown_label = ""
        self._countdown_handle = self._scheduler.call_later(0.0, self._countdown_step)
        logger.info("Mole game starting (%s)", self.difficulty.display_name)
        self._notify()

    def stop(self) -> None:
        """Cancel every pending timer. Nothing fires after this returns."""
        for handle in (self._countdown_handle, self._spawn_handle, self._tick_handle):
            if handle is not None:
                handle.cancel()
        self._countdown_handle = self._spawn_handle = self._tick_handle = None
        self._clear_moles()
        if self.phase in (Phase.COUNTDOWN, Phase.RUNNING):
            self.phase = Phase.IDLE

    def set_field_size(self, width: int, height: int) -> None:
        self.field_width = width
        self.field_height = height

    def _countdown_step(self) -> None:
        if self._countdown > 0:
            self.countdown_label = str(self._countdown)
            self._countdown -= 1
        elif self._countdown == 0:
            self.countdown_label = START_LABEL
            self._countdown -= 1
        else:
            self._countdown_handle = None
            self.countdown_label = ""
            self._begin_running()
            return
        self._countdown_handle = self._scheduler.call_later(COUNTDOWN_INTERVAL, self._countdown_step)
        self._notify()

    def _begin_running(self) -> None:
        self.phase = Phase.RUNNING
        self._spawn_handle = self._scheduler.call_later(FIRST_WAVE_DELAY, self._on_spawn_timer)
        self._tick_handle = self._scheduler.call_later(TICK_INTERVAL, self._on_tick_timer)
        self._notify()

    def _on_tick_timer(self) -> None:
        self.tick()
        if self.is_time_up():
            self._game_over()
            return
        self._tick_handle = self._scheduler.call_later(TICK_INTERVAL, self._on_tick_timer)
        self._notify()

    def _on_spawn_timer(self) -> None:
        self.spawn_wave()
        delay = self.profile.next_delay(self.time_left, self._rng)
        self._spawn_handle = self._scheduler.call_later(delay, self._on_spawn_timer)
        self._notify()

    def _game_over(self) -> None:
        self.stop()
        self.phase = Phase.GAME_OVER
        logger.info("Mole game over, final score %d", self.score)
        self._notify()

    # -- moles -------------------------------------------------------------

    def spawn_wave(self) -> int:
        """Spawn a wave unless the field is at its cap. Returns moles added."""
        self.expire_moles()
        profile = self.profile
        if len(self.moles) >= profile.max_moles:
            return 0
        spawned = 0
        for _ in range(profile.wave_size(self._rng)):
            if self.spawn_mole() is not None:
                spawned += 1
        return spawned

    def spawn_mole(self) -> Optional[Mole]:
        """Place one mole where it overlaps no other, or give up after 10 tries."""
        if self.field_width <= MOLE_WIDTH or self.field_height <= MOLE_HEIGHT:
            return None
        for _ in range(MAX_PLACEMENT_ATTEMPTS):
            rect = Rect(
                self._rng.randrange(self.field_width - MOLE_WIDTH),
                self._rng.randrange(self.field_height - MOLE_HEIGHT),
                MOLE_WIDTH,
                MOLE_HEIGHT,
            )
            if not any(mole.rect.intersects(rect) for mole in self.moles):
                break
        else:
            logger.debug("No free spot for a mole after %d attempts", MAX_PLACEMENT_ATTEMPTS)
            return None

        lifetime = self.profile.lifetime
        mole = Mole(self.random_word(), rect, self._scheduler.now() + lifetime)
        mole.handle = self._scheduler.call_later(lifetime, lambda: self._expire(mole))
        self.moles.append(mole)
        return mole

    def submit(self, word: str) -> bool:
        """Whack the first live mole showing *word*. Returns True on a hit."""
        if self.phase is not Phase.RUNNING:
            return False
        word = word.strip()
        self.expire_moles()
        for mole in self.moles:
            if mole.word == word:
                self._remove(mole)
                self.mole_hit()
                self._notify()
                return True
        return False

    def expire_moles(self) -> None:
        now = self._scheduler.now()
        for mole in [m for m in self.moles if m.expires_at <= now]:
            self._remove(mole)

    def _expire(self, mole: Mole) -> None:
        if mole in self.moles:
            self.moles.remove(mole)
            self._notify()

    def _remove(self, mole: Mole) -> None:
        if mole.handle is not None:
            mole.handle.cancel()
        self.moles.remove(mole)

    def _clear_moles(self) -> None:
        for mole in self.moles:
            if mole.handle is not None:
                mole.handle.cancel()
        self.moles = []

    def _notify(self) -> None:
        for listener in list(self.listeners):
            listener()
