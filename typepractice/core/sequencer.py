"""Unit sequencing for the typing modes.

Each typing mode owns a curriculum object with the same small surface
(``current_text``, ``advance``, ``total_units``, ``current_index``), so the
session code never branches on the mode.
"""

from __future__ import annotations

import random
import re
from typing import List, Optional, Sequence

from typepractice.core.settings import GameMode

SENTENCES_PER_GAME = 10

_PARAGRAPH_BREAK = re.compile(r"\n\n+")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")


def select_sentences(
    pool: Sequence[str],
    count: int = SENTENCES_PER_GAME,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Pick up to *count* distinct entries of *pool* in random order."""
    shuffled = list(pool)
    (rng or random).shuffle(shuffled)
    return shuffled[: min(count, len(shuffled))]


def split_long_text(text: Optional[str]) -> List[str]:
    """Split a passage into sentences.

    Paragraphs are separated by blank lines; inside a paragraph a sentence
    ends at whitespace following ``.``, ``!`` or ``?``. The split is purely
    lexical, so abbreviations such as "Mr." also end a sentence.
    """
    if text is None or not text.strip():
        return []
    sentences: List[str] = []
    for paragraph in _PARAGRAPH_BREAK.split(text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        for sentence in _SENTENCE_BREAK.split(paragraph):
            sentence = sentence.strip()
            if sentence:
                sentences.append(sentence)
    if not sentences:
        sentences.append(text.strip())
    return sentences


class Curriculum:
    """Ordered units for one session plus the position inside them."""

    mode: GameMode
    completion_message = "All units completed!"
    empty_message = "No practice text could be loaded. Please check the files."

    def __init__(self, units: Sequence[str]) -> None:
        self._units = list(units)
        self._index = 0

    @property
    def units(self) -> List[str]:
        return list(self._units)

    def current_index(self) -> int:
        return self._index

    def current_number(self) -> int:
        """1-based number of the unit being typed."""
        return self._index + 1

    def total_units(self) -> int:
        return len(self._units)

    def is_exhausted(self) -> bool:
        return self._index >= len(self._units)

    def current_text(self) -> str:
        if not self._units:
            return self.empty_message
        if self.is_exhausted():
            return self.completion_message
        return self._units[self._index]

    def advance(self) -> bool:
        """Move to the next unit. Returns False once the curriculum is used up."""
        self._index += 1
        return not self.is_exhausted()


class SentenceCurriculum(Curriculum):
    mode = GameMode.SENTENCE
    completion_message = "You have finished all 10 sentences!"

    def __init__(
        self,
        pool: Sequence[str],
        rng: Optional[random.Random] = None,
        size: int = SENTENCES_PER_GAME,
    ) -> None:
        super().__init__(select_sentences(pool, size, rng))
        self._size = size

    def is_exhausted(self) -> bool:
        return self._index >= self._size or super().is_exhausted()


class LongTextCurriculum(Curriculum):
    mode = GameMode.LONG_TEXT
    completion_message = "You have finished the long text!"
    empty_message = "The long text could not be loaded."

    def __init__(self, text: Optional[str], title: str = "") -> None:
        super().__init__(split_long_text(text))
        self.title = title
        self.source_text = text or ""
