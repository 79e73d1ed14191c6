from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, Optional

WINDOW_SECONDS = 5.0


@dataclass(frozen=True)
class TypingEvent:
    """A burst of characters appended to the input at one instant."""

    timestamp: float
    chars: int


class SlidingWindow:
    """Time-bounded queue of typing events, oldest first.

    The window is bounded by age rather than by entry count. An event is
    evicted only when it is strictly older than ``now - duration``; an event
    sitting exactly on the boundary stays.
    """

    def __init__(self, duration: float = WINDOW_SECONDS) -> None:
        self.duration = duration
        self._events: Deque[TypingEvent] = deque()

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[TypingEvent]:
        return iter(self._events)

    def record(self, now: float, chars: int) -> None:
        """Push one event for *chars* newly appended characters, then evict."""
        if chars <= 0:
            return
        self._events.append(TypingEvent(now, chars))
        self.evict(now)

    def evict(self, now: float) -> None:
        cutoff = now - self.duration
        while self._events and self._events[0].timestamp < cutoff:
            self._events.popleft()

    def clear(self) -> None:
        self._events.clear()

    def oldest(self) -> Optional[float]:
        return self._events[0].timestamp if self._events else None

    def total_chars(self) -> int:
        return sum(event.chars for event in self._events)

    def rate_per_minute(self, now: float) -> float:
        """Characters per minute over the retained events.

        Stale events are ignored even if no tick has evicted them yet. The
        elapsed span is floored at one second so the rate does not explode
        right after the first keystroke.
        """
        cutoff = now - self.duration
        live = [event for event in self._events if event.timestamp >= cutoff]
        if not live:
            return 0.0
        chars = sum(event.chars for event in live)
        if chars == 0:
            return 0.0
        seconds = max(1.0, now - live[0].timestamp)
        return (chars / seconds) * 60.0
