"""Scheduler backed by the Qt event loop."""

from __future__ import annotations

from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer

from typepractice.core.clock import SystemClock, TimerHandle


class _QtTimerHandle(TimerHandle):
    def __init__(self, timer: QTimer) -> None:
        super().__init__()
        self._timer = timer

    def cancel(self) -> None:
        # A fired timer has already been handed to deleteLater().
        if self.active:
            self._timer.stop()
            self._timer.deleteLater()
        super().cancel()


class QtScheduler(SystemClock):
    """One-shot callbacks on ``QTimer``; time comes from the monotonic clock."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        self._parent = parent

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        handle = _QtTimerHandle(timer)

        def _fire() -> None:
            if not handle.active:
                return
            handle._fired = True
            timer.deleteLater()
            callback()

        timer.timeout.connect(_fire)
        timer.start(max(0, int(delay * 1000)))
        return handle
