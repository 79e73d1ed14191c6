"""Typing practice UI: target text, unit progress strip and the mole field."""

from __future__ import annotations

import html
from typing import Optional

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QColor, QPainter, QPen
from PySide6.QtWidgets import QLabel, QWidget

from typepractice.core.arcade import MoleGame, Phase
from typepractice.core.clock import Clock
from typepractice.ui.colors import LightColors, blend_hex


class TargetTextLabel(QLabel):
    """Target sentence coloured by what has been typed so far."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._colors = LightColors
        self.setAlignment(Qt.AlignCenter)
        self.setWordWrap(True)
        self.setTextFormat(Qt.RichText)
        self.setMinimumHeight(90)

    def set_palette(self, colors) -> None:
        self._colors = colors

    def show_progress(self, target: str, typed: str) -> None:
        parts = []
        for i, ch in enumerate(target):
            if i >= len(typed):
                color = self._colors.PENDING
            elif typed[i] == ch:
                color = self._colors.CORRECT
            else:
                color = self._colors.WRONG
            parts.append(f'<span style="color:{color}">{html.escape(ch)}</span>')
        self.setText(f'<span style="font-size:22px">{"".join(parts)}</span>')


class UnitProgressWidget(QWidget):
    """Numbered boxes: finished (✓), current (teal), upcoming (gray)."""

    MAX_VISIBLE = 12

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._total = 0
        self._current = 0
        self._colors = LightColors
        self.setFixedHeight(48)
        self.setMinimumWidth(200)

    def set_palette(self, colors) -> None:
        self._colors = colors
        self.update()

    def set_progress(self, current: int, total: int) -> None:
        """*current* is 0-based and clamped to ``[0, total]``."""
        self._total = max(0, total)
        self._current = max(0, min(current, self._total))
        self.update()

    def paintEvent(self, event) -> None:
        super().paintEvent(event)
        if not self._total:
            return
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, True)

        # Long texts can have dozens of sentences; show a window around the current one.
        first = max(0, min(self._current - self.MAX_VISIBLE // 2, self._total - self.MAX_VISIBLE))
        last = min(self._total, first + self.MAX_VISIBLE)
        box, spacing = 32, 8
        total_width = (last - first) * (box + spacing) - spacing
        x = max(0, (self.width() - total_width) // 2)
        y = (self.height() - box) // 2
        for i in range(first, last):
            if i < self._current:
                painter.setBrush(QColor(blend_hex(self._colors.PRIMARY_LIGHT, "#FFFFFF", 0.6)))
                painter.setPen(QPen(QColor(self._colors.PRIMARY), 2))
                label = "✓"
            elif i == self._current:
                painter.setBrush(QColor(self._colors.PRIMARY))
                painter.setPen(QPen(QColor(self._colors.PRIMARY_DARK), 2))
                label = str(i + 1)
            else:
                painter.setBrush(QColor(self._colors.SURFACE))
                painter.setPen(QPen(QColor(self._colors.PENDING), 1))
                label = str(i + 1)
            painter.drawRoundedRect(x, y, box, box, 8, 8)
            painter.setPen(QColor("#FFFFFF" if i == self._current else self._colors.TEXT_PRIMARY))
            painter.drawText(x, y, box, box, Qt.AlignCenter, label)
            x += box + spacing


class MoleFieldWidget(QWidget):
    """Paints the live moles of a ``MoleGame``. Moles fade out as they expire.

    The game only notifies on state changes, so while it runs a short timer
    keeps repainting to animate the fade.
    """

    FADE_INTERVAL_MS = 50

    def __init__(self, clock: Clock, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._clock = clock
        self._game: Optional[MoleGame] = None
        self._colors = LightColors
        self.setMinimumSize(400, 300)

        self._fade_timer = QTimer(self)
        self._fade_timer.setInterval(self.FADE_INTERVAL_MS)
        self._fade_timer.timeout.connect(self._on_fade_tick)

    def set_game(self, game: MoleGame) -> None:
        if self._game is not None and self._on_game_changed in self._game.listeners:
            self._game.listeners.remove(self._on_game_changed)
        self._game = game
        game.set_field_size(self.width(), self.height())
        game.listeners.append(self._on_game_changed)
        self._on_game_changed()

    def is_animating(self) -> bool:
        return self._fade_timer.isActive()

    def _on_game_changed(self) -> None:
        running = self._game is not None and self._game.phase is Phase.RUNNING
        if running and not self._fade_timer.isActive():
            self._fade_timer.start()
        elif not running:
            self._fade_timer.stop()
        self.update()

    def _on_fade_tick(self) -> None:
        # stop() does not notify, so the phase is checked here as well.
        if self._game is None or self._game.phase is not Phase.RUNNING:
            self._fade_timer.stop()
        self.update()

    def set_palette(self, colors) -> None:
        self._colors = colors
        self.update()

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        if self._game is not None:
            self._game.set_field_size(self.width(), self.height())

    def paintEvent(self, event) -> None:
        super().paintEvent(event)
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(self._colors.FIELD_BG))
        if self._game is None:
            return

        now = self._clock.now()
        lifetime = self._game.profile.lifetime
        font = painter.font()
        font.setPointSize(14)
        font.setBold(True)
        painter.setFont(font)
        for mole in self._game.moles:
            remaining = max(0.0, mole.expires_at - now)
            fade = 1.0 - remaining / lifetime if lifetime else 0.0
            r = mole.rect
            painter.setBrush(QColor(blend_hex(self._colors.MOLE_BG, self._colors.FIELD_BG, fade * 0.7)))
            painter.setPen(QPen(QColor(self._colors.MOLE_BORDER), 1))
            painter.drawRect(r.x, r.y, r.width, r.height)
            painter.drawText(r.x, r.y, r.width, r.height, Qt.AlignCenter, mole.word)

        if self._game.countdown_label:
            font.setPointSize(72)
            painter.setFont(font)
            painter.setPen(QColor("#FFFFFF"))
            painter.drawText(self.rect(), Qt.AlignCenter, self._game.countdown_label)
