from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QCloseEvent, QFont
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from typepractice.core.arcade import MoleGame, Phase
from typepractice.core.session import TypingEngine
from typepractice.core.settings import Difficulty, GameMode, SettingsStore
from typepractice.ui.colors import palette_for
from typepractice.ui.qt_scheduler import QtScheduler
from typepractice.ui.typing_widgets import MoleFieldWidget, TargetTextLabel, UnitProgressWidget

logger = logging.getLogger(__name__)

STATUS_INTERVAL_MS = 300


class MainWindow(QMainWindow):
    """Menu, typing, result and mole screens stacked in one window."""

    def __init__(
        self,
        engine: TypingEngine,
        settings_store: SettingsStore,
        initial_mode: GameMode = GameMode.SENTENCE,
    ) -> None:
        super().__init__()
        self.setWindowTitle("Type Practice")
        self._engine = engine
        self._settings_store = settings_store
        self._scheduler = QtScheduler(self)
        self._mole_game: Optional[MoleGame] = None
        self._game_over_shown = False
        self._initial_mode = initial_mode

        self._status_timer = QTimer(self)
        self._status_timer.setInterval(STATUS_INTERVAL_MS)
        self._status_timer.timeout.connect(self._on_status_tick)

        self._build_ui()
        self._apply_theme()
        self._show_menu()

    # -- construction ------------------------------------------------------

    def _build_ui(self) -> None:
        self._stack = QStackedWidget(self)
        self.setCentralWidget(self._stack)
        self._menu_screen = self._build_menu_screen()
        self._typing_screen = self._build_typing_screen()
        self._result_screen = self._build_result_screen()
        self._mole_screen = self._build_mole_screen()
        for screen in (self._menu_screen, self._typing_screen, self._result_screen, self._mole_screen):
            self._stack.addWidget(screen)

    def _build_menu_screen(self) -> QWidget:
        screen = QWidget()
        layout = QVBoxLayout(screen)
        layout.setAlignment(Qt.AlignCenter)

        title = QLabel("Type Practice")
        title.setFont(QFont(title.font().family(), 28, QFont.Bold))
        title.setAlignment(Qt.AlignCenter)
        layout.addWidget(title)

        form = QFormLayout()
        self._mode_combo = QComboBox()
        for mode in GameMode:
            self._mode_combo.addItem(mode.display_name, mode)
        form.addRow("Mode", self._mode_combo)

        self._language_combo = QComboBox()
        for language in self._engine.catalog.all():
            self._language_combo.addItem(language.name, language.key)
        form.addRow("Language", self._language_combo)

        self._long_text_combo = QComboBox()
        form.addRow("Long text", self._long_text_combo)

        self._difficulty_combo = QComboBox()
        for difficulty in Difficulty:
            self._difficulty_combo.addItem(difficulty.display_name, difficulty)
        form.addRow("Mole difficulty", self._difficulty_combo)

        self._strict_check = QCheckBox("Require an exact match to finish a sentence")
        form.addRow("", self._strict_check)
        layout.addLayout(form)

        self._mode_description = QLabel()
        self._mode_description.setWordWrap(True)
        self._mode_description.setAlignment(Qt.AlignCenter)
        layout.addWidget(self._mode_description)

        buttons = QHBoxLayout()
        theme_button = QPushButton("Toggle theme")
        theme_button.clicked.connect(self._toggle_theme)
        start_button = QPushButton("Start")
        start_button.setDefault(True)
        start_button.clicked.connect(self._start_selected)
        buttons.addWidget(theme_button)
        buttons.addWidget(start_button)
        layout.addLayout(buttons)

        settings = self._engine.settings
        self._select_data(self._mode_combo, self._initial_mode)
        self._select_data(self._language_combo, self._engine.language.key)
        self._select_data(self._difficulty_combo, settings.difficulty)
        self._strict_check.setChecked(not settings.length_based_completion)
        self._refresh_long_texts()
        self._on_mode_changed()
        self._mode_combo.currentIndexChanged.connect(self._on_mode_changed)
        self._language_combo.currentIndexChanged.connect(self._on_language_changed)
        return screen

    def _build_typing_screen(self) -> QWidget:
        screen = QWidget()
        layout = QVBoxLayout(screen)

        self._unit_label = QLabel()
        self._unit_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self._unit_label)
        self._unit_progress = UnitProgressWidget()
        layout.addWidget(self._unit_progress)

        self._target_label = TargetTextLabel()
        layout.addWidget(self._target_label, 1)

        self.input_box = QLineEdit()
        self.input_box.setFont(QFont(self.input_box.font().family(), 18))
        self.input_box.textChanged.connect(self._on_text_changed)
        layout.addWidget(self.input_box)

        stats = QHBoxLayout()
        self._accuracy_label = QLabel()
        self._speed_label = QLabel()
        self._average_label = QLabel()
        for label in (self._accuracy_label, self._speed_label, self._average_label):
            stats.addWidget(label)
        layout.addLayout(stats)

        buttons = QHBoxLayout()
        self._skip_button = QPushButton("Next sentence")
        self._skip_button.clicked.connect(self._skip_unit)
        menu_button = QPushButton("Back to menu")
        menu_button.clicked.connect(self._show_menu)
        buttons.addWidget(self._skip_button)
        buttons.addWidget(menu_button)
        layout.addLayout(buttons)
        return screen

    def _build_result_screen(self) -> QWidget:
        screen = QWidget()
        layout = QVBoxLayout(screen)
        self._summary_label = QLabel()
        self._summary_label.setAlignment(Qt.AlignCenter)
        self._summary_label.setFont(QFont(self._summary_label.font().family(), 16))
        layout.addWidget(self._summary_label)
        self._results_list = QListWidget()
        layout.addWidget(self._results_list, 1)

        buttons = QHBoxLayout()
        again_button = QPushButton("Play again")
        again_button.clicked.connect(self._start_selected)
        menu_button = QPushButton("Back to menu")
        menu_button.clicked.connect(self._show_menu)
        buttons.addWidget(again_button)
        buttons.addWidget(menu_button)
        layout.addLayout(buttons)
        return screen

    def _build_mole_screen(self) -> QWidget:
        screen = QWidget()
        layout = QVBoxLayout(screen)

        header = QHBoxLayout()
        self._score_label = QLabel()
        self._time_label = QLabel()
        header.addWidget(self._score_label)
        header.addStretch(1)
        header.addWidget(self._time_label)
        layout.addLayout(header)

        self._mole_field = MoleFieldWidget(self._scheduler)
        layout.addWidget(self._mole_field, 1)

        self._mole_input = QLineEdit()
        self._mole_input.setPlaceholderText("Type a word and press Enter")
        self._mole_input.returnPressed.connect(self._on_mole_submit)
        layout.addWidget(self._mole_input)

        menu_button = QPushButton("Back to menu")
        menu_button.clicked.connect(self._show_menu)
        layout.addWidget(menu_button)
        return screen

    @staticmethod
    def _select_data(combo: QComboBox, value) -> None:
        index = combo.findData(value)
        if index >= 0:
            combo.setCurrentIndex(index)

    # -- menu --------------------------------------------------------------

    def _show_menu(self) -> None:
        self._status_timer.stop()
        if self._mole_game is not None:
            self._mole_game.stop()
        self._engine.stop()
        self._stack.setCurrentWidget(self._menu_screen)

    def _on_mode_changed(self, *_args) -> None:
        mode = self._mode_combo.currentData()
        if mode is None:
            return
        self._mode_description.setText(mode.description)
        self._long_text_combo.setEnabled(mode is GameMode.LONG_TEXT)
        self._difficulty_combo.setEnabled(mode is GameMode.MOLE_GAME)

    def _on_language_changed(self, *_args) -> None:
        key = self._language_combo.currentData()
        if key is None or key == self._engine.language.key:
            return
        self._engine.set_language(key)
        self._refresh_long_texts()

    def _refresh_long_texts(self) -> None:
        self._long_text_combo.clear()
        for long_text in self._engine.long_texts():
            self._long_text_combo.addItem(long_text.title, long_text)

    def _toggle_theme(self) -> None:
        settings = self._engine.settings
        settings.theme = settings.theme.toggled()
        self._apply_theme()
        self._settings_store.update(theme=settings.theme)

    def _apply_theme(self) -> None:
        colors = palette_for(self._engine.settings.theme)
        self.setStyleSheet(
            f"QMainWindow, QWidget {{ background: {colors.BG}; color: {colors.TEXT_PRIMARY}; }}"
            f"QLineEdit, QListWidget, QComboBox {{ background: {colors.SURFACE}; }}"
            f"QPushButton {{ background: {colors.PRIMARY}; color: white; padding: 6px 14px; }}"
        )
        self._target_label.set_palette(colors)
        self._unit_progress.set_palette(colors)
        self._mole_field.set_palette(colors)

    def _start_selected(self) -> None:
        mode = self._mode_combo.currentData()
        difficulty = self._difficulty_combo.currentData()
        self._engine.settings.difficulty = difficulty
        self._engine.set_length_based_completion(not self._strict_check.isChecked())
        logger.info("Starting %s", mode.display_name)
        if mode is GameMode.MOLE_GAME:
            self._start_mole_game()
        elif mode is GameMode.LONG_TEXT:
            self._engine.start_long_text_game(self._long_text_combo.currentData())
            self._show_typing_screen()
        else:
            self._engine.start_new_game()
            self._show_typing_screen()
        self._settings_store.update(
            mode=mode,
            language=self._engine.language.key,
            difficulty=difficulty,
            length_based_completion=self._engine.settings.length_based_completion,
        )

    # -- typing ------------------------------------------------------------

    def _show_typing_screen(self) -> None:
        self._stack.setCurrentWidget(self._typing_screen)
        self._clear_input()
        self._refresh_typing_screen()
        self.input_box.setFocus()
        self._status_timer.start()

    def _clear_input(self) -> None:
        self.input_box.blockSignals(True)
        self.input_box.clear()
        self.input_box.blockSignals(False)

    def _on_text_changed(self, text: str) -> None:
        if self._engine.is_completed():
            return
        self._engine.process_input(text)
        if self._engine.is_unit_complete(text):
            self._finish_unit()
        else:
            self._refresh_typing_screen()

    def _skip_unit(self) -> None:
        if not self._engine.can_skip():
            return
        if self._engine.is_completed():
            self._show_results()
            return
        self._finish_unit()

    def _finish_unit(self) -> None:
        self._engine.advance_to_next_unit()
        self._clear_input()
        if self._engine.is_completed():
            self._show_results()
        else:
            self._refresh_typing_screen()

    def _on_status_tick(self) -> None:
        self._engine.tick()
        self._refresh_typing_stats()

    def _refresh_typing_screen(self) -> None:
        snap = self._engine.snapshot()
        self._unit_label.setText(f"{snap.unit_number} / {snap.total_units}")
        self._unit_progress.set_progress(snap.unit_number - 1, snap.total_units)
        self._skip_button.setEnabled(self._engine.can_skip())
        self._target_label.show_progress(snap.target_text, snap.input_text)
        colors = palette_for(self._engine.settings.theme)
        ok = self._engine.is_input_correct(self.input_box.text())
        self.input_box.setStyleSheet(f"color: {colors.TEXT_PRIMARY if ok else colors.WRONG};")
        self._refresh_typing_stats()

    def _refresh_typing_stats(self) -> None:
        snap = self._engine.snapshot()
        self._accuracy_label.setText(f"Accuracy: {snap.accuracy:.1f}%")
        self._speed_label.setText(f"Speed: {snap.realtime_cpm} CPM")
        self._average_label.setText(f"Average: {snap.average_cpm} CPM")

    def _show_results(self) -> None:
        self._status_timer.stop()
        self._summary_label.setText(
            f"Finished {self._engine.completed_unit_count()} units\n"
            f"Average accuracy {self._engine.average_accuracy():.1f}%  ·  "
            f"Average speed {int(self._engine.average_unit_cpm())} CPM"
        )
        self._results_list.clear()
        for number, result in enumerate(self._engine.session.results, start=1):
            self._results_list.addItem(
                f"{number}. {result.accuracy:.1f}%  {int(result.cpm)} CPM  {result.typed}"
            )
        self._stack.setCurrentWidget(self._result_screen)

    # -- mole game ---------------------------------------------------------

    def _start_mole_game(self) -> None:
        if self._mole_game is not None:
            self._mole_game.stop()
        self._mole_game = self._engine.create_mole_game(self._scheduler)
        self._mole_game.listeners.append(self._on_mole_changed)
        self._mole_field.set_game(self._mole_game)
        self._stack.setCurrentWidget(self._mole_screen)
        self._restart_mole_game()

    def _restart_mole_game(self) -> None:
        self._game_over_shown = False
        self._mole_input.clear()
        self._mole_game.start_game()

    def _on_mole_submit(self) -> None:
        if self._mole_game is not None:
            self._mole_game.submit(self._mole_input.text())
        self._mole_input.clear()

    def _on_mole_changed(self) -> None:
        game = self._mole_game
        if game is None:
            return
        self._score_label.setText(f"Score: {game.score}")
        self._time_label.setText(f"Time left: {game.time_left}s")
        self._mole_input.setEnabled(game.phase is Phase.RUNNING)
        if game.phase is Phase.RUNNING:
            self._mole_input.setFocus()
        if game.phase is Phase.GAME_OVER and not self._game_over_shown:
            self._game_over_shown = True
            # Let the final repaint happen before the modal dialog blocks.
            QTimer.singleShot(0, self._ask_play_again)

    def _ask_play_again(self) -> None:
        box = QMessageBox(self)
        box.setWindowTitle("Game over")
        box.setText(f"Game over!\n\nFinal score: {self._mole_game.score}")
        again = box.addButton("Play again", QMessageBox.AcceptRole)
        box.addButton("Back to menu", QMessageBox.RejectRole)
        box.exec()
        if box.clickedButton() is again:
            self._restart_mole_game()
        else:
            self._show_menu()

    def closeEvent(self, event: QCloseEvent) -> None:
        """Stop every timer and persist settings on exit."""
        self._status_timer.stop()
        if self._mole_game is not None:
            self._mole_game.stop()
        self._settings_store.save()
        super().closeEvent(event)
