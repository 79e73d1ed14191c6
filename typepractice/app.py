"""Application entry point and setup for the typing trainer."""

import logging
import sys

from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import QApplication

from typepractice.core.content import TextRepository, load_catalog
from typepractice.core.session import TypingEngine
from typepractice.core.settings import SettingsStore
from typepractice.ui.main_window import MainWindow


def configure_logging() -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def run() -> None:
    """Load content and settings, then start the main window."""
    configure_logging()
    app = QApplication(sys.argv)
    app.setApplicationName("Type Practice")
    app.setApplicationDisplayName("Type Practice")

    settings_store = SettingsStore()
    saved_mode = settings_store.settings.mode
    engine = TypingEngine(
        repository=TextRepository(),
        catalog=load_catalog(),
        settings=settings_store.settings,
    )
    logging.info("Loaded content set: %s", engine.language.name)

    window = MainWindow(engine=engine, settings_store=settings_store, initial_mode=saved_mode)
    screen = QGuiApplication.primaryScreen()
    if screen is not None:
        geometry = screen.availableGeometry()
        window.resize(int(geometry.width() * 0.6), int(geometry.height() * 0.7))
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    run()
