"""Application entry point and setup for the nazokey flick-keyboard puzzle game."""

import logging
import os
import sys
from pathlib import Path

from PySide6.QtGui import QGuiApplication, QFontDatabase, QFont
from PySide6.QtWidgets import QApplication

from nazokey.core.puzzles import PuzzleRepository
from nazokey.core.relocation import RelocationStore
from nazokey.ui.main_window import MainWindow


def configure_logging() -> None:
    """Configure application-wide logging; ``NAZOKEY_DEBUG=1`` turns on debug output."""
    level = logging.DEBUG if os.environ.get("NAZOKEY_DEBUG") == "1" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def load_application_font(app: QApplication) -> None:
    """Use a bundled Japanese font when present, otherwise keep the system font with kana fallbacks."""
    font_path = Path(__file__).parent / "assets" / "NotoSansJP-Regular.ttf"

    families = ["Noto Sans JP", "Noto Sans CJK JP", "Hiragino Sans", "Yu Gothic", "Meiryo"]
    if font_path.exists():
        font_id = QFontDatabase.addApplicationFont(str(font_path))
        if font_id == -1:
            logging.warning(f"Failed to load font: {font_path}")
        else:
            loaded = QFontDatabase.applicationFontFamilies(font_id)
            if loaded:
                families = [loaded[0]] + families
    else:
        logging.info(f"Bundled font not found, using system fonts: {font_path}")

    app_font = QFont(app.font())
    app_font.setFamilies(families)
    app_font.setPointSize(12)
    app.setFont(app_font)
    QGuiApplication.setFont(app_font)

    logging.info(f"Default font families: {families[0]}")


def run() -> None:
    """Initialize the application, load puzzles, and start the main window."""
    configure_logging()
    app = QApplication(sys.argv)
    app.setApplicationName("nazokey")
    app.setApplicationDisplayName("nazokey")

    load_application_font(app)

    puzzles = PuzzleRepository()
    store = RelocationStore(puzzle_count=len(puzzles))

    window = MainWindow(puzzles=puzzles, store=store)
    screen = QGuiApplication.primaryScreen()
    if screen is not None:
        geometry = screen.availableGeometry()
        window.resize(min(geometry.width(), 720), min(geometry.height(), 1000))
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    run()
