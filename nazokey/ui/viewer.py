"""Background image viewer for the current puzzle."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QColor, QLinearGradient, QPainter, QPixmap
from PySide6.QtWidgets import QLabel, QSizePolicy, QWidget

from nazokey.ui.colors import GameColors

logger = logging.getLogger(__name__)


class ImageViewer(QWidget):
    """Paints the puzzle image scaled to the widget, or a placeholder when it is missing.

    Relocated keys in viewer space are children of this widget, so their
    positions are relative to its top-left corner.
    """

    resized = Signal()

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._pixmap: Optional[QPixmap] = None
        self._placeholder = ""
        self.setMinimumSize(320, 320)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self.feedback = QLabel(self)
        self.feedback.setAlignment(Qt.AlignCenter)
        self.feedback.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        self.feedback.hide()

    def set_image(self, path: Path, placeholder: str) -> None:
        self._placeholder = placeholder
        self._pixmap = None
        if path.exists():
            pixmap = QPixmap(str(path))
            if pixmap.isNull():
                logger.warning("Failed to load puzzle image: %s", path)
            else:
                self._pixmap = pixmap
        else:
            logger.warning("Puzzle image not found: %s", path)
        self.update()

    def show_feedback(self, correct: bool) -> None:
        color = GameColors.CORRECT if correct else GameColors.INCORRECT
        self.feedback.setText("〇" if correct else "✗")
        self.feedback.setStyleSheet(
            f"color: {color}; font-size: {max(48, self.height() // 3)}px; font-weight: 900; background: transparent;"
        )
        self.feedback.setGeometry(self.rect())
        self.feedback.show()
        self.feedback.raise_()

    def hide_feedback(self) -> None:
        self.feedback.hide()

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        self.feedback.setGeometry(self.rect())
        self.resized.emit()

    def paintEvent(self, event) -> None:
        super().paintEvent(event)
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, True)
        if self._pixmap is not None:
            painter.drawPixmap(self.rect(), self._pixmap)
            return
        gradient = QLinearGradient(0, 0, 0, self.height())
        gradient.setColorAt(0.0, QColor(GameColors.BG_TOP))
        gradient.setColorAt(1.0, QColor(GameColors.BG_BOTTOM))
        painter.fillRect(self.rect(), gradient)
        painter.setPen(QColor(GameColors.PRIMARY_DARK))
        font = painter.font()
        font.setPixelSize(max(24, self.height() // 6))
        font.setBold(True)
        painter.setFont(font)
        painter.drawText(self.rect(), Qt.AlignCenter, self._placeholder)
