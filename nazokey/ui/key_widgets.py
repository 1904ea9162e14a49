"""Keyboard key labels, the input field and the flick guide."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from PySide6.QtCore import Qt, QPoint, QRect, QSize
from PySide6.QtGui import QColor, QPainter, QPen
from PySide6.QtWidgets import QLabel, QSizePolicy, QWidget

from nazokey.core.geometry import Direction
from nazokey.core.kana import INPUT_FIELD, FlickKeyboardLayout
from nazokey.ui.colors import GameColors, key_style

KEY_SIZE = 64
KEY_GAP = 8
INPUT_FIELD_SIZE = QSize(KEY_SIZE * 3 + KEY_GAP * 4, int(KEY_SIZE * 1.1))


class KeyLabel(QLabel):
    """One key cap. Carries its key identity and restyles itself on state changes."""

    def __init__(self, key: str, relocated: bool = False, parent: Optional[QWidget] = None) -> None:
        super().__init__(key, parent)
        self.key = key
        self.relocated = relocated
        self._functional = FlickKeyboardLayout.is_functional(key)
        self._moved = False
        self._dragging = False
        self.setAlignment(Qt.AlignCenter)
        self.setFixedSize(KEY_SIZE, KEY_SIZE)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        policy = self.sizePolicy()
        policy.setRetainSizeWhenHidden(True)
        self.setSizePolicy(policy)
        self._apply_style()

    def set_moved(self, moved: bool) -> None:
        if moved != self._moved:
            self._moved = moved
            self._apply_style()

    def set_dragging(self, dragging: bool) -> None:
        if dragging != self._dragging:
            self._dragging = dragging
            self._apply_style()

    def _apply_style(self) -> None:
        self.setStyleSheet(key_style(self._functional, self._moved, self._dragging))


class InputFieldLabel(QLabel):
    """Answer text display. Also the container for keys dropped into the input field."""

    def __init__(self, relocated: bool = False, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.key = INPUT_FIELD
        self.relocated = relocated
        self.setAlignment(Qt.AlignCenter)
        self.setFixedSize(INPUT_FIELD_SIZE)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        policy = self.sizePolicy()
        policy.setRetainSizeWhenHidden(True)
        self.setSizePolicy(policy)
        self.set_dragging(False)

    def set_moved(self, moved: bool) -> None:
        # The input field has no keyboard slot to mark.
        pass

    def set_dragging(self, dragging: bool) -> None:
        border = GameColors.PRIMARY if dragging else GameColors.PRIMARY_LIGHT
        self.setStyleSheet(
            f"""
            QLabel {{
                background: {GameColors.INPUT_BG};
                color: {GameColors.TEXT_PRIMARY};
                border: 2px solid {border};
                border-radius: 12px;
                font-size: 26px;
                font-weight: 700;
            }}
            """
        )


def create_key_visual(key: str, relocated: bool = False, parent: Optional[QWidget] = None) -> QLabel:
    """Build the widget for ``key``, used for the keyboard grid and for every relocated render."""
    if key == INPUT_FIELD:
        return InputFieldLabel(relocated=relocated, parent=parent)
    return KeyLabel(key, relocated=relocated, parent=parent)


class FlickGuideWidget(QWidget):
    """Cross of five character cells drawn over the pressed key.

    Cells follow ``FlickKeyboardLayout.GUIDE_ORDER``; the cell for the
    current flick direction is highlighted.
    """

    _CELL_OFFSETS = {
        Direction.UP: (0, -1),
        Direction.LEFT: (-1, 0),
        Direction.CENTER: (0, 0),
        Direction.RIGHT: (1, 0),
        Direction.DOWN: (0, 1),
    }

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._key: str = ""
        self._chars: list[Optional[str]] = []
        self._highlight = Direction.CENTER
        self._cell = KEY_SIZE
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        self.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)
        self.resize(self._cell * 3, self._cell * 3)
        self.hide()

    def show_guide(self, key: str, handle: Any, chars: Sequence[Optional[str]]) -> None:
        self._key = key
        self._chars = list(chars)
        self._highlight = Direction.CENTER
        parent = self.parentWidget()
        if isinstance(handle, QWidget) and parent is not None:
            center = handle.mapTo(parent, handle.rect().center())
            self.move(center - QPoint(self.width() // 2, self.height() // 2))
        self.show()
        self.raise_()
        self.update()

    def highlight(self, direction: Direction) -> None:
        self._highlight = direction
        self.update()

    def hide_guide(self) -> None:
        self._key = ""
        self._chars = []
        self.hide()

    def paintEvent(self, event) -> None:
        """Paint the five guide cells around the center."""
        super().paintEvent(event)
        if not self._chars:
            return
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, True)
        cell = self._cell
        inset = 3
        # Parentheses on the ya key read better a little smaller.
        small_font = self._key == "や"
        for direction, char in zip(FlickKeyboardLayout.GUIDE_ORDER, self._chars):
            if not char:
                continue
            col, row = self._CELL_OFFSETS[direction]
            rect = QRect((col + 1) * cell + inset, (row + 1) * cell + inset, cell - 2 * inset, cell - 2 * inset)
            active = direction is self._highlight
            painter.setPen(QPen(QColor(GameColors.PRIMARY_DARK), 1))
            painter.setBrush(QColor(GameColors.GUIDE_HIGHLIGHT if active else GameColors.GUIDE_BG))
            painter.drawRoundedRect(rect, 10, 10)
            font = painter.font()
            font.setPixelSize(18 if small_font and direction is not Direction.CENTER else 24)
            font.setBold(active)
            painter.setFont(font)
            painter.setPen(QColor("white"))
            painter.drawText(rect, Qt.AlignCenter, char)
