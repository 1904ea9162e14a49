"""Custom in-window overlays (how to play, hint, game clear)."""

from __future__ import annotations

from typing import Callable, Optional

from PySide6.QtCore import Qt, QEvent, Signal
from PySide6.QtGui import QColor
from PySide6.QtWidgets import (
    QFrame,
    QGraphicsDropShadowEffect,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QScrollArea,
    QSizePolicy,
    QVBoxLayout,
    QWidget,
)

from nazokey.ui.colors import GameColors

HOWTO_TITLE = "遊び方"
HOWTO_TEXT = (
    "画面下のキーボードで答えを入力し、「確定」で解答します。\n\n"
    "キーをタップすると中央の文字、上下左右にフリックするとその方向の文字が入力されます。"
    "「゛」は直前の文字に濁点・半濁点を付けます。\n\n"
    "キーを2秒間長押しすると、そのキーをつかんで動かせます。"
    "謎の画像や入力欄の上で離すと、その謎の中ではそこに置かれたままになります。"
    "入力欄そのものも動かせます。"
)
HINT_TITLE = "ヒント"
CLEAR_TITLE = "ゲームクリア"
CLEAR_TEXT = "すべての謎を解きました！"


def _themed_card_container(radius: int = 20, object_name: str = "overlayContainer") -> QFrame:
    container = QFrame()
    container.setObjectName(object_name)
    container.setMinimumWidth(320)
    container.setMaximumWidth(480)
    container.setStyleSheet(
        f"""
        QFrame#{object_name} {{
            background: #ffffff;
            border: 1px solid rgba(0, 131, 143, 0.12);
            border-radius: {radius}px;
        }}
        """
    )
    shadow = QGraphicsDropShadowEffect(container)
    shadow.setBlurRadius(20)
    shadow.setOffset(0, 6)
    shadow.setColor(QColor(0, 80, 100, 25))
    container.setGraphicsEffect(shadow)
    return container


def _overlay_background(parent: QWidget, on_click: Callable[[], None]) -> QWidget:
    overlay_bg = QWidget(parent)
    overlay_bg.setStyleSheet("background: rgba(0, 0, 0, 0.2);")
    overlay_bg.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
    overlay_bg.setCursor(Qt.CursorShape.ArrowCursor)
    overlay_bg.setMinimumSize(1, 1)
    overlay_bg.mousePressEvent = lambda e: on_click()
    return overlay_bg


def _primary_button_style() -> str:
    return f"""
        QPushButton {{
            background: qlineargradient(x1:0, y1:0, x2:1, y2:1,
                stop:0 {GameColors.PRIMARY_LIGHT}, stop:1 {GameColors.PRIMARY});
            color: white;
            padding: 10px 16px;
            border: none;
            border-radius: 12px;
            font-weight: 600;
            font-size: 13px;
        }}
        QPushButton:hover {{ background: {GameColors.PRIMARY}; }}
    """


def _icon_box(symbol: str) -> QFrame:
    icon_box = QFrame()
    icon_box.setFixedSize(44, 44)
    icon_box.setStyleSheet(
        f"""
        QFrame {{
            background: qlineargradient(x1:0, y1:0, x2:1, y2:1,
                stop:0 {GameColors.BG_TOP}, stop:1 {GameColors.BG_MIDDLE});
            border-radius: 12px;
        }}
        """
    )
    icon_layout = QVBoxLayout(icon_box)
    icon_layout.setContentsMargins(0, 0, 0, 0)
    icon_label = QLabel(symbol)
    icon_label.setStyleSheet(f"color: {GameColors.PRIMARY}; font-size: 22px; font-weight: 900;")
    icon_label.setAlignment(Qt.AlignCenter)
    icon_layout.addWidget(icon_label)
    return icon_box


class MessageOverlay(QWidget):
    """In-window card with a title, a scrollable message and a single close button.

    Covers its parent and tracks the parent's size while shown.
    """

    closed = Signal()

    def __init__(
        self,
        title: str,
        message: str = "",
        icon: str = "?",
        button_text: str = "閉じる",
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        main_layout = QGridLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)
        main_layout.setRowStretch(0, 1)
        main_layout.setColumnStretch(0, 1)

        overlay_bg = _overlay_background(self, self._close)
        main_layout.addWidget(overlay_bg, 0, 0)

        container = _themed_card_container(object_name="messageContainer")
        content = QVBoxLayout(container)
        content.setContentsMargins(28, 24, 28, 24)
        content.setSpacing(18)

        header = QHBoxLayout()
        header.setSpacing(12)
        header.addWidget(_icon_box(icon), 0)
        self._title = QLabel(title)
        self._title.setStyleSheet(f"color: {GameColors.PRIMARY}; font-size: 18px; font-weight: 800;")
        header.addWidget(self._title, 0)
        header.addStretch(1)
        content.addLayout(header)

        self._message = QLabel(message)
        self._message.setStyleSheet(f"color: {GameColors.TEXT_PRIMARY}; font-size: 14px; font-weight: 500;")
        self._message.setWordWrap(True)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.Shape.NoFrame)
        scroll.setStyleSheet("background: transparent;")
        scroll.setMaximumHeight(280)
        scroll.setWidget(self._message)
        content.addWidget(scroll, 0)

        ok_btn = QPushButton(button_text)
        ok_btn.setStyleSheet(_primary_button_style())
        ok_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        ok_btn.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)
        ok_btn.clicked.connect(self._close)
        content.addWidget(ok_btn, 0)

        main_layout.addWidget(container, 0, 0, 1, 1, Qt.AlignCenter)
        self.hide()

    def set_message(self, message: str) -> None:
        self._message.setText(message)

    def open(self) -> None:
        self.show()
        self.raise_()

    def _close(self) -> None:
        self.hide()
        self.closed.emit()

    def _update_geometry(self) -> None:
        parent = self.parentWidget()
        if parent is not None:
            self.setGeometry(parent.rect())

    def eventFilter(self, obj: QWidget, event: QEvent) -> bool:
        if obj is self.parentWidget() and event.type() == QEvent.Type.Resize:
            self._update_geometry()
        return super().eventFilter(obj, event)

    def showEvent(self, event) -> None:
        super().showEvent(event)
        self._update_geometry()
        parent = self.parentWidget()
        if parent is not None:
            parent.installEventFilter(self)

    def hideEvent(self, event) -> None:
        parent = self.parentWidget()
        if parent is not None:
            parent.removeEventFilter(self)
        super().hideEvent(event)


def howto_overlay(parent: QWidget) -> MessageOverlay:
    return MessageOverlay(HOWTO_TITLE, HOWTO_TEXT, icon="?", button_text="はじめる", parent=parent)


def hint_overlay(parent: QWidget) -> MessageOverlay:
    return MessageOverlay(HINT_TITLE, icon="💡", parent=parent)


def clear_overlay(parent: QWidget) -> MessageOverlay:
    return MessageOverlay(CLEAR_TITLE, CLEAR_TEXT, icon="✓", button_text="最初から", parent=parent)
