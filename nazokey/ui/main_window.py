from __future__ import annotations

import logging
import os
from typing import Optional

from PySide6.QtCore import Qt, QEvent, QObject, QPoint, QRect, QTimer
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from nazokey.core.composer import TextComposer
from nazokey.core.geometry import Rect, Size, event_position
from nazokey.core.gestures import FlickGestureMachine, InteractionState, KeyOrigin
from nazokey.core.kana import INPUT_FIELD, FlickKeyboardLayout
from nazokey.core.placement import PlacementEngine, PointerRouter
from nazokey.core.puzzles import PuzzleProgress, PuzzleRepository
from nazokey.core.relocation import PlacementSpace, RelocationStore
from nazokey.core.replay import build_replay_plan
from nazokey.ui.colors import GameColors
from nazokey.ui.custom_overlay import clear_overlay, hint_overlay, howto_overlay
from nazokey.ui.key_widgets import (
    INPUT_FIELD_SIZE,
    KEY_GAP,
    KEY_SIZE,
    FlickGuideWidget,
    InputFieldLabel,
    KeyLabel,
    create_key_visual,
)
from nazokey.ui.scheduler import QtScheduler
from nazokey.ui.viewer import ImageViewer

logger = logging.getLogger(__name__)

NOTIFICATION_MS = 2000
FEEDBACK_MS = 800
NEXT_PUZZLE_DELAY_MS = 1500
CLEAR_SCREEN_DELAY_MS = 2000

_PRESS_EVENTS = {QEvent.Type.MouseButtonPress, QEvent.Type.TouchBegin}
_MOVE_EVENTS = {QEvent.Type.MouseMove, QEvent.Type.TouchUpdate}
_RELEASE_EVENTS = {QEvent.Type.MouseButtonRelease, QEvent.Type.TouchEnd}


class MainWindow(QMainWindow):
    """Puzzle screen: image viewer, answer field and flick keyboard.

    Qt pointer events on every key widget are routed into the flick gesture
    machine, or into the placement engine while a drag owns the pointer.
    The window also acts as the engine's drop surface: it reports widget
    geometry in window coordinates and draws the drag ghost.
    """

    def __init__(self, puzzles: PuzzleRepository, store: RelocationStore) -> None:
        super().__init__()
        self._puzzles = puzzles
        self._store = store
        self._debug = os.environ.get("NAZOKEY_DEBUG") == "1"
        self._progress = PuzzleProgress(
            len(puzzles), unlock_all=os.environ.get("NAZOKEY_UNLOCK_ALL") == "1"
        )
        self._transitioning = False

        self._key_labels: dict[str, KeyLabel] = {}
        self._relocated_widgets: list[QWidget] = []
        self._moved_field: Optional[InputFieldLabel] = None
        self._ghost: Optional[QLabel] = None
        self._ghost_base: Optional[QRect] = None

        self._root: Optional[QWidget] = None
        self._viewer: Optional[ImageViewer] = None
        self._input_field: Optional[InputFieldLabel] = None
        self._title_label: Optional[QLabel] = None
        self._prev_button: Optional[QPushButton] = None
        self._next_button: Optional[QPushButton] = None
        self._toast: Optional[QLabel] = None
        self._toast_timer: Optional[QTimer] = None
        self._inspector: Optional[QLabel] = None
        self._gestures: Optional[FlickGestureMachine] = None

        self._scheduler = QtScheduler(self)
        self._interaction = InteractionState()
        self._composer = TextComposer(
            on_submit=self._submit_answer,
            on_hint=self._show_hint,
            on_help=self._show_help,
        )

        self._build_ui()

        self._gestures = FlickGestureMachine(
            self._interaction, self._scheduler, self._composer, guide=self._flick_guide
        )
        self._placement = PlacementEngine(
            self._interaction,
            self._store,
            self._progress,
            self,
            self._scheduler,
            replay=self._render_relocated_keys,
        )
        self._gestures.on_handoff(self._placement.handle_handoff)
        self._router = PointerRouter(self._gestures, self._placement)

        self._composer.subscribe(self._on_text_changed)
        self._store.subscribe(lambda _store: self._update_inspector())

        self._load_puzzle(0)
        QTimer.singleShot(0, self._howto.open)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _build_ui(self) -> None:
        self.setWindowTitle("nazokey")
        root = QWidget()
        root.setObjectName("root")
        root.setStyleSheet(
            f"""
            QWidget#root {{
                background: qlineargradient(x1:0, y1:0, x2:0, y2:1,
                    stop:0 {GameColors.BG_TOP}, stop:1 {GameColors.BG_MIDDLE});
            }}
            """
        )
        self._root = root
        layout = QVBoxLayout(root)
        layout.setContentsMargins(16, 12, 16, 16)
        layout.setSpacing(12)

        header = QHBoxLayout()
        self._prev_button = self._nav_button("◀", lambda: self._move_puzzle(-1))
        self._next_button = self._nav_button("▶", lambda: self._move_puzzle(1))
        self._title_label = QLabel()
        self._title_label.setAlignment(Qt.AlignCenter)
        self._title_label.setStyleSheet(
            f"color: {GameColors.PRIMARY_DARK}; font-size: 20px; font-weight: 800; background: transparent;"
        )
        header.addWidget(self._prev_button, 0)
        header.addWidget(self._title_label, 1)
        header.addWidget(self._next_button, 0)
        layout.addLayout(header)

        self._viewer = ImageViewer()
        self._viewer.resized.connect(self._on_viewer_resized)
        layout.addWidget(self._viewer, 1)

        self._input_field = InputFieldLabel()
        self._bind_key(self._input_field)
        layout.addWidget(self._input_field, 0, Qt.AlignHCenter)

        layout.addWidget(self._build_keyboard(), 0, Qt.AlignHCenter)
        self.setCentralWidget(root)

        self._flick_guide = FlickGuideWidget(root)

        self._toast = QLabel(root)
        self._toast.setAlignment(Qt.AlignCenter)
        self._toast.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        self._toast.setStyleSheet(
            "background: rgba(26, 58, 58, 0.85); color: white; padding: 10px 18px;"
            " border-radius: 14px; font-size: 15px; font-weight: 600;"
        )
        self._toast.hide()
        self._toast_timer = QTimer(self)
        self._toast_timer.setSingleShot(True)
        self._toast_timer.timeout.connect(self._toast.hide)

        if self._debug:
            self._inspector = QLabel(root)
            self._inspector.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
            self._inspector.setStyleSheet(
                "background: rgba(0, 0, 0, 0.85); color: #0f0; padding: 8px;"
                " font-family: monospace; font-size: 11px; border-radius: 4px;"
            )
            self._inspector.setWordWrap(True)
            self._inspector.setFixedWidth(300)

        self._howto = howto_overlay(root)
        self._hint = hint_overlay(root)
        self._clear = clear_overlay(root)
        self._clear.closed.connect(self._restart)

    def _nav_button(self, text: str, on_click) -> QPushButton:
        button = QPushButton(text)
        button.setFixedSize(44, 44)
        button.setCursor(Qt.CursorShape.PointingHandCursor)
        button.setStyleSheet(
            f"""
            QPushButton {{
                background: {GameColors.PRIMARY}; color: white; border: none;
                border-radius: 22px; font-size: 18px; font-weight: 800;
            }}
            QPushButton:hover {{ background: {GameColors.PRIMARY_DARK}; }}
            """
        )
        button.clicked.connect(on_click)
        return button

    def _build_keyboard(self) -> QWidget:
        """Create the flick keyboard on a ``QGridLayout``; empty cells stay blank."""
        container = QWidget()
        container.setStyleSheet("background: transparent;")
        grid = QGridLayout(container)
        grid.setSpacing(KEY_GAP)
        grid.setContentsMargins(0, 0, 0, 0)
        for row_index, row in enumerate(FlickKeyboardLayout.ROWS):
            for col_index, key in enumerate(row):
                if not key:
                    spacer = QWidget()
                    spacer.setFixedSize(KEY_SIZE, KEY_SIZE)
                    grid.addWidget(spacer, row_index, col_index)
                    continue
                label = create_key_visual(key)
                self._bind_key(label)
                self._key_labels[key] = label
                grid.addWidget(label, row_index, col_index)
        return container

    def _bind_key(self, widget: QWidget) -> None:
        widget.installEventFilter(self)

    # ------------------------------------------------------------------
    # Pointer routing
    # ------------------------------------------------------------------

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:
        """Feed mouse and touch events on key widgets to the gesture machine or the drag engine."""
        key = getattr(obj, "key", None)
        if key is None or not isinstance(obj, QWidget):
            return super().eventFilter(obj, event)

        etype = event.type()
        if etype in _PRESS_EVENTS:
            if etype == QEvent.Type.MouseButtonPress and event.button() != Qt.MouseButton.LeftButton:
                return False
            origin = KeyOrigin.RELOCATED if getattr(obj, "relocated", False) else KeyOrigin.KEYBOARD
            self._router.press(key, event_position(event), handle=obj, origin=origin)
            return True
        if etype in _MOVE_EVENTS:
            self._router.move(event_position(event))
            return True
        if etype in _RELEASE_EVENTS:
            self._router.release(event_position(event))
            return True
        if etype == QEvent.Type.TouchCancel:
            self._router.cancel()
            return True
        return super().eventFilter(obj, event)

    # ------------------------------------------------------------------
    # Drop surface (geometry and drag visuals for the placement engine)
    # ------------------------------------------------------------------

    def _window_rect(self, widget: Optional[QWidget]) -> Optional[Rect]:
        # Same space as event_position(): the top-level window.
        if widget is None:
            return None
        top_left = widget.mapTo(self, QPoint(0, 0))
        return Rect(top_left.x(), top_left.y(), widget.width(), widget.height())

    def key_rect(self, handle) -> Optional[Rect]:
        if not isinstance(handle, QWidget):
            return None
        return self._window_rect(handle)

    def viewer_rect(self) -> Optional[Rect]:
        return self._window_rect(self._viewer)

    def input_field_rect(self, exclude=None) -> Optional[Rect]:
        """Rect of whichever input field is visible: the in-flow one or the relocated clone."""
        for field in (self._input_field, self._moved_field):
            if field is None or field is exclude or not field.isVisible():
                continue
            return self._window_rect(field)
        return None

    def begin_drag(self, key: str, handle) -> None:
        if not isinstance(handle, QWidget) or self._root is None:
            logger.warning("Cannot draw drag ghost for %r", key)
            return
        handle.set_dragging(True)
        ghost = create_key_visual(key, parent=self._root)
        if isinstance(ghost, InputFieldLabel):
            ghost.setText(self._composer.text)
        ghost.set_dragging(True)
        ghost.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        top_left = handle.mapTo(self._root, QPoint(0, 0))
        self._ghost_base = QRect(top_left, handle.size())
        ghost.setGeometry(self._ghost_base)
        ghost.show()
        ghost.raise_()
        self._ghost = ghost

    def drag_offset(self, handle, dx: float, dy: float, scale: float) -> None:
        if self._ghost is None or self._ghost_base is None:
            return
        base = self._ghost_base
        width = int(base.width() * scale)
        height = int(base.height() * scale)
        center = base.center() + QPoint(int(dx), int(dy))
        self._ghost.setFixedSize(width, height)
        self._ghost.move(center.x() - width // 2, center.y() - height // 2)

    def set_hidden(self, handle, hidden: bool) -> None:
        if self._ghost is not None:
            self._ghost.setVisible(not hidden)
        if isinstance(handle, QWidget):
            handle.setVisible(not hidden)

    def set_input_field_hidden(self, hidden: bool) -> None:
        if self._input_field is not None:
            self._input_field.setVisible(not hidden)

    def end_drag(self, key: str, handle, origin: KeyOrigin) -> None:
        if self._ghost is not None:
            self._ghost.hide()
            self._ghost.deleteLater()
            self._ghost = None
            self._ghost_base = None
        if not isinstance(handle, QWidget):
            return
        if origin is KeyOrigin.RELOCATED:
            # Replay rebuilds relocated keys from the store.
            return
        handle.set_dragging(False)
        if key != INPUT_FIELD:
            handle.setVisible(True)

    def notify(self, message: str) -> None:
        if self._toast is None or self._root is None:
            logger.warning("Notice not shown: %s", message)
            return
        self._toast.setText(message)
        self._toast.adjustSize()
        self._toast.move((self._root.width() - self._toast.width()) // 2, 64)
        self._toast.show()
        self._toast.raise_()
        self._toast_timer.start(NOTIFICATION_MS)

    # ------------------------------------------------------------------
    # Render replay
    # ------------------------------------------------------------------

    def _render_relocated_keys(self) -> None:
        """Rebuild every relocated key of the current puzzle from the relocation store."""
        if self._viewer is None or self._input_field is None:
            logger.warning("Render replay skipped: window not built")
            return
        if self._gestures is not None:
            # A held relocated key is about to be deleted.
            self._gestures.cancel_origin(KeyOrigin.RELOCATED)
        for widget in self._relocated_widgets:
            widget.hide()
            widget.deleteLater()
        self._relocated_widgets = []
        self._moved_field = None

        viewer_size = Size(self._viewer.width(), self._viewer.height())
        plan = build_replay_plan(
            self._progress.current_puzzle_index(),
            self._store,
            None if viewer_size.is_empty() else viewer_size,
            Size(INPUT_FIELD_SIZE.width(), INPUT_FIELD_SIZE.height()),
        )

        for key, label in self._key_labels.items():
            label.set_moved(key in plan.moved_keys)
        self._input_field.set_dragging(False)
        self._input_field.setVisible(not plan.input_field_relocated)

        for rendered in plan.in_space(PlacementSpace.VIEWER):
            widget = create_key_visual(rendered.key, relocated=True, parent=self._viewer)
            if isinstance(widget, InputFieldLabel):
                widget.setText(self._composer.text)
                self._moved_field = widget
            widget.move(int(rendered.x), int(rendered.y))
            self._show_relocated(widget)

        field = self._moved_field if plan.input_field_relocated else self._input_field
        for rendered in plan.in_space(PlacementSpace.INPUT_FIELD):
            if field is None:
                logger.warning("No input field to hold relocated key %r", rendered.key)
                continue
            widget = create_key_visual(rendered.key, relocated=True, parent=field)
            widget.move(int(rendered.x - widget.width() / 2), int(rendered.y - widget.height() / 2))
            self._show_relocated(widget)

        logger.debug(
            "Replayed puzzle %d: %d keys, moved=%s",
            plan.puzzle_index, len(plan.keys), sorted(plan.moved_keys),
        )
        self._update_inspector()

    def _show_relocated(self, widget: QWidget) -> None:
        self._bind_key(widget)
        self._relocated_widgets.append(widget)
        widget.show()
        widget.raise_()

    def _on_viewer_resized(self) -> None:
        if not self._interaction.drag_active:
            self._render_relocated_keys()

    # ------------------------------------------------------------------
    # Puzzles
    # ------------------------------------------------------------------

    def _load_puzzle(self, index: int) -> None:
        self._progress.go_to(index)
        puzzle = self._puzzles.get(index)
        self._viewer.hide_feedback()
        self._viewer.set_image(self._puzzles.image_path(index), f"謎 {index + 1}")
        self._title_label.setText(f"謎 {index + 1} / {len(self._puzzles)}")
        self._composer.clear()
        self._render_relocated_keys()
        self._update_nav_buttons()
        self._transitioning = False
        logger.info("Puzzle %d loaded (%s)", index + 1, puzzle.key)

    def _move_puzzle(self, step: int) -> None:
        if self._transitioning or self._interaction.drag_active:
            return
        if self._progress.move(step):
            self._load_puzzle(self._progress.current_puzzle_index())

    def _update_nav_buttons(self) -> None:
        self._prev_button.setVisible(self._progress.can_move(-1))
        self._next_button.setVisible(self._progress.can_move(1))

    def _submit_answer(self) -> None:
        if self._transitioning:
            return
        index = self._progress.current_puzzle_index()
        result = self._progress.submit(self._composer.text, self._puzzles.get(index).answer)
        self._transitioning = True
        self._viewer.show_feedback(result.correct)
        QTimer.singleShot(FEEDBACK_MS, self._viewer.hide_feedback)
        self._update_inspector()
        if not result.correct:
            QTimer.singleShot(FEEDBACK_MS, self._end_transition)
        elif result.finished:
            QTimer.singleShot(CLEAR_SCREEN_DELAY_MS, self._clear.open)
        else:
            QTimer.singleShot(NEXT_PUZZLE_DELAY_MS, lambda: self._load_puzzle(index + 1))

    def _end_transition(self) -> None:
        self._transitioning = False

    def _restart(self) -> None:
        self._progress.reset()
        self._store.reset()
        self._load_puzzle(0)

    def _show_hint(self) -> None:
        self._hint.set_message(self._puzzles.get(self._progress.current_puzzle_index()).hint)
        self._hint.open()

    def _show_help(self) -> None:
        self._howto.open()

    # ------------------------------------------------------------------
    # Text and inspector
    # ------------------------------------------------------------------

    def _on_text_changed(self, text: str) -> None:
        self._input_field.setText(text)
        if self._moved_field is not None:
            self._moved_field.setText(text)
        self._update_inspector()

    def _update_inspector(self) -> None:
        if self._inspector is None or self._root is None:
            return
        self._inspector.setText(
            "Debug Inspector\n"
            f"Puzzle: {self._progress.current_puzzle_index() + 1}/{self._progress.puzzle_count}\n"
            f"Input: \"{self._composer.text}\"\n"
            f"Cleared: {self._progress.cleared}\n"
            f"Unlocked: {self._progress.max_unlocked + 1}\n"
            f"Gesture: {self._interaction.phase.value} drag={self._interaction.drag_active}\n"
            f"Moved: {self._store.snapshot()}"
        )
        self._inspector.adjustSize()
        self._inspector.move(self._root.width() - self._inspector.width() - 10, 10)
        self._inspector.show()
        self._inspector.raise_()

    def closeEvent(self, event: QCloseEvent) -> None:
        """Stop pending gestures so no timer fires into a closing window."""
        self._gestures.cancel()
        super().closeEvent(event)
