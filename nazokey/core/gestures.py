"""Tap-to-flick / long-press-to-drag pointer state machine.

Every key press starts a :class:`GestureSession` owned by the shared
:class:`InteractionState`. A release before the long-press timer fires
resolves the gesture as a keystroke. If the timer fires first, the session
is switched to ``DRAGGING`` and a :class:`DragHandoff` is emitted to the
listeners (the placement engine); from then on the machine ignores moves
and releases until the drag finishes and ``drag_active`` is cleared.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol, Sequence

from nazokey.core.composer import TextComposer
from nazokey.core.geometry import Direction, Point, distance, flick_direction
from nazokey.core.kana import FlickKeyboardLayout

logger = logging.getLogger(__name__)

LONG_PRESS_MS = 2000
HOLD_SLOP_PX = 50.0


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...


class FlickGuide(Protocol):
    def show_guide(self, key: str, handle: Any, chars: Sequence[Optional[str]]) -> None: ...

    def highlight(self, direction: Direction) -> None: ...

    def hide_guide(self) -> None: ...


class KeyOrigin(str, Enum):
    """Where the pressed key lives when the gesture starts."""

    KEYBOARD = "keyboard"
    RELOCATED = "relocated"


class GesturePhase(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    FLICKING = "flicking"
    DRAGGING = "dragging"


@dataclass
class GestureSession:
    key: str
    anchor: Point
    origin: KeyOrigin = KeyOrigin.KEYBOARD
    handle: Any = None
    phase: GesturePhase = GesturePhase.ARMED
    direction: Direction = Direction.CENTER
    timer: Optional[TimerHandle] = field(default=None, repr=False)


class InteractionState:
    """State shared by the flick machine and the placement engine.

    ``drag_active`` is the only synchronisation signal between the two: while
    it is set the flick machine leaves moves and releases to the engine.
    """

    def __init__(self) -> None:
        self.session: Optional[GestureSession] = None
        self.drag_active: bool = False

    @property
    def phase(self) -> GesturePhase:
        return self.session.phase if self.session is not None else GesturePhase.IDLE


@dataclass(frozen=True)
class DragHandoff:
    key: str
    handle: Any
    origin: KeyOrigin


@dataclass(frozen=True)
class Keystroke:
    key: str
    direction: Direction


HandoffListener = Callable[[DragHandoff], None]


class FlickGestureMachine:
    def __init__(
        self,
        interaction: InteractionState,
        scheduler: Scheduler,
        composer: TextComposer,
        guide: Optional[FlickGuide] = None,
        long_press_ms: int = LONG_PRESS_MS,
    ) -> None:
        self._interaction = interaction
        self._scheduler = scheduler
        self._composer = composer
        self._guide = guide
        self._long_press_ms = long_press_ms
        self._handoff_listeners: List[HandoffListener] = []

    def on_handoff(self, listener: HandoffListener) -> None:
        self._handoff_listeners.append(listener)

    def press(
        self,
        key: str,
        position: Point,
        handle: Any = None,
        origin: KeyOrigin = KeyOrigin.KEYBOARD,
    ) -> bool:
        """Arm a new gesture on ``key``. Returns False if the press was ignored."""
        if self._interaction.drag_active:
            logger.debug("Press on %r ignored: drag in progress", key)
            return False
        stale = self._interaction.session
        if stale is not None:
            logger.warning("Press on %r while a gesture on %r is live; discarding it", key, stale.key)
            self._discard(stale)

        session = GestureSession(key=key, anchor=position, origin=origin, handle=handle)
        self._interaction.session = session
        session.timer = self._scheduler.call_later(self._long_press_ms, lambda: self._on_long_press(session))

        chars = FlickKeyboardLayout.guide_chars(key)
        if chars is not None and self._guide is not None:
            self._guide.show_guide(key, handle, chars)
            self._guide.highlight(Direction.CENTER)
        return True

    def move(self, position: Point) -> None:
        session = self._own_session()
        if session is None:
            return
        dx = position.x - session.anchor.x
        dy = position.y - session.anchor.y

        if session.timer is not None and distance(0, 0, dx, dy) >= HOLD_SLOP_PX:
            logger.debug("Long press on %r cancelled by movement", session.key)
            self._cancel_timer(session)

        direction = flick_direction(dx, dy)
        if direction is not session.direction:
            session.direction = direction
            if self._guide is not None:
                self._guide.highlight(direction)
        session.phase = GesturePhase.ARMED if direction is Direction.CENTER else GesturePhase.FLICKING

    def release(self, position: Optional[Point] = None) -> Optional[Keystroke]:
        """Resolve the gesture as a keystroke unless a drag owns the pointer."""
        session = self._interaction.session
        if session is None:
            return None
        self._cancel_timer(session)
        if self._interaction.drag_active or session.phase is GesturePhase.DRAGGING:
            return None

        if position is not None:
            self.move(position)
        if self._guide is not None:
            self._guide.hide_guide()
        self._interaction.session = None

        keystroke = Keystroke(session.key, session.direction)
        self._composer.compose(keystroke.key, keystroke.direction)
        return keystroke

    def cancel(self) -> None:
        """Abandon the live gesture without a keystroke (e.g. touch cancel)."""
        session = self._own_session()
        if session is not None:
            self._discard(session)

    def cancel_origin(self, origin: KeyOrigin) -> bool:
        """Abandon the live gesture if it was pressed on a key of ``origin``.

        Used before the widgets of that origin are destroyed, so no long-press
        fires with a dead handle. Returns True if a gesture was dropped.
        """
        session = self._own_session()
        if session is None or session.origin is not origin:
            return False
        logger.debug("Gesture on %r cancelled: its key is being rebuilt", session.key)
        self._discard(session)
        return True

    def _own_session(self) -> Optional[GestureSession]:
        session = self._interaction.session
        if session is None or self._interaction.drag_active or session.phase is GesturePhase.DRAGGING:
            return None
        return session

    def _on_long_press(self, session: GestureSession) -> None:
        if self._interaction.session is not session or session.timer is None:
            return
        session.timer = None
        if self._guide is not None:
            self._guide.hide_guide()
        session.phase = GesturePhase.DRAGGING

        if not self._handoff_listeners:
            logger.warning("Long press on %r with no drag handler", session.key)
            self._interaction.session = None
            return

        logger.info("Long press on %r: handing off to drag", session.key)
        handoff = DragHandoff(key=session.key, handle=session.handle, origin=session.origin)
        for listener in list(self._handoff_listeners):
            listener(handoff)

    def _discard(self, session: GestureSession) -> None:
        self._cancel_timer(session)
        if self._guide is not None:
            self._guide.hide_guide()
        if self._interaction.session is session:
            self._interaction.session = None

    @staticmethod
    def _cancel_timer(session: GestureSession) -> None:
        if session.timer is not None:
            session.timer.cancel()
            session.timer = None
