"""Drag tracking and drop classification for relocated keys."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Tuple, Union

from nazokey.core.gestures import (
    DragHandoff,
    FlickGestureMachine,
    GesturePhase,
    InteractionState,
    KeyOrigin,
    Keystroke,
    Scheduler,
)
from nazokey.core.geometry import Point, Rect, rect_contains
from nazokey.core.kana import INPUT_FIELD
from nazokey.core.relocation import Placement, RelocationStore

logger = logging.getLogger(__name__)

DRAG_SCALE = 1.1
INPUT_FIELD_FALLBACK_RATIO = 0.5
CLEARED_PUZZLE_NOTICE = "もう動かす必要はないようだ"

_MAX_RATIO = math.nextafter(1.0, 0.0)


class PuzzleContext(Protocol):
    def current_puzzle_index(self) -> int: ...

    def is_puzzle_cleared(self, puzzle_index: int) -> bool: ...


class DropSurface(Protocol):
    """Geometry and visuals the engine needs from the rendering layer.

    Rect lookups return None when the element does not exist or has no
    geometry yet; the engine treats that as a soft failure.
    """

    def key_rect(self, handle: Any) -> Optional[Rect]: ...

    def viewer_rect(self) -> Optional[Rect]: ...

    def input_field_rect(self, exclude: Any = None) -> Optional[Rect]: ...

    def begin_drag(self, key: str, handle: Any) -> None: ...

    def drag_offset(self, handle: Any, dx: float, dy: float, scale: float) -> None: ...

    def set_hidden(self, handle: Any, hidden: bool) -> None: ...

    def set_input_field_hidden(self, hidden: bool) -> None: ...

    def end_drag(self, key: str, handle: Any, origin: KeyOrigin) -> None: ...

    def notify(self, message: str) -> None: ...


class DropTarget(str, Enum):
    VIEWER = "viewer"
    INPUT_FIELD = "input_field"
    NONE = "none"


@dataclass(frozen=True)
class DropResult:
    key: str
    target: DropTarget
    placement: Optional[Placement] = None


@dataclass
class _Drag:
    key: str
    handle: Any
    origin: KeyOrigin
    rest_rect: Optional[Rect]
    offset_anchor: Optional[Point] = None
    dx: float = 0.0
    dy: float = 0.0

    def drop_rect(self) -> Optional[Rect]:
        if self.rest_rect is None:
            return None
        return self.rest_rect.translated(self.dx, self.dy)


def _clamp_ratio(value: float) -> float:
    return min(max(value, 0.0), _MAX_RATIO)


def viewer_ratio(key_rect: Rect, viewer_rect: Rect) -> Tuple[float, float]:
    """Top-left of the key as a fraction of the viewer size."""
    return (
        _clamp_ratio((key_rect.left - viewer_rect.left) / viewer_rect.width),
        _clamp_ratio((key_rect.top - viewer_rect.top) / viewer_rect.height),
    )


def input_field_ratio(key_rect: Rect, field_rect: Optional[Rect]) -> Tuple[float, float]:
    """Center of the key as a fraction of the input field size.

    Falls back to the field's midpoint when its geometry is unknown.
    """
    if field_rect is None or field_rect.size.is_empty():
        return INPUT_FIELD_FALLBACK_RATIO, INPUT_FIELD_FALLBACK_RATIO
    center = key_rect.center
    return (
        _clamp_ratio((center.x - field_rect.left) / field_rect.width),
        _clamp_ratio((center.y - field_rect.top) / field_rect.height),
    )


def _inside(inner: Optional[Rect], outer: Optional[Rect]) -> bool:
    if inner is None or outer is None or outer.size.is_empty():
        return False
    return rect_contains(inner, outer)


class PlacementEngine:
    """Owns the pointer from a long-press hand-off until release.

    On release the drop is classified against the image viewer and the
    visible input field, the relocation store is updated and the render
    replay callback runs on the next scheduler tick. ``drag_active`` is
    cleared one tick later so no stray press can start while the visuals
    settle.
    """

    def __init__(
        self,
        interaction: InteractionState,
        store: RelocationStore,
        puzzles: PuzzleContext,
        surface: DropSurface,
        scheduler: Scheduler,
        replay: Callable[[], None],
    ) -> None:
        self._interaction = interaction
        self._store = store
        self._puzzles = puzzles
        self._surface = surface
        self._scheduler = scheduler
        self._replay = replay
        self._drag: Optional[_Drag] = None

    @property
    def active(self) -> bool:
        return self._drag is not None

    def handle_handoff(self, handoff: DragHandoff) -> bool:
        return self.start_drag(handoff.key, handoff.handle, handoff.origin)

    def start_drag(self, key: str, handle: Any, origin: KeyOrigin = KeyOrigin.KEYBOARD) -> bool:
        puzzle = self._puzzles.current_puzzle_index()
        if self._puzzles.is_puzzle_cleared(puzzle):
            logger.info("Drag of %r refused: puzzle %d already cleared", key, puzzle)
            self._surface.notify(CLEARED_PUZZLE_NOTICE)
            self._drop_session()
            return False
        if self._drag is not None:
            logger.warning("Drag of %r refused: %r is already being dragged", key, self._drag.key)
            return False

        # The store is only touched once the surface has accepted the drag.
        try:
            rest_rect = self._surface.key_rect(handle)
            self._surface.begin_drag(key, handle)
        except Exception:
            logger.warning("Drag of %r abandoned: its key widget is gone", key, exc_info=True)
            self._drop_session()
            return False
        if rest_rect is None:
            logger.warning("No geometry for dragged key %r; it will return to the keyboard", key)

        if origin is KeyOrigin.RELOCATED:
            self._store.remove(puzzle, key)

        self._drag = _Drag(key=key, handle=handle, origin=origin, rest_rect=rest_rect)
        self._interaction.drag_active = True
        if self._interaction.session is not None:
            self._interaction.session.phase = GesturePhase.DRAGGING
        logger.info("Drag started: %r (%s)", key, origin.value)
        return True

    def move(self, position: Point) -> None:
        drag = self._drag
        if drag is None:
            return
        # The first sample after the hand-off is the zero point, so the key does not jump.
        if drag.offset_anchor is None:
            drag.offset_anchor = position
            return
        drag.dx = position.x - drag.offset_anchor.x
        drag.dy = position.y - drag.offset_anchor.y
        self._surface.drag_offset(drag.handle, drag.dx, drag.dy, DRAG_SCALE)

    def release(self, position: Optional[Point] = None) -> Optional[DropResult]:
        drag = self._drag
        if drag is None:
            return None
        try:
            if position is not None:
                self.move(position)
            return self._drop(drag)
        finally:
            self._drag = None
            self._scheduler.call_later(0, lambda: self._settle(drag))

    def _drop(self, drag: _Drag) -> DropResult:
        self._surface.set_hidden(drag.handle, True)

        key_rect = drag.drop_rect()
        viewer_rect = self._surface.viewer_rect()
        field_rect = self._surface.input_field_rect(exclude=drag.handle)
        in_viewer = _inside(key_rect, viewer_rect)
        in_field = _inside(key_rect, field_rect)

        puzzle = self._puzzles.current_puzzle_index()
        if drag.key == INPUT_FIELD:
            self._store.remove(puzzle, drag.key)
        else:
            self._store.remove_everywhere(drag.key)

        if in_field and not in_viewer:
            placement = Placement.input_field(*input_field_ratio(key_rect, field_rect))
            target = DropTarget.INPUT_FIELD
        elif in_viewer:
            placement = Placement.viewer(*viewer_ratio(key_rect, viewer_rect))
            target = DropTarget.VIEWER
        else:
            placement = None
            target = DropTarget.NONE

        if placement is not None:
            self._store.save(puzzle, drag.key, placement)
            if drag.key == INPUT_FIELD:
                self._surface.set_input_field_hidden(True)
            logger.info(
                "Key %r dropped in %s of puzzle %d at (%.3f, %.3f)",
                drag.key, target.value, puzzle, placement.x, placement.y,
            )
        else:
            if drag.key == INPUT_FIELD:
                self._surface.set_input_field_hidden(False)
            logger.info("Key %r dropped outside valid areas, returned to keyboard", drag.key)
        return DropResult(key=drag.key, target=target, placement=placement)

    def _settle(self, drag: _Drag) -> None:
        try:
            self._surface.end_drag(drag.key, drag.handle, drag.origin)
            self._replay()
        finally:
            self._scheduler.call_later(0, self._release_pointer)

    def _release_pointer(self) -> None:
        self._interaction.drag_active = False
        self._drop_session()

    def _drop_session(self) -> None:
        session = self._interaction.session
        if session is not None and session.phase is GesturePhase.DRAGGING:
            self._interaction.session = None


class PointerRouter:
    """Sends pointer samples to the placement engine while it owns the pointer, otherwise to the flick machine."""

    def __init__(self, gestures: FlickGestureMachine, placement: PlacementEngine) -> None:
        self._gestures = gestures
        self._placement = placement

    def press(self, key: str, position: Point, handle: Any = None, origin: KeyOrigin = KeyOrigin.KEYBOARD) -> bool:
        return self._gestures.press(key, position, handle=handle, origin=origin)

    def move(self, position: Point) -> None:
        if self._placement.active:
            self._placement.move(position)
        else:
            self._gestures.move(position)

    def release(self, position: Optional[Point] = None) -> Union[DropResult, Keystroke, None]:
        if self._placement.active:
            return self._placement.release(position)
        return self._gestures.release(position)

    def cancel(self) -> None:
        """Abort the pointer (e.g. touch cancel). A drag in progress is dropped where it is."""
        if self._placement.active:
            logger.info("Pointer cancelled during drag; dropping in place")
            self._placement.release(None)
        else:
            self._gestures.cancel()
