"""Shared fakes for the Qt-free core: a manual clock scheduler, a flick guide and a drop surface."""

from __future__ import annotations

import itertools
from typing import Any, Callable, Dict, List, Optional, Set

import pytest

from nazokey.core.geometry import Rect


class FakeTimer:
    def __init__(self, due: int, seq: int, callback: Callable[[], None]) -> None:
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Timers only fire when the test advances the clock."""

    def __init__(self) -> None:
        self.now = 0
        self._timers: List[FakeTimer] = []
        self._seq = itertools.count()

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + max(0, delay_ms), next(self._seq), callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> List[FakeTimer]:
        return [t for t in self._timers if not t.cancelled and not t.fired]

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.now = timer.due
            timer.fired = True
            timer.callback()
        self.now = target


class RecordingGuide:
    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.visible = False

    def show_guide(self, key, handle, chars) -> None:
        self.calls.append(("show", key, list(chars)))
        self.visible = True

    def highlight(self, direction) -> None:
        self.calls.append(("highlight", direction))

    def hide_guide(self) -> None:
        self.calls.append(("hide",))
        self.visible = False


class FakePuzzles:
    def __init__(self, current: int = 0, cleared: Optional[Set[int]] = None) -> None:
        self.current = current
        self.cleared = set(cleared or ())

    def current_puzzle_index(self) -> int:
        return self.current

    def is_puzzle_cleared(self, puzzle_index: int) -> bool:
        return puzzle_index in self.cleared


class FakeSurface:
    """Geometry in window coordinates: a 400x300 viewer above a 200x70 input field."""

    def __init__(self) -> None:
        self.viewer: Optional[Rect] = Rect(0, 0, 400, 300)
        self.field: Optional[Rect] = Rect(100, 320, 200, 70)
        self.field_handle: Any = "field"
        self.field_hidden = False
        self.key_rects: Dict[Any, Rect] = {}
        self.hidden: Set[Any] = set()
        self.dragging: Set[Any] = set()
        self.offsets: List[tuple] = []
        self.notices: List[str] = []
        self.ended: List[tuple] = []
        self.field_visibility: List[bool] = []

    def key_rect(self, handle):
        return self.key_rects.get(handle)

    def viewer_rect(self):
        return self.viewer

    def input_field_rect(self, exclude=None):
        if self.field is None or self.field_hidden or exclude == self.field_handle:
            return None
        return self.field

    def begin_drag(self, key, handle) -> None:
        self.dragging.add(handle)

    def drag_offset(self, handle, dx, dy, scale) -> None:
        self.offsets.append((handle, dx, dy, scale))

    def set_hidden(self, handle, hidden) -> None:
        if hidden:
            self.hidden.add(handle)
        else:
            self.hidden.discard(handle)

    def set_input_field_hidden(self, hidden) -> None:
        self.field_hidden = hidden
        self.field_visibility.append(not hidden)

    def end_drag(self, key, handle, origin) -> None:
        self.dragging.discard(handle)
        self.hidden.discard(handle)
        self.ended.append((key, handle, origin))

    def notify(self, message) -> None:
        self.notices.append(message)


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture()
def guide() -> RecordingGuide:
    return RecordingGuide()


@pytest.fixture()
def surface() -> FakeSurface:
    return FakeSurface()
