"""Tests for nazokey.core.placement – dragging keys and classifying drops."""

from __future__ import annotations

import pytest

from conftest import FakePuzzles
from nazokey.core.composer import TextComposer
from nazokey.core.geometry import Direction, Point, Rect, Size
from nazokey.core.gestures import (
    LONG_PRESS_MS,
    FlickGestureMachine,
    GesturePhase,
    InteractionState,
    KeyOrigin,
    Keystroke,
)
from nazokey.core.kana import INPUT_FIELD
from nazokey.core.placement import (
    CLEARED_PUZZLE_NOTICE,
    DRAG_SCALE,
    DropTarget,
    PlacementEngine,
    PointerRouter,
    input_field_ratio,
    viewer_ratio,
)
from nazokey.core.relocation import Placement, RelocationStore
from nazokey.core.replay import build_replay_plan

KEY_REST = Rect(150, 500, 64, 64)
PRESS = Point(180, 530)


class Rig:
    """Flick machine and placement engine wired the way the main window wires them."""

    def __init__(self, scheduler, surface, puzzles=None):
        self.scheduler = scheduler
        self.surface = surface
        self.puzzles = puzzles or FakePuzzles()
        self.interaction = InteractionState()
        self.store = RelocationStore()
        self.composer = TextComposer()
        self.replays = []
        self.machine = FlickGestureMachine(self.interaction, scheduler, self.composer)
        self.engine = PlacementEngine(
            self.interaction, self.store, self.puzzles, surface, scheduler, self._replay,
        )
        self.machine.on_handoff(self.engine.handle_handoff)
        surface.key_rects["key-か"] = KEY_REST
        surface.key_rects["field"] = surface.field
        surface.key_rects["moved-か"] = Rect(40, 40, 64, 64)

    def _replay(self):
        self.replays.append((self.interaction.drag_active, list(self.surface.ended)))

    def hold(self, key="か", handle="key-か", origin=KeyOrigin.KEYBOARD, at=PRESS):
        self.machine.press(key, at, handle=handle, origin=origin)
        self.scheduler.advance(LONG_PRESS_MS)

    def drag_by(self, dx, dy, at=PRESS):
        self.engine.move(at)
        end = Point(at.x + dx, at.y + dy)
        self.engine.move(end)
        return self.engine.release(end)


@pytest.fixture()
def rig(scheduler, surface) -> Rig:
    return Rig(scheduler, surface)


# ===========================================================================
# Ratio helpers
# ===========================================================================

class TestRatios:
    def test_viewer_ratio_uses_top_left(self):
        assert viewer_ratio(Rect(100, 150, 64, 64), Rect(0, 0, 400, 300)) == (0.25, 0.5)

    def test_viewer_ratio_relative_to_viewer_origin(self):
        assert viewer_ratio(Rect(60, 70, 10, 10), Rect(20, 10, 400, 300)) == (0.1, 0.2)

    def test_viewer_ratio_clamped_below_one(self):
        x, y = viewer_ratio(Rect(400, 300, 0, 0), Rect(0, 0, 400, 300))
        assert x < 1.0 and y < 1.0
        Placement.viewer(x, y)

    def test_input_field_ratio_uses_center(self):
        assert input_field_ratio(Rect(168, 323, 64, 64), Rect(100, 320, 200, 70)) == (0.5, 0.5)

    def test_input_field_fallback(self):
        assert input_field_ratio(Rect(0, 0, 10, 10), None) == (0.5, 0.5)
        assert input_field_ratio(Rect(0, 0, 10, 10), Rect(0, 0, 0, 10)) == (0.5, 0.5)


# ===========================================================================
# Hand-off and drag tracking
# ===========================================================================

class TestDragStart:
    def test_long_press_starts_drag(self, rig):
        rig.hold()
        assert rig.engine.active
        assert rig.interaction.drag_active
        assert rig.interaction.phase is GesturePhase.DRAGGING
        assert rig.surface.dragging == {"key-か"}

    def test_first_move_is_zero_point(self, rig):
        rig.hold()
        rig.engine.move(Point(300, 300))
        assert rig.surface.offsets == []
        rig.engine.move(Point(310, 280))
        assert rig.surface.offsets == [("key-か", 10, -20, DRAG_SCALE)]

    def test_second_drag_refused(self, rig):
        rig.hold()
        assert rig.engine.start_drag("あ", "key-あ") is False

    def test_press_during_drag_ignored(self, rig):
        rig.hold()
        assert rig.machine.press("あ", PRESS) is False
        assert rig.machine.release(PRESS) is None
        assert rig.composer.text == ""

    def test_cleared_puzzle_refuses_drag(self, scheduler, surface):
        rig = Rig(scheduler, surface, FakePuzzles(current=0, cleared={0}))
        rig.hold()
        assert surface.notices == [CLEARED_PUZZLE_NOTICE]
        assert not rig.engine.active
        assert not rig.interaction.drag_active
        assert rig.interaction.session is None
        assert rig.machine.release(PRESS) is None
        assert rig.composer.text == ""
        assert rig.store.get(0) == []

    def test_relocated_origin_lifts_record(self, rig):
        rig.store.save(0, "か", Placement.viewer(0.1, 0.1))
        rig.hold(handle="moved-か", origin=KeyOrigin.RELOCATED, at=Point(60, 60))
        assert rig.store.find(0, "か") is None

    def test_vanished_key_widget_abandons_drag(self, rig, caplog):
        rig.store.save(0, "か", Placement.viewer(0.1, 0.1))

        def _gone(handle):
            raise RuntimeError("Internal C++ object already deleted")

        rig.surface.key_rect = _gone
        rig.hold(handle="moved-か", origin=KeyOrigin.RELOCATED, at=Point(60, 60))
        assert rig.store.find(0, "か") is not None
        assert rig.interaction.session is None
        assert not rig.interaction.drag_active
        assert not rig.engine.active
        assert "abandoned" in caplog.text
        assert rig.machine.press("あ", PRESS) is True

    def test_vanished_input_field_clone_keeps_its_record(self, rig):
        rig.store.save(0, INPUT_FIELD, Placement.viewer(0.2, 0.2))

        def _gone(key, handle):
            raise RuntimeError("Internal C++ object already deleted")

        rig.surface.begin_drag = _gone
        rig.hold(key=INPUT_FIELD, handle="field", origin=KeyOrigin.RELOCATED, at=Point(200, 350))
        assert rig.store.find(0, INPUT_FIELD) is not None
        assert not rig.interaction.drag_active
        assert rig.interaction.session is None
        rig.scheduler.advance(0)
        assert rig.replays == []


# ===========================================================================
# Drop classification
# ===========================================================================

class TestDrop:
    def test_drop_in_viewer(self, rig):
        rig.hold()
        result = rig.drag_by(-100, -400)  # rest (150, 500) -> (50, 100)
        placement = result.placement
        assert result.target is DropTarget.VIEWER
        assert placement.x == pytest.approx(50 / 400)
        assert placement.y == pytest.approx(100 / 300)
        assert rig.store.find(0, "か").placement == placement

    def test_drop_in_input_field(self, rig):
        rig.hold()
        # rest (150, 500) -> (150, 323); center (182, 355)
        result = rig.drag_by(0, -177)
        assert result.target is DropTarget.INPUT_FIELD
        assert result.placement.in_input_field
        assert result.placement.x == pytest.approx(82 / 200)
        assert result.placement.y == pytest.approx(0.5)
        record = rig.store.find(0, "か")
        assert record.x_ratio < 0 and record.y_ratio < 0

    def test_drop_nowhere_returns_key(self, rig):
        rig.store.save(0, "か", Placement.viewer(0.5, 0.5))
        rig.hold()
        result = rig.drag_by(5, 5)
        assert result.target is DropTarget.NONE
        assert result.placement is None
        assert rig.store.get(0) == []

    def test_partially_outside_viewer_is_no_drop(self, rig):
        rig.hold()
        result = rig.drag_by(220, -400)  # (370, 100) overflows the 400 px width
        assert result.target is DropTarget.NONE

    def test_viewer_wins_when_containers_overlap(self, rig):
        rig.surface.field = Rect(0, 200, 400, 100)
        rig.hold()
        result = rig.drag_by(-100, -290)  # (50, 210) inside both
        assert result.target is DropTarget.VIEWER

    def test_drop_is_exclusive_across_puzzles(self, scheduler, surface):
        rig = Rig(scheduler, surface, FakePuzzles(current=2))
        rig.store.save(0, "か", Placement.viewer(0.1, 0.1))
        rig.store.save(5, "か", Placement.input_field(0.5, 0.5))
        rig.hold()
        rig.drag_by(-100, -400)
        assert rig.store.find(0, "か") is None
        assert rig.store.find(5, "か") is None
        assert rig.store.find(2, "か") is not None

    def test_hidden_handle_on_drop(self, rig):
        rig.hold()
        rig.drag_by(-100, -400)
        assert "key-か" in rig.surface.hidden

    def test_missing_key_geometry_is_no_drop(self, rig, caplog):
        del rig.surface.key_rects["key-か"]
        rig.hold()
        result = rig.drag_by(-100, -400)
        assert result.target is DropTarget.NONE
        assert "No geometry" in caplog.text

    def test_missing_viewer_geometry(self, rig):
        rig.surface.viewer = None
        rig.hold()
        assert rig.drag_by(-100, -400).target is DropTarget.NONE

    def test_release_without_drag(self, rig):
        assert rig.engine.release(PRESS) is None
        assert rig.scheduler.pending == []


# ===========================================================================
# Input field relocation
# ===========================================================================

class TestInputFieldDrag:
    def test_move_into_viewer_hides_field(self, rig):
        rig.hold(key=INPUT_FIELD, handle="field", at=Point(200, 350))
        result = rig.drag_by(-100, -300, at=Point(200, 350))  # (0, 20)
        assert result.target is DropTarget.VIEWER
        assert rig.surface.field_visibility == [False]

    def test_removal_is_scoped_to_current_puzzle(self, rig):
        rig.store.save(3, INPUT_FIELD, Placement.viewer(0.2, 0.2))
        rig.hold(key=INPUT_FIELD, handle="field", at=Point(200, 350))
        rig.drag_by(-100, -300, at=Point(200, 350))
        assert rig.store.find(3, INPUT_FIELD) is not None
        assert rig.store.find(0, INPUT_FIELD) is not None

    def test_dropped_nowhere_shows_field(self, rig):
        rig.hold(key=INPUT_FIELD, handle="field", at=Point(200, 350))
        result = rig.drag_by(0, 200, at=Point(200, 350))
        assert result.target is DropTarget.NONE
        assert rig.surface.field_visibility == [True]

    def test_field_cannot_drop_into_itself(self, rig):
        rig.hold(key=INPUT_FIELD, handle="field", at=Point(200, 350))
        result = rig.drag_by(0, 0, at=Point(200, 350))
        assert result.target is DropTarget.NONE


# ===========================================================================
# Settling after the drop
# ===========================================================================

class TestSettle:
    def test_end_drag_then_replay_then_pointer_release(self, rig):
        rig.hold()
        rig.drag_by(-100, -400)
        assert rig.surface.ended == []
        assert rig.replays == []
        assert rig.interaction.drag_active

        rig.scheduler.advance(0)
        # replay ran after end_drag and before the pointer was released
        assert rig.replays == [(True, [("か", "key-か", KeyOrigin.KEYBOARD)])]
        assert not rig.interaction.drag_active
        assert rig.interaction.session is None
        assert not rig.engine.active

    def test_new_gesture_after_settle(self, rig):
        rig.hold()
        rig.drag_by(5, 5)
        rig.scheduler.advance(0)
        assert rig.machine.press("あ", PRESS) is True
        rig.machine.release(PRESS)
        assert rig.composer.text == "あ"

    def test_pointer_released_even_if_replay_fails(self, scheduler, surface):
        rig = Rig(scheduler, surface)

        def _boom():
            raise RuntimeError("render failed")

        rig.engine._replay = _boom
        rig.hold()
        rig.drag_by(5, 5)
        with pytest.raises(RuntimeError):
            scheduler.advance(0)
        scheduler.advance(0)
        assert not rig.interaction.drag_active


# ===========================================================================
# Ratio round trip
# ===========================================================================

class TestRatioRoundTrip:
    def test_viewer_drop_replays_at_same_pixel(self, rig):
        viewer = Rect(20, 30, 400, 300)
        rig.surface.viewer = viewer
        rig.hold()
        rig.drag_by(-7, -325)  # rest (150, 500) -> (143, 175)
        (key,) = build_replay_plan(0, rig.store, viewer.size, Size(200, 70)).keys
        assert viewer.left + key.x == pytest.approx(143)
        assert viewer.top + key.y == pytest.approx(175)

    def test_input_field_drop_replays_at_same_center(self, rig):
        field = rig.surface.field
        rig.hold()
        rig.drag_by(0, -177)  # center (182, 355)
        (key,) = build_replay_plan(0, rig.store, Size(400, 300), field.size).keys
        assert key.centered
        assert field.left + key.x == pytest.approx(182)
        assert field.top + key.y == pytest.approx(355)


# ===========================================================================
# Pointer routing
# ===========================================================================

@pytest.fixture()
def router(rig) -> PointerRouter:
    return PointerRouter(rig.machine, rig.engine)


class TestPointerRouter:
    def test_flick_goes_to_gesture_machine(self, rig, router):
        router.press("か", PRESS, handle="key-か")
        router.move(Point(220, 530))
        assert router.release(Point(220, 530)) == Keystroke("か", Direction.RIGHT)
        assert rig.composer.text == "け"

    def test_drag_goes_to_engine(self, rig, router):
        router.press("か", PRESS, handle="key-か")
        rig.scheduler.advance(LONG_PRESS_MS)
        router.move(PRESS)
        router.move(Point(80, 130))
        result = router.release(Point(80, 130))
        assert result.target is DropTarget.VIEWER
        assert rig.composer.text == ""

    def test_cancel_during_drag_drops_in_place(self, rig, router):
        router.press("か", PRESS, handle="key-か")
        rig.scheduler.advance(LONG_PRESS_MS)
        router.move(PRESS)
        router.move(Point(80, 130))
        router.cancel()
        assert not rig.engine.active
        assert rig.store.find(0, "か") is not None
        rig.scheduler.advance(0)
        assert not rig.interaction.drag_active
        assert rig.replays
        assert router.press("あ", PRESS) is True

    def test_cancel_during_drag_outside_targets(self, rig, router):
        router.press("か", PRESS, handle="key-か")
        rig.scheduler.advance(LONG_PRESS_MS)
        router.cancel()
        assert not rig.engine.active
        assert rig.store.get(0) == []
        rig.scheduler.advance(0)
        assert rig.interaction.session is None

    def test_cancel_before_long_press(self, rig, router):
        router.press("か", PRESS, handle="key-か")
        router.cancel()
        rig.scheduler.advance(LONG_PRESS_MS)
        assert not rig.engine.active
        assert rig.interaction.session is None
        assert rig.composer.text == ""
