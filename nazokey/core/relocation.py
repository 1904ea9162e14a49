"""Per-puzzle record of keys dragged off the keyboard.

Placements are stored as ratios of a reference container so they survive
window resizes. Two containers exist: the background image viewer and the
text-input field. In memory the container is an explicit tag on
:class:`Placement`; the signed-ratio form (negative = input field) only
exists at the output boundary (:meth:`Placement.to_ratios`,
:meth:`RelocationStore.snapshot`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Tuple

from nazokey.core.kana import INPUT_FIELD

logger = logging.getLogger(__name__)

PUZZLE_COUNT = 7

StoreListener = Callable[["RelocationStore"], None]


class PlacementSpace(str, Enum):
    VIEWER = "viewer"
    INPUT_FIELD = "input_field"


@dataclass(frozen=True)
class Placement:
    """Position of a relocated key as a fraction of its container.

    For the viewer, ``(x, y)`` is the key's top-left corner. For the input
    field, ``(x, y)`` is the key's center.
    """

    space: PlacementSpace
    x: float
    y: float

    def __post_init__(self) -> None:
        for value in (self.x, self.y):
            if not 0.0 <= value < 1.0:
                raise ValueError(f"Placement ratio out of range [0, 1): {value!r}")

    @classmethod
    def viewer(cls, x: float, y: float) -> "Placement":
        return cls(PlacementSpace.VIEWER, x, y)

    @classmethod
    def input_field(cls, x: float, y: float) -> "Placement":
        return cls(PlacementSpace.INPUT_FIELD, x, y)

    @property
    def in_input_field(self) -> bool:
        return self.space is PlacementSpace.INPUT_FIELD

    def to_ratios(self) -> Tuple[float, float]:
        """Signed-ratio form: input-field placements are negated."""
        if self.in_input_field:
            return -abs(self.x), -abs(self.y)
        return self.x, self.y


@dataclass(frozen=True)
class RelocationRecord:
    key: str
    placement: Placement

    @property
    def x_ratio(self) -> float:
        return self.placement.to_ratios()[0]

    @property
    def y_ratio(self) -> float:
        return self.placement.to_ratios()[1]

    def to_dict(self) -> Dict[str, object]:
        return {"key": self.key, "x_ratio": self.x_ratio, "y_ratio": self.y_ratio}


class RelocationStore:
    """In-memory relocation records, one ordered list per puzzle.

    A key appears at most once per puzzle; saving it again replaces the
    earlier record and moves it to the end. Nothing is written to disk: the
    store starts empty and lives for the session.
    """

    def __init__(self, puzzle_count: int = PUZZLE_COUNT) -> None:
        if puzzle_count <= 0:
            raise ValueError(f"puzzle_count must be positive, got {puzzle_count}")
        self._records: List[List[RelocationRecord]] = [[] for _ in range(puzzle_count)]
        self._listeners: List[StoreListener] = []

    @property
    def puzzle_count(self) -> int:
        return len(self._records)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Call ``listener`` after every mutation. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def save(self, puzzle_index: int, key: str, placement: Placement) -> RelocationRecord:
        records = self._records[self._check_index(puzzle_index)]
        record = RelocationRecord(key=key, placement=placement)
        records[:] = [r for r in records if r.key != key]
        records.append(record)
        logger.debug("Saved %r in puzzle %d at %s", key, puzzle_index, record.to_dict())
        self._notify()
        return record

    def remove(self, puzzle_index: int, key: str) -> bool:
        """Drop ``key`` from one puzzle. Returns True if a record was removed."""
        records = self._records[self._check_index(puzzle_index)]
        kept = [r for r in records if r.key != key]
        if len(kept) == len(records):
            return False
        records[:] = kept
        logger.debug("Removed %r from puzzle %d", key, puzzle_index)
        self._notify()
        return True

    def remove_everywhere(self, key: str) -> int:
        """Drop ``key`` from every puzzle. Returns the number of records removed."""
        removed = 0
        for records in self._records:
            kept = [r for r in records if r.key != key]
            removed += len(records) - len(kept)
            records[:] = kept
        if removed:
            logger.debug("Removed %r from all puzzles (%d records)", key, removed)
            self._notify()
        return removed

    def get(self, puzzle_index: int) -> List[RelocationRecord]:
        return list(self._records[self._check_index(puzzle_index)])

    def find(self, puzzle_index: int, key: str) -> Optional[RelocationRecord]:
        for record in self._records[self._check_index(puzzle_index)]:
            if record.key == key:
                return record
        return None

    def moved_keys(self, current_puzzle: int) -> Set[str]:
        """Identities that should show the moved indicator on the fixed keyboard.

        Any key relocated in any puzzle counts, except the input field which
        only counts when relocated in ``current_puzzle``.
        """
        current = self._check_index(current_puzzle)
        moved: Set[str] = set()
        for index, records in enumerate(self._records):
            for record in records:
                if record.key == INPUT_FIELD and index != current:
                    continue
                moved.add(record.key)
        return moved

    def reset(self) -> None:
        self._records = [[] for _ in range(self.puzzle_count)]
        logger.info("Relocation store reset")
        self._notify()

    def snapshot(self) -> Dict[int, List[Dict[str, object]]]:
        """Signed-ratio view of every non-empty puzzle, for inspection and logging."""
        return {
            index: [record.to_dict() for record in records]
            for index, records in enumerate(self._records)
            if records
        }

    def _check_index(self, puzzle_index: int) -> int:
        if not 0 <= puzzle_index < len(self._records):
            raise IndexError(f"Puzzle index out of range: {puzzle_index}")
        return puzzle_index

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Relocation store listener failed")
