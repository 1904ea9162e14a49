"""Pure rebuild plan for the relocated keys of one puzzle.

:func:`build_replay_plan` turns the relocation store into pixel positions
inside their containers; the UI layer clears its previous relocated-key
widgets and creates one widget per :class:`RenderedKey`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple

from nazokey.core.geometry import Size
from nazokey.core.kana import INPUT_FIELD
from nazokey.core.relocation import PlacementSpace, RelocationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedKey:
    key: str
    space: PlacementSpace
    x: float
    y: float
    # Input-field keys are positioned by their center, viewer keys by their top-left corner.
    centered: bool


@dataclass(frozen=True)
class ReplayPlan:
    puzzle_index: int
    moved_keys: FrozenSet[str]
    input_field_relocated: bool
    keys: Tuple[RenderedKey, ...]
    skipped: Tuple[str, ...] = ()

    def in_space(self, space: PlacementSpace) -> Tuple[RenderedKey, ...]:
        return tuple(k for k in self.keys if k.space is space)


def build_replay_plan(
    puzzle_index: int,
    store: RelocationStore,
    viewer_size: Optional[Size],
    input_field_size: Optional[Size],
) -> ReplayPlan:
    """Resolve every relocation record of ``puzzle_index`` against container sizes.

    A record whose container is missing is skipped with a warning instead of
    raising, which covers the first render before the input field exists.
    """
    records = store.get(puzzle_index)
    rendered = []
    skipped = []
    for record in records:
        placement = record.placement
        size = input_field_size if placement.in_input_field else viewer_size
        if size is None:
            logger.warning(
                "No %s container for relocated key %r; skipping",
                placement.space.value, record.key,
            )
            skipped.append(record.key)
            continue
        rendered.append(
            RenderedKey(
                key=record.key,
                space=placement.space,
                x=placement.x * size.width,
                y=placement.y * size.height,
                centered=placement.in_input_field,
            )
        )

    return ReplayPlan(
        puzzle_index=puzzle_index,
        moved_keys=frozenset(store.moved_keys(puzzle_index)),
        input_field_relocated=any(r.key == INPUT_FIELD for r in records),
        keys=tuple(rendered),
        skipped=tuple(skipped),
    )
