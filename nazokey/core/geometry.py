"""Pointer coordinates, flick direction and rectangle containment."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

FLICK_THRESHOLD_PX = 30.0


class Direction(str, Enum):
    CENTER = "center"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class Rect:
    """Axis-aligned box in window coordinates (y grows downwards)."""

    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> Point:
        return Point(self.left + self.width / 2, self.top + self.height / 2)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    def translated(self, dx: float, dy: float) -> "Rect":
        return Rect(self.left + dx, self.top + dy, self.width, self.height)


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    return math.hypot(x2 - x1, y2 - y1)


def flick_direction(dx: float, dy: float, threshold: float = FLICK_THRESHOLD_PX) -> Direction:
    """Classify a displacement from the press anchor.

    Short displacements are a plain tap (``CENTER``); otherwise the dominant
    axis wins. Ties between the axes go to the vertical one.
    """
    if distance(0, 0, dx, dy) < threshold:
        return Direction.CENTER
    if abs(dx) > abs(dy):
        return Direction.RIGHT if dx > 0 else Direction.LEFT
    return Direction.DOWN if dy > 0 else Direction.UP


def rect_contains(inner: Rect, outer: Rect) -> bool:
    """True if ``inner`` lies fully inside ``outer`` (edges inclusive)."""
    return (
        inner.top >= outer.top
        and inner.left >= outer.left
        and inner.bottom <= outer.bottom
        and inner.right <= outer.right
    )


def event_position(event: Any) -> Point:
    """Return the primary contact point of a mouse or touch event.

    Touch events expose ``points()``; the first touch point is used. Positions
    are taken in window (scene) coordinates so every widget shares one space.
    """
    points = getattr(event, "points", None)
    if callable(points):
        touches = points()
        if touches:
            event = touches[0]
    pos = event.scenePosition()
    return Point(float(pos.x()), float(pos.y()))
