from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Puzzle:
    key: str
    image: str
    answer: str
    hint: str


class PuzzleRepository:
    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or Path(__file__).resolve().parent.parent / "data" / "puzzles"
        self._puzzles = self._load_puzzles()

    def __len__(self) -> int:
        return len(self._puzzles)

    def get(self, index: int) -> Puzzle:
        return self._puzzles[index]

    def image_path(self, index: int) -> Path:
        return self._base_dir / self._puzzles[index].image

    def _load_puzzles(self) -> List[Puzzle]:
        if not self._base_dir.exists():
            raise FileNotFoundError(f"Puzzles directory not found: {self._base_dir}")

        def _sort_key(p: Path) -> tuple[int, str]:
            m = re.match(r"^puzzle(\d+)$", p.stem)
            if m:
                return (int(m.group(1)), p.stem)
            return (10**9, p.stem)

        puzzles: List[Puzzle] = []
        for puzzle_path in sorted(self._base_dir.glob("puzzle*.yaml"), key=_sort_key):
            raw = yaml.safe_load(puzzle_path.read_text(encoding="utf-8"))
            if not raw or not isinstance(raw, dict):
                raise ValueError(f"{puzzle_path.name}: expected YAML with 'image', 'answer' and 'hint'")
            image = raw.get("image")
            answer = raw.get("answer")
            if not image or not isinstance(image, str):
                raise ValueError(f"{puzzle_path.name}: missing or invalid 'image'")
            if answer is None or not str(answer).strip():
                raise ValueError(f"{puzzle_path.name}: missing 'answer'")
            hint = str(raw.get("hint") or "").strip()
            puzzles.append(
                Puzzle(key=puzzle_path.stem, image=image.strip(), answer=str(answer).strip(), hint=hint)
            )

        if not puzzles:
            raise ValueError(f"No puzzle files (puzzle*.yaml) found in {self._base_dir}")
        return puzzles


@dataclass
class AnswerResult:
    """Outcome of a single answer submission."""

    correct: bool
    finished: bool


class PuzzleProgress:
    """Tracks which puzzle is on screen, which are cleared and how far the player may go.

    A puzzle is unlocked once every puzzle before it is cleared. Moving back
    is always allowed; moving forward stops at the highest unlocked puzzle.
    """

    def __init__(self, puzzle_count: int, unlock_all: bool = False) -> None:
        """Start at the first puzzle with nothing cleared."""
        if puzzle_count <= 0:
            raise ValueError(f"puzzle_count must be positive, got {puzzle_count}")
        self._count = puzzle_count
        self._unlock_all = unlock_all
        self._current = 0
        self._max_unlocked = puzzle_count - 1 if unlock_all else 0
        self._cleared: Set[int] = set()

    @property
    def puzzle_count(self) -> int:
        return self._count

    @property
    def max_unlocked(self) -> int:
        """Highest puzzle index the player can navigate to."""
        return self._max_unlocked

    @property
    def cleared(self) -> List[int]:
        """Cleared puzzle indices in ascending order."""
        return sorted(self._cleared)

    def current_puzzle_index(self) -> int:
        return self._current

    def is_puzzle_cleared(self, puzzle_index: int) -> bool:
        return puzzle_index in self._cleared

    def is_last(self) -> bool:
        return self._current == self._count - 1

    def can_move(self, step: int) -> bool:
        """Return True if ``current + step`` is in range and unlocked."""
        target = self._current + step
        if not 0 <= target < self._count:
            return False
        return step <= 0 or target <= self._max_unlocked

    def move(self, step: int) -> bool:
        if not self.can_move(step):
            return False
        self._current += step
        return True

    def go_to(self, puzzle_index: int) -> None:
        if not 0 <= puzzle_index < self._count:
            raise IndexError(f"Puzzle index out of range: {puzzle_index}")
        self._current = puzzle_index

    def submit(self, typed: str, answer: str) -> AnswerResult:
        """Check ``typed`` against ``answer`` for the current puzzle; a match clears it and unlocks the next."""
        correct = typed == answer
        logger.info("Answer for puzzle %d: %r (%s)", self._current, typed, "correct" if correct else "wrong")
        if correct:
            self._cleared.add(self._current)
            if self._current == self._max_unlocked and self._current < self._count - 1:
                self._max_unlocked += 1
        return AnswerResult(correct=correct, finished=correct and self.is_last())

    def reset(self) -> None:
        """Back to the first puzzle with nothing cleared."""
        self._current = 0
        self._max_unlocked = self._count - 1 if self._unlock_all else 0
        self._cleared = set()
