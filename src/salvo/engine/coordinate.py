"""Grid addressing for the Salvo engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

GRID_SIZE = 10
ROW_LABELS = "ABCDEFGHIJ"


def clamp(value: int, low: int = 1, high: int = GRID_SIZE) -> int:
    return max(low, min(high, value))


class Direction(Enum):
    """Facing used when laying a ship out from its origin square."""

    UP = "up"
    RIGHT = "right"
    DOWN = "down"
    LEFT = "left"

    @property
    def delta(self) -> tuple[int, int]:
        """Return the (row, col) step taken for each additional ship part."""
        return _DELTAS[self]


_DELTAS = {
    Direction.UP: (-1, 0),
    Direction.RIGHT: (0, 1),
    Direction.DOWN: (1, 0),
    Direction.LEFT: (0, -1),
}


@dataclass(frozen=True)
class Coordinate:
    """Immutable 1-based grid address; rows render as letters A-J."""

    row: int
    col: int

    def __post_init__(self) -> None:
        if not is_on_grid(self.row, self.col):
            raise ValueError(f"Coordinate ({self.row}, {self.col}) is outside the {GRID_SIZE}x{GRID_SIZE} grid.")

    @property
    def key(self) -> str:
        """Canonical mapping key, e.g. ``A1`` or ``J10``."""
        return f"{ROW_LABELS[self.row - 1]}{self.col}"

    def offset_by(self, col_delta: int, row_delta: int) -> Coordinate:
        """Shift the coordinate, clamping each axis back onto the grid."""
        return Coordinate(clamp(self.row + row_delta), clamp(self.col + col_delta))

    def equals(self, other: object) -> bool:
        return self == other

    def __str__(self) -> str:
        return self.key

    @classmethod
    def parse(cls, text: str) -> Coordinate:
        """Parse the canonical key form (``B7``)."""
        cleaned = text.strip().upper()
        if len(cleaned) < 2 or cleaned[0] not in ROW_LABELS:
            raise ValueError(f"Row must be a letter between A and J: {text!r}")
        try:
            col = int(cleaned[1:])
        except ValueError as exc:
            raise ValueError(f"Column must be a number between 1 and {GRID_SIZE}: {text!r}") from exc
        return cls(ROW_LABELS.index(cleaned[0]) + 1, col)

    @classmethod
    def all(cls) -> Iterator[Coordinate]:
        """Yield every coordinate, finishing each row before the next."""
        for row in range(1, GRID_SIZE + 1):
            for col in range(1, GRID_SIZE + 1):
                yield cls(row, col)


def is_on_grid(row: int, col: int) -> bool:
    return 1 <= row <= GRID_SIZE and 1 <= col <= GRID_SIZE
