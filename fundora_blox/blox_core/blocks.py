"""
Blocks
======

Grid rows and the moving block's motion state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple


@dataclass(frozen=True)
class Block:
    """
    One row's column occupancy.

    occupied has one entry per grid column. Stacked blocks are never mutated;
    placement produces a new Block.
    """
    row: int
    occupied: Tuple[bool, ...]

    def __post_init__(self):
        if self.row < 0:
            raise ValueError(f"Block row must be >= 0, got {self.row}")

    @classmethod
    def from_columns(cls, row: int, columns: Iterable[int], width: int) -> "Block":
        """Build a block from the indices of its filled columns."""
        filled = set(columns)
        return cls(row=row, occupied=tuple(i in filled for i in range(width)))

    @classmethod
    def run(cls, row: int, start: int, length: int, width: int) -> "Block":
        """Contiguous run of `length` columns beginning at `start`."""
        if start < 0 or start + length > width:
            raise ValueError(f"Run {start}..{start + length - 1} does not fit width {width}")
        return cls.from_columns(row, range(start, start + length), width)

    @classmethod
    def centered(cls, row: int, length: int, width: int) -> "Block":
        """Run of `length` columns centered in the grid (left-biased when uneven)."""
        return cls.run(row, (width - length) // 2, length, width)

    @property
    def width(self) -> int:
        return len(self.occupied)

    @property
    def columns(self) -> Tuple[int, ...]:
        """Indices of filled columns."""
        return tuple(i for i, filled in enumerate(self.occupied) if filled)

    @property
    def active_count(self) -> int:
        """Number of filled columns."""
        return sum(1 for filled in self.occupied if filled)

    @property
    def span(self) -> Optional[Tuple[int, int]]:
        """(leftmost, rightmost) filled column, or None when empty."""
        cols = self.columns
        if not cols:
            return None
        return cols[0], cols[-1]

    def travel_range(self) -> Tuple[float, float]:
        """
        Legal offsets for this block as it slides across the grid.

        An offset of p places column i at p + i, so the block stays in the
        grid while p is in [-leftmost, width - 1 - rightmost]. An empty mask
        travels the whole grid.
        """
        span = self.span
        if span is None:
            return 0.0, float(self.width - 1)
        leftmost, rightmost = span
        return float(-leftmost), float(self.width - 1 - rightmost)

    def is_subset_of(self, other: "Block") -> bool:
        """True if every filled column here is filled in `other`."""
        return all(o or not s for s, o in zip(self.occupied, other.occupied))

    def with_row(self, row: int) -> "Block":
        return Block(row=row, occupied=self.occupied)

    def __repr__(self) -> str:
        mask = "".join("#" if filled else "." for filled in self.occupied)
        return f"Block(row={self.row}, {mask})"


@dataclass(frozen=True)
class MotionState:
    """Horizontal motion of the moving block."""
    position: float
    direction: int
    speed: float

    def __post_init__(self):
        if self.direction not in (-1, 1):
            raise ValueError(f"direction must be -1 or +1, got {self.direction}")
        if self.speed <= 0:
            raise ValueError(f"speed must be positive, got {self.speed}")


@dataclass(frozen=True)
class PlacedBlockInfo:
    """Summary of the most recent placement, for presentation."""
    row: int
    columns: Tuple[int, ...]
    is_perfect: bool
