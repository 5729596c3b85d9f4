"""
Placement Resolver
==================

Intersects a stopped block with the block beneath it.

Each filled column i of the moving block lands on grid column
snap(position + i). It survives only if that column is inside the grid and
filled in the block below. Snapping is the one place where a fractional
position turns into a payout-relevant integer, so the rounding rule is fixed
by configuration:

- half_away_from_zero: 2.5 -> 3, 3.5 -> 4 (default)
- half_even:           2.5 -> 2, 3.5 -> 4
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fundora_blox.blox_core.blocks import Block
from fundora_blox.blox_core.config_loader import GameConfig, get_config


def round_half_away_from_zero(x: float) -> int:
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def round_half_even(x: float) -> int:
    return int(round(x))


ROUNDING_FUNCTIONS: Dict[str, Callable[[float], int]] = {
    "half_away_from_zero": round_half_away_from_zero,
    "half_even": round_half_even,
}


@dataclass(frozen=True)
class PlacementResult:
    """Outcome of stopping a block."""
    block: Block
    has_overlap: bool
    active_count: int

    @property
    def columns(self):
        return self.block.columns


class PlacementResolver:
    """
    Resolves where a stopped block comes to rest.

    The resulting block is always a subset of the block beneath it.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize placement resolver.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._width = config.grid.width
        self._rounding = config.grid.rounding
        self._snap = ROUNDING_FUNCTIONS[config.grid.rounding]

    @property
    def rounding(self) -> str:
        """Name of the snapping rule in use."""
        return self._rounding

    def snap(self, x: float) -> int:
        """Grid column for a fractional column coordinate."""
        return self._snap(x)

    def resolve(self, moving: Block, position: float, previous: Block) -> PlacementResult:
        """
        Stop `moving` at `position` on top of `previous`.

        Args:
            moving: The block in flight.
            position: Its offset at the stop instant.
            previous: Top of the stack.

        Returns:
            PlacementResult. has_overlap False means the run is lost and
            the returned block is empty.
        """
        landed = [False] * self._width

        for i, filled in enumerate(moving.occupied):
            if not filled:
                continue
            column = self._snap(position + i)
            if 0 <= column < self._width and previous.occupied[column]:
                landed[column] = True

        block = Block(row=moving.row, occupied=tuple(landed))
        active = block.active_count
        return PlacementResult(block=block, has_overlap=active > 0, active_count=active)
