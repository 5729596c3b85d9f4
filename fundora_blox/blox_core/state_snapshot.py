"""
State Snapshot
==============

Read-only view of the engine state handed to renderers and agents.
Packs into plain dicts for JSON consumers and into fixed-size numpy arrays
for Gymnasium observations.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np

from fundora_blox.blox_core.blocks import Block, PlacedBlockInfo
from fundora_blox.blox_core.prizes import Prize
from fundora_blox.blox_core.stakes import Stake


class Phase(str, Enum):
    READY = "ready"
    PLAYING = "playing"
    DEMO = "demo"
    ENDED = "ended"

    @property
    def is_active(self) -> bool:
        """True while blocks spawn and move."""
        return self in (Phase.PLAYING, Phase.DEMO)


PHASE_IDS = {phase: i for i, phase in enumerate(Phase)}


@dataclass(frozen=True)
class GameSnapshot:
    """
    Complete engine state at one instant.

    Only immutable members, so holding on to a snapshot never exposes
    engine internals.
    """
    phase: Phase
    run_id: int
    blocks: Tuple[Block, ...]
    current_block: Optional[Block]
    position: float
    direction: int
    speed: float

    stake: Stake
    available_stakes: Tuple[Stake, ...]
    credits: Decimal

    score: int
    bonus_points: int
    highest_row: int
    blocks_stacked: int
    combo_multiplier: float
    combo_streak: int
    perfect_alignments: int
    last_placed: Optional[PlacedBlockInfo]
    potential_prize: Prize

    @property
    def width(self) -> int:
        if self.blocks:
            return self.blocks[0].width
        if self.current_block is not None:
            return self.current_block.width
        return 0

    @property
    def top_block(self) -> Optional[Block]:
        """Most recently stacked block."""
        return self.blocks[-1] if self.blocks else None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation."""
        return {
            "phase": self.phase.value,
            "run_id": self.run_id,
            "blocks": [{"row": b.row, "columns": list(b.columns)} for b in self.blocks],
            "current_block": (
                {"row": self.current_block.row, "columns": list(self.current_block.columns)}
                if self.current_block is not None else None
            ),
            "position": self.position,
            "direction": self.direction,
            "speed": self.speed,
            "stake": self.stake.label,
            "available_stakes": [s.label for s in self.available_stakes],
            "credits": str(self.credits),
            "score": self.score,
            "bonus_points": self.bonus_points,
            "highest_row": self.highest_row,
            "blocks_stacked": self.blocks_stacked,
            "combo_multiplier": self.combo_multiplier,
            "combo_streak": self.combo_streak,
            "perfect_alignments": self.perfect_alignments,
            "last_placed": (
                {
                    "row": self.last_placed.row,
                    "columns": list(self.last_placed.columns),
                    "is_perfect": self.last_placed.is_perfect,
                }
                if self.last_placed is not None else None
            ),
            "potential_prize": {
                "amount": str(self.potential_prize.amount),
                "type": self.potential_prize.kind.value,
            },
        }

    def to_obs_dict(self, max_rows: int, width: Optional[int] = None) -> Dict[str, np.ndarray]:
        """
        Convert to Gymnasium observation dictionary.

        Args:
            max_rows: Highest row the grid array covers (rows 0..max_rows).
            width: Grid width. Taken from the blocks if None.
        """
        width = width if width is not None else self.width

        grid = np.zeros((max_rows + 1, width), dtype=np.int8)
        for block in self.blocks:
            if block.row <= max_rows:
                grid[block.row] = np.asarray(block.occupied, dtype=np.int8)

        moving = np.zeros(width, dtype=np.int8)
        row = 0
        if self.current_block is not None:
            moving[:] = np.asarray(self.current_block.occupied, dtype=np.int8)
            row = self.current_block.row

        top = np.zeros(width, dtype=np.int8)
        if self.top_block is not None:
            top[:] = np.asarray(self.top_block.occupied, dtype=np.int8)

        return {
            "phase": np.array(PHASE_IDS[self.phase], dtype=np.int32),
            "position": np.array(self.position, dtype=np.float32),
            "direction": np.array(self.direction, dtype=np.int32),
            "speed": np.array(self.speed, dtype=np.float32),
            "row": np.array(row, dtype=np.int32),
            "moving_mask": moving,
            "top_mask": top,
            "grid": grid,
            "score": np.array(self.score, dtype=np.int64),
            "highest_row": np.array(self.highest_row, dtype=np.int32),
            "combo_streak": np.array(self.combo_streak, dtype=np.int32),
            "combo_multiplier": np.array(self.combo_multiplier, dtype=np.float32),
        }
