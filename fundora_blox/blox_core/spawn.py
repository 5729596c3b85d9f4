"""
Spawn Planner
=============

Produces each new moving block: its row, its columns, where it starts,
which way it goes and how fast.

Speed grows with the row, jumps at the money line, and is scaled by the
stake so that bigger stakes are harder to stack:

    speed = (base + (row - 1) * increment) * spike * stake_multiplier

increment is drawn from [min_increment, max_increment) on every spawn and
spike from [spike_min, spike_max) on rows at or above the money line.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fundora_blox.blox_core.blocks import Block, MotionState
from fundora_blox.blox_core.config_loader import GameConfig, get_config
from fundora_blox.blox_core.rng import RandomSource
from fundora_blox.blox_core.stakes import Stake, StakeLadder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpawnPlan:
    """A freshly spawned moving block and its motion."""
    block: Block
    motion: MotionState
    spike: float = 1.0
    stake_multiplier: float = 1.0


class SpawnPlanner:
    """
    Plans new moving blocks.

    All randomness is drawn from the shared RandomSource in a fixed order:
    start position, direction, speed increment, then the money-line spike.
    """

    def __init__(
        self,
        rng: RandomSource,
        config: Optional[GameConfig] = None,
        ladder: Optional[StakeLadder] = None
    ):
        """
        Initialize spawn planner.

        Args:
            rng: Random source shared with the rest of the engine.
            config: Game configuration. Uses default if None.
            ladder: Stake ladder. Built from config if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._rng = rng
        self._ladder = ladder if ladder is not None else StakeLadder(config)
        self._width = config.grid.width

    def base_block(self) -> Block:
        """
        Synthetic row-0 block every run starts from.

        Centered, or a random run that fits when grid.randomize_base is set.
        """
        grid = self._config.grid
        if grid.randomize_base:
            start = self._rng.randrange(grid.width - grid.base_width + 1)
            return Block.run(0, start, grid.base_width, grid.width)
        return Block.centered(0, grid.base_width, grid.width)

    def plan(
        self,
        previous: Optional[Block],
        previous_direction: Optional[int],
        stake: Stake
    ) -> SpawnPlan:
        """
        Plan the next moving block.

        Args:
            previous: Top of the stack, or None if nothing is stacked.
            previous_direction: Direction of the last moving block, or None
                for the first block of a run.
            stake: Active stake.

        Returns:
            SpawnPlan with the new block and its initial motion.
        """
        if previous is None:
            block = self.base_block().with_row(1)
        else:
            # Same mask as the block it has to land on
            block = previous.with_row(previous.row + 1)

        lower, upper = block.travel_range()
        position = self._rng.uniform(lower, upper)

        if previous_direction is None:
            direction = self._rng.sign()
        elif self._rng.chance(self._config.motion.flip_probability):
            direction = -previous_direction
        else:
            direction = previous_direction

        speed, spike, stake_multiplier = self.speed_for(block.row, stake)

        logger.debug(
            "Spawn row %d at %.2f dir %+d speed %.2f (stake x%.2f, spike x%.2f)",
            block.row, position, direction, speed, stake_multiplier, spike
        )

        return SpawnPlan(
            block=block,
            motion=MotionState(position=position, direction=direction, speed=speed),
            spike=spike,
            stake_multiplier=stake_multiplier
        )

    def speed_for(self, row: int, stake: Stake):
        """
        Draw a speed for a row.

        Returns:
            (speed, spike, stake_multiplier) tuple.
        """
        motion = self._config.motion
        increment = self._rng.uniform(motion.min_increment, motion.max_increment)
        speed = motion.base_speed + (row - 1) * increment

        spike = 1.0
        if row >= motion.money_line_row:
            spike = self._rng.uniform(motion.spike_min, motion.spike_max)
            logger.debug("Money line speed spike on row %d: x%.2f", row, spike)

        stake_multiplier = self._ladder.speed_multiplier(stake)
        return speed * spike * stake_multiplier, spike, stake_multiplier
