"""
Motion
======

Advances the moving block and reflects it at the edges of its travel range.
"""

from __future__ import annotations

from typing import Tuple

from fundora_blox.blox_core.blocks import Block, MotionState


def integrate(motion: MotionState, dt: float, bounds: Tuple[float, float]) -> MotionState:
    """
    Advance motion by dt seconds.

    The block is clamped to the bound it reaches and its direction is set to
    point back into the range, so the result always lies in [lower, upper].

    Args:
        motion: Current motion state.
        dt: Elapsed seconds since the last tick (negative treated as 0).
        bounds: (lower, upper) legal positions.

    Returns:
        New motion state.
    """
    lower, upper = bounds
    dt = max(0.0, dt)
    position = motion.position + motion.direction * motion.speed * dt
    direction = motion.direction

    if position >= upper:
        position = upper
        direction = -1
    elif position <= lower:
        position = lower
        direction = 1

    return MotionState(position=position, direction=direction, speed=motion.speed)


class MotionIntegrator:
    """Per-tick driver: derives bounds from the moving block and integrates."""

    def advance(self, block: Block, motion: MotionState, dt: float) -> MotionState:
        return integrate(motion, dt, block.travel_range())
