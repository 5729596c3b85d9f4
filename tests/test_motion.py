"""
Tests for block motion.
"""

import random

import pytest

from fundora_blox.blox_core.blocks import Block, MotionState
from fundora_blox.blox_core.motion import MotionIntegrator, integrate


class TestIntegrate:
    """Test position integration and reflection."""

    def test_moves_by_speed_times_dt(self):
        motion = integrate(MotionState(0.0, 1, 2.0), 0.25, (-2.0, 2.0))
        assert motion.position == pytest.approx(0.5)
        assert motion.direction == 1

    def test_moves_left(self):
        motion = integrate(MotionState(1.0, -1, 2.0), 0.25, (-2.0, 2.0))
        assert motion.position == pytest.approx(0.5)
        assert motion.direction == -1

    def test_clamps_and_reverses_at_upper_bound(self):
        motion = integrate(MotionState(1.5, 1, 4.0), 1.0, (-2.0, 2.0))
        assert motion.position == 2.0
        assert motion.direction == -1

    def test_clamps_and_reverses_at_lower_bound(self):
        motion = integrate(MotionState(-1.5, -1, 4.0), 1.0, (-2.0, 2.0))
        assert motion.position == -2.0
        assert motion.direction == 1

    def test_meeting_bound_exactly_reverses(self):
        motion = integrate(MotionState(1.0, 1, 1.0), 1.0, (-2.0, 2.0))
        assert motion.position == 2.0
        assert motion.direction == -1

    def test_zero_dt_is_identity(self):
        start = MotionState(0.3, -1, 3.0)
        assert integrate(start, 0.0, (-2.0, 2.0)) == start

    def test_negative_dt_treated_as_zero(self):
        start = MotionState(0.3, 1, 3.0)
        assert integrate(start, -0.5, (-2.0, 2.0)).position == 0.3

    def test_never_leaves_range(self):
        """Random walks through many ticks stay within [lower, upper]."""
        r = random.Random(1234)
        for _ in range(200):
            lower = -float(r.randint(0, 6))
            upper = float(r.randint(0, 6))
            motion = MotionState(r.uniform(lower, upper), r.choice([-1, 1]), r.uniform(0.5, 25.0))
            for _ in range(50):
                motion = integrate(motion, r.uniform(0.0, 0.5), (lower, upper))
                assert lower <= motion.position <= upper


class TestMotionIntegrator:
    """Test bounds derived from the moving block."""

    def test_uses_block_travel_range(self):
        block = Block.from_columns(1, [2, 3, 4], 7)
        motion = MotionIntegrator().advance(block, MotionState(0.0, 1, 10.0), 1.0)
        assert motion.position == 2.0
        assert motion.direction == -1

    def test_single_column_travels_whole_grid(self):
        block = Block.from_columns(4, [0], 7)
        motion = MotionIntegrator().advance(block, MotionState(0.0, 1, 100.0), 1.0)
        assert motion.position == 6.0


class TestMotionState:
    """Test motion state invariants."""

    def test_rejects_bad_direction(self):
        with pytest.raises(ValueError):
            MotionState(0.0, 0, 1.0)

    def test_rejects_non_positive_speed(self):
        with pytest.raises(ValueError):
            MotionState(0.0, 1, 0.0)
